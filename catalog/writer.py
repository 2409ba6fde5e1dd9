"""Output helpers for the catalog scraper.

Records are serialised with their public aliases (e.g. `creditRestriction`)
and absent optional fields are left out of the JSON entirely.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Sequence, Type

from pydantic import BaseModel

from .crawler import Outcome, OutcomeStatus

LOGGER = logging.getLogger(__name__)


class CatalogWriter:
    """Persist course/program data and produce lightweight quality reports."""

    def __init__(self, *, encoding: str = "utf-8", indent: int = 2) -> None:
        self.encoding = encoding
        self.indent = indent

    def write_json(self, records: Iterable[BaseModel], destination: Path | str) -> Path:
        """Write records as an indented JSON array; an empty run still writes `[]`."""
        payload = [record.model_dump(by_alias=True, exclude_none=True) for record in records]

        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=self.indent, ensure_ascii=False) + "\n", encoding=self.encoding)

        LOGGER.info("Wrote %d record(s) to %s", len(payload), path)
        return path

    @staticmethod
    def build_completeness_report(records: Iterable[BaseModel], model: Type[BaseModel]) -> dict:
        """Calculate how frequently each field was populated."""
        records = list(records)
        total = len(records)
        summary = {"total": total, "fields": {}}

        if total == 0:
            return summary

        counters = Counter()
        for record in records:
            for key, value in record.model_dump().items():
                if isinstance(value, str):
                    present = bool(value.strip())
                elif isinstance(value, list):
                    present = bool(value)
                else:
                    present = value is not None
                if present:
                    counters[key] += 1

        for key in model.model_fields.keys():
            present = counters.get(key, 0)
            summary["fields"][key] = {
                "present": present,
                "missing": total - present,
                "percent_present": round((present / total) * 100, 1),
            }

        return summary

    @staticmethod
    def count_outcomes(outcomes: Sequence[Outcome]) -> dict:
        counts = Counter(outcome.status for outcome in outcomes)
        return {status.value: counts.get(status, 0) for status in OutcomeStatus}
