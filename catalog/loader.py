"""Read persisted catalog artifacts back and shape them for plan comparison.

The crawler only stores course codes on programs; `CatalogArchive` resolves
those codes against the course artifact to produce `{id, name, hours}` entries.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .parser import CourseRecord, ProgramRecord

LOGGER = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _read_records(file_path: Path | str, model: Type[M]) -> List[M]:
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog artifact not found: {path}")

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array")

    records: List[M] = []
    for index, item in enumerate(payload):
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            LOGGER.warning("Ignoring invalid entry %d in %s: %s", index, path, exc)
    return records


@dataclass(slots=True)
class CatalogArchive:
    """The two crawl artifacts, indexed for lookups."""

    courses: List[CourseRecord]
    programs: List[ProgramRecord]
    _by_code: Dict[str, CourseRecord] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._by_code = {}
        for course in self.courses:
            self._by_code.setdefault(course.code, course)

    @classmethod
    def from_json(cls, courses_file: Path | str, programs_file: Path | str) -> "CatalogArchive":
        return cls(_read_records(courses_file, CourseRecord), _read_records(programs_file, ProgramRecord))

    def program(self, name: str) -> ProgramRecord:
        for program in self.programs:
            if program.name == name:
                return program
        raise KeyError(f"Unknown program: {name}")

    def required_courses(self, program: ProgramRecord) -> List[dict]:
        """Resolve a program's course codes to `{id, name, hours}` entries.

        Codes missing from the course artifact keep their code as name and
        contribute zero hours.
        """
        entries = []
        for code in program.required_courses:
            course = self._by_code.get(code)
            if course is None:
                LOGGER.warning("Program %s requires unknown course %s", program.name, code)
                entries.append({"id": code, "name": code, "hours": 0})
                continue
            entries.append({"id": code, "name": course.title, "hours": course.credit_hours or 0})
        return entries

    def as_plan_program(self, name: str) -> dict:
        program = self.program(name)
        return {"name": program.name, "requiredCourses": self.required_courses(program)}


def combine_programs(first: dict, second: dict) -> dict:
    """Union two programs' required courses by id and total their hours.

    The first occurrence of an id wins.
    """
    merged: Dict[str, dict] = {}
    for course in _iter_required(first, second):
        merged.setdefault(course["id"], course)

    courses = list(merged.values())
    return {"courses": courses, "totalHours": sum(course["hours"] for course in courses)}


def _iter_required(*programs: dict) -> Iterable[dict]:
    for program in programs:
        yield from program.get("requiredCourses", [])
