"""Async course and program harvesting on top of a shared fetch collaborator.

Edit `CrawlSettings` defaults below if you need a different concurrency cap,
page ceiling, or debug limits when adapting the scraper to another catalog.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence, Tuple, TypeVar

from .parser import CatalogLink, CatalogParser, CourseRecord, ProgramLink, ProgramRecord, count_listing_pages

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class FetchError(Exception):
    """Raised when a catalog page cannot be retrieved."""

    def __init__(self, url: str, status_code: Optional[int] = None, message: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.message = message
        detail = f"HTTP {status_code}" if status_code is not None else "transport error"
        super().__init__(f"{detail} for {url}" + (f": {message}" if message else ""))


class Fetcher(Protocol):
    async def fetch(self, url: str) -> str:
        """Return the body of `url` or raise `FetchError`."""


@dataclass(slots=True)
class CrawlSettings:
    """Runtime options for the crawl cadence and debug limits."""

    listing_url_template: str = ""
    directory_url: str = ""
    concurrency: int = 5
    page_cap: int = 50
    max_pages: Optional[int] = None
    max_items_per_page: Optional[int] = None
    max_programs: Optional[int] = None

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.page_cap < 1:
            raise ValueError("page_cap must be at least 1")
        for name in ("max_pages", "max_items_per_page", "max_programs"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be at least 1 when set")

    @classmethod
    def debug(cls, **overrides: Any) -> "CrawlSettings":
        """Settings restricted to one page, one item per page and one program."""
        overrides.update(max_pages=1, max_items_per_page=1, max_programs=1)
        return cls(**overrides)

    def listing_url(self, page: int) -> str:
        return self.listing_url_template.format(page=page)


class OutcomeStatus(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class Outcome:
    """Tagged result of one unit of crawl work.

    `full` carries a complete record, `partial` a record whose `missing_fields`
    could not be fetched, and `skipped` no record at all, only a `reason`.
    """

    status: OutcomeStatus
    record: Optional[Any] = None
    missing_fields: Tuple[str, ...] = ()
    reason: str = ""

    @classmethod
    def full(cls, record: Any) -> "Outcome":
        return cls(OutcomeStatus.FULL, record)

    @classmethod
    def partial(cls, record: Any, missing_fields: Sequence[str], reason: str = "") -> "Outcome":
        return cls(OutcomeStatus.PARTIAL, record, tuple(missing_fields), reason)

    @classmethod
    def skipped(cls, reason: str) -> "Outcome":
        return cls(OutcomeStatus.SKIPPED, None, (), reason)


@dataclass(slots=True)
class PageResult:
    """Outcomes produced by one listing page."""

    page: int
    outcomes: List[Outcome] = field(default_factory=list)
    skipped: bool = False
    skipped_reason: str = ""


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def collect_records(outcomes: Sequence[Outcome]) -> list:
    """Flatten outcomes to the records they carry, dropping skipped entries."""
    return [outcome.record for outcome in outcomes if outcome.record is not None]


def _limit(items: Sequence[T], limit: Optional[int]) -> Sequence[T]:
    return items if limit is None else items[:limit]


class CoursePipeline:
    """Listing pages -> course links -> detail pages -> course records."""

    PARTIAL_FIELDS = ("credit_hours", "description")

    def __init__(
        self,
        fetcher: Fetcher,
        parser: CatalogParser,
        settings: CrawlSettings,
        *,
        limiter: Optional[asyncio.Semaphore] = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser
        self.settings = settings
        self._limiter = limiter

    async def run(self) -> List[Outcome]:
        """Crawl every listing page and return one outcome per course or skipped page."""
        limiter = self._limiter or asyncio.Semaphore(self.settings.concurrency)
        first_url = self.settings.listing_url(1)
        LOGGER.info("Fetching first page to detect pagination: %s", first_url)

        try:
            first_html = await self.fetcher.fetch(first_url)
        except Exception as exc:
            LOGGER.error("Failed to fetch first listing page: %s", exc)
            return []

        total_pages = count_listing_pages(first_html, page_cap=self.settings.page_cap)
        pages = list(_limit(range(1, total_pages + 1), self.settings.max_pages))
        LOGGER.info("Detected %d page(s) of courses; processing %d", total_pages, len(pages))

        async def bounded(page: int) -> PageResult:
            async with limiter:
                return await self.fetch_page(page, html=first_html if page == 1 else None)

        results = await asyncio.gather(*(bounded(page) for page in pages))

        outcomes: List[Outcome] = []
        for result in results:
            if result.skipped:
                outcomes.append(Outcome.skipped(f"page {result.page}: {result.skipped_reason}"))
            outcomes.extend(result.outcomes)

        LOGGER.info("Total parsed courses: %d", len(collect_records(outcomes)))
        return outcomes

    async def fetch_page(self, page: int, *, html: Optional[str] = None) -> PageResult:
        """Process one listing page; never raises."""
        try:
            if html is None:
                url = self.settings.listing_url(page)
                LOGGER.info("Fetching page %d: %s", page, url)
                html = await self.fetcher.fetch(url)
            links = self.parser.parse_course_links(html)
        except Exception as exc:
            reason = _describe(exc)
            LOGGER.error("Skipping page %d: %s", page, reason)
            return PageResult(page=page, skipped=True, skipped_reason=reason)

        LOGGER.info("Page %d: found %d course link(s)", page, len(links))
        links = list(_limit(links, self.settings.max_items_per_page))

        outcomes = await asyncio.gather(*(self.fetch_course(link, page) for link in links))
        LOGGER.info("Page %d: parsed %d course(s)", page, len(outcomes))
        return PageResult(page=page, outcomes=list(outcomes))

    async def fetch_course(self, link: CatalogLink, page: int = 0) -> Outcome:
        """Fetch and extract one course detail page, degrading to a partial record."""
        LOGGER.debug("Page %d: fetching details for %s from %s", page, link.code, link.url)
        try:
            html = await self.fetcher.fetch(link.url)
            detail = self.parser.parse_course_detail(html)
        except Exception as exc:
            LOGGER.warning("Failed to fetch detail for course %s on page %d: %s", link.code, page, exc)
            record = CourseRecord(code=link.code, title=link.title)
            return Outcome.partial(record, self.PARTIAL_FIELDS, _describe(exc))

        record = CourseRecord(
            code=link.code,
            title=link.title or detail.heading,
            credit_hours=detail.credit_hours,
            description=detail.description,
            credit_restriction=detail.credit_restriction,
            grading_restriction=detail.grading_restriction,
            registration_restriction=detail.registration_restriction,
            repeatability=detail.repeatability,
        )
        return Outcome.full(record)


class ProgramPipeline:
    """Directory page -> program links -> detail pages -> program records."""

    PARTIAL_FIELDS = ("description", "required_courses")

    def __init__(
        self,
        fetcher: Fetcher,
        parser: CatalogParser,
        settings: CrawlSettings,
        *,
        limiter: Optional[asyncio.Semaphore] = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser
        self.settings = settings
        self._limiter = limiter

    async def run(self) -> List[Outcome]:
        limiter = self._limiter or asyncio.Semaphore(self.settings.concurrency)
        try:
            html = await self.fetcher.fetch(self.settings.directory_url)
            links = self.parser.parse_program_links(html)
        except Exception as exc:
            LOGGER.error("Failed to retrieve program directory %s: %s", self.settings.directory_url, exc)
            return []

        LOGGER.info("Found %d program link(s)", len(links))
        links = list(_limit(links, self.settings.max_programs))

        async def bounded(link: ProgramLink) -> Outcome:
            async with limiter:
                return await self.fetch_program(link)

        return list(await asyncio.gather(*(bounded(link) for link in links)))

    async def fetch_program(self, link: ProgramLink) -> Outcome:
        """Fetch one program page; failures yield an empty but present record."""
        LOGGER.info("Parsing program: %s", link.name)
        try:
            html = await self.fetcher.fetch(link.url)
            description, required = self.parser.parse_program_detail(html)
        except Exception as exc:
            LOGGER.warning("Failed to parse program page %s: %s", link.url, exc)
            record = ProgramRecord(name=link.name, url=link.url)
            return Outcome.partial(record, self.PARTIAL_FIELDS, _describe(exc))

        LOGGER.info("Parsed program %s: found %d required course(s)", link.name, len(required))
        record = ProgramRecord(name=link.name, url=link.url, description=description, required_courses=required)
        return Outcome.full(record)
