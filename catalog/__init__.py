"""Toolkit for harvesting course and program data from a public catalog site."""

from .parser import CatalogParser, CourseRecord, ProgramRecord, count_listing_pages
from .crawler import CoursePipeline, CrawlSettings, FetchError, Outcome, OutcomeStatus, ProgramPipeline
from .fetcher import CatalogFetcher
from .loader import CatalogArchive, combine_programs
from .writer import CatalogWriter

__all__ = [
    "CatalogParser",
    "CourseRecord",
    "ProgramRecord",
    "count_listing_pages",
    "CoursePipeline",
    "ProgramPipeline",
    "CrawlSettings",
    "FetchError",
    "Outcome",
    "OutcomeStatus",
    "CatalogFetcher",
    "CatalogArchive",
    "combine_programs",
    "CatalogWriter",
]
