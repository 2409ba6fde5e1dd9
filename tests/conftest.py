"""
Pytest Configuration and Shared Fixtures

Catalog markup samples and an in-memory fetcher shared by the test suite.
"""

import asyncio
from typing import Dict, List, Union

import pytest

from catalog.crawler import CrawlSettings, FetchError
from catalog.parser import CatalogParser

BASE_URL = "https://catalog.example.edu/"
LISTING_TEMPLATE = BASE_URL + "content.php?navoid=1&cpage={page}"
DIRECTORY_URL = BASE_URL + "content.php?navoid=2"


# ============================================================================
# Fakes
# ============================================================================

class FakeFetcher:
    """Serves canned pages; values that are exceptions are raised instead."""

    def __init__(self, pages: Dict[str, Union[str, Exception]], delay: float = 0.0):
        self.pages = pages
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            page = self.pages.get(url)
            if page is None:
                raise FetchError(url, 404)
            if isinstance(page, Exception):
                raise page
            return page
        finally:
            self.in_flight -= 1


# ============================================================================
# Markup builders
# ============================================================================

def listing_html(labels: List[str], pagination: str = "") -> str:
    anchors = "\n".join(
        f'<li><a href="preview_course_nopop.php?coid={index}">{label}</a></li>'
        for index, label in enumerate(labels)
    )
    cell = f"<table><tr><td>{pagination}</td></tr></table>" if pagination else ""
    return f"<html><body>{cell}<ul>{anchors}</ul></body></html>"


def course_url(index: int) -> str:
    return f"{BASE_URL}preview_course_nopop.php?coid={index}"


def detail_html(
    title: str = "ABC 101 - Intro Topic",
    credits: str = "3 Credit Hours",
    description: str = 'An introduction to <a href="#">topics</a> in ABC.',
    restrictions: str = "",
) -> str:
    return f"""
    <html><body><table><tr><td class="block_content">
        <h1 id="course_preview_title">{title}</h1>
        <strong>{credits}</strong>
        <hr>
        {description}<br>
        {restrictions}
    </td></tr></table></body></html>
    """


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def parser() -> CatalogParser:
    return CatalogParser(base_url=BASE_URL)


@pytest.fixture
def settings() -> CrawlSettings:
    return CrawlSettings(listing_url_template=LISTING_TEMPLATE, directory_url=DIRECTORY_URL)


@pytest.fixture
def restricted_detail() -> str:
    return detail_html(
        credits="1-15 Credit Hours",
        restrictions="""
        <em>Grading Restriction:</em> <em>Satisfactory/No Credit grading only.</em><br>
        <em>Repeatability:</em> <em>May be repeated. Maximum 30 hours.</em><br>
        <em>Credit Restriction:</em> <em>Students cannot receive credit for both ABC 101 and ABC 111.</em><br>
        <em>Registration Restriction(s):</em> <em>Minimum student level - junior.</em><br>
        """,
    )


@pytest.fixture
def program_directory() -> str:
    return """
    <html><body><div class="block_content">
        <ul class="program-list">
            <li><a href="preview_program.php?catoid=51&amp;poid=1">Mathematics, BS</a></li>
        </ul>
    </div></body></html>
    """


@pytest.fixture
def program_detail() -> str:
    return """
    <html><body><div class="content">
        <h1>Mathematics, BS</h1>
        <p>A fine program.</p>
        <ul>
            <li><a href="preview_course_nopop.php?coid=10">MATH 100 - Calc</a></li>
            <li><a href="preview_course_nopop.php?coid=11">ENGL 100 - Comp</a></li>
        </ul>
    </div></body></html>
    """
