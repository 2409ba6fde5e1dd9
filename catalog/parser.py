"""Turn raw catalog markup into structured course and program information.

All selector knowledge lives in `CatalogParser`; if the catalog layout drifts,
adjust the selectors or labels here and the pipelines stay untouched.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from pydantic import BaseModel, ConfigDict, Field

LOGGER = logging.getLogger(__name__)

SPACED_DASH = re.compile(r"\s+-\s+")
ANY_DASH = re.compile(r"\s*-\s*")
LEADING_NUMBER = re.compile(r"\s*(\d+(?:\.\d+)?)")
INTEGER = re.compile(r"\d+")

PAGINATION_MARKER = "Page:"
DEFAULT_PAGE_CAP = 50


class CourseRecord(BaseModel):
    """A single catalog course as written to the courses artifact."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    title: str
    credit_hours: Optional[Union[int, float]] = None
    description: str = ""
    credit_restriction: Optional[str] = Field(default=None, alias="creditRestriction")
    grading_restriction: Optional[str] = Field(default=None, alias="gradingRestriction")
    registration_restriction: Optional[str] = Field(default=None, alias="registrationRestriction")
    repeatability: Optional[str] = None


class ProgramRecord(BaseModel):
    """A program/major entry with the codes of the courses it requires."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    description: str = ""
    required_courses: List[str] = Field(default_factory=list)


@dataclass(slots=True, frozen=True)
class CatalogLink:
    """An anchor harvested from a listing page."""

    code: str
    title: str
    url: str


@dataclass(slots=True, frozen=True)
class ProgramLink:
    """A program anchor harvested from the directory page."""

    name: str
    url: str


@dataclass(slots=True, frozen=True)
class CourseDetail:
    """Fields lifted from a course detail page."""

    heading: str
    credit_hours: Optional[Union[int, float]]
    description: str
    credit_restriction: str
    grading_restriction: str
    registration_restriction: str
    repeatability: str


def split_link_label(text: str) -> Optional[Tuple[str, str]]:
    """Split "CODE - Title" anchor text into its code and title.

    A spaced dash is the preferred delimiter, so hyphenated titles such as
    "Pre-Calculus" survive intact. A bare dash is only accepted when the code
    half looks like "SUBJ 123", i.e. contains a space.
    """
    label = " ".join(text.split())
    if not label:
        return None

    parts = SPACED_DASH.split(label)
    if len(parts) < 2:
        parts = ANY_DASH.split(label, maxsplit=1)
        if len(parts) < 2 or " " not in parts[0]:
            return None

    code = parts[0].strip()
    title = " - ".join(part.strip() for part in parts[1:]).strip(" -")
    if not code or not title:
        return None
    return code, title


def _leading_number(text: str) -> Optional[Union[int, float]]:
    match = LEADING_NUMBER.match(text)
    if not match:
        return None
    value = float(match.group(1))
    return int(value) if value.is_integer() else value


def parse_credit_hours(text: str) -> Optional[Union[int, float]]:
    """Interpret credit-hour text; ranges resolve to their upper bound.

    "3 Credit Hours" -> 3, "1-15 Credit Hours" -> 15, "Variable" -> None.
    """
    if not text or not text.strip():
        return None

    if "-" in text:
        values = [_leading_number(part) for part in text.split("-")]
        if not values or any(value is None for value in values):
            LOGGER.debug("Unparsable credit-hour range: %r", text)
            return None
        return max(values)

    value = _leading_number(text)
    if value is None:
        LOGGER.debug("Unparsable credit hours: %r", text)
    return value


def count_listing_pages(html: str, *, page_cap: int = DEFAULT_PAGE_CAP) -> int:
    """Infer how many listing pages exist from the first page's pagination cell.

    Falls back to a single page whenever the marker or digits are missing.
    """
    soup = BeautifulSoup(html, "html.parser")
    cells = [td for td in soup.find_all("td") if PAGINATION_MARKER in td.get_text()]
    # Layout tables nest; the innermost matching cell holds only the pager.
    cell = next(
        (td for td in cells if not any(PAGINATION_MARKER in inner.get_text() for inner in td.find_all("td"))),
        None,
    )
    if cell is None:
        LOGGER.info("No pagination cell found; assuming a single page")
        return 1

    numbers = [int(number) for number in INTEGER.findall(cell.get_text())]
    pages = max(numbers) if numbers else 1
    pages = max(pages, 1)

    if pages > page_cap:
        LOGGER.info("Capping max pages from %d to %d", pages, page_cap)
        pages = page_cap

    return pages


class CatalogParser:
    """Selector-driven extraction for listing, detail and directory pages."""

    RESTRICTION_LABELS: Dict[str, str] = {
        "grading_restriction": "Grading Restriction:",
        "repeatability": "Repeatability:",
        "credit_restriction": "Credit Restriction:",
        "registration_restriction": "Registration Restriction(s):",
    }

    def __init__(
        self,
        base_url: str,
        *,
        course_link_pattern: str = "preview_course_nopop.php",
        program_link_pattern: str = "preview_program.php",
        heading_selector: str = "h1#course_preview_title",
        content_selector: str = ".content",
    ) -> None:
        self.base_url = base_url
        self.course_link_pattern = course_link_pattern
        self.program_link_pattern = program_link_pattern
        self.heading_selector = heading_selector
        self.content_selector = content_selector

    def absolute_url(self, href: str) -> str:
        return urljoin(self.base_url, href)

    def parse_course_links(self, html: str) -> List[CatalogLink]:
        """Return the course anchors on a listing page whose label splits cleanly."""
        links: List[CatalogLink] = []
        for index, anchor in enumerate(self._anchors(html, self.course_link_pattern)):
            text = anchor.get_text().strip()
            if not text:
                LOGGER.warning("Skipping course link %d without text: %s", index, anchor["href"])
                continue

            parts = split_link_label(text)
            if parts is None:
                LOGGER.warning("Skipping course link %d with unsplittable label: %r", index, text)
                continue

            code, title = parts
            links.append(CatalogLink(code=code, title=title, url=self.absolute_url(anchor["href"])))

        return links

    def parse_program_links(self, html: str) -> List[ProgramLink]:
        """Return the program anchors found on the directory page."""
        links: List[ProgramLink] = []
        for anchor in self._anchors(html, self.program_link_pattern):
            name = anchor.get_text().strip()
            if not name:
                LOGGER.warning("Skipping program anchor without text: %s", anchor.get("href"))
                continue
            links.append(ProgramLink(name=name, url=self.absolute_url(anchor["href"])))
        return links

    def parse_course_detail(self, html: str) -> CourseDetail:
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.select_one(self.heading_selector)

        credit_text = ""
        description = ""
        if heading is None:
            LOGGER.warning("Course heading %r not found on detail page", self.heading_selector)
        else:
            strong = heading.find_next_sibling("strong")
            if strong is not None:
                credit_text = strong.get_text().strip()
            description = self._description_after_rule(heading)

        restrictions = {
            field: self._labelled_text(soup, label) for field, label in self.RESTRICTION_LABELS.items()
        }

        return CourseDetail(
            heading=heading.get_text().strip() if heading is not None else "",
            credit_hours=parse_credit_hours(credit_text),
            description=description,
            **restrictions,
        )

    def parse_program_detail(self, html: str) -> Tuple[str, List[str]]:
        """Return (description, required course codes) for a program page."""
        soup = BeautifulSoup(html, "html.parser")
        required: List[str] = []
        for anchor in self._anchors_in(soup, self.course_link_pattern):
            parts = split_link_label(anchor.get_text())
            if parts is not None:
                required.append(parts[0])

        return self._program_description(soup), required

    def _program_description(self, soup: BeautifulSoup) -> str:
        regions = soup.select(self.content_selector)
        if not regions:
            return ""

        for region in regions:
            paragraph = region.find("p")
            if paragraph is not None:
                text = paragraph.get_text().strip()
                if text:
                    return text
                break

        stripped = []
        for region in regions:
            clone = copy.copy(region)
            for child in clone.find_all(["h1", "h2", "h3", "table"], recursive=False):
                child.decompose()
            stripped.append(clone.get_text())
        return "".join(stripped).strip()

    @staticmethod
    def _description_after_rule(heading: Tag) -> str:
        rule = heading.find_next_sibling("hr")
        if rule is None:
            return ""

        pieces: List[str] = []
        for sibling in rule.next_siblings:
            if isinstance(sibling, Comment):
                continue
            if isinstance(sibling, NavigableString):
                text = sibling.strip()
            elif isinstance(sibling, Tag):
                if sibling.name == "br":
                    break
                text = sibling.get_text().strip()
            else:  # pragma: no cover - bs4 only yields strings and tags
                continue
            if text:
                pieces.append(text)

        return " ".join(pieces)

    @staticmethod
    def _labelled_text(soup: BeautifulSoup, label: str) -> str:
        for emphasis in soup.find_all("em"):
            if label not in emphasis.get_text():
                continue
            following = emphasis.find_next_sibling()
            if following is not None and following.name == "em":
                return following.get_text().strip()
            return ""
        return ""

    def _anchors(self, html: str, pattern: str) -> List[Tag]:
        return self._anchors_in(BeautifulSoup(html, "html.parser"), pattern)

    @staticmethod
    def _anchors_in(soup: BeautifulSoup, pattern: str) -> List[Tag]:
        return [anchor for anchor in soup.find_all("a", href=True) if pattern in anchor["href"]]
