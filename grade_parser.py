"""
Results table parsing.

The course results page renders every grade category as a flat run of
``<tr>`` elements inside one ``<tbody>``: a parent row carrying the category
name, a decorative header row, then one row per graded item. The row's class
attribute is the only thing telling these apart, so classification lives
behind ``RowClassifier`` and the parsing loop never looks at class names.
"""

from __future__ import annotations

import enum
import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from errors import ParseError
from grades import Assessment, CourseLink, DetailItem, RawRow, normalize_text

logger = logging.getLogger(__name__)

SECTION_START_CLASS = "table-parent-row show_child_row"
SECTION_SEPARATOR_CLASS = "table-child-row md-bg-blue-grey-800 md-color-grey-50"
ACTIVE_STATUS = "Active Class"

# Detail row columns: name, weightage, total marks, obtained marks
NAME_CELL = 0
WEIGHT_CELL = 1
TOTAL_CELL = 2
OBTAINED_CELL = 3


class RowKind(enum.Enum):
    SECTION_START = "section_start"
    SECTION_SEPARATOR = "section_separator"
    DETAIL = "detail"


class RowClassifier(ABC):
    @abstractmethod
    def classify(self, row: RawRow) -> RowKind:
        pass


class CssClassRowClassifier(RowClassifier):
    """Classify rows by their exact set of CSS classes."""

    def __init__(
        self,
        start_class: str = SECTION_START_CLASS,
        separator_class: str = SECTION_SEPARATOR_CLASS,
    ):
        self.start_classes = frozenset(start_class.split())
        self.separator_classes = frozenset(separator_class.split())

    def classify(self, row: RawRow) -> RowKind:
        classes = frozenset(row.css_class.split())
        if classes == self.start_classes:
            return RowKind.SECTION_START
        if classes == self.separator_classes:
            return RowKind.SECTION_SEPARATOR
        return RowKind.DETAIL


def parse_number(text: Optional[str]) -> float:
    """Parse a score cell; placeholders such as ``-`` or ``""`` count as 0."""
    clean = normalize_text(text)
    if not clean:
        return 0
    try:
        value = float(clean)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def _cell(row: RawRow, index: int) -> Optional[str]:
    if index < len(row.cells):
        return row.cells[index]
    return None


def parse_rows(rows: Sequence[RawRow], classifier: Optional[RowClassifier] = None) -> List[Assessment]:
    if classifier is None:
        classifier = CssClassRowClassifier()

    results: List[Assessment] = []
    for index, row in enumerate(rows):
        kind = classifier.classify(row)

        if kind is RowKind.SECTION_START:
            name = normalize_text(row.label) or normalize_text(_cell(row, NAME_CELL))
            # Weight sits two rows down, on the first item after the header row.
            # Categories without a published weight leave it blank.
            weight = 0
            if index + 2 < len(rows):
                weight = parse_number(_cell(rows[index + 2], WEIGHT_CELL))
            results.append(Assessment(name=name, weight=weight))

        elif kind is RowKind.SECTION_SEPARATOR:
            continue

        else:
            if not results:
                raise ParseError(f"Row {index} is a grade item but no category row precedes it")
            if len(row.cells) <= OBTAINED_CELL:
                raise ParseError(
                    f"Row {index} has {len(row.cells)} cells, expected at least {OBTAINED_CELL + 1}"
                )
            results[-1].add_detail(
                DetailItem(
                    name=normalize_text(row.cells[NAME_CELL]),
                    obtained=parse_number(row.cells[OBTAINED_CELL]),
                    total=parse_number(row.cells[TOTAL_CELL]),
                )
            )

    logger.debug(f"Parsed {len(results)} assessment(s) from {len(rows)} row(s).")
    return results


def extract_rows_from_html(html: str) -> List[RawRow]:
    """Read the first ``<tbody>`` of a saved results page into raw rows.

    Used for offline parsing of pages saved from the browser
    (``verify_erp_scraper.py --results-html``).
    """
    soup = BeautifulSoup(html, "html.parser")
    tbody = soup.find("tbody")
    if tbody is None:
        raise ParseError("No <tbody> found in results page")

    rows: List[RawRow] = []
    for tr in tbody.find_all("tr", recursive=False):
        cells = tr.find_all(["td", "th"], recursive=False)
        label = ""
        if cells:
            first_child = cells[0].find(True)
            if first_child is not None:
                label = first_child.get_text(strip=True)
        rows.append(
            RawRow(
                css_class=" ".join(tr.get("class") or []),
                cells=[cell.get_text(strip=True) for cell in cells],
                label=label,
            )
        )
    return rows


def extract_anchors_from_html(html: str) -> List[Dict[str, str]]:
    """Collect the course anchors of a saved landing page.

    Returns the same records the browser-side extraction produces; used by
    ``verify_erp_scraper.py --landing-html``.
    """
    soup = BeautifulSoup(html, "html.parser")
    anchors: List[Dict[str, str]] = []
    for a in soup.select("#hierarchical-show a"):
        name_span = a.find("span", recursive=False)
        session_span = a.select_one("span.uk-text-small")
        status = ""
        for span in a.find_all("span"):
            if (span.get("class") or []) == ["md-color-blue-grey-600"]:
                status = span.get_text(strip=True)
                break
        anchors.append(
            {
                "href": a.get("href") or "",
                "name": name_span.get_text(strip=True) if name_span else "",
                "session": session_span.get_text(strip=True) if session_span else "",
                "status": status,
            }
        )
    return anchors


def filter_course_links(
    anchors: Iterable[Dict[str, str]],
    url_prefix: str,
    target_session: str,
) -> List[CourseLink]:
    links: List[CourseLink] = []
    for anchor in anchors:
        href = anchor.get("href") or ""
        if not href.startswith(url_prefix):
            continue
        if normalize_text(anchor.get("session")) != target_session:
            continue
        links.append(
            CourseLink(
                url=href,
                name=normalize_text(anchor.get("name")),
                submitted=normalize_text(anchor.get("status")) != ACTIVE_STATUS,
            )
        )
    return links
