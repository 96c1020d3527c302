"""Multi-pattern attendance extraction from a loaded portal page.

The portal has served attendance in several layouts over time, so the
extractor tries a fixed sequence of strategies against the page DOM and
returns the result of the first one that finds anything:

    1. table           <table> with "subject code" / "classes attended" headers
    2. fieldset        ExtJS ``#semesterActivity`` fieldsets of display fields
    3. colored_span    spans coloured with the portal's severity colours
    4. attribute       elements whose class or id mentions attendance/percent
    5. any_percentage  any leaf element holding a bare number (max 20)

Results from different strategies are never merged. Every strategy is a
plain function taking the parsed page and returning a list of
ExtractedSubject, so each can be tested on its own.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Tag

from src.logutils import get_logger

from ..errors import ExtractionEmpty

logger = get_logger(__name__)

FIRST_NUMBER = re.compile(r"(\d+\.?\d*)")
BARE_NUMBER = re.compile(r"^(\d+\.?\d*)\s*%?$")
SUBJECT_CODE = re.compile(r"^[A-Z0-9]{3,}$", re.I)

TABLE_HEADER_MARKERS = ("s.no", "subject code", "attendance")
FIELDSET_CONTAINER_ID = "semesterActivity"
FIELDSET_HEADER_CODE = "SUBJECT"
HEADER_LABELS = frozenset({"CODE", "SUBJECT", "ATTENDANCE"})
# Only the text colour counts, not border or background colours
ATTENDANCE_COLOR = re.compile(
    r"(?:^|;)\s*color\s*:\s*(?:#04b404|#0040ff|#ffbf00|#ff0000|green|blue|orange|red)\b", re.I
)
ATTRIBUTE_KEYWORDS = ("attendance", "percent")
MAX_FALLBACK_RESULTS = 20


@dataclass(frozen=True)
class ExtractedSubject:
    """One subject found on the page.

    ``attended`` and ``conducted`` are only known for the table and
    fieldset layouts; the other strategies recover the percentage alone.
    """

    name: str
    percentage: float
    pattern: str
    attended: Optional[int] = None
    conducted: Optional[int] = None

    @property
    def has_counts(self) -> bool:
        return self.attended is not None and self.conducted is not None


Strategy = Callable[[BeautifulSoup], List[ExtractedSubject]]


def _to_int(text: str) -> Optional[int]:
    match = re.match(r"\s*(-?\d+)", text or "")
    return int(match.group(1)) if match else None


def _first_number(text: str) -> Optional[float]:
    match = FIRST_NUMBER.search(text or "")
    return float(match.group(1)) if match else None


def _in_range(value: Optional[float]) -> bool:
    return value is not None and 0 <= value <= 100


def _placeholder(results: Sequence[ExtractedSubject]) -> str:
    return f"Subject {len(results) + 1}"


def _style(tag: Tag) -> str:
    return tag.get("style") or ""


def _is_leaf(tag: Tag) -> bool:
    return tag.find(True) is None


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def extract_from_tables(soup: BeautifulSoup) -> List[ExtractedSubject]:
    """Rows of tables headed "S.No | Subject Code | Classes Attended | Total Conducted | %"."""
    subjects: List[ExtractedSubject] = []

    for table in soup.find_all("table"):
        table_text = table.get_text(" ").lower()
        if "subject code" not in table_text or "classes attended" not in table_text:
            continue

        for row in table.find_all("tr"):
            cells = [cell.get_text(strip=True) for cell in row.find_all(["td", "th"])]
            row_text = " ".join(cells).lower()
            if any(marker in row_text for marker in TABLE_HEADER_MARKERS):
                continue
            if len(cells) < 4:
                continue

            if _to_int(cells[0]) is None:
                continue
            code = cells[1]
            if not code:
                continue

            attended = _to_int(cells[2]) or 0
            conducted = _to_int(cells[3]) or 0

            percentage = _first_number(cells[4]) if len(cells) > 4 else None
            if percentage is None and conducted > 0:
                percentage = attended / conducted * 100

            if conducted > 0 and _in_range(percentage):
                subjects.append(
                    ExtractedSubject(
                        name=code,
                        percentage=round(percentage, 2),
                        pattern="table",
                        attended=attended,
                        conducted=conducted,
                    )
                )

    return subjects


def extract_from_fieldsets(soup: BeautifulSoup) -> List[ExtractedSubject]:
    """ExtJS layout: ``#semesterActivity`` > ``fieldset.bottom-border`` > display fields.

    Display field positions: 1 code, 2 attended, 3 conducted, 4 percentage
    (only trusted when its span is colour coded).
    """
    subjects: List[ExtractedSubject] = []

    container = soup.find(id=FIELDSET_CONTAINER_ID)
    if container is None:
        return subjects

    for fieldset in container.find_all("fieldset", class_="bottom-border"):
        fields = fieldset.find_all("div", id=re.compile(r"^displayfield-"))
        if len(fields) < 5:
            continue

        code = None
        attended = None
        conducted = None
        percentage = None

        for position, display_field in enumerate(fields[:5]):
            span = display_field.find("span")
            if span is None:
                continue
            text = span.get_text(strip=True)

            if position == 1 and SUBJECT_CODE.match(text) and text.upper() != FIELDSET_HEADER_CODE:
                code = text
            elif position == 2:
                attended = _to_int(text)
            elif position == 3:
                conducted = _to_int(text)
            elif position == 4 and "color:" in _style(span).replace(" ", "").lower():
                value = _first_number(text)
                if _in_range(value):
                    percentage = value

        if code and conducted and conducted > 0 and percentage is not None:
            if attended is None:
                attended = round(conducted * percentage / 100)
            subjects.append(
                ExtractedSubject(
                    name=code,
                    percentage=percentage,
                    pattern="fieldset",
                    attended=attended,
                    conducted=conducted,
                )
            )

    return subjects


def _has_attendance_color(span: Tag) -> bool:
    return ATTENDANCE_COLOR.search(_style(span)) is not None


def _nearby_subject_code(span: Tag) -> Optional[str]:
    """Walk back through the spans of the enclosing fieldset for a code token."""
    fieldset = span.find_parent("fieldset")
    if fieldset is None:
        return None

    spans = fieldset.find_all("span")
    position = next((i for i, candidate in enumerate(spans) if candidate is span), None)
    if position is None:
        return None

    for candidate in reversed(spans[:position]):
        text = candidate.get_text(strip=True)
        if (
            SUBJECT_CODE.match(text)
            and not text.isdigit()
            and text.upper() not in HEADER_LABELS
            and "%" not in text
            and len(text) < 20
        ):
            return text
    return None


def extract_from_colored_spans(soup: BeautifulSoup) -> List[ExtractedSubject]:
    """Percentages rendered in the portal's green/blue/amber/red severity colours."""
    subjects: List[ExtractedSubject] = []
    seen = set()

    for span in soup.find_all("span", style=re.compile(r"color", re.I)):
        value = _first_number(span.get_text(strip=True))
        if not _in_range(value) or not _has_attendance_color(span):
            continue

        name = _nearby_subject_code(span) or _placeholder(subjects)
        if (name, value) in seen:
            continue
        seen.add((name, value))
        subjects.append(ExtractedSubject(name=name, percentage=value, pattern="colored_span"))

    return subjects


def _mentions_attendance(tag: Tag) -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    haystack = " ".join([*classes, tag.get("id") or ""]).lower()
    return any(keyword in haystack for keyword in ATTRIBUTE_KEYWORDS)


def extract_from_attributes(soup: BeautifulSoup) -> List[ExtractedSubject]:
    """Elements whose class or id contains "attendance" or "percent"."""
    subjects: List[ExtractedSubject] = []

    for element in soup.find_all(_mentions_attendance):
        value = _first_number(element.get_text(" ", strip=True))
        if _in_range(value):
            subjects.append(
                ExtractedSubject(name=_placeholder(subjects), percentage=value, pattern="attribute")
            )

    return subjects


def extract_any_percentage(soup: BeautifulSoup) -> List[ExtractedSubject]:
    """Last resort: every leaf element whose whole text is a number in [0, 100]."""
    subjects: List[ExtractedSubject] = []

    for element in soup.find_all(True):
        if element.name in ("script", "style") or not _is_leaf(element):
            continue
        match = BARE_NUMBER.match(element.get_text(strip=True))
        if not match:
            continue
        value = float(match.group(1))
        if _in_range(value):
            subjects.append(
                ExtractedSubject(name=_placeholder(subjects), percentage=value, pattern="any_percentage")
            )
            if len(subjects) >= MAX_FALLBACK_RESULTS:
                break

    return subjects


STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("table", extract_from_tables),
    ("fieldset", extract_from_fieldsets),
    ("colored_span", extract_from_colored_spans),
    ("attribute", extract_from_attributes),
    ("any_percentage", extract_any_percentage),
)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _as_soup(page: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(page, BeautifulSoup):
        return page
    return BeautifulSoup(page or "", "html.parser")


def run_strategies(
    page: Union[str, BeautifulSoup],
    strategies: Sequence[Tuple[str, Strategy]] = STRATEGIES,
) -> Tuple[str, List[ExtractedSubject]]:
    """Try ``strategies`` in order and return the first non-empty result.

    Returns:
        (pattern name, subjects); ("", []) when every strategy came up empty
    """
    soup = _as_soup(page)

    for name, strategy in strategies:
        subjects = strategy(soup)
        logger.debug(
            f"Strategy {name} found {len(subjects)} subject(s)",
            extra={"extra_data": {"pattern": name, "count": len(subjects)}},
        )
        if subjects:
            return name, subjects

    return "", []


def extract_attendance(
    page: Union[str, BeautifulSoup],
    strategies: Sequence[Tuple[str, Strategy]] = STRATEGIES,
) -> List[ExtractedSubject]:
    """Extract subject attendance from page HTML or an already parsed page.

    Args:
        page: ``page.content()`` output or a BeautifulSoup tree
        strategies: ordered (name, function) pairs, defaults to STRATEGIES

    Returns:
        Non-empty list of ExtractedSubject from a single strategy

    Raises:
        ExtractionEmpty: no strategy found any subject
    """
    pattern, subjects = run_strategies(page, strategies)

    if not subjects:
        logger.warning(
            "No attendance data found on page",
            extra={"extra_data": {"patterns_tried": len(strategies)}},
        )
        raise ExtractionEmpty(
            "No attendance data found on page; the portal layout may have changed",
            patterns_tried=len(strategies),
        )

    logger.info(
        f"Extracted {len(subjects)} subject(s) via {pattern}",
        extra={"extra_data": {"pattern": pattern, "count": len(subjects)}},
    )
    return subjects


def parse_subject_details(page: Union[str, BeautifulSoup]) -> Dict[str, str]:
    """Map subject codes to the names listed on the "Subject Details" page.

    Column positions come from the header row (first row, or any row with
    ``<th>`` cells): a header mentioning "code" marks the code column, one
    mentioning "name" or "title" the name column.
    """
    soup = _as_soup(page)
    names: Dict[str, str] = {}

    for table in soup.find_all("table"):
        text = table.get_text(" ").lower()
        if not any(keyword in text for keyword in ("subject", "code", "name")):
            continue

        code_column = name_column = -1
        for index, row in enumerate(table.find_all("tr")):
            cells = [cell.get_text(strip=True) for cell in row.find_all(["td", "th"])]

            if index == 0 or row.find("th") is not None:
                for column, cell_text in enumerate(cells):
                    lower = cell_text.lower()
                    if "code" in lower:
                        code_column = column
                    if "name" in lower or "title" in lower:
                        name_column = column
            elif code_column >= 0 and name_column >= 0:
                if max(code_column, name_column) >= len(cells):
                    continue
                code, name = cells[code_column], cells[name_column]
                if code and name:
                    names[code] = name

    logger.debug(
        f"Found {len(names)} subject name mapping(s)",
        extra={"extra_data": {"count": len(names)}},
    )
    return names
