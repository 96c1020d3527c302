"""Subject attendance parser for cached portal HTML.

Used when only the saved page markup is available (no live browser). The
portal renders the attendance grid as an ExtJS widget: one
``fieldset.bottom-border`` per subject, each holding five display fields
styled ``font-size:12px``:

    <fieldset class="x-fieldset bottom-border ...">
        <span style="font-size:12px;padding: 9px;">1</span>           serial number
        <span style="font-size:12px">23CSM107</span>                  subject code
        <span style="font-size:12px;padding: 55px;"> 21 </span>       classes attended
        <span style="font-size:12px;padding: 40px;"> 27 </span>       classes conducted
        <span style="font-size:12px;color:#0040FF; ...">77.78</span>  percentage
    </fieldset>

The first fieldset is the header row ("S.NO", "SUBJECT CODE", ...) and is
skipped. The same page may carry the weekly timetable as ``x-grid-row``
table rows; it is returned alongside the subjects when present.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from src.attendance.calculator import calculate_percentage
from src.attendance.models import StatusTier, status_tier_for
from src.logutils import get_logger

from ..errors import InputOutOfRange, ParseStructureInvalid

logger = get_logger(__name__)

HEADER_CODE = "SUBJECT CODE"
FIELD_STYLE = re.compile(r"^\s*font-size:\s*12px", re.I)
BLOCK_CLASS = re.compile(r"bottom-border")
GRID_ROW_CLASS = re.compile(r"^x-grid-row")
GRID_CELL_CLASS = re.compile(r"x-grid-cell")
DAY_PATTERN = re.compile(r"^[A-Z]{3}$")
INT_PATTERN = re.compile(r"^\s*(-?\d+)")
FLOAT_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")

TIME_SLOTS = (
    "09:00 AM",
    "10:00 AM",
    "11:00 AM",
    "12:00 PM",
    "02:00 PM",
    "03:00 PM",
    "04:00 PM",
    "05:00 PM",
)


@dataclass(frozen=True)
class DetailedStatus:
    """Display classification with colour."""

    status: StatusTier
    display_status: str
    color: str
    level: str


@dataclass(frozen=True)
class ParsedSubject:
    serial_no: int
    subject_code: str
    classes_attended: int
    total_conducted: int
    attendance_percent: float
    status: StatusTier
    detailed_status: DetailedStatus


@dataclass(frozen=True)
class TimeSlot:
    time_slot: str
    subject: str
    faculty: str


@dataclass(frozen=True)
class TimetableDay:
    day: str
    time_slots: List[TimeSlot]


@dataclass(frozen=True)
class AttendanceSummary:
    total_subjects: int
    total_classes_attended: int
    total_classes_conducted: int
    overall_percentage: float


@dataclass(frozen=True)
class ParsedAttendance:
    subjects: List[ParsedSubject]
    summary: AttendanceSummary
    timetable: List[TimetableDay] = field(default_factory=list)


def attendance_status(percentage: float) -> StatusTier:
    """Storage tier: safe (>=75), warning (>=60) or critical."""
    return status_tier_for(percentage)


def detailed_attendance_status(percentage: float) -> DetailedStatus:
    """Display tier with colour: Excellent, Good, Warning or Critical."""
    if percentage >= 85:
        return DetailedStatus(StatusTier.SAFE, "Excellent", "green", "high")
    if percentage >= 75:
        return DetailedStatus(StatusTier.SAFE, "Good", "blue", "medium")
    if percentage >= 60:
        return DetailedStatus(StatusTier.WARNING, "Warning", "orange", "low")
    return DetailedStatus(StatusTier.CRITICAL, "Critical", "red", "critical")


def time_slot_for(column_index: int) -> str:
    """Label for a timetable column; column 0 is the day name."""
    if 1 <= column_index <= len(TIME_SLOTS):
        return TIME_SLOTS[column_index - 1]
    return "Unknown"


def parse_int(text: Optional[str]) -> Optional[int]:
    """Leading integer of ``text`` (``" 21 "`` -> 21), or None."""
    match = INT_PATTERN.match(text or "")
    return int(match.group(1)) if match else None


def parse_float(text: Optional[str]) -> Optional[float]:
    match = FLOAT_PATTERN.match(text or "")
    return float(match.group(1)) if match else None


def parse_attendance_html(html: str) -> ParsedAttendance:
    """Parse subject attendance and the optional timetable from cached HTML.

    Args:
        html: Raw HTML string of the attendance page or widget

    Returns:
        ParsedAttendance with subjects in page order, a weighted summary and
        the timetable (empty when the page has none)

    Raises:
        ParseStructureInvalid: no valid subject block was found
    """
    if not html or not html.strip():
        raise ParseStructureInvalid("Empty attendance HTML")

    soup = BeautifulSoup(html, "html.parser")
    subjects = _parse_subject_blocks(soup)

    if not subjects:
        raise ParseStructureInvalid("No attendance data extracted from HTML")

    return ParsedAttendance(
        subjects=subjects,
        summary=summarize(subjects),
        timetable=_parse_timetable(soup),
    )


def _parse_subject_blocks(soup: BeautifulSoup) -> List[ParsedSubject]:
    subjects = []
    blocks = soup.find_all("fieldset", class_=BLOCK_CLASS)

    for index, block in enumerate(blocks):
        values = [span.get_text(strip=True) for span in block.find_all("span", style=FIELD_STYLE)]
        if len(values) < 5:
            continue

        serial_no = parse_int(values[0])
        subject_code = values[1]
        if serial_no is None or not subject_code or subject_code.upper() == HEADER_CODE:
            continue

        try:
            subjects.append(_build_subject(serial_no, subject_code, values[2], values[3], values[4]))
        except InputOutOfRange as e:
            logger.warning(
                f"Dropping subject row: {e}",
                extra={"extra_data": {"block": index, "code": subject_code, "field": e.field}},
            )

    return subjects


def _build_subject(
    serial_no: int,
    subject_code: str,
    attended_text: str,
    conducted_text: str,
    percentage_text: str,
) -> ParsedSubject:
    attended = parse_int(attended_text) or 0
    conducted = parse_int(conducted_text) or 0
    percentage = parse_float(percentage_text)

    if attended < 0:
        raise InputOutOfRange("classes_attended", attended, subject_code)
    if conducted < 0:
        raise InputOutOfRange("total_conducted", conducted, subject_code)
    if percentage is None:
        percentage = round(calculate_percentage(conducted, attended), 2)
    if not 0 <= percentage <= 100:
        raise InputOutOfRange("attendance_percent", percentage, subject_code)

    return ParsedSubject(
        serial_no=serial_no,
        subject_code=subject_code,
        classes_attended=attended,
        total_conducted=conducted,
        attendance_percent=percentage,
        status=attendance_status(percentage),
        detailed_status=detailed_attendance_status(percentage),
    )


def summarize(subjects: List[ParsedSubject]) -> AttendanceSummary:
    """Totals and the weighted overall percentage (attended / conducted)."""
    attended = sum(s.classes_attended for s in subjects)
    conducted = sum(s.total_conducted for s in subjects)
    return AttendanceSummary(
        total_subjects=len(subjects),
        total_classes_attended=attended,
        total_classes_conducted=conducted,
        overall_percentage=round(calculate_percentage(conducted, attended), 2),
    )


def _parse_timetable(soup: BeautifulSoup) -> List[TimetableDay]:
    timetable = []

    for row in soup.find_all("tr", class_=GRID_ROW_CLASS):
        day = _row_day(row)
        if not day:
            continue

        slots = []
        cells = row.find_all("td", class_=GRID_CELL_CLASS)
        for column, cell in enumerate(cells):
            if column == 0:
                continue
            slot = _parse_slot(cell, column)
            if slot:
                slots.append(slot)

        if slots:
            timetable.append(TimetableDay(day=day, time_slots=slots))

    return timetable


def _row_day(row: Tag) -> Optional[str]:
    for span in row.find_all("span"):
        text = span.get_text(strip=True)
        if DAY_PATTERN.match(text):
            return text
    return None


def _parse_slot(cell: Tag, column: int) -> Optional[TimeSlot]:
    container = cell.find("div")
    if container is None:
        return None

    texts = [span.get_text(strip=True) for span in container.find_all("span")]
    texts = [text for text in texts if text]
    if len(texts) < 2:
        return None

    return TimeSlot(time_slot=time_slot_for(column), subject=texts[0], faculty=texts[1])
