"""Attendance domain: value objects, sufficiency maths, names and reports.

The orchestration service lives in ``src.attendance.service`` and is not
imported here, so the parsers can depend on this package.
"""

from .calculator import (
    DEFAULT_REQUIRED_PERCENTAGE,
    UNREACHABLE,
    AttendanceCalculator,
    AttendanceReport,
    Prediction,
    SufficiencyProjection,
    calculate_percentage,
    is_meeting_requirement,
)
from .models import AttendanceSnapshot, StatusTier, SubjectAttendance, status_tier_for
from .subject_names import SubjectNameResolver, get_subject_name

__all__ = [
    "DEFAULT_REQUIRED_PERCENTAGE",
    "UNREACHABLE",
    "AttendanceCalculator",
    "AttendanceReport",
    "AttendanceSnapshot",
    "Prediction",
    "StatusTier",
    "SubjectAttendance",
    "SubjectNameResolver",
    "SufficiencyProjection",
    "calculate_percentage",
    "get_subject_name",
    "is_meeting_requirement",
    "status_tier_for",
]
