"""Errors raised while turning portal pages into attendance data."""

from typing import Optional


class AttendanceError(Exception):
    """Base class for attendance extraction failures."""


class ExtractionEmpty(AttendanceError):
    """No extraction strategy found any subject on the page."""

    def __init__(self, message: str = "No attendance data found on page", patterns_tried: int = 0):
        super().__init__(message)
        self.patterns_tried = patterns_tried


class ParseStructureInvalid(AttendanceError):
    """Cached HTML contained no valid subject blocks."""


class InputOutOfRange(AttendanceError, ValueError):
    """A parsed number was outside its valid range.

    Raised while building a single subject; callers drop that subject and
    keep the rest of the snapshot.
    """

    def __init__(self, field: str, value: object, code: Optional[str] = None):
        self.field = field
        self.value = value
        self.code = code
        subject = f" for {code}" if code else ""
        super().__init__(f"{field}={value!r} out of range{subject}")
