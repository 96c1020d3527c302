"""Scraper module for portal attendance extraction."""

from .config import PortalConfig
from .errors import (
    AttendanceError,
    ExtractionEmpty,
    InputOutOfRange,
    ParseStructureInvalid,
)

__all__ = [
    "AttendanceError",
    "ExtractionEmpty",
    "InputOutOfRange",
    "ParseStructureInvalid",
    "PortalConfig",
]
