"""HTML parsers for portal attendance pages."""

from .extractor import (
    STRATEGIES,
    ExtractedSubject,
    extract_attendance,
    parse_subject_details,
    run_strategies,
)

__all__ = [
    "STRATEGIES",
    "ExtractedSubject",
    "extract_attendance",
    "parse_subject_details",
    "run_strategies",
]
