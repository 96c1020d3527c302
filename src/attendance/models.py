"""Value objects for subject attendance and attendance snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from src.logutils import get_logger
from src.scraper.errors import ExtractionEmpty, InputOutOfRange

from .calculator import (
    DEFAULT_REQUIRED_PERCENTAGE,
    AttendanceCalculator,
    SufficiencyProjection,
    calculate_percentage,
)

logger = get_logger(__name__)

SAFE_THRESHOLD = 75.0
WARNING_THRESHOLD = 60.0


class StatusTier(str, Enum):
    """Storage-level standing of a subject."""

    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


def status_tier_for(percentage: float) -> StatusTier:
    """Fixed tiers: 75 and above is safe, 60 and above warning, else critical."""
    if percentage >= SAFE_THRESHOLD:
        return StatusTier.SAFE
    if percentage >= WARNING_THRESHOLD:
        return StatusTier.WARNING
    return StatusTier.CRITICAL


@dataclass(frozen=True)
class SubjectAttendance:
    """One subject's standing, as extracted from a single page."""

    code: str
    name: str
    classes_conducted: int
    classes_attended: int
    percentage: float
    status_tier: StatusTier

    # attended was larger than conducted and has been clamped
    clamped: bool = False

    # counts were estimated from the percentage alone
    estimated: bool = False

    @classmethod
    def create(
        cls,
        code: str,
        classes_conducted: int,
        classes_attended: int,
        percentage: Optional[float] = None,
        name: Optional[str] = None,
        estimated: bool = False,
    ) -> "SubjectAttendance":
        """Validate raw numbers and build a subject.

        Raises:
            InputOutOfRange: negative counts, or a percentage outside [0, 100]
        """
        if classes_conducted < 0:
            raise InputOutOfRange("classes_conducted", classes_conducted, code)
        if classes_attended < 0:
            raise InputOutOfRange("classes_attended", classes_attended, code)

        clamped = False
        if classes_attended > classes_conducted:
            logger.warning(
                f"Attended exceeds conducted for {code}, clamping",
                extra={"extra_data": {
                    "code": code,
                    "attended": classes_attended,
                    "conducted": classes_conducted,
                }},
            )
            classes_attended = classes_conducted
            clamped = True

        if percentage is None:
            percentage = calculate_percentage(classes_conducted, classes_attended)
        if not 0 <= percentage <= 100:
            raise InputOutOfRange("percentage", percentage, code)

        percentage = round(percentage, 2)
        return cls(
            code=code,
            name=name or code,
            classes_conducted=classes_conducted,
            classes_attended=classes_attended,
            percentage=percentage,
            status_tier=status_tier_for(percentage),
            clamped=clamped,
            estimated=estimated,
        )

    def calculator(self, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE) -> AttendanceCalculator:
        return AttendanceCalculator(self.classes_conducted, self.classes_attended, required_percentage)

    def projection(self, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE) -> SufficiencyProjection:
        return self.calculator(required_percentage).projection()


@dataclass(frozen=True)
class AttendanceSnapshot:
    """One full attendance check for one student.

    ``overall_percentage`` is the simple mean of the subject percentages;
    ``weighted_percentage`` divides total attended by total conducted. The
    snapshot stores and displays the simple mean.
    """

    subjects: tuple[SubjectAttendance, ...]
    extraction_pattern: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "subjects", tuple(self.subjects))
        if not self.subjects:
            raise ExtractionEmpty("Snapshot has no subjects")

    @classmethod
    def from_subjects(
        cls,
        subjects: Iterable[SubjectAttendance],
        extraction_pattern: str,
        timestamp: Optional[datetime] = None,
    ) -> "AttendanceSnapshot":
        return cls(
            subjects=tuple(subjects),
            extraction_pattern=extraction_pattern,
            timestamp=timestamp or datetime.now(),
        )

    @property
    def total_classes_conducted(self) -> int:
        return sum(subject.classes_conducted for subject in self.subjects)

    @property
    def total_classes_attended(self) -> int:
        return sum(subject.classes_attended for subject in self.subjects)

    @property
    def overall_percentage(self) -> float:
        """Simple (unweighted) mean of subject percentages, 2 dp."""
        return round(sum(s.percentage for s in self.subjects) / len(self.subjects), 2)

    @property
    def weighted_percentage(self) -> float:
        """Total attended over total conducted, 2 dp."""
        return round(
            calculate_percentage(self.total_classes_conducted, self.total_classes_attended), 2
        )

    def overall_calculator(
        self, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE
    ) -> AttendanceCalculator:
        """Calculator over the summed class counts."""
        return AttendanceCalculator(
            self.total_classes_conducted, self.total_classes_attended, required_percentage
        )

    def overall_projection(
        self, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE
    ) -> SufficiencyProjection:
        return self.overall_calculator(required_percentage).projection()

    def subject_projections(
        self, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE
    ) -> list[tuple[SubjectAttendance, SufficiencyProjection]]:
        """Projection per subject, in subject order (codes may repeat)."""
        return [(s, s.projection(required_percentage)) for s in self.subjects]
