"""Attendance sufficiency calculator.

Answers three questions for a subject (or the overall total) against a
required percentage:

    * is the student currently at or above the requirement?
    * if so, how many upcoming classes can be missed before dropping below it?
    * if not, how many consecutive classes must be attended to reach it?

The two projections are computed by simulating future classes one at a time.
Closed-form approximations of the same numbers are exposed separately for
display code; at boundary values the two can differ by one class.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

DEFAULT_REQUIRED_PERCENTAGE = 75.0
DEFAULT_MAX_ITERATIONS = 10_000

# Legacy value for "requirement can never be reached"
UNREACHABLE = -1

# Width of the "Warning" band below the requirement used by get_status()
STATUS_WARNING_MARGIN = 5.0


@dataclass(frozen=True)
class SufficiencyProjection:
    """Sufficiency of one subject or total against a requirement.

    Only one projection is meaningful: ``classes_can_miss`` when sufficient,
    ``classes_need_to_attend`` otherwise. ``classes_need_to_attend`` is
    ``None`` when the requirement cannot be reached.
    """

    required_percentage: float
    is_sufficient: bool
    classes_can_miss: int = 0
    classes_need_to_attend: Optional[int] = 0

    @property
    def is_reachable(self) -> bool:
        return self.classes_need_to_attend is not None

    @property
    def figure(self) -> Optional[int]:
        """The meaningful projection figure for this state."""
        if self.is_sufficient:
            return self.classes_can_miss
        return self.classes_need_to_attend


@dataclass(frozen=True)
class AttendanceReport:
    """Everything the calculator knows about one input, in one value."""

    total_classes: int
    attended_classes: int
    missed_classes: int
    current_percentage: float
    required_percentage: float
    is_sufficient: bool
    status: str
    classes_can_miss: int
    classes_need_to_attend: Optional[int]


@dataclass(frozen=True)
class Prediction:
    """Attendance after a known number of future attended/missed classes."""

    total_classes: int
    attended_classes: int
    percentage: float
    is_sufficient: bool


def calculate_percentage(total: int, attended: int) -> float:
    """``attended / total * 100``, or 0 when nothing was conducted."""
    if total == 0:
        return 0.0
    return attended / total * 100


def is_meeting_requirement(percentage: float, required: float = DEFAULT_REQUIRED_PERCENTAGE) -> bool:
    return percentage >= required


class AttendanceCalculator:
    """Sufficiency maths for a single (total, attended) pair.

    Args:
        total_classes: classes conducted so far
        attended_classes: classes attended so far
        required_percentage: threshold to stay in good standing
        max_iterations: cap on the forward simulations
    """

    def __init__(
        self,
        total_classes: int,
        attended_classes: int,
        required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.total_classes = total_classes
        self.attended_classes = attended_classes
        self.required_percentage = required_percentage
        self.max_iterations = max_iterations

    def __repr__(self) -> str:
        return (
            f"AttendanceCalculator(total_classes={self.total_classes}, "
            f"attended_classes={self.attended_classes}, "
            f"required_percentage={self.required_percentage})"
        )

    calculate_percentage = staticmethod(calculate_percentage)
    is_meeting_requirement = staticmethod(is_meeting_requirement)

    def current_percentage(self) -> float:
        return calculate_percentage(self.total_classes, self.attended_classes)

    def is_sufficient(self) -> bool:
        return self.current_percentage() >= self.required_percentage

    def classes_can_miss(self) -> int:
        """Classes that can be skipped from now on while staying sufficient.

        Adds one unattended class at a time and counts how many fit before
        the percentage first falls below the requirement. Returns 0 when the
        student is not sufficient. If the percentage never falls below the
        requirement (a threshold of 0 or less) the count stops at
        ``max_iterations``.
        """
        if not self.is_sufficient():
            return 0

        can_miss = 0
        future_total = self.total_classes
        future_attended = self.attended_classes

        while can_miss < self.max_iterations:
            future_total += 1
            if calculate_percentage(future_total, future_attended) < self.required_percentage:
                break
            can_miss += 1

        return can_miss

    simulate_classes_can_miss = classes_can_miss

    def classes_need_to_attend(self) -> Optional[int]:
        """Consecutive classes to attend before reaching the requirement.

        Adds one attended class at a time. Returns 0 when already
        sufficient and ``None`` when ``max_iterations`` classes are not
        enough, which happens when the requirement is above 100%.
        """
        if self.is_sufficient():
            return 0

        need_to_attend = 0
        future_total = self.total_classes
        future_attended = self.attended_classes

        while True:
            future_total += 1
            future_attended += 1
            need_to_attend += 1

            if calculate_percentage(future_total, future_attended) >= self.required_percentage:
                return need_to_attend

            if need_to_attend > self.max_iterations:
                return None

    simulate_classes_need_to_attend = classes_need_to_attend

    def classes_need_to_attend_or_sentinel(self) -> int:
        """classes_need_to_attend() with ``UNREACHABLE`` (-1) instead of None."""
        needed = self.classes_need_to_attend()
        return UNREACHABLE if needed is None else needed

    def closed_form_can_miss(self) -> int:
        """Display approximation: ``floor((attended - r*total) / r)``."""
        ratio = self.required_percentage / 100
        if ratio <= 0 or not self.is_sufficient():
            return 0
        return max(0, math.floor((self.attended_classes - ratio * self.total_classes) / ratio))

    def closed_form_need_to_attend(self) -> Optional[int]:
        """Display approximation: ``ceil((r*total - attended) / (1 - r))``."""
        if self.is_sufficient():
            return 0
        ratio = self.required_percentage / 100
        if ratio >= 1:
            return None
        return max(0, math.ceil((ratio * self.total_classes - self.attended_classes) / (1 - ratio)))

    def get_status(self) -> str:
        """Safe, Warning (within 5 points of the requirement) or Danger."""
        current = self.current_percentage()
        if current >= self.required_percentage:
            return "Safe"
        if current >= self.required_percentage - STATUS_WARNING_MARGIN:
            return "Warning"
        return "Danger"

    def projection(self) -> SufficiencyProjection:
        sufficient = self.is_sufficient()
        return SufficiencyProjection(
            required_percentage=self.required_percentage,
            is_sufficient=sufficient,
            classes_can_miss=self.classes_can_miss() if sufficient else 0,
            classes_need_to_attend=0 if sufficient else self.classes_need_to_attend(),
        )

    def get_report(self) -> AttendanceReport:
        projection = self.projection()
        return AttendanceReport(
            total_classes=self.total_classes,
            attended_classes=self.attended_classes,
            missed_classes=self.total_classes - self.attended_classes,
            current_percentage=round(self.current_percentage(), 2),
            required_percentage=self.required_percentage,
            is_sufficient=projection.is_sufficient,
            status=self.get_status(),
            classes_can_miss=projection.classes_can_miss,
            classes_need_to_attend=projection.classes_need_to_attend,
        )

    def predict(self, future_attended: int, future_missed: int) -> Prediction:
        """Attendance after attending and missing the given numbers of classes."""
        new_total = self.total_classes + future_attended + future_missed
        new_attended = self.attended_classes + future_attended
        new_percentage = calculate_percentage(new_total, new_attended)
        return Prediction(
            total_classes=new_total,
            attended_classes=new_attended,
            percentage=round(new_percentage, 2),
            is_sufficient=new_percentage >= self.required_percentage,
        )
