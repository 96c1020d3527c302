"""Summary text, recommendations and alerts built from a snapshot.

Nothing here talks to a chat service. A notifier only has to satisfy the
``Notifier`` protocol; the service hands it the formatted text and the
numbers it was built from.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

from .calculator import DEFAULT_REQUIRED_PERCENTAGE, SufficiencyProjection
from .models import AttendanceSnapshot, SubjectAttendance

CRITICAL_PERCENTAGE = 60.0
NEEDS_IMPROVEMENT_PERCENTAGE = 70.0
EXCELLENT_PERCENTAGE = 85.0

# Overall emoji: at or above the requirement, within this many points, else
OVERALL_WARNING_MARGIN = 5.0

RULE = "━━━━━━━━━━━━━━━━━━━━━"


@dataclass(frozen=True)
class NotificationPayload:
    """Numbers behind a notification, for notifiers that format their own text."""

    overall_percentage: float
    total_attended: int
    total_conducted: int
    projection_figure: Optional[int]
    is_sufficient: bool


class Notifier(Protocol):
    def send_attendance_report(
        self, student_id: str, text: str, payload: NotificationPayload
    ) -> bool:
        """Deliver the report; True when it reached the student."""
        ...


@dataclass(frozen=True)
class SubjectAnalysis:
    code: str
    percentage: float
    classes_to_attend: int
    classes_can_miss: int
    is_above_required: bool
    needs_improvement: bool
    risk_level: str


@dataclass(frozen=True)
class Recommendation:
    type: str
    subject: str
    message: str
    priority: int


@dataclass(frozen=True)
class Alert:
    type: str
    message: str
    subjects: tuple[str, ...] = ()


def build_payload(
    snapshot: AttendanceSnapshot, projection: SufficiencyProjection
) -> NotificationPayload:
    return NotificationPayload(
        overall_percentage=snapshot.overall_percentage,
        total_attended=snapshot.total_classes_attended,
        total_conducted=snapshot.total_classes_conducted,
        projection_figure=projection.figure,
        is_sufficient=projection.is_sufficient,
    )


def overall_status_emoji(
    percentage: float, required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE
) -> str:
    if percentage >= required_percentage:
        return "✅"
    if percentage >= required_percentage - OVERALL_WARNING_MARGIN:
        return "⚠️"
    return "❌"


def _format_required(required_percentage: float) -> str:
    return f"{required_percentage:g}%"


def suggestion_text(projection: SufficiencyProjection) -> str:
    """One line of advice for the projection."""
    required = _format_required(projection.required_percentage)

    if projection.is_sufficient:
        if projection.classes_can_miss > 0:
            return f"You can miss up to {projection.classes_can_miss} classes and still stay above {required}"
        return f"You're just above {required}. Don't miss any classes!"

    if not projection.is_reachable:
        return f"{required} can no longer be reached by attending classes"
    return f"Attend next {projection.classes_need_to_attend} classes continuously to reach {required}"


def format_attendance_summary(
    student_name: Optional[str],
    snapshot: AttendanceSnapshot,
    projection: SufficiencyProjection,
) -> str:
    """Plain text attendance report for one student."""
    current_date = snapshot.timestamp.strftime("%A, %d %B %Y")
    emoji = overall_status_emoji(snapshot.overall_percentage, projection.required_percentage)

    lines = [
        "📊 ATTENDANCE REPORT",
        current_date,
        "",
        f"Hello {student_name or 'Student'}! 👋",
        "",
        RULE,
        "📈 OVERALL ATTENDANCE",
        f"{emoji} {snapshot.overall_percentage:.2f}%",
        "",
        f"Attended: {snapshot.total_classes_attended} classes",
        f"Total: {snapshot.total_classes_conducted} classes",
        RULE,
        "",
        "💡 SUGGESTION:",
        suggestion_text(projection),
    ]
    return "\n".join(lines)


def format_subject_lines(
    snapshot: AttendanceSnapshot,
    required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
) -> List[str]:
    """One line per subject: name, counts, percentage and projection."""
    lines = []
    for subject in snapshot.subjects:
        projection = subject.projection(required_percentage)
        if projection.is_sufficient:
            advice = f"can miss {projection.classes_can_miss}"
        elif projection.is_reachable:
            advice = f"attend {projection.classes_need_to_attend}"
        else:
            advice = "unreachable"
        lines.append(
            f"{subject.name}: {subject.classes_attended}/{subject.classes_conducted} "
            f"({subject.percentage:.2f}%) - {advice}"
        )
    return lines


def analyze_subjects(
    subjects: Iterable[SubjectAttendance],
    required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
) -> List[SubjectAnalysis]:
    """Per-subject gap to the requirement, counted against classes held so far.

    ``classes_to_attend`` is ``ceil(r * conducted) - attended`` and
    ``classes_can_miss`` is ``attended - ceil(r * conducted)``, floored at 0.
    Unlike the calculator projections these ignore future classes.
    """
    ratio = required_percentage / 100
    analyses = []
    for subject in subjects:
        required_classes = math.ceil(ratio * subject.classes_conducted)
        percentage = subject.percentage
        analyses.append(
            SubjectAnalysis(
                code=subject.code,
                percentage=percentage,
                classes_to_attend=max(0, required_classes - subject.classes_attended),
                classes_can_miss=max(0, subject.classes_attended - required_classes),
                is_above_required=percentage >= required_percentage,
                needs_improvement=percentage < NEEDS_IMPROVEMENT_PERCENTAGE,
                risk_level=(
                    "high" if percentage < CRITICAL_PERCENTAGE
                    else "medium" if percentage < required_percentage
                    else "low"
                ),
            )
        )
    return analyses


def generate_recommendations(
    analyses: Sequence[SubjectAnalysis],
    required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
) -> List[Recommendation]:
    """Critical and warning subjects first, then subjects doing very well."""
    required = _format_required(required_percentage)
    recommendations = []

    for analysis in analyses:
        if analysis.percentage < CRITICAL_PERCENTAGE:
            recommendations.append(
                Recommendation(
                    type="critical",
                    subject=analysis.code,
                    message=(
                        f"Critical: {analysis.code} has {analysis.percentage}% attendance. "
                        f"Need to attend {analysis.classes_to_attend} more classes to reach {required}."
                    ),
                    priority=1,
                )
            )
        elif analysis.percentage < required_percentage:
            recommendations.append(
                Recommendation(
                    type="warning",
                    subject=analysis.code,
                    message=(
                        f"Warning: {analysis.code} has {analysis.percentage}% attendance. "
                        f"Attend {analysis.classes_to_attend} more classes to be safe."
                    ),
                    priority=2,
                )
            )
        elif analysis.percentage >= EXCELLENT_PERCENTAGE:
            recommendations.append(
                Recommendation(
                    type="good",
                    subject=analysis.code,
                    message=(
                        f"Good: {analysis.code} has excellent attendance ({analysis.percentage}%). "
                        f"You can miss {analysis.classes_can_miss} classes and still maintain {required}."
                    ),
                    priority=3,
                )
            )

    return sorted(recommendations, key=lambda r: r.priority)


def generate_alerts(
    subjects: Sequence[SubjectAttendance],
    required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
) -> List[Alert]:
    alerts = []

    critical = [s.code for s in subjects if s.percentage < CRITICAL_PERCENTAGE]
    if critical:
        alerts.append(
            Alert(
                type="danger",
                message=f"{len(critical)} subjects below {CRITICAL_PERCENTAGE:g}% attendance",
                subjects=tuple(critical),
            )
        )

    failing = [s.code for s in subjects if s.percentage < required_percentage]
    if len(failing) > len(subjects) / 2:
        alerts.append(
            Alert(
                type="warning",
                message="More than half your subjects need attention",
                subjects=tuple(failing),
            )
        )

    return alerts

