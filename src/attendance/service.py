"""Attendance check orchestration.

Takes a page (live HTML from the scraper or a cached copy), builds an
AttendanceSnapshot, projects sufficiency, stores the result and hands a
summary to the notifier. A failed check is stored too, as an error record.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from src.database.models import AttendanceRecord, SubjectRecord
from src.database.repository import DEFAULT_HISTORY_LIMIT, Repository
from src.logutils import get_logger, with_context
from src.scraper.errors import ExtractionEmpty, InputOutOfRange, ParseStructureInvalid
from src.scraper.parsers.attendance import parse_attendance_html
from src.scraper.parsers.extractor import ExtractedSubject, extract_attendance

from .calculator import DEFAULT_REQUIRED_PERCENTAGE, SufficiencyProjection
from .models import AttendanceSnapshot, SubjectAttendance
from .report import Notifier, build_payload, format_attendance_summary
from .subject_names import SubjectNameResolver

logger = get_logger(__name__)

HTML_PATTERN = "html"

# Counts assumed for subjects found by percentage only
ESTIMATED_CONDUCTED = 100


@dataclass
class CheckResult:
    """Outcome of one attendance check."""

    student_id: str
    success: bool
    snapshot: Optional[AttendanceSnapshot] = None
    overall_projection: Optional[SufficiencyProjection] = None
    subject_projections: List[Tuple[SubjectAttendance, SufficiencyProjection]] = field(default_factory=list)
    record_id: Optional[int] = None
    notification_sent: bool = False
    error: Optional[str] = None


class AttendanceService:
    """Runs attendance checks for students and keeps their history.

    Args:
        repository: storage for check records
        notifier: optional collaborator that delivers the summary
        resolver: subject name resolver, a default one when omitted
        required_percentage: sufficiency threshold
        delay_seconds: pause between students in ``check_all``
    """

    def __init__(
        self,
        repository: Repository,
        notifier: Optional[Notifier] = None,
        resolver: Optional[SubjectNameResolver] = None,
        required_percentage: float = DEFAULT_REQUIRED_PERCENTAGE,
        delay_seconds: float = 0.0,
    ):
        self.repository = repository
        self.notifier = notifier
        self.resolver = resolver or SubjectNameResolver()
        self.required_percentage = required_percentage
        self.delay_seconds = delay_seconds

    def _resolver_for(self, names: Optional[Mapping[str, str]]) -> SubjectNameResolver:
        if not names:
            return self.resolver
        return self.resolver.with_overrides(names)

    # ==================== SNAPSHOTS ====================

    def build_snapshot_from_extraction(
        self,
        extracted: Sequence[ExtractedSubject],
        names: Optional[Mapping[str, str]] = None,
    ) -> AttendanceSnapshot:
        """Normalize extractor output into a snapshot.

        Subjects without counts get ``ESTIMATED_CONDUCTED`` classes and an
        attended count rounded from the percentage. Subjects failing
        validation are dropped and logged.

        Raises:
            ExtractionEmpty: nothing extracted, or every subject was dropped
        """
        if not extracted:
            raise ExtractionEmpty()

        resolver = self._resolver_for(names)
        subjects: List[SubjectAttendance] = []

        for item in extracted:
            try:
                if item.has_counts:
                    subject = SubjectAttendance.create(
                        code=item.name,
                        classes_conducted=item.conducted,
                        classes_attended=item.attended,
                        percentage=item.percentage,
                        name=resolver.get_subject_name(item.name),
                    )
                else:
                    subject = SubjectAttendance.create(
                        code=item.name,
                        classes_conducted=ESTIMATED_CONDUCTED,
                        classes_attended=round(item.percentage),
                        percentage=item.percentage,
                        name=resolver.get_subject_name(item.name),
                        estimated=True,
                    )
            except InputOutOfRange as e:
                logger.warning(
                    f"Dropping extracted subject: {e}",
                    extra={"extra_data": {"subject": item.name, "pattern": item.pattern, "field": e.field}},
                )
                continue
            subjects.append(subject)

        return AttendanceSnapshot.from_subjects(subjects, extraction_pattern=extracted[0].pattern)

    def build_snapshot_from_html(
        self,
        html: str,
        names: Optional[Mapping[str, str]] = None,
    ) -> AttendanceSnapshot:
        """Snapshot from cached attendance HTML via the record parser.

        Raises:
            ParseStructureInvalid: no subject blocks in the HTML
        """
        parsed = parse_attendance_html(html)
        resolver = self._resolver_for(names)

        subjects = []
        for parsed_subject in parsed.subjects:
            try:
                subjects.append(
                    SubjectAttendance.create(
                        code=parsed_subject.subject_code,
                        classes_conducted=parsed_subject.total_conducted,
                        classes_attended=parsed_subject.classes_attended,
                        percentage=parsed_subject.attendance_percent,
                        name=resolver.get_subject_name(parsed_subject.subject_code),
                    )
                )
            except InputOutOfRange as e:
                logger.warning(
                    f"Dropping parsed subject: {e}",
                    extra={"extra_data": {"subject": parsed_subject.subject_code, "field": e.field}},
                )

        if not subjects:
            raise ParseStructureInvalid("No valid subjects in attendance HTML")
        return AttendanceSnapshot.from_subjects(subjects, extraction_pattern=HTML_PATTERN)

    def to_record(self, student_id: str, snapshot: AttendanceSnapshot) -> AttendanceRecord:
        """Flat storage record for a successful check."""
        return AttendanceRecord(
            student_id=student_id,
            recorded_at=snapshot.timestamp,
            subjects=[
                SubjectRecord(
                    subject_code=subject.code,
                    subject_name=subject.name,
                    classes_conducted=subject.classes_conducted,
                    classes_attended=subject.classes_attended,
                    percentage=subject.percentage,
                    status_tier=subject.status_tier.value,
                    estimated=subject.estimated,
                )
                for subject in snapshot.subjects
            ],
            overall_percentage=snapshot.overall_percentage,
            weighted_percentage=snapshot.weighted_percentage,
            total_classes=snapshot.total_classes_conducted,
            total_attended=snapshot.total_classes_attended,
            extraction_pattern=snapshot.extraction_pattern,
        )

    # ==================== CHECKS ====================

    def check_from_html(
        self,
        student_id: str,
        html: str,
        student_name: Optional[str] = None,
        names: Optional[Mapping[str, str]] = None,
    ) -> CheckResult:
        """Check cached attendance HTML with the record parser."""
        with with_context(operation="check_attendance", student_id=student_id, component="html"):
            return self._run_check(
                student_id,
                lambda: self.build_snapshot_from_html(html, names),
                student_name,
            )

    def check_from_page(
        self,
        student_id: str,
        page_html: str,
        student_name: Optional[str] = None,
        names: Optional[Mapping[str, str]] = None,
    ) -> CheckResult:
        """Check a loaded portal page with the multi-pattern extractor."""
        with with_context(operation="check_attendance", student_id=student_id, component="extractor"):
            return self._run_check(
                student_id,
                lambda: self.build_snapshot_from_extraction(extract_attendance(page_html), names),
                student_name,
            )

    def check_all(
        self,
        students: Iterable[Mapping[str, Any]],
        fetch: Callable[[str], str],
    ) -> List[CheckResult]:
        """Check students one after another.

        Args:
            students: dicts with ``student_id`` and optional ``name``
                (``Repository.get_students()`` rows)
            fetch: returns the attendance page HTML for a student ID

        A student whose page cannot be fetched gets an error record and the
        batch moves on.
        """
        results = []
        students = list(students)

        for index, student in enumerate(students):
            student_id = student["student_id"]
            name = student.get("name")

            try:
                html = fetch(student_id)
            except Exception as e:
                results.append(self.record_fetch_failure(student_id, e))
            else:
                results.append(self.check_from_page(student_id, html, student_name=name))

            if self.delay_seconds and index < len(students) - 1:
                time.sleep(self.delay_seconds)

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            f"Batch check finished: {succeeded}/{len(results)} succeeded",
            extra={"extra_data": {"total": len(results), "succeeded": succeeded}},
        )
        return results

    def record_fetch_failure(self, student_id: str, error: Exception) -> CheckResult:
        """Store an error record for a page that could not be loaded."""
        logger.error(
            f"Failed to fetch attendance page: {error}",
            extra={"extra_data": {"student_id": student_id, "error_type": type(error).__name__}},
        )
        record_id = self.repository.save_error_record(student_id, f"Fetch failed: {error}")
        return CheckResult(student_id, success=False, record_id=record_id, error=str(error))

    def _run_check(
        self,
        student_id: str,
        build: Callable[[], AttendanceSnapshot],
        student_name: Optional[str],
    ) -> CheckResult:
        try:
            snapshot = build()
        except (ExtractionEmpty, ParseStructureInvalid) as e:
            logger.error(
                f"Attendance check failed: {e}",
                extra={"extra_data": {"student_id": student_id, "error_type": type(e).__name__}},
            )
            record_id = self.repository.save_error_record(student_id, str(e))
            return CheckResult(student_id, success=False, record_id=record_id, error=str(e))

        overall = snapshot.overall_projection(self.required_percentage)
        record_id = self.repository.save_attendance_record(self.to_record(student_id, snapshot))
        self.repository.update_last_check(student_id, snapshot.timestamp)

        logger.info(
            f"Attendance check complete: {snapshot.overall_percentage:.2f}% overall",
            extra={"extra_data": {
                "student_id": student_id,
                "record_id": record_id,
                "subjects": len(snapshot.subjects),
                "pattern": snapshot.extraction_pattern,
                "sufficient": overall.is_sufficient,
            }},
        )

        result = CheckResult(
            student_id,
            success=True,
            snapshot=snapshot,
            overall_projection=overall,
            subject_projections=snapshot.subject_projections(self.required_percentage),
            record_id=record_id,
        )
        result.notification_sent = self._notify(student_id, student_name, snapshot, overall, record_id)
        return result

    def _notify(
        self,
        student_id: str,
        student_name: Optional[str],
        snapshot: AttendanceSnapshot,
        projection: SufficiencyProjection,
        record_id: int,
    ) -> bool:
        if self.notifier is None:
            return False

        text = format_attendance_summary(student_name, snapshot, projection)
        try:
            sent = self.notifier.send_attendance_report(
                student_id, text, build_payload(snapshot, projection)
            )
        except Exception as e:
            # The check itself succeeded and is already stored
            logger.error(
                f"Notification failed: {e}",
                extra={"extra_data": {"student_id": student_id, "record_id": record_id}},
            )
            return False

        if sent:
            self.repository.mark_notification_sent(record_id)
        return bool(sent)

    # ==================== HISTORY ====================

    def get_attendance_history(
        self, student_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[Dict]:
        return self.repository.get_attendance_history(student_id, limit)

    def get_latest_attendance(self, student_id: str) -> Optional[Dict]:
        return self.repository.get_latest_attendance(student_id)
