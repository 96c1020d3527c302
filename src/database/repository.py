"""Data access layer for the attendance history database.

This module provides the Repository class which handles all database
operations for tracked students and their attendance checks. It uses
parameterized queries and returns data as dictionaries.

Example:
    from src.database.repository import Repository

    repo = Repository()
    for student in repo.get_students():
        latest = repo.get_latest_attendance(student["student_id"])
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from src.logutils import get_logger

from .connection import DB_PATH, get_db
from .models import AttendanceRecord

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 30


def _record_row(row) -> Dict:
    record = dict(row)
    record["notification_sent"] = bool(record["notification_sent"])
    return record


def _subject_row(row) -> Dict:
    subject = dict(row)
    subject["estimated"] = bool(subject["estimated"])
    return subject


class Repository:
    """Repository for students and attendance check records.

    All methods return plain dictionaries. Check records are append-only:
    every check, successful or failed, adds one ``attendance_records`` row.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize repository with optional custom database path.

        Args:
            db_path: Path to SQLite database. Uses default if not provided.
        """
        self.db_path = db_path or DB_PATH

    # ==================== STUDENTS ====================

    def get_students(self, active_only: bool = True) -> List[Dict]:
        """Get tracked students ordered by student ID.

        Args:
            active_only: Skip students whose checks are disabled.
        """
        sql = "SELECT * FROM students"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY student_id"

        with get_db(self.db_path) as conn:
            return [dict(row) for row in conn.execute(sql).fetchall()]

    def get_student(self, student_id: str) -> Optional[Dict]:
        """Get a student by portal student ID (registration number)."""
        with get_db(self.db_path) as conn:
            cursor = conn.execute("SELECT * FROM students WHERE student_id = ?", (student_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def upsert_student(
        self,
        student_id: str,
        name: Optional[str] = None,
        is_active: bool = True,
        notifications_enabled: bool = True,
    ) -> int:
        """Insert or update a student.

        A missing ``name`` keeps the stored one.

        Returns:
            The database ID of the inserted or updated student.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO students (student_id, name, is_active, notifications_enabled, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(student_id) DO UPDATE SET
                    name = COALESCE(excluded.name, name),
                    is_active = excluded.is_active,
                    notifications_enabled = excluded.notifications_enabled,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING id
                """,
                (student_id, name, int(is_active), int(notifications_enabled)),
            )
            return int(cursor.fetchone()["id"])

    def update_last_check(self, student_id: str, checked_at: Optional[datetime] = None) -> None:
        """Stamp the time of the student's latest attendance check."""
        checked_at = checked_at or datetime.now()
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                UPDATE students
                SET last_attendance_check = ?, updated_at = CURRENT_TIMESTAMP
                WHERE student_id = ?
                """,
                (checked_at.isoformat(), student_id),
            )

    # ==================== ATTENDANCE RECORDS ====================

    def save_attendance_record(self, record: AttendanceRecord) -> int:
        """Store a check record and its subjects in one transaction.

        Returns:
            The database ID of the new record.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO attendance_records (
                    student_id, recorded_at, overall_percentage, weighted_percentage,
                    total_classes, total_attended, extraction_pattern, status,
                    error_message, notification_sent
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING id
                """,
                (
                    record.student_id,
                    record.recorded_at.isoformat(),
                    record.overall_percentage,
                    record.weighted_percentage,
                    record.total_classes,
                    record.total_attended,
                    record.extraction_pattern,
                    record.status,
                    record.error_message,
                    int(record.notification_sent),
                ),
            )
            record_id = int(cursor.fetchone()["id"])

            conn.executemany(
                """
                INSERT INTO attendance_subjects (
                    record_id, position, subject_code, subject_name, classes_conducted,
                    classes_attended, percentage, status_tier, estimated
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record_id,
                        position,
                        subject.subject_code,
                        subject.subject_name,
                        subject.classes_conducted,
                        subject.classes_attended,
                        subject.percentage,
                        subject.status_tier,
                        int(subject.estimated),
                    )
                    for position, subject in enumerate(record.subjects)
                ],
            )

        logger.debug(
            "Attendance record saved",
            extra={"extra_data": {
                "record_id": record_id,
                "student_id": record.student_id,
                "status": record.status,
                "subjects": len(record.subjects),
            }},
        )
        return record_id

    def save_error_record(
        self,
        student_id: str,
        error_message: str,
        recorded_at: Optional[datetime] = None,
    ) -> int:
        """Store a failed check so the history has no gaps."""
        record = AttendanceRecord(
            student_id=student_id,
            recorded_at=recorded_at or datetime.now(),
            status="error",
            error_message=error_message,
        )
        return self.save_attendance_record(record)

    def mark_notification_sent(self, record_id: int) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                "UPDATE attendance_records SET notification_sent = 1 WHERE id = ?",
                (record_id,),
            )

    def get_record_subjects(self, record_id: int) -> List[Dict]:
        """Subjects of a record in page order."""
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT subject_code, subject_name, classes_conducted, classes_attended,
                       percentage, status_tier, estimated
                FROM attendance_subjects
                WHERE record_id = ?
                ORDER BY position
                """,
                (record_id,),
            )
            return [_subject_row(row) for row in cursor.fetchall()]

    def get_attendance_history(
        self, student_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[Dict]:
        """Most recent check records first, errors included.

        Each record carries its ``subjects`` list.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT * FROM attendance_records
                WHERE student_id = ?
                ORDER BY recorded_at DESC, id DESC
                LIMIT ?
                """,
                (student_id, limit),
            )
            records = [_record_row(row) for row in cursor.fetchall()]

        for record in records:
            record["subjects"] = self.get_record_subjects(record["id"])
        return records

    def get_latest_attendance(self, student_id: str) -> Optional[Dict]:
        """Latest successful check record with its subjects, or None."""
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT * FROM attendance_records
                WHERE student_id = ? AND status = 'success'
                ORDER BY recorded_at DESC, id DESC
                LIMIT 1
                """,
                (student_id,),
            )
            row = cursor.fetchone()

        if not row:
            return None
        record = _record_row(row)
        record["subjects"] = self.get_record_subjects(record["id"])
        return record

