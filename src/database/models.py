"""Pydantic models for stored attendance data."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Student(BaseModel):
    """Student tracked by the attendance checks."""

    student_id: str
    name: Optional[str] = None
    is_active: bool = True
    notifications_enabled: bool = True
    last_attendance_check: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or self.student_id


class SubjectRecord(BaseModel):
    """One subject row of a stored check."""

    subject_code: str
    subject_name: Optional[str] = None
    classes_conducted: int = Field(ge=0)
    classes_attended: int = Field(ge=0)
    percentage: float = Field(ge=0, le=100)
    status_tier: Literal["safe", "warning", "critical"]
    estimated: bool = False


class AttendanceRecord(BaseModel):
    """Flat storage record of one attendance check.

    Error records carry ``status="error"``, the failure message and no
    subjects, so the check history has no gaps.
    """

    record_id: Optional[int] = None
    student_id: str
    recorded_at: datetime = Field(default_factory=datetime.now)
    subjects: List[SubjectRecord] = Field(default_factory=list)
    overall_percentage: float = Field(default=0.0, ge=0, le=100)
    weighted_percentage: float = Field(default=0.0, ge=0, le=100)
    total_classes: int = Field(default=0, ge=0)
    total_attended: int = Field(default=0, ge=0)
    extraction_pattern: Optional[str] = None
    status: Literal["success", "error"] = "success"
    error_message: Optional[str] = None
    notification_sent: bool = False
