"""Database module for attendance history storage."""

from .connection import get_db, init_database, verify_database
from .models import AttendanceRecord, Student, SubjectRecord
from .repository import Repository

__all__ = [
    "AttendanceRecord",
    "Repository",
    "Student",
    "SubjectRecord",
    "get_db",
    "init_database",
    "verify_database",
]
