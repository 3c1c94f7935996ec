# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the Classbook database.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from src.infrastructure.database.models.curriculum import Subject, TeacherSubjectAssignment
from src.infrastructure.database.models.records import (
    ATTENDANCE_STATUSES,
    GRADE_CATEGORIES,
    AttendanceRecord,
    Grade,
)
from src.infrastructure.database.models.school import Class, School, Student, User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Organization
    "School",
    "User",
    "Class",
    "Student",
    # Curriculum
    "Subject",
    "TeacherSubjectAssignment",
    # Records
    "Grade",
    "AttendanceRecord",
    "ATTENDANCE_STATUSES",
    "GRADE_CATEGORIES",
]
