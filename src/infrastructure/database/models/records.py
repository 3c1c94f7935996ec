# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade and attendance models.

These are the only tables the records core writes.
"""

from datetime import date as date_type

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin

ATTENDANCE_STATUSES = ("present", "absent", "late", "excused")
GRADE_CATEGORIES = ("quiz", "midterm", "final", "assignment", "participation")


class Grade(Base, UUIDMixin, TimestampMixin):
    """A score recorded by a teacher for one student in one subject.

    Several grades per student/subject/day are valid.
    """

    __tablename__ = "grades"
    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= max_score", name="ck_grades_score_bounds"),
        CheckConstraint("max_score > 0", name="ck_grades_max_score_positive"),
        Index("ix_grades_teacher_school", "teacher_id", "school_id"),
        Index("ix_grades_student_subject", "student_id", "subject_id"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    teacher_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    score: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    max_score: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    exam_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)

    @property
    def percentage(self) -> float:
        """Score as a percentage of max_score, two decimals."""
        if not self.max_score:
            return 0.0
        return round(float(self.score) / float(self.max_score) * 100, 2)


class AttendanceRecord(Base, UUIDMixin, TimestampMixin):
    """One student's attendance mark for one class on one day."""

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "date", name="uq_attendance_student_class_date"),
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'excused')",
            name="ck_attendance_status",
        ),
        Index("ix_attendance_school_class_date", "school_id", "class_id", "date"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    marked_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
