# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject and teacher-subject assignment models.

Two authorization models coexist:
- legacy: ``Subject.teacher_id`` + ``Subject.class_id`` (one teacher, one class)
- current: ``TeacherSubjectAssignment`` rows, where a null ``class_id``
  means the subject may be taught in any class of the school.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin


class Subject(Base, UUIDMixin, TimestampMixin):
    """A subject. ``school_id`` is null for global subjects."""

    __tablename__ = "subjects"

    school_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_ar: Mapped[str | None] = mapped_column(String(100), nullable=True)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    class_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TeacherSubjectAssignment(Base, UUIDMixin, TimestampMixin):
    """Junction row authorizing a teacher for a subject (in one or any class)."""

    __tablename__ = "teacher_subject_assignments"
    __table_args__ = (
        Index("ix_teacher_subject_assignments_teacher_school", "teacher_id", "school_id"),
    )

    teacher_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=True,
    )
    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )

    subject: Mapped[Subject] = relationship()
