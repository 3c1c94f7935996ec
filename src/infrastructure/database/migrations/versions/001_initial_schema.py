# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial Classbook schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-03-02
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _fk(name: str, target: str, nullable: bool, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create Classbook tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # ORGANIZATION
    # =========================================================================

    op.create_table(
        "schools",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )

    op.create_table(
        "users",
        _id(),
        _fk("school_id", "schools.id", nullable=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_school_id", "users", ["school_id"])

    op.create_table(
        "classes",
        _id(),
        _fk("school_id", "schools.id", nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("grade_level", sa.String(20), nullable=True),
        sa.Column("section", sa.String(20), nullable=True),
        sa.Column("academic_year", sa.String(20), nullable=True),
        _fk("main_teacher_id", "users.id", nullable=True, ondelete="SET NULL"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_classes_school_id", "classes", ["school_id"])
    op.create_index("ix_classes_main_teacher_id", "classes", ["main_teacher_id"])

    op.create_table(
        "students",
        _id(),
        _fk("school_id", "schools.id", nullable=False),
        _fk("class_id", "classes.id", nullable=True, ondelete="SET NULL"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("student_id_number", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_students_school_class", "students", ["school_id", "class_id"])

    # =========================================================================
    # CURRICULUM & AUTHORIZATION
    # =========================================================================

    op.create_table(
        "subjects",
        _id(),
        _fk("school_id", "schools.id", nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("name_ar", sa.String(100), nullable=True),
        sa.Column("code", sa.String(20), nullable=True),
        _fk("teacher_id", "users.id", nullable=True, ondelete="SET NULL"),
        _fk("class_id", "classes.id", nullable=True, ondelete="SET NULL"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"])
    op.create_index("ix_subjects_teacher_id", "subjects", ["teacher_id"])

    op.create_table(
        "teacher_subject_assignments",
        _id(),
        _fk("teacher_id", "users.id", nullable=False),
        _fk("subject_id", "subjects.id", nullable=False),
        _fk("class_id", "classes.id", nullable=True),
        _fk("school_id", "schools.id", nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_teacher_subject_assignments_teacher_school",
        "teacher_subject_assignments",
        ["teacher_id", "school_id"],
    )

    # =========================================================================
    # RECORDS
    # =========================================================================

    op.create_table(
        "grades",
        _id(),
        _fk("school_id", "schools.id", nullable=False),
        _fk("student_id", "students.id", nullable=False),
        _fk("subject_id", "subjects.id", nullable=False),
        _fk("teacher_id", "users.id", nullable=False),
        sa.Column("score", sa.Numeric(6, 2), nullable=False),
        sa.Column("max_score", sa.Numeric(6, 2), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("exam_name", sa.String(255), nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("date", sa.Date, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("score >= 0 AND score <= max_score", name="ck_grades_score_bounds"),
        sa.CheckConstraint("max_score > 0", name="ck_grades_max_score_positive"),
    )
    op.create_index("ix_grades_teacher_school", "grades", ["teacher_id", "school_id"])
    op.create_index("ix_grades_student_subject", "grades", ["student_id", "subject_id"])

    op.create_table(
        "attendance",
        _id(),
        _fk("school_id", "schools.id", nullable=False),
        _fk("student_id", "students.id", nullable=False),
        _fk("class_id", "classes.id", nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        _fk("marked_by", "users.id", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id", "class_id", "date", name="uq_attendance_student_class_date"
        ),
        sa.CheckConstraint(
            "status IN ('present', 'absent', 'late', 'excused')",
            name="ck_attendance_status",
        ),
    )
    op.create_index(
        "ix_attendance_school_class_date", "attendance", ["school_id", "class_id", "date"]
    )


def downgrade() -> None:
    """Drop Classbook tables."""
    op.drop_table("attendance")
    op.drop_table("grades")
    op.drop_table("teacher_subject_assignments")
    op.drop_table("subjects")
    op.drop_table("students")
    op.drop_table("classes")
    op.drop_table("users")
    op.drop_table("schools")
