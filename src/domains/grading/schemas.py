# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade API schemas.

This module defines request/response schemas for bulk grade entry and
for correcting, removing and listing grades afterwards.
"""

from datetime import date as date_type
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.domains.attendance.schemas import RosterStudent


class GradeEntry(BaseModel):
    """One score to record.

    Score bounds and the category are checked by the service against the
    configured category list, so a bad value is reported with the index of
    the entry that carries it.
    """

    student_id: UUID = Field(description="Student being graded")
    subject_id: UUID = Field(description="Subject the score belongs to")
    score: float = Field(allow_inf_nan=False, description="Points obtained")
    max_score: float = Field(gt=0, allow_inf_nan=False, description="Points available")
    category: str = Field(
        min_length=1,
        max_length=20,
        description="Exam category (quiz, midterm, final, assignment, participation)",
    )
    exam_name: str | None = Field(default=None, max_length=255)
    note: str | None = Field(default=None, max_length=2000)
    date: date_type = Field(description="School day the grade applies to")


class BulkGradeRequest(BaseModel):
    """A batch of grades recorded in one action."""

    entries: list[GradeEntry] = Field(description="Grades to record, in display order")


class GradeUpdateRequest(BaseModel):
    """Partial correction of a recorded grade.

    Only the fields that are set are changed. Score bounds are checked
    against the resulting score and max_score.
    """

    score: float | None = Field(default=None, allow_inf_nan=False)
    max_score: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    category: str | None = Field(default=None, min_length=1, max_length=20)
    exam_name: str | None = Field(default=None, max_length=255)
    note: str | None = Field(default=None, max_length=2000)
    date: date_type | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller."""
        return self.model_dump(exclude_unset=True)


class GradeResponse(BaseModel):
    """A persisted grade."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    tenant_id: str = Field(validation_alias="school_id")
    student_id: str
    subject_id: str
    teacher_id: str
    score: float
    max_score: float
    percentage: float
    category: str
    exam_name: str | None = None
    note: str | None = None
    date: date_type
    created_at: datetime | None = None


class BulkGradeResponse(BaseModel):
    """Result of a bulk grade submission."""

    items: list[GradeResponse]
    total: int


class ClassGradesResponse(BaseModel):
    """Roster of a class and the grades the teacher recorded in it."""

    class_id: str
    subject_id: str | None = None
    students: list[RosterStudent]
    grades: list[GradeResponse]
