# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance API schemas.

This module defines request/response schemas for marking and reading
attendance of one class on one school day.
"""

from datetime import date as date_type
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AttendanceStatus(str, Enum):
    """Attendance mark values."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class AttendanceEntry(BaseModel):
    """One student's mark.

    class_id and date are repeated on every entry and must match the
    class and day the batch is submitted for.
    """

    student_id: UUID
    class_id: UUID
    date: date_type
    status: AttendanceStatus
    note: str | None = Field(default=None, max_length=2000)


class AttendanceMark(BaseModel):
    """Entry body for the PUT endpoint, where class and date come from the path."""

    student_id: UUID
    status: AttendanceStatus
    note: str | None = Field(default=None, max_length=2000)


class AttendanceSubmitRequest(BaseModel):
    """Marks for one class on one day."""

    entries: list[AttendanceMark] = Field(description="Marks to set; absent students are left as they are")


class AttendanceSubmitResult(BaseModel):
    """Outcome of an attendance submission.

    Attributes:
        inserted: New rows created.
        updated: Existing rows overwritten, including recovered conflicts.
        recovered_conflicts: Inserts that lost a race to a concurrent
            submission and were applied as updates instead.
        total: Rows written, inserted plus updated.
    """

    class_id: str
    date: date_type
    inserted: int = 0
    updated: int = 0
    recovered_conflicts: int = 0
    total: int = 0


class AttendanceRecordResponse(BaseModel):
    """A persisted attendance mark."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    class_id: str
    date: date_type
    status: AttendanceStatus
    note: str | None = None
    marked_by: str | None = None
    updated_at: datetime | None = None


class RosterStudent(BaseModel):
    """A student listed on a class roster."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    student_id_number: str | None = None


class ClassAttendanceResponse(BaseModel):
    """Roster and existing marks of one class on one day.

    Students without a mark in records are simply unmarked.
    """

    class_id: str
    date: date_type
    students: list[RosterStudent]
    records: list[AttendanceRecordResponse]
