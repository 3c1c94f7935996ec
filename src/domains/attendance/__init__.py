# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance domain package.

This package provides attendance services and schemas:
- AttendanceService: Set and read attendance of a class on a school day
- Schemas: Request/Response models for the attendance API
"""

from src.domains.attendance.schemas import (
    AttendanceEntry,
    AttendanceMark,
    AttendanceRecordResponse,
    AttendanceStatus,
    AttendanceSubmitRequest,
    AttendanceSubmitResult,
    ClassAttendanceResponse,
    RosterStudent,
)
from src.domains.attendance.service import AttendanceService

__all__ = [
    "AttendanceEntry",
    "AttendanceMark",
    "AttendanceRecordResponse",
    "AttendanceStatus",
    "AttendanceSubmitRequest",
    "AttendanceSubmitResult",
    "ClassAttendanceResponse",
    "RosterStudent",
    "AttendanceService",
]
