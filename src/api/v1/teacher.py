# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher records API endpoints.

This module provides endpoints for a teacher's daily record keeping:
- GET /assignments - Resolved subject and class authority
- GET /subjects - Subjects the teacher may grade, optionally for one class
- POST /grades/bulk - Record a batch of grades
- GET /grades/{class_id} - Class roster and the teacher's grades in it
- PATCH /grades/{grade_id} - Correct a grade
- DELETE /grades/{grade_id} - Remove a grade
- GET /attendance/{class_id} - Roster and marks for a day
- PUT /attendance/{class_id}/{day} - Set attendance for a day

Grades require the teacher role. Attendance also accepts the school-wide
override roles (admin, hr).

Records errors are not caught here; the application-level handler turns
each kind into its own status code.
"""

import logging
from datetime import date as date_type
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.api.dependencies import Attendance, AttendanceActor, Grades, Resolver, TeacherUser
from src.domains.attendance.schemas import (
    AttendanceEntry,
    AttendanceSubmitRequest,
    AttendanceSubmitResult,
    ClassAttendanceResponse,
)
from src.domains.authorization.schemas import (
    AssignmentContextResponse,
    SubjectAuthorizationResponse,
)
from src.domains.grading.schemas import (
    BulkGradeRequest,
    BulkGradeResponse,
    ClassGradesResponse,
    GradeResponse,
    GradeUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# =========================================================================
# Assignments
# =========================================================================


@router.get(
    "/assignments",
    response_model=AssignmentContextResponse,
    summary="Get my assignments",
    description="Subjects and classes the current teacher may act on.",
)
async def get_assignments(
    current_user: TeacherUser,
    resolver: Resolver,
) -> AssignmentContextResponse:
    """Resolve the current teacher's assignments.

    Sources that could not be read are listed in warnings.
    """
    context = await resolver.resolve(current_user.id, current_user.tenant_id)
    return AssignmentContextResponse.from_context(context)


@router.get(
    "/subjects",
    response_model=list[SubjectAuthorizationResponse],
    summary="List my subjects",
)
async def list_subjects(
    current_user: TeacherUser,
    resolver: Resolver,
    class_id: UUID | None = Query(default=None, description="Only subjects usable in this class"),
) -> list[SubjectAuthorizationResponse]:
    """List subject grants, optionally narrowed to one class.

    Any-class grants are included for every class.
    """
    context = await resolver.resolve(current_user.id, current_user.tenant_id)
    grants = (
        context.subjects_for_class(str(class_id))
        if class_id
        else context.subject_authorizations
    )
    return [SubjectAuthorizationResponse.from_authorization(g) for g in grants]


# =========================================================================
# Grades
# =========================================================================


@router.post(
    "/grades/bulk",
    response_model=BulkGradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record grades",
    description="Record a batch of grades. One invalid entry rejects the whole batch.",
)
async def submit_grades(
    data: BulkGradeRequest,
    current_user: TeacherUser,
    service: Grades,
) -> BulkGradeResponse:
    """Record a batch of grades.

    Args:
        data: Grades to record.
        current_user: Authenticated teacher.
        service: Grade service.

    Returns:
        Persisted grades in submission order.
    """
    logger.info(
        "Submitting grades: teacher=%s, entries=%d",
        current_user.id,
        len(data.entries),
    )

    items = await service.submit_grades(current_user.id, current_user.tenant_id, data.entries)
    return BulkGradeResponse(items=items, total=len(items))


@router.get(
    "/grades/{class_id}",
    response_model=ClassGradesResponse,
    summary="List class grades",
    description="Class roster and the grades the current teacher recorded in it, newest first.",
)
async def list_class_grades(
    class_id: UUID,
    current_user: TeacherUser,
    service: Grades,
    subject_id: UUID | None = Query(default=None, description="Only grades of this subject"),
) -> ClassGradesResponse:
    """List grades recorded by the current teacher in a class."""
    return await service.get_class_grades(
        current_user.id,
        current_user.tenant_id,
        class_id,
        subject_id,
    )


@router.patch(
    "/grades/{grade_id}",
    response_model=GradeResponse,
    summary="Correct grade",
)
async def update_grade(
    grade_id: UUID,
    data: GradeUpdateRequest,
    current_user: TeacherUser,
    service: Grades,
) -> GradeResponse:
    """Correct a grade the current teacher recorded."""
    return await service.update_grade(current_user.id, current_user.tenant_id, grade_id, data)


@router.delete(
    "/grades/{grade_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove grade",
)
async def delete_grade(
    grade_id: UUID,
    current_user: TeacherUser,
    service: Grades,
) -> Response:
    """Remove a grade the current teacher recorded."""
    await service.delete_grade(current_user.id, current_user.tenant_id, grade_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =========================================================================
# Attendance
# =========================================================================


@router.get(
    "/attendance/{class_id}",
    response_model=ClassAttendanceResponse,
    summary="Get class attendance",
)
async def get_class_attendance(
    class_id: UUID,
    current_user: AttendanceActor,
    service: Attendance,
    day: date_type = Query(alias="date", description="School day (YYYY-MM-DD)"),
) -> ClassAttendanceResponse:
    """Get the class roster and any marks already set for the day."""
    return await service.get_class_attendance(
        current_user.id,
        current_user.tenant_id,
        class_id,
        day,
        role=current_user.role,
    )


@router.put(
    "/attendance/{class_id}/{day}",
    response_model=AttendanceSubmitResult,
    summary="Set class attendance",
    description=(
        "Set attendance for one class on one day. Existing marks are "
        "overwritten, students left out are not touched."
    ),
)
async def submit_attendance(
    class_id: UUID,
    day: date_type,
    data: AttendanceSubmitRequest,
    current_user: AttendanceActor,
    service: Attendance,
) -> AttendanceSubmitResult:
    """Set attendance of a class for a day.

    Args:
        class_id: Class being marked.
        day: School day being marked.
        data: Marks to set.
        current_user: Authenticated teacher, admin or HR user.
        service: Attendance service.

    Returns:
        Counts of inserted and updated marks.
    """
    logger.info(
        "Submitting attendance: class=%s, date=%s, by=%s, entries=%d",
        class_id,
        day.isoformat(),
        current_user.id,
        len(data.entries),
    )

    entries = [
        AttendanceEntry(
            student_id=mark.student_id,
            class_id=class_id,
            date=day,
            status=mark.status,
            note=mark.note,
        )
        for mark in data.entries
    ]

    return await service.submit_attendance(
        current_user.id,
        current_user.tenant_id,
        class_id,
        day,
        entries,
        role=current_user.role,
    )
