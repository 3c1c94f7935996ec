# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users
- Get service instances

Example:
    @router.post("/grades/bulk")
    async def submit_grades(
        service: GradeService = Depends(get_grade_service),
        current_user: CurrentUser = Depends(require_teacher),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import RecordsSettings, get_settings
from src.domains.attendance.service import AttendanceService
from src.domains.authorization.service import AssignmentResolver
from src.domains.grading.service import GradeService
from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession for the school database.

    Raises:
        HTTPException: If the database is not initialized.
    """
    try:
        get_sessionmaker()
    except DatabaseError as e:
        logger.error("Database session unavailable: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        )

    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_teacher(request: Request) -> CurrentUser:
    """Require teacher user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not a teacher.
    """
    user = require_auth(request)
    if not user.is_teacher:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher access required",
        )
    return user


def require_attendance_actor(request: Request) -> CurrentUser:
    """Require a teacher or a school-wide override role (admin, hr).

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If the role may not mark attendance.
    """
    user = require_auth(request)
    override_roles = get_settings().records.override_roles_set
    if not (user.is_teacher or user.has_any_role(*override_roles)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher, admin or HR access required",
        )
    return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_records_settings() -> RecordsSettings:
    """Get records write settings."""
    return get_settings().records


def get_assignment_resolver() -> AssignmentResolver:
    """Get an assignment resolver bound to the school database.

    Returns:
        AssignmentResolver.

    Raises:
        HTTPException: If the database is not initialized.
    """
    try:
        return AssignmentResolver(get_sessionmaker())
    except DatabaseError as e:
        logger.error("Assignment resolver unavailable: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        )


def get_grade_service(
    db: AsyncSession = Depends(get_db),
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    settings: RecordsSettings = Depends(get_records_settings),
) -> GradeService:
    """Get GradeService instance."""
    return GradeService(db, resolver, settings)


def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    settings: RecordsSettings = Depends(get_records_settings),
) -> AttendanceService:
    """Get AttendanceService instance."""
    return AttendanceService(db, resolver, settings)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

TeacherUser = Annotated[CurrentUser, Depends(require_teacher)]
AttendanceActor = Annotated[CurrentUser, Depends(require_attendance_actor)]
Resolver = Annotated[AssignmentResolver, Depends(get_assignment_resolver)]
Grades = Annotated[GradeService, Depends(get_grade_service)]
Attendance = Annotated[AttendanceService, Depends(get_attendance_service)]
