# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment resolver: what a teacher may act on.

This module provides the AssignmentResolver class, which reads the three
authority sources for a teacher within one school and merges them into an
AssignmentContext:

- teacher_subject_assignments rows (current model, class may be "any")
- subjects.teacher_id / subjects.class_id (legacy one-to-one model)
- classes.main_teacher_id (homeroom authority)

The sources are independent reads, so each runs in its own session and
all three run concurrently. A source that fails is treated as empty and
reported as a warning on the context; a failure never adds access.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.authorization.models import (
    ANY_CLASS,
    AssignmentContext,
    AuthorizationSource,
    ResolutionWarning,
    SpecificClass,
    SubjectAuthorization,
)
from src.infrastructure.database.models import Class, Subject, TeacherSubjectAssignment

logger = logging.getLogger(__name__)

SOURCE_ASSIGNMENTS = "teacher_subject_assignments"
SOURCE_LEGACY_SUBJECTS = "subjects"
SOURCE_HOMEROOM_CLASSES = "classes"

Loader = Callable[[AsyncSession, str, str], Awaitable[Sequence[Any]]]


class AssignmentResolver:
    """Resolves a teacher's subject and class authority.

    The resolver is stateless between calls and never writes.

    Attributes:
        _session_factory: Factory opening one session per source read.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the resolver.

        Args:
            session_factory: Sessionmaker bound to the school database.
        """
        self._session_factory = session_factory

    async def resolve(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
    ) -> AssignmentContext:
        """Resolve the assignment context for a teacher in a school.

        Args:
            teacher_id: Teacher identifier.
            tenant_id: School identifier.

        Returns:
            The merged AssignmentContext. A homeroom-only teacher gets a
            non-empty class set and no subject grants.
        """
        teacher = str(teacher_id)
        tenant = str(tenant_id)

        (assignment_rows, w1), (legacy_rows, w2), (homeroom_ids, w3) = await asyncio.gather(
            self._read(SOURCE_ASSIGNMENTS, self._load_assignment_rows, teacher, tenant),
            self._read(SOURCE_LEGACY_SUBJECTS, self._load_legacy_subjects, teacher, tenant),
            self._read(SOURCE_HOMEROOM_CLASSES, self._load_homeroom_class_ids, teacher, tenant),
        )
        warnings = [w for w in (w1, w2, w3) if w is not None]

        grants: list[SubjectAuthorization] = []
        for row in assignment_rows:
            grants.append(
                SubjectAuthorization(
                    subject_id=str(row.subject_id),
                    subject_name=row.subject_name or "",
                    name_ar=row.name_ar,
                    scope=SpecificClass(str(row.class_id)) if row.class_id else ANY_CLASS,
                    source=AuthorizationSource.ASSIGNMENT,
                )
            )
        for row in legacy_rows:
            grants.append(
                SubjectAuthorization(
                    subject_id=str(row.subject_id),
                    subject_name=row.subject_name or "",
                    name_ar=row.name_ar,
                    scope=SpecificClass(str(row.class_id)),
                    source=AuthorizationSource.LEGACY_SUBJECT,
                )
            )

        context = AssignmentContext.merge(
            teacher_id=teacher,
            tenant_id=tenant,
            grants=grants,
            main_class_ids={str(class_id) for class_id in homeroom_ids},
            warnings=warnings,
        )

        logger.debug(
            "Resolved assignments: teacher=%s, school=%s, grants=%d, classes=%d, homeroom=%d, degraded=%s",
            teacher,
            tenant,
            len(context.subject_authorizations),
            len(context.class_ids),
            len(context.main_class_ids),
            context.degraded,
        )

        return context

    async def _read(
        self,
        source: str,
        loader: Loader,
        teacher_id: str,
        tenant_id: str,
    ) -> tuple[Sequence[Any], ResolutionWarning | None]:
        """Run one source read in its own session.

        Args:
            source: Source name used in warnings.
            loader: Coroutine performing the query.
            teacher_id: Teacher identifier.
            tenant_id: School identifier.

        Returns:
            Tuple of (rows, warning). Rows are empty when the read failed.
        """
        try:
            async with self._session_factory() as session:
                rows = await loader(session, teacher_id, tenant_id)
            return rows, None
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.warning(
                "Assignment source unavailable, treating as empty: source=%s, teacher=%s, school=%s, error=%s",
                source,
                teacher_id,
                tenant_id,
                str(e),
            )
            # Error text is logged only, warnings reach API responses
            return [], ResolutionWarning(source=source, message=f"{source} unavailable ({type(e).__name__})")

    @staticmethod
    async def _load_assignment_rows(
        session: AsyncSession,
        teacher_id: str,
        tenant_id: str,
    ) -> Sequence[Any]:
        """Load assignment rows joined with their subject.

        Returns:
            Rows with subject_id, subject_name, name_ar and class_id.
        """
        query = (
            select(
                Subject.id.label("subject_id"),
                Subject.name.label("subject_name"),
                Subject.name_ar,
                TeacherSubjectAssignment.class_id,
            )
            .join(Subject, Subject.id == TeacherSubjectAssignment.subject_id)
            .where(
                TeacherSubjectAssignment.teacher_id == teacher_id,
                TeacherSubjectAssignment.school_id == tenant_id,
                Subject.is_active.is_(True),
                or_(Subject.school_id.is_(None), Subject.school_id == tenant_id),
            )
        )
        result = await session.execute(query)
        return result.all()

    @staticmethod
    async def _load_legacy_subjects(
        session: AsyncSession,
        teacher_id: str,
        tenant_id: str,
    ) -> Sequence[Any]:
        """Load subjects pinned to this teacher and a class by the legacy columns.

        Returns:
            Rows with subject_id, subject_name, name_ar and class_id.
        """
        query = select(
            Subject.id.label("subject_id"),
            Subject.name.label("subject_name"),
            Subject.name_ar,
            Subject.class_id,
        ).where(
            Subject.teacher_id == teacher_id,
            Subject.class_id.is_not(None),
            Subject.is_active.is_(True),
            or_(Subject.school_id.is_(None), Subject.school_id == tenant_id),
        )
        result = await session.execute(query)
        return result.all()

    @staticmethod
    async def _load_homeroom_class_ids(
        session: AsyncSession,
        teacher_id: str,
        tenant_id: str,
    ) -> Sequence[Any]:
        """Load ids of active classes where the teacher is the main teacher."""
        query = select(Class.id).where(
            Class.school_id == tenant_id,
            Class.main_teacher_id == teacher_id,
            Class.is_active.is_(True),
        )
        result = await session.execute(query)
        return result.scalars().all()
