# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade service for bulk grade entry and single-grade corrections.

This module provides the GradeService class for:
- Recording a batch of grades for one teacher
- Correcting a grade the teacher recorded earlier
- Removing a grade the teacher recorded earlier
- Listing the grades the teacher recorded in one class

A batch is validated as a whole before anything is written: one bad
entry rejects every entry in the same call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import RecordsSettings
from src.domains.attendance.schemas import RosterStudent
from src.domains.authorization.models import AssignmentContext
from src.domains.authorization.service import AssignmentResolver
from src.domains.grading.schemas import (
    ClassGradesResponse,
    GradeEntry,
    GradeResponse,
    GradeUpdateRequest,
)
from src.domains.records.errors import (
    NotFoundError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from src.infrastructure.database.models import Grade, Student, Subject

logger = logging.getLogger(__name__)


class GradeService:
    """Service for recording and correcting grades.

    Attributes:
        db: Async database session for the school database.
        resolver: Resolves what the acting teacher may grade.
        settings: Records write settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        resolver: AssignmentResolver,
        settings: RecordsSettings | None = None,
    ) -> None:
        """Initialize the grade service.

        Args:
            db: Async database session.
            resolver: Assignment resolver.
            settings: Records settings. Defaults are used if omitted.
        """
        self.db = db
        self.resolver = resolver
        self.settings = settings or RecordsSettings()

    async def submit_grades(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        entries: Sequence[GradeEntry],
    ) -> list[GradeResponse]:
        """Record a batch of grades.

        Checks run in this order and the first failure rejects the batch:
        subject existence and authorization, student existence and tenant,
        student class against the grant, then category and score bounds.

        Args:
            teacher_id: Recording teacher.
            tenant_id: School of the recording teacher.
            entries: Grades to record.

        Returns:
            The persisted grades in submission order.

        Raises:
            RecordValidationError: If the batch is empty, too large or an
                entry has an unknown category or out-of-range score.
            NotFoundError: If a subject or student does not exist in the school.
            UnauthorizedError: If the teacher may not grade a subject or a
                student's class for that subject.
            UpstreamUnavailableError: If the store fails.
        """
        teacher = str(teacher_id)
        tenant = str(tenant_id)

        self._check_batch_size(len(entries))

        context = await self._resolve(teacher, tenant)

        subject_ids = list(dict.fromkeys(str(e.subject_id) for e in entries))
        student_ids = list(dict.fromkeys(str(e.student_id) for e in entries))

        try:
            subjects = await self._fetch_subjects(subject_ids)
            students = await self._fetch_students(student_ids)
        except SQLAlchemyError as e:
            raise UpstreamUnavailableError("Failed to load grade references", e) from e

        self._check_subjects(context, tenant, subject_ids, subjects)
        self._check_students(context, tenant, entries, subjects, students)
        for index, entry in enumerate(entries):
            self._check_category(entry.category, index)
            self._check_score(entry.score, entry.max_score, index)

        grades = [
            Grade(
                school_id=tenant,
                student_id=str(entry.student_id),
                subject_id=str(entry.subject_id),
                teacher_id=teacher,
                score=entry.score,
                max_score=entry.max_score,
                category=entry.category,
                exam_name=entry.exam_name,
                note=entry.note,
                date=entry.date,
            )
            for entry in entries
        ]

        self.db.add_all(grades)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailableError("Failed to save grades", e) from e

        logger.info(
            "Grades recorded: teacher=%s, school=%s, count=%d, subjects=%d",
            teacher,
            tenant,
            len(grades),
            len(subject_ids),
        )

        return [GradeResponse.model_validate(grade) for grade in grades]

    async def update_grade(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        grade_id: str | UUID,
        changes: GradeUpdateRequest,
    ) -> GradeResponse:
        """Correct a grade recorded by this teacher.

        Args:
            teacher_id: Teacher who recorded the grade.
            tenant_id: School of the teacher.
            grade_id: Grade to correct.
            changes: Fields to change.

        Returns:
            The corrected grade.

        Raises:
            NotFoundError: If the grade does not exist or was recorded by
                someone else or in another school.
            RecordValidationError: If the resulting score is out of range or
                the category is unknown.
            UpstreamUnavailableError: If the store fails.
        """
        grade = await self._get_own_grade(teacher_id, tenant_id, grade_id)
        values = changes.changes()

        score = values.get("score", grade.score)
        max_score = values.get("max_score", grade.max_score)
        if score is None or max_score is None:
            raise RecordValidationError("score and max_score cannot be cleared", field="score")
        if "category" in values:
            if values["category"] is None:
                raise RecordValidationError("category cannot be cleared", field="category")
            self._check_category(values["category"])
        if "date" in values and values["date"] is None:
            raise RecordValidationError("date cannot be cleared", field="date")
        self._check_score(score, max_score)

        for field, value in values.items():
            setattr(grade, field, value)

        try:
            await self.db.commit()
            await self.db.refresh(grade)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailableError("Failed to update grade", e) from e

        logger.info(
            "Grade updated: id=%s, teacher=%s, fields=%s",
            grade.id,
            teacher_id,
            ",".join(sorted(values)),
        )

        return GradeResponse.model_validate(grade)

    async def delete_grade(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        grade_id: str | UUID,
    ) -> None:
        """Remove a grade recorded by this teacher.

        Raises:
            NotFoundError: If the grade does not exist or is not the teacher's.
            UpstreamUnavailableError: If the store fails.
        """
        grade = await self._get_own_grade(teacher_id, tenant_id, grade_id)

        try:
            await self.db.delete(grade)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailableError("Failed to delete grade", e) from e

        logger.info("Grade deleted: id=%s, teacher=%s", grade_id, teacher_id)

    async def get_class_grades(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        class_id: str | UUID,
        subject_id: str | UUID | None = None,
    ) -> ClassGradesResponse:
        """Get the roster of a class and the grades this teacher recorded there.

        Args:
            teacher_id: Teacher who recorded the grades.
            tenant_id: School of the teacher.
            class_id: Class to list.
            subject_id: Optional subject filter. The teacher must be allowed
                to grade it in this class.

        Returns:
            Active students sorted by name and grades newest date first.

        Raises:
            UnauthorizedError: If the teacher may not access the class or
                grade the subject in it.
            UpstreamUnavailableError: If the store fails.
        """
        teacher = str(teacher_id)
        tenant = str(tenant_id)
        class_key = str(class_id)
        subject_key = str(subject_id) if subject_id else None

        context = await self._resolve(teacher, tenant)
        if not context.can_access_class(class_key):
            raise UnauthorizedError(f"Not authorized to view grades for class {class_key}")
        if subject_key and subject_key not in {
            a.subject_id for a in context.subjects_for_class(class_key)
        }:
            raise UnauthorizedError(
                f"Not assigned to subject {subject_key} for class {class_key}"
            )

        students_query = (
            select(Student)
            .where(
                Student.school_id == tenant,
                Student.class_id == class_key,
                Student.is_active.is_(True),
            )
            .order_by(Student.name)
        )
        grades_query = (
            select(Grade)
            .join(Student, Student.id == Grade.student_id)
            .where(
                Grade.teacher_id == teacher,
                Grade.school_id == tenant,
                Student.class_id == class_key,
            )
            .order_by(Grade.date.desc(), Grade.created_at.desc())
        )
        if subject_key:
            grades_query = grades_query.where(Grade.subject_id == subject_key)

        try:
            students = (await self.db.execute(students_query)).scalars().all()
            grades = (await self.db.execute(grades_query)).scalars().all()
        except SQLAlchemyError as e:
            raise UpstreamUnavailableError("Failed to load grades", e) from e

        return ClassGradesResponse(
            class_id=class_key,
            subject_id=subject_key,
            students=[RosterStudent.model_validate(s) for s in students],
            grades=[GradeResponse.model_validate(g) for g in grades],
        )

    async def _resolve(self, teacher: str, tenant: str) -> AssignmentContext:
        context = await self.resolver.resolve(teacher, tenant)
        if context.degraded:
            logger.warning(
                "Grading with degraded assignments: teacher=%s, school=%s, sources=%s",
                teacher,
                tenant,
                ",".join(w.source for w in context.warnings),
            )
        return context

    async def _get_own_grade(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        grade_id: str | UUID,
    ) -> Grade:
        query = select(Grade).where(
            Grade.id == str(grade_id),
            Grade.teacher_id == str(teacher_id),
            Grade.school_id == str(tenant_id),
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise UpstreamUnavailableError("Failed to load grade", e) from e

        grade = result.scalar_one_or_none()
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")
        return grade

    async def _fetch_subjects(self, subject_ids: list[str]) -> dict[str, Subject]:
        # Not tenant-filtered: a subject of another school must be told apart
        # from an unauthorized one.
        result = await self.db.execute(select(Subject).where(Subject.id.in_(subject_ids)))
        return {str(s.id): s for s in result.scalars().all()}

    async def _fetch_students(self, student_ids: list[str]) -> dict[str, Student]:
        result = await self.db.execute(select(Student).where(Student.id.in_(student_ids)))
        return {str(s.id): s for s in result.scalars().all()}

    def _check_batch_size(self, size: int) -> None:
        if size == 0:
            raise RecordValidationError("At least one grade entry is required", field="entries")
        if size > self.settings.max_batch_size:
            raise RecordValidationError(
                f"Batch of {size} entries exceeds the limit of {self.settings.max_batch_size}",
                field="entries",
            )

    @staticmethod
    def _check_subjects(
        context: AssignmentContext,
        tenant_id: str,
        subject_ids: list[str],
        subjects: dict[str, Subject],
    ) -> None:
        for subject_id in subject_ids:
            subject = subjects.get(subject_id)
            if subject is None or subject.school_id not in (None, tenant_id):
                raise NotFoundError(f"Subject {subject_id} not found")
            if not context.grants_for(subject_id):
                raise UnauthorizedError(
                    f"Not authorized to record grades for subject {subject.name} ({subject_id})"
                )

    @staticmethod
    def _check_students(
        context: AssignmentContext,
        tenant_id: str,
        entries: Sequence[GradeEntry],
        subjects: dict[str, Subject],
        students: dict[str, Student],
    ) -> None:
        for entry in entries:
            student_id = str(entry.student_id)
            subject_id = str(entry.subject_id)
            student = students.get(student_id)

            # Global subjects resolve to the acting teacher's school
            subject_tenant = subjects[subject_id].school_id or tenant_id
            if student is None or student.school_id != subject_tenant:
                raise NotFoundError(f"Student {student_id} not found")

            if not context.authorizes(subject_id, student.class_id):
                raise UnauthorizedError(
                    f"Not authorized to grade subject {subjects[subject_id].name} "
                    f"for student {student_id} in class {student.class_id or 'none'}"
                )

    def _check_category(self, category: str, index: int | None = None) -> None:
        allowed = self.settings.grade_categories_set
        if category not in allowed:
            where = f"Entry {index}: " if index is not None else ""
            raise RecordValidationError(
                f"{where}unknown category '{category}', expected one of {', '.join(sorted(allowed))}",
                entry_index=index,
                field="category",
            )

    @staticmethod
    def _check_score(score: float, max_score: float, index: int | None = None) -> None:
        if max_score <= 0 or not 0 <= score <= max_score:
            where = f"Entry {index}: " if index is not None else ""
            raise RecordValidationError(
                f"{where}score {score:g} is outside the allowed range 0-{max_score:g}",
                entry_index=index,
                field="score",
            )
