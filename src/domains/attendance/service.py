# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance service for marking a class on a school day.

This module provides the AttendanceService class for:
- Setting attendance of one class on one day (first marking and corrections)
- Reading the roster and existing marks of one class on one day

Submitting is an idempotent "set attendance for this day": existing marks
are overwritten in place, missing ones are inserted, and students left out
of the batch are not touched. Inserts and updates share one transaction.
Inserts run inside a savepoint so that a row created concurrently by
another submission turns into an update instead of an error.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import RecordsSettings
from src.domains.attendance.schemas import (
    AttendanceEntry,
    AttendanceRecordResponse,
    AttendanceSubmitResult,
    ClassAttendanceResponse,
    RosterStudent,
)
from src.domains.authorization.service import AssignmentResolver
from src.domains.records.errors import (
    ConflictOnInsertError,
    NotFoundError,
    RecordsError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from src.infrastructure.database.models import AttendanceRecord, Class, Student
from src.utils.datetime import parse_school_date

logger = logging.getLogger(__name__)

TEACHER_ROLE = "teacher"


class AttendanceService:
    """Service for setting and reading class attendance.

    Attributes:
        db: Async database session for the school database.
        resolver: Resolves which classes a teacher may mark.
        settings: Records write settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        resolver: AssignmentResolver,
        settings: RecordsSettings | None = None,
    ) -> None:
        """Initialize the attendance service.

        Args:
            db: Async database session.
            resolver: Assignment resolver.
            settings: Records settings. Defaults are used if omitted.
        """
        self.db = db
        self.resolver = resolver
        self.settings = settings or RecordsSettings()

    async def submit_attendance(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        class_id: str | UUID,
        day: date | str,
        entries: Sequence[AttendanceEntry],
        role: str = TEACHER_ROLE,
    ) -> AttendanceSubmitResult:
        """Set attendance of one class on one day.

        Args:
            teacher_id: Acting user, recorded as marked_by.
            tenant_id: School of the acting user.
            class_id: Class being marked.
            day: School day being marked.
            entries: Marks to set. All must name class_id and day.
            role: Role of the acting user. Override roles may mark any
                class of their school.

        Returns:
            Counts of inserted, updated and recovered rows.

        Raises:
            RecordValidationError: If the batch is empty, too large,
                heterogeneous or names a student twice.
            UnauthorizedError: If the user may not mark this class.
            NotFoundError: If the class or a student is missing from the
                school, or a student is not in the class.
            ConflictOnInsertError: If inserts keep conflicting after retries.
            UpstreamUnavailableError: If the store fails.
        """
        actor = str(teacher_id)
        tenant = str(tenant_id)
        class_key = str(class_id)
        school_day = self._parse_day(day)

        self._check_batch(class_key, school_day, entries)
        await self._authorize(actor, tenant, class_key, role)

        try:
            await self._get_class(tenant, class_key)
            await self._check_roster(tenant, class_key, entries)

            existing = await self._load_existing(tenant, class_key, school_day)
            inserts = [e for e in entries if str(e.student_id) not in existing]

            inserted, recovered = await self._insert_with_recovery(
                actor, tenant, class_key, school_day, inserts, existing
            )
            # Recovered inserts now have a row in existing
            updates = [e for e in entries if str(e.student_id) in existing]
            for entry in updates:
                self._apply_mark(existing[str(entry.student_id)], entry, actor)

            await self.db.commit()
        except RecordsError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailableError("Failed to save attendance", e) from e

        result = AttendanceSubmitResult(
            class_id=class_key,
            date=school_day,
            inserted=inserted,
            updated=len(updates),
            recovered_conflicts=recovered,
            total=inserted + len(updates),
        )

        logger.info(
            "Attendance saved: class=%s, date=%s, by=%s, inserted=%d, updated=%d, recovered=%d",
            class_key,
            school_day.isoformat(),
            actor,
            result.inserted,
            result.updated,
            result.recovered_conflicts,
        )

        return result

    async def get_class_attendance(
        self,
        teacher_id: str | UUID,
        tenant_id: str | UUID,
        class_id: str | UUID,
        day: date | str,
        role: str = TEACHER_ROLE,
    ) -> ClassAttendanceResponse:
        """Get the active roster of a class and its marks for a day.

        Authorized exactly like submit_attendance.

        Raises:
            UnauthorizedError: If the user may not mark this class.
            NotFoundError: If the class does not exist in the school.
            UpstreamUnavailableError: If the store fails.
        """
        actor = str(teacher_id)
        tenant = str(tenant_id)
        class_key = str(class_id)
        school_day = self._parse_day(day)

        await self._authorize(actor, tenant, class_key, role)

        try:
            await self._get_class(tenant, class_key)

            result = await self.db.execute(
                select(Student)
                .where(
                    Student.school_id == tenant,
                    Student.class_id == class_key,
                    Student.is_active.is_(True),
                )
                .order_by(Student.name)
            )
            students = result.scalars().all()
            existing = await self._load_existing(tenant, class_key, school_day)
        except SQLAlchemyError as e:
            raise UpstreamUnavailableError("Failed to load attendance", e) from e

        return ClassAttendanceResponse(
            class_id=class_key,
            date=school_day,
            students=[RosterStudent.model_validate(s) for s in students],
            records=[
                AttendanceRecordResponse.model_validate(record)
                for record in sorted(existing.values(), key=lambda r: str(r.student_id))
            ],
        )

    @staticmethod
    def _parse_day(day: date | str) -> date:
        try:
            return parse_school_date(day)
        except ValueError as e:
            raise RecordValidationError(f"Invalid date '{day}'", field="date") from e

    async def _authorize(self, actor: str, tenant: str, class_id: str, role: str) -> None:
        if role in self.settings.override_roles_set:
            logger.debug("Attendance override: user=%s, role=%s, class=%s", actor, role, class_id)
            return
        if role != TEACHER_ROLE:
            raise UnauthorizedError(f"Role '{role}' may not mark attendance")

        context = await self.resolver.resolve(actor, tenant)
        if context.degraded:
            logger.warning(
                "Attendance with degraded assignments: teacher=%s, school=%s, class=%s, sources=%s",
                actor,
                tenant,
                class_id,
                ",".join(w.source for w in context.warnings),
            )
        if not context.can_access_class(class_id):
            raise UnauthorizedError(f"Not authorized to mark attendance for class {class_id}")

    def _check_batch(
        self,
        class_id: str,
        day: date,
        entries: Sequence[AttendanceEntry],
    ) -> None:
        if not entries:
            raise RecordValidationError("At least one attendance entry is required", field="entries")
        if len(entries) > self.settings.max_batch_size:
            raise RecordValidationError(
                f"Batch of {len(entries)} entries exceeds the limit of {self.settings.max_batch_size}",
                field="entries",
            )

        seen: set[str] = set()
        for index, entry in enumerate(entries):
            if str(entry.class_id) != class_id:
                raise RecordValidationError(
                    f"Entry {index}: class {entry.class_id} does not match class {class_id}",
                    entry_index=index,
                    field="class_id",
                )
            if entry.date != day:
                raise RecordValidationError(
                    f"Entry {index}: date {entry.date.isoformat()} does not match {day.isoformat()}",
                    entry_index=index,
                    field="date",
                )
            student_id = str(entry.student_id)
            if student_id in seen:
                raise RecordValidationError(
                    f"Entry {index}: student {student_id} is marked more than once",
                    entry_index=index,
                    field="student_id",
                )
            seen.add(student_id)

    async def _get_class(self, tenant: str, class_id: str) -> Class:
        result = await self.db.execute(
            select(Class).where(Class.id == class_id, Class.school_id == tenant)
        )
        class_ = result.scalar_one_or_none()
        if not class_:
            raise NotFoundError(f"Class {class_id} not found")
        return class_

    async def _check_roster(
        self,
        tenant: str,
        class_id: str,
        entries: Sequence[AttendanceEntry],
    ) -> None:
        student_ids = [str(e.student_id) for e in entries]
        result = await self.db.execute(
            select(Student).where(Student.id.in_(student_ids), Student.school_id == tenant)
        )
        students = {str(s.id): s for s in result.scalars().all()}

        for student_id in student_ids:
            student = students.get(student_id)
            if student is None:
                raise NotFoundError(f"Student {student_id} not found")
            if student.class_id != class_id:
                raise NotFoundError(f"Student {student_id} is not in class {class_id}")

    async def _load_existing(
        self,
        tenant: str,
        class_id: str,
        day: date,
    ) -> dict[str, AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.school_id == tenant,
                AttendanceRecord.class_id == class_id,
                AttendanceRecord.date == day,
            )
        )
        return {str(r.student_id): r for r in result.scalars().all()}

    async def _insert_with_recovery(
        self,
        actor: str,
        tenant: str,
        class_id: str,
        day: date,
        inserts: list[AttendanceEntry],
        existing: dict[str, AttendanceRecord],
    ) -> tuple[int, int]:
        """Insert new marks, turning lost races into updates.

        Each attempt runs in a savepoint. On a uniqueness conflict only the
        savepoint is rolled back, the rows for the day are read again and
        the entries that now have a row are moved out of the insert batch.
        existing is updated in place with the re-read rows.

        Returns:
            Tuple of (inserted, recovered).
        """
        pending = list(inserts)
        recovered = 0
        attempts = 0

        while pending:
            try:
                async with self.db.begin_nested():
                    self.db.add_all([self._new_record(actor, tenant, class_id, day, e) for e in pending])
                    await self.db.flush()
                return len(pending), recovered
            except IntegrityError as e:
                attempts += 1
                logger.warning(
                    "Attendance insert conflict: class=%s, date=%s, attempt=%d, pending=%d",
                    class_id,
                    day.isoformat(),
                    attempts,
                    len(pending),
                )
                if attempts > self.settings.attendance_conflict_retries:
                    raise ConflictOnInsertError(
                        f"Attendance for class {class_id} on {day.isoformat()} kept conflicting "
                        f"after {self.settings.attendance_conflict_retries} retries"
                    ) from e

                existing.update(await self._load_existing(tenant, class_id, day))
                still_pending = [p for p in pending if str(p.student_id) not in existing]
                if len(still_pending) == len(pending):
                    # Nothing new appeared, so the conflict was not a lost race
                    raise ConflictOnInsertError(
                        f"Attendance insert for class {class_id} on {day.isoformat()} was rejected"
                    ) from e
                recovered += len(pending) - len(still_pending)
                pending = still_pending

        return 0, recovered

    @staticmethod
    def _new_record(
        actor: str,
        tenant: str,
        class_id: str,
        day: date,
        entry: AttendanceEntry,
    ) -> AttendanceRecord:
        return AttendanceRecord(
            school_id=tenant,
            student_id=str(entry.student_id),
            class_id=class_id,
            date=day,
            status=entry.status.value,
            note=entry.note,
            marked_by=actor,
        )

    @staticmethod
    def _apply_mark(record: AttendanceRecord, entry: AttendanceEntry, actor: str) -> None:
        record.status = entry.status.value
        record.note = entry.note
        record.marked_by = actor
