# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AttendanceService."""

import logging
from datetime import date
from types import SimpleNamespace
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.config import RecordsSettings
from src.domains.attendance.schemas import AttendanceEntry
from src.domains.attendance.service import AttendanceService
from src.domains.authorization.models import AssignmentContext, ResolutionWarning
from src.domains.records.errors import (
    ConflictOnInsertError,
    NotFoundError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from src.infrastructure.database.models import AttendanceRecord

SCHOOL = "550e8400-e29b-41d4-a716-446655440000"
TEACHER = "550e8400-e29b-41d4-a716-446655440010"
OTHER_TEACHER = "550e8400-e29b-41d4-a716-446655440011"
CLASS_A = "550e8400-e29b-41d4-a716-446655440020"
CLASS_B = "550e8400-e29b-41d4-a716-446655440021"
S1 = "550e8400-e29b-41d4-a716-446655440001"
S2 = "550e8400-e29b-41d4-a716-446655440002"
S3 = "550e8400-e29b-41d4-a716-446655440003"
DAY = date(2025, 3, 2)

DUPLICATE = IntegrityError(
    "INSERT INTO attendance",
    {},
    Exception("duplicate key value violates unique constraint uq_attendance_student_class_date"),
)


def mark(student_id: str, status: str = "present", **kwargs: Any) -> AttendanceEntry:
    values = {"class_id": CLASS_A, "date": DAY, "status": status}
    values.update(kwargs)
    return AttendanceEntry(student_id=student_id, **values)


def roster(*student_ids: str, class_id: str = CLASS_A) -> list[SimpleNamespace]:
    return [SimpleNamespace(id=s, class_id=class_id, school_id=SCHOOL) for s in student_ids]


def record(student_id: str, status: str = "absent", marked_by: str = OTHER_TEACHER) -> AttendanceRecord:
    return AttendanceRecord(
        id=str(uuid4()),
        school_id=SCHOOL,
        student_id=student_id,
        class_id=CLASS_A,
        date=DAY,
        status=status,
        marked_by=marked_by,
    )


@pytest.fixture
def savepoint(mock_db: AsyncMock) -> MagicMock:
    """begin_nested() returning an async context manager."""
    mock_db.begin_nested = MagicMock()
    mock_db.begin_nested.return_value.__aenter__.return_value = None
    mock_db.begin_nested.return_value.__aexit__.return_value = False
    return mock_db.begin_nested


@pytest.fixture
def resolver() -> AsyncMock:
    resolver = AsyncMock()
    resolver.resolve.return_value = AssignmentContext.merge(
        TEACHER, SCHOOL, [], main_class_ids={CLASS_A}
    )
    return resolver


@pytest.fixture
def service(
    mock_db: AsyncMock,
    resolver: AsyncMock,
    savepoint: MagicMock,
    records_settings: RecordsSettings,
) -> AttendanceService:
    return AttendanceService(mock_db, resolver, records_settings)


@pytest.fixture
def reads(mock_db: AsyncMock, make_result: Callable[[list[Any]], MagicMock]):
    """Queue the class, roster and existing-record reads of one submission."""

    def _set(students: list[SimpleNamespace], *existing_reads: list[AttendanceRecord]) -> None:
        klass = SimpleNamespace(id=CLASS_A, school_id=SCHOOL)
        mock_db.execute.side_effect = [
            make_result([klass]),
            make_result(students),
            *(make_result(rows) for rows in existing_reads or ([],)),
        ]

    return _set


def added_records(mock_db: AsyncMock) -> list[AttendanceRecord]:
    return [r for call in mock_db.add_all.call_args_list for r in call.args[0]]


class TestSubmitAttendance:
    """Tests for AttendanceService.submit_attendance."""

    @pytest.mark.asyncio
    async def test_first_marking_inserts_all(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        reads(roster(S1, S2))

        result = await service.submit_attendance(
            TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S2, "late", note="bus")]
        )

        assert (result.inserted, result.updated, result.total) == (2, 0, 2)
        rows = added_records(mock_db)
        assert [(r.student_id, r.status, r.marked_by) for r in rows] == [
            (S1, "present", TEACHER),
            (S2, "late", TEACHER),
        ]
        assert rows[1].note == "bus"
        assert all(r.school_id == SCHOOL and r.class_id == CLASS_A and r.date == DAY for r in rows)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_marks_are_updated_in_place(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        existing = record(S1, "absent")
        original_id = existing.id
        reads(roster(S1, S2), [existing])

        result = await service.submit_attendance(
            TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1, "excused", note="doctor"), mark(S2)]
        )

        assert (result.inserted, result.updated) == (1, 1)
        assert existing.id == original_id
        assert (existing.status, existing.note, existing.marked_by) == ("excused", "doctor", TEACHER)
        assert [r.student_id for r in added_records(mock_db)] == [S2]

    @pytest.mark.asyncio
    async def test_resubmitting_same_marks_adds_no_rows(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        entries = [mark(S1), mark(S2, "absent")]
        reads(roster(S1, S2))
        await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, entries)
        first_rows = added_records(mock_db)

        mock_db.add_all.reset_mock()
        reads(roster(S1, S2), first_rows)
        second = await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, entries)

        assert (second.inserted, second.updated) == (0, 2)
        mock_db.add_all.assert_not_called()
        assert [r.status for r in first_rows] == ["present", "absent"]

    @pytest.mark.asyncio
    async def test_students_left_out_are_untouched(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        """A partial roster never deletes or changes other students' marks."""
        other = record(S3, "late")
        reads(roster(S1), [other])

        await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])

        assert (other.status, other.marked_by) == ("late", OTHER_TEACHER)
        mock_db.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_accepts_iso_date_string(self, service: AttendanceService, reads) -> None:
        reads(roster(S1))

        result = await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, "2025-03-02", [mark(S1)])

        assert result.date == DAY


class TestAuthorization:
    """Who may mark a class."""

    @pytest.mark.asyncio
    async def test_homeroom_teacher_without_subjects_may_mark(
        self,
        service: AttendanceService,
        reads,
    ) -> None:
        reads(roster(S1))

        result = await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])

        assert result.inserted == 1

    @pytest.mark.asyncio
    async def test_teacher_without_class_access_rejected(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
    ) -> None:
        entries = [mark(S1, class_id=CLASS_B)]

        with pytest.raises(UnauthorizedError, match=CLASS_B):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_B, DAY, entries)

        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["admin", "hr"])
    async def test_override_roles_skip_resolver(
        self,
        service: AttendanceService,
        resolver: AsyncMock,
        reads,
        role: str,
    ) -> None:
        reads(roster(S1, class_id=CLASS_A))

        result = await service.submit_attendance(
            OTHER_TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)], role=role
        )

        assert result.inserted == 1
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_degraded_assignments_are_logged(
        self,
        service: AttendanceService,
        resolver: AsyncMock,
        reads,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        resolver.resolve.return_value = AssignmentContext.merge(
            TEACHER,
            SCHOOL,
            [],
            main_class_ids={CLASS_A},
            warnings=[ResolutionWarning("subjects", "subjects unavailable (OperationalError)")],
        )
        reads(roster(S1))

        with caplog.at_level(logging.WARNING, logger="src.domains.attendance.service"):
            result = await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])

        assert result.inserted == 1
        assert "Attendance with degraded assignments" in caplog.text
        assert "sources=subjects" in caplog.text

    @pytest.mark.asyncio
    async def test_other_roles_rejected(self, service: AttendanceService) -> None:
        with pytest.raises(UnauthorizedError):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)], role="parent")


class TestBatchValidation:
    """Structural checks run before any read or write."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, service: AttendanceService) -> None:
        with pytest.raises(RecordValidationError):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [])

    @pytest.mark.asyncio
    async def test_mixed_classes(self, service: AttendanceService, resolver: AsyncMock) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            await service.submit_attendance(
                TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S2, class_id=CLASS_B)]
            )

        assert exc_info.value.entry_index == 1
        assert exc_info.value.field == "class_id"
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mixed_dates(self, service: AttendanceService) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            await service.submit_attendance(
                TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1, date=date(2025, 3, 3))]
            )

        assert exc_info.value.field == "date"

    @pytest.mark.asyncio
    async def test_malformed_date(self, service: AttendanceService, mock_db: AsyncMock) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, "03/02/2025", [mark(S1)])

        assert exc_info.value.field == "date"
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_student(self, service: AttendanceService) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            await service.submit_attendance(
                TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S1, "absent")]
            )

        assert exc_info.value.field == "student_id"

    @pytest.mark.asyncio
    async def test_oversized_batch(self, mock_db: AsyncMock, resolver: AsyncMock) -> None:
        service = AttendanceService(mock_db, resolver, RecordsSettings(max_batch_size=1))

        with pytest.raises(RecordValidationError):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S2)])


class TestReferences:
    """Class and roster checks."""

    @pytest.mark.asyncio
    async def test_class_of_other_school_not_found(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        make_result: Callable[[list[Any]], MagicMock],
    ) -> None:
        mock_db.execute.side_effect = [make_result([])]

        with pytest.raises(NotFoundError, match=CLASS_A):
            await service.submit_attendance(
                OTHER_TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)], role="admin"
            )

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_student_not_found(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        reads(roster(S1))

        with pytest.raises(NotFoundError, match=S2):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S2)])

        mock_db.add_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_student_of_other_class_not_found(self, service: AttendanceService, reads) -> None:
        reads(roster(S1, class_id=CLASS_B))

        with pytest.raises(NotFoundError, match="not in class"):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])


class TestConflictRecovery:
    """Inserts that lose a race to a concurrent submission."""

    @pytest.mark.asyncio
    async def test_conflicting_insert_becomes_update(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        savepoint: MagicMock,
        reads,
    ) -> None:
        concurrent = record(S1, "absent")
        reads(roster(S1, S2), [], [concurrent])
        mock_db.flush.side_effect = [DUPLICATE, None]

        result = await service.submit_attendance(
            TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1, "present"), mark(S2, "late")]
        )

        assert (result.inserted, result.updated, result.recovered_conflicts) == (1, 1, 1)
        assert (concurrent.status, concurrent.marked_by) == ("present", TEACHER)
        assert savepoint.call_count == 2
        second_attempt = mock_db.add_all.call_args_list[1].args[0]
        assert [r.student_id for r in second_attempt] == [S2]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_conflict_without_new_rows_is_surfaced(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        reads(roster(S1), [], [])
        mock_db.flush.side_effect = DUPLICATE

        with pytest.raises(ConflictOnInsertError):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_are_bounded(
        self,
        mock_db: AsyncMock,
        resolver: AsyncMock,
        savepoint: MagicMock,
        reads,
    ) -> None:
        service = AttendanceService(mock_db, resolver, RecordsSettings(attendance_conflict_retries=1))
        reads(roster(S1, S2, S3), [], [record(S1)], [record(S1), record(S2)])
        mock_db.flush.side_effect = DUPLICATE

        with pytest.raises(ConflictOnInsertError, match="after 1 retries"):
            await service.submit_attendance(
                TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1), mark(S2), mark(S3)]
            )

        assert savepoint.call_count == 2
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        reads,
    ) -> None:
        reads(roster(S1))
        mock_db.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))

        with pytest.raises(UpstreamUnavailableError):
            await service.submit_attendance(TEACHER, SCHOOL, CLASS_A, DAY, [mark(S1)])

        mock_db.rollback.assert_awaited_once()


class TestGetClassAttendance:
    """Tests for AttendanceService.get_class_attendance."""

    @pytest.mark.asyncio
    async def test_returns_roster_and_marks(
        self,
        service: AttendanceService,
        mock_db: AsyncMock,
        make_result: Callable[[list[Any]], MagicMock],
    ) -> None:
        students = [
            SimpleNamespace(id=S2, name="Amal", student_id_number="A-2"),
            SimpleNamespace(id=S1, name="Basel", student_id_number=None),
        ]
        marked = record(S1, "late")
        mock_db.execute.side_effect = [
            make_result([SimpleNamespace(id=CLASS_A, school_id=SCHOOL)]),
            make_result(students),
            make_result([marked]),
        ]

        response = await service.get_class_attendance(TEACHER, SCHOOL, CLASS_A, DAY)

        assert [s.name for s in response.students] == ["Amal", "Basel"]
        [only] = response.records
        assert (only.student_id, only.status.value) == (S1, "late")

    @pytest.mark.asyncio
    async def test_same_authorization_as_submit(self, service: AttendanceService) -> None:
        with pytest.raises(UnauthorizedError):
            await service.get_class_attendance(TEACHER, SCHOOL, CLASS_B, DAY)
