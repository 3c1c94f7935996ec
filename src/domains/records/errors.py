# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error kinds raised by the grade and attendance write path.

Each kind maps to a distinct user-facing message and HTTP status, so
callers must be able to tell them apart:

- UnauthorizedError: the acting user may not touch this subject/class.
- NotFoundError: a referenced row is missing or belongs to another school.
- RecordValidationError: the batch itself is malformed.
- ConflictOnInsertError: a uniqueness conflict that could not be recovered.
- UpstreamUnavailableError: the store failed; the caller may retry.
"""

from typing import Optional


class RecordsError(Exception):
    """Base exception for records errors.

    Attributes:
        message: Human-readable error description.
    """

    kind = "records_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(RecordsError):
    """Raised when the acting user lacks authority for a subject or class."""

    kind = "unauthorized"


class NotFoundError(RecordsError):
    """Raised when a referenced student, subject, class or grade is missing.

    Rows that exist in a different school are reported the same way.
    """

    kind = "not_found"


class RecordValidationError(RecordsError):
    """Raised when a batch is structurally invalid.

    Attributes:
        entry_index: Zero-based position of the offending entry, if any.
        field: Name of the offending field, if any.
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        entry_index: Optional[int] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.entry_index = entry_index
        self.field = field


class ConflictOnInsertError(RecordsError):
    """Raised when an attendance insert keeps conflicting after recovery."""

    kind = "conflict"


class UpstreamUnavailableError(RecordsError):
    """Raised when a read or write against the store fails.

    Attributes:
        original_error: The underlying exception.
        retryable: Always True; retry is the caller's decision.
    """

    kind = "upstream_unavailable"
    retryable = True

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
