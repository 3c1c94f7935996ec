# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared records domain package.

Error kinds common to the assignment resolver and the bulk writers.
"""

from src.domains.records.errors import (
    ConflictOnInsertError,
    NotFoundError,
    RecordValidationError,
    RecordsError,
    UnauthorizedError,
    UpstreamUnavailableError,
)

__all__ = [
    "RecordsError",
    "UnauthorizedError",
    "NotFoundError",
    "RecordValidationError",
    "ConflictOnInsertError",
    "UpstreamUnavailableError",
]
