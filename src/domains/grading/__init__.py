# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grading domain package.

This package provides grade entry services and schemas:
- GradeService: Bulk grade entry, single-grade correction and removal,
  and listing a class's grades
- Schemas: Request/Response models for the grade API
"""

from src.domains.grading.schemas import (
    BulkGradeRequest,
    BulkGradeResponse,
    ClassGradesResponse,
    GradeEntry,
    GradeResponse,
    GradeUpdateRequest,
)
from src.domains.grading.service import GradeService

__all__ = [
    "BulkGradeRequest",
    "BulkGradeResponse",
    "ClassGradesResponse",
    "GradeEntry",
    "GradeResponse",
    "GradeUpdateRequest",
    "GradeService",
]
