# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher authorization domain package.

This package resolves which subjects and classes a teacher may act on:
- AssignmentResolver: reads and merges the authority sources
- AssignmentContext: the merged, deduplicated result
"""

from src.domains.authorization.models import (
    ANY_CLASS,
    AnyClass,
    AssignmentContext,
    AuthorizationSource,
    ClassScope,
    ResolutionWarning,
    SpecificClass,
    SubjectAuthorization,
)
from src.domains.authorization.schemas import (
    AssignmentContextResponse,
    SubjectAuthorizationResponse,
)
from src.domains.authorization.service import AssignmentResolver

__all__ = [
    "AssignmentResolver",
    "AssignmentContext",
    "SubjectAuthorization",
    "AuthorizationSource",
    "ClassScope",
    "SpecificClass",
    "AnyClass",
    "ANY_CLASS",
    "ResolutionWarning",
    "AssignmentContextResponse",
    "SubjectAuthorizationResponse",
]
