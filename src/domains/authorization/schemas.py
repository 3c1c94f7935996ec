# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response schemas for resolved teacher assignments."""

from pydantic import BaseModel, Field

from src.domains.authorization.models import AssignmentContext, SubjectAuthorization


class SubjectAuthorizationResponse(BaseModel):
    """One subject grant.

    ``class_id`` is null when the grant applies to any class.
    """

    subject_id: str
    subject_name: str
    name_ar: str | None = None
    class_id: str | None = None
    any_class: bool = False
    source: str

    @classmethod
    def from_authorization(cls, auth: SubjectAuthorization) -> "SubjectAuthorizationResponse":
        return cls(
            subject_id=auth.subject_id,
            subject_name=auth.subject_name,
            name_ar=auth.name_ar,
            class_id=auth.class_id,
            any_class=auth.is_any_class,
            source=auth.source.value,
        )


class ResolutionWarningResponse(BaseModel):
    """A source that failed to load and was treated as empty."""

    source: str
    message: str


class AssignmentContextResponse(BaseModel):
    """Resolved assignment context for the current teacher."""

    teacher_id: str
    tenant_id: str
    subjects: list[SubjectAuthorizationResponse] = Field(default_factory=list)
    class_subjects: dict[str, list[SubjectAuthorizationResponse]] = Field(default_factory=dict)
    class_ids: list[str] = Field(default_factory=list)
    main_class_ids: list[str] = Field(default_factory=list)
    warnings: list[ResolutionWarningResponse] = Field(default_factory=list)

    @classmethod
    def from_context(cls, context: AssignmentContext) -> "AssignmentContextResponse":
        return cls(
            teacher_id=context.teacher_id,
            tenant_id=context.tenant_id,
            subjects=[
                SubjectAuthorizationResponse.from_authorization(a)
                for a in context.subject_authorizations
            ],
            class_subjects={
                class_id: [SubjectAuthorizationResponse.from_authorization(a) for a in auths]
                for class_id, auths in context.class_subjects.items()
            },
            class_ids=sorted(context.class_ids),
            main_class_ids=sorted(context.main_class_ids),
            warnings=[
                ResolutionWarningResponse(source=w.source, message=w.message)
                for w in context.warnings
            ],
        )
