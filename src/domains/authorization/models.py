# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data types for resolved teacher authority.

Both authorization sources (assignment rows and legacy subject columns)
are turned into the same ``(subject, scope)`` grant before anything else
sees them. A scope is either one specific class or any class of the
school; consumers match on it instead of checking for a null class id.
"""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class SpecificClass:
    """Grant pinned to one class."""

    class_id: str


@dataclass(frozen=True)
class AnyClass:
    """Grant valid in every class of the school."""


ANY_CLASS = AnyClass()

ClassScope = SpecificClass | AnyClass


class AuthorizationSource(str, Enum):
    """Where a grant was first found."""

    ASSIGNMENT = "assignment"
    LEGACY_SUBJECT = "legacy_subject"


@dataclass(frozen=True)
class SubjectAuthorization:
    """Permission to record grades for a subject within a scope.

    Attributes:
        subject_id: Subject identifier.
        subject_name: Display name, used only for ordering.
        scope: SpecificClass or AnyClass.
        name_ar: Optional Arabic display name.
        source: The source that produced the grant first.
    """

    subject_id: str
    subject_name: str
    scope: ClassScope
    name_ar: str | None = None
    source: AuthorizationSource = AuthorizationSource.ASSIGNMENT

    @property
    def key(self) -> tuple[str, ClassScope]:
        """Deduplication key: the same subject and scope is one grant."""
        return (self.subject_id, self.scope)

    @property
    def class_id(self) -> str | None:
        """Pinned class id, or None for an any-class grant."""
        match self.scope:
            case SpecificClass(class_id=class_id):
                return class_id
            case AnyClass():
                return None

    @property
    def is_any_class(self) -> bool:
        return isinstance(self.scope, AnyClass)

    def covers(self, class_id: str | None) -> bool:
        """Check whether this grant applies to a student in ``class_id``.

        Students without a class are only covered by any-class grants.
        """
        match self.scope:
            case AnyClass():
                return True
            case SpecificClass(class_id=pinned):
                return class_id is not None and pinned == class_id


@dataclass(frozen=True)
class ResolutionWarning:
    """A source that could not be read during resolution.

    The source was treated as empty, which can only remove access.
    """

    source: str
    message: str


def _display_order(auth: SubjectAuthorization) -> tuple[str, str, str]:
    return (auth.subject_name.casefold(), auth.subject_id, auth.class_id or "")


@dataclass
class AssignmentContext:
    """Everything one teacher may act on within one school.

    Attributes:
        teacher_id: Teacher the context was resolved for.
        tenant_id: School the context was resolved in.
        subject_authorizations: All grants, deduplicated, sorted by name.
        class_subjects: Class id -> grants pinned to that class, sorted.
        class_ids: Classes the teacher may touch at all.
        main_class_ids: Classes where the teacher is the homeroom teacher.
        warnings: Sources that failed to load.
    """

    teacher_id: str
    tenant_id: str
    subject_authorizations: list[SubjectAuthorization] = field(default_factory=list)
    class_subjects: dict[str, list[SubjectAuthorization]] = field(default_factory=dict)
    class_ids: frozenset[str] = frozenset()
    main_class_ids: frozenset[str] = frozenset()
    warnings: list[ResolutionWarning] = field(default_factory=list)

    @classmethod
    def merge(
        cls,
        teacher_id: str,
        tenant_id: str,
        grants: list[SubjectAuthorization],
        main_class_ids: set[str] | frozenset[str] = frozenset(),
        warnings: list[ResolutionWarning] | None = None,
    ) -> "AssignmentContext":
        """Build a context from raw grants of every source.

        Grants are deduplicated on ``(subject_id, scope)``; the first one
        seen wins, so callers pass assignment rows before legacy subjects.

        Args:
            teacher_id: Teacher identifier.
            tenant_id: School identifier.
            grants: Grants from all sources, in source priority order.
            main_class_ids: Homeroom class ids.
            warnings: Sources that failed to load.

        Returns:
            The merged context.
        """
        unique: dict[tuple[str, ClassScope], SubjectAuthorization] = {}
        for grant in grants:
            unique.setdefault(grant.key, grant)

        authorizations = sorted(unique.values(), key=_display_order)

        class_subjects: dict[str, list[SubjectAuthorization]] = {}
        for auth in authorizations:
            match auth.scope:
                case SpecificClass(class_id=class_id):
                    class_subjects.setdefault(class_id, []).append(auth)
                case AnyClass():
                    pass

        return cls(
            teacher_id=teacher_id,
            tenant_id=tenant_id,
            subject_authorizations=authorizations,
            class_subjects=class_subjects,
            class_ids=frozenset(class_subjects) | frozenset(main_class_ids),
            main_class_ids=frozenset(main_class_ids),
            warnings=list(warnings or []),
        )

    @property
    def degraded(self) -> bool:
        """True when at least one source failed to load."""
        return bool(self.warnings)

    @property
    def subject_ids(self) -> frozenset[str]:
        return frozenset(a.subject_id for a in self.subject_authorizations)

    @property
    def any_class_subject_ids(self) -> frozenset[str]:
        """Subjects the teacher may grade in any class."""
        return frozenset(a.subject_id for a in self.subject_authorizations if a.is_any_class)

    def can_access_class(self, class_id: str) -> bool:
        return class_id in self.class_ids

    def is_main_teacher(self, class_id: str) -> bool:
        return class_id in self.main_class_ids

    def grants_for(self, subject_id: str) -> list[SubjectAuthorization]:
        """All grants for one subject."""
        return [a for a in self.subject_authorizations if a.subject_id == subject_id]

    def authorizes(self, subject_id: str, class_id: str | None) -> bool:
        """Check whether the teacher may grade ``subject_id`` in ``class_id``."""
        return any(a.covers(class_id) for a in self.grants_for(subject_id))

    def subjects_for_class(self, class_id: str) -> list[SubjectAuthorization]:
        """Grants usable in one class: pinned ones plus any-class ones, sorted."""
        return [a for a in self.subject_authorizations if a.covers(class_id)]
