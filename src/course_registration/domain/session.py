"""RegistrationSession aggregate.

The aggregate is an immutable projection of a session's event stream.
It is never persisted directly: ``domain.replay`` folds events into it,
and the ``validate_*`` decision functions check a command against it
before any event is produced.

Status is a closed union of plain frozen dataclasses.  Code that branches
on it uses ``match`` with one ``case`` per variant.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Sequence, Union

from course_registration.core.config import MAX_UNITS_PER_TERM, MIN_UNITS_PER_TERM
from course_registration.core.errors import (
    DuplicateCourseInSession,
    InvalidSessionState,
    MaxUnitsExceeded,
)
from course_registration.domain.events import CourseInfo, EnrollmentRequest
from course_registration.domain.value_objects import (
    CourseId,
    EnrollmentId,
    NonEmptyString,
    RegistrationSessionId,
    StudentId,
    Term,
)

__all__ = [
    "MAX_UNITS_PER_TERM",
    "MIN_UNITS_PER_TERM",
    "Approved",
    "CourseInfo",
    "Draft",
    "EnrollmentEntry",
    "Rejected",
    "RegistrationSession",
    "SessionStatus",
    "Submitted",
    "status_tag",
    "validate_draft_state",
    "validate_no_duplicates",
    "validate_unit_limit",
]


# ---------------------------------------------------------------------------
# Status variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Draft:
    created_at: datetime


@dataclass(frozen=True)
class Submitted:
    submitted_at: datetime


@dataclass(frozen=True)
class Approved:
    approved_at: datetime
    approved_by: NonEmptyString


@dataclass(frozen=True)
class Rejected:
    rejected_at: datetime
    rejected_by: NonEmptyString
    reason: NonEmptyString


SessionStatus = Union[Draft, Submitted, Approved, Rejected]


def status_tag(status: SessionStatus) -> str:
    match status:
        case Draft():
            return "Draft"
        case Submitted():
            return "Submitted"
        case Approved():
            return "Approved"
        case Rejected():
            return "Rejected"
    raise TypeError(f"Unknown session status: {status!r}")


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnrollmentEntry:
    enrollment_id: EnrollmentId
    course_id: CourseId
    units: int


@dataclass(frozen=True)
class RegistrationSession:
    id: RegistrationSessionId
    student_id: StudentId
    term: Term
    enrollments: tuple[EnrollmentEntry, ...]
    status: SessionStatus
    total_units: int
    version: int

    @classmethod
    def create(
        cls,
        id: RegistrationSessionId,
        student_id: StudentId,
        term: Term,
        created_at: datetime,
    ) -> RegistrationSession:
        """Initial state produced by a ``RegistrationSessionCreated`` event."""
        return cls(
            id=id,
            student_id=student_id,
            term=term,
            enrollments=(),
            status=Draft(created_at=created_at),
            total_units=0,
            version=1,
        )

    # -- Queries -----------------------------------------------------------

    @property
    def status_tag(self) -> str:
        return status_tag(self.status)

    @property
    def course_ids(self) -> tuple[CourseId, ...]:
        return tuple(e.course_id for e in self.enrollments)

    def has_course(self, course_id: CourseId) -> bool:
        return any(e.course_id == course_id for e in self.enrollments)

    def find_duplicate_courses(
        self, course_ids: Sequence[CourseId],
    ) -> list[CourseId]:
        """Return requested ids that collide with enrollments or each other.

        Order follows *course_ids*; each colliding id is listed once.
        """
        seen = set(self.course_ids)
        duplicates: list[CourseId] = []
        for course_id in course_ids:
            if course_id in seen and course_id not in duplicates:
                duplicates.append(course_id)
            seen.add(course_id)
        return duplicates

    def can_modify_courses(self) -> bool:
        match self.status:
            case Draft():
                return True
            case Submitted() | Approved() | Rejected():
                return False
        raise TypeError(f"Unknown session status: {self.status!r}")

    def can_submit(self) -> bool:
        return self.can_modify_courses()

    def can_approve_or_reject(self) -> bool:
        match self.status:
            case Submitted():
                return True
            case Draft() | Approved() | Rejected():
                return False
        raise TypeError(f"Unknown session status: {self.status!r}")

    def is_terminal(self) -> bool:
        match self.status:
            case Approved() | Rejected():
                return True
            case Draft() | Submitted():
                return False
        raise TypeError(f"Unknown session status: {self.status!r}")

    # -- Transitions (used only by replay reducers) ------------------------

    def with_enrollments(self, requests: Iterable[EnrollmentRequest]) -> RegistrationSession:
        added = tuple(
            EnrollmentEntry(
                enrollment_id=r.enrollment_id,
                course_id=r.course_id,
                units=r.units,
            )
            for r in requests
        )
        return replace(
            self,
            enrollments=self.enrollments + added,
            total_units=self.total_units + sum(e.units for e in added),
            version=self.version + 1,
        )

    def with_status(self, status: SessionStatus) -> RegistrationSession:
        return replace(self, status=status, version=self.version + 1)


# ---------------------------------------------------------------------------
# Decision functions
# ---------------------------------------------------------------------------

def validate_draft_state(session: RegistrationSession, attempted_action: str) -> None:
    if not session.can_modify_courses():
        raise InvalidSessionState(session.id, session.status_tag, attempted_action)


def validate_no_duplicates(
    session: RegistrationSession, courses: Sequence[CourseInfo],
) -> None:
    duplicates = session.find_duplicate_courses([c.course_id for c in courses])
    if duplicates:
        raise DuplicateCourseInSession(session.id, duplicates)


def validate_unit_limit(
    session: RegistrationSession,
    courses: Sequence[CourseInfo],
    max_units: int = MAX_UNITS_PER_TERM,
) -> None:
    requested = sum(c.units for c in courses)
    if session.total_units + requested > max_units:
        raise MaxUnitsExceeded(session.total_units, requested, max_units)
