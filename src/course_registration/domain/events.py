"""Canonical domain events for registration sessions.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``) and is never changed
    after it has been appended.
2.  Every event carries the ``session_id`` of the aggregate it targets
    and a UTC ``timestamp``.
3.  ``event_id`` is a UUID4 generated at creation time.
4.  The event *tag* is the class name; it is the key used by the replay
    reducer registry and by the JSONL store's type discriminator.

The status events (submitted / approved / rejected) are replayable but no
command produces them yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from course_registration.core.errors import ValueObjectValidationError
from course_registration.core.ids import new_id as _uuid
from course_registration.core.ids import utc_now as _now
from course_registration.domain.value_objects import (
    CourseId,
    EnrollmentId,
    NonEmptyString,
    RegistrationSessionId,
    StudentId,
    Term,
)

# ---------------------------------------------------------------------------
# Payload records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CourseInfo:
    """A course requested for a session.  Transient command input."""

    course_id: CourseId
    units: int

    def __post_init__(self) -> None:
        if isinstance(self.units, bool) or not isinstance(self.units, int) or self.units <= 0:
            raise ValueObjectValidationError(
                "CourseInfo.units", self.units, "must be a positive integer",
            )


@dataclass(frozen=True)
class EnrollmentRequest:
    """One enrollment derived from a requested course."""

    enrollment_id: EnrollmentId
    course_id: CourseId
    units: int


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Immutable base for every domain event.

    Shared fields
    ~~~~~~~~~~~~~
    session_id      Aggregate the event targets.
    event_id        Unique identity (UUID4).
    timestamp       UTC creation time.
    """

    session_id: RegistrationSessionId
    event_id: str = field(default_factory=_uuid)
    timestamp: datetime = field(default_factory=_now)

    @property
    def event_type(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class RegistrationSessionCreated(DomainEvent):
    """A student opened a registration session for a term."""

    student_id: StudentId
    term: Term
    created_at: datetime = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class CoursesAddedToSession(DomainEvent):
    """Courses were added to a Draft session."""

    added_courses: tuple[CourseInfo, ...]
    enrollment_requests: tuple[EnrollmentRequest, ...]
    added_at: datetime = field(default_factory=_now)

    @property
    def total_units(self) -> int:
        return sum(c.units for c in self.added_courses)


@dataclass(frozen=True, kw_only=True)
class RegistrationSessionSubmitted(DomainEvent):
    submitted_at: datetime = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class RegistrationSessionApproved(DomainEvent):
    approved_by: NonEmptyString
    approved_at: datetime = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class RegistrationSessionRejected(DomainEvent):
    rejected_by: NonEmptyString
    reason: NonEmptyString
    rejected_at: datetime = field(default_factory=_now)


ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = (
    RegistrationSessionCreated,
    CoursesAddedToSession,
    RegistrationSessionSubmitted,
    RegistrationSessionApproved,
    RegistrationSessionRejected,
)
