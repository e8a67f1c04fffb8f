"""Command handlers for registration sessions.

Each handler follows the same sequence: load the aggregate through the
repository, run the business rules in a fixed order, append the new
event, then publish it.  Nothing is appended unless every rule passes,
and the first rule that fails is the one raised.
Every call starts a fresh trace id, so the load, append and publish
records of one command share it.

Load, validate and append are not synchronized.  Two commands racing on
one session can both validate against the same pre-state; enable
``optimistic_concurrency`` to have the store reject the later append
with ``ConcurrencyConflict``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from course_registration.core.config import MAX_UNITS_PER_TERM
from course_registration.core.enums import AggregateType
from course_registration.core.errors import (
    EmptyCourseList,
    SessionAlreadyExists,
    SessionNotFound,
)
from course_registration.domain.events import (
    CourseInfo,
    CoursesAddedToSession,
    EnrollmentRequest,
    RegistrationSessionCreated,
)
from course_registration.domain.session import (
    RegistrationSession,
    validate_draft_state,
    validate_no_duplicates,
    validate_unit_limit,
)
from course_registration.domain.value_objects import (
    EnrollmentId,
    RegistrationSessionId,
    StudentId,
    Term,
)
from course_registration.infrastructure.event_bus import IEventBus
from course_registration.infrastructure.event_store import IEventStore
from course_registration.infrastructure.session_repository import (
    IRegistrationSessionRepository,
)
from course_registration.observability.logger import new_trace_id

logger = logging.getLogger(__name__)

ADD_COURSES_ACTION = "addCourses"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateRegistrationSession:
    student_id: StudentId
    term: Term


@dataclass(frozen=True)
class AddCoursesToSession:
    session_id: RegistrationSessionId
    courses: tuple[CourseInfo, ...]

    def __post_init__(self) -> None:
        # Normalize to a tuple
        object.__setattr__(self, "courses", tuple(self.courses))
        if not self.courses:
            raise EmptyCourseList(
                f"AddCoursesToSession for {self.session_id} requires at least one course"
            )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class _CommandHandler:
    aggregate_type = AggregateType.REGISTRATION_SESSION

    def __init__(
        self,
        event_store: IEventStore,
        event_bus: IEventBus,
        repository: IRegistrationSessionRepository,
        *,
        optimistic_concurrency: bool = False,
    ) -> None:
        self._event_store = event_store
        self._event_bus = event_bus
        self._repository = repository
        self._optimistic_concurrency = optimistic_concurrency

    async def _commit(
        self,
        session_id: RegistrationSessionId,
        event: RegistrationSessionCreated | CoursesAddedToSession,
        loaded_version: int,
    ) -> None:
        expected = loaded_version if self._optimistic_concurrency else None
        await self._event_store.append_event(
            session_id, self.aggregate_type, event, expected_version=expected,
        )
        logger.info("Appended %s to session %s", event.event_type, session_id)
        await self._event_bus.publish(event)


class CreateRegistrationSessionHandler(_CommandHandler):
    """Opens a Draft session for a (student, term) pair."""

    async def handle(self, command: CreateRegistrationSession) -> RegistrationSessionId:
        new_trace_id()
        session_id = RegistrationSessionId.create(command.student_id, command.term)

        try:
            existing = await self._repository.find_by_id(session_id)
        except SessionNotFound:
            pass
        else:
            logger.info(
                "Rejected duplicate session for %s/%s",
                command.student_id, command.term,
            )
            raise SessionAlreadyExists(command.student_id, command.term, existing.id)

        event = RegistrationSessionCreated(
            session_id=session_id,
            student_id=command.student_id,
            term=command.term,
        )
        await self._commit(session_id, event, loaded_version=0)
        return session_id


class AddCoursesToSessionHandler(_CommandHandler):
    """Adds courses to a Draft session under the registration rules.

    Rules, in order: the session exists, it is still a Draft, none of the
    courses is already enrolled, and the unit total stays within
    ``max_units``.
    """

    def __init__(
        self,
        event_store: IEventStore,
        event_bus: IEventBus,
        repository: IRegistrationSessionRepository,
        *,
        max_units: int = MAX_UNITS_PER_TERM,
        optimistic_concurrency: bool = False,
    ) -> None:
        super().__init__(
            event_store, event_bus, repository,
            optimistic_concurrency=optimistic_concurrency,
        )
        self._max_units = max_units

    async def handle(self, command: AddCoursesToSession) -> RegistrationSessionId:
        new_trace_id()
        session, stream_version = await self._repository.load(command.session_id)

        validate_draft_state(session, ADD_COURSES_ACTION)
        validate_no_duplicates(session, command.courses)
        validate_unit_limit(session, command.courses, self._max_units)

        event = CoursesAddedToSession(
            session_id=session.id,
            added_courses=command.courses,
            enrollment_requests=_enrollment_requests(session, command.courses),
        )
        await self._commit(session.id, event, loaded_version=stream_version)
        return command.session_id


def _enrollment_requests(
    session: RegistrationSession, courses: Sequence[CourseInfo],
) -> tuple[EnrollmentRequest, ...]:
    return tuple(
        EnrollmentRequest(
            enrollment_id=EnrollmentId.create(session.student_id, c.course_id, session.term),
            course_id=c.course_id,
            units=c.units,
        )
        for c in courses
    )
