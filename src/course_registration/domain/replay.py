"""Fold an event stream into a ``RegistrationSession``.

Each event type maps to a pure reducer ``(session, event) -> session`` in
``SESSION_REDUCERS``.  The first event of a stream must be
``RegistrationSessionCreated``; anything else is a corrupted stream.  An
event type with no registered reducer is logged and skipped so that
streams written by a newer producer still load.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from course_registration.core.errors import ReconstructionFailed
from course_registration.domain.events import (
    CoursesAddedToSession,
    DomainEvent,
    RegistrationSessionApproved,
    RegistrationSessionCreated,
    RegistrationSessionRejected,
    RegistrationSessionSubmitted,
)
from course_registration.domain.session import (
    Approved,
    Rejected,
    RegistrationSession,
    Submitted,
)

logger = logging.getLogger(__name__)

Reducer = Callable[[RegistrationSession, DomainEvent], RegistrationSession]


def _apply_courses_added(
    session: RegistrationSession, event: CoursesAddedToSession,
) -> RegistrationSession:
    return session.with_enrollments(event.enrollment_requests)


def _apply_submitted(
    session: RegistrationSession, event: RegistrationSessionSubmitted,
) -> RegistrationSession:
    return session.with_status(Submitted(submitted_at=event.submitted_at))


def _apply_approved(
    session: RegistrationSession, event: RegistrationSessionApproved,
) -> RegistrationSession:
    return session.with_status(
        Approved(approved_at=event.approved_at, approved_by=event.approved_by)
    )


def _apply_rejected(
    session: RegistrationSession, event: RegistrationSessionRejected,
) -> RegistrationSession:
    return session.with_status(
        Rejected(
            rejected_at=event.rejected_at,
            rejected_by=event.rejected_by,
            reason=event.reason,
        )
    )


SESSION_REDUCERS: dict[type[DomainEvent], Reducer] = {
    CoursesAddedToSession: _apply_courses_added,  # type: ignore[dict-item]
    RegistrationSessionSubmitted: _apply_submitted,  # type: ignore[dict-item]
    RegistrationSessionApproved: _apply_approved,  # type: ignore[dict-item]
    RegistrationSessionRejected: _apply_rejected,  # type: ignore[dict-item]
}


def reconstruct_session(
    events: Sequence[DomainEvent],
    reducers: dict[type[DomainEvent], Reducer] | None = None,
) -> RegistrationSession:
    """Replay *events* in order and return the resulting aggregate.

    Raises
    ------
    ReconstructionFailed
        If *events* is empty or does not start with
        ``RegistrationSessionCreated``.
    """
    if reducers is None:
        reducers = SESSION_REDUCERS

    if not events:
        raise ReconstructionFailed("event stream is empty", 0)

    first = events[0]
    if not isinstance(first, RegistrationSessionCreated):
        raise ReconstructionFailed(
            f"first event must be RegistrationSessionCreated, got {first.event_type}",
            len(events),
        )

    session = RegistrationSession.create(
        id=first.session_id,
        student_id=first.student_id,
        term=first.term,
        created_at=first.created_at,
    )

    for event in events[1:]:
        reducer = reducers.get(type(event))
        if reducer is None:
            logger.warning(
                "Skipping unhandled event %s (%s) while replaying %s",
                event.event_type, event.event_id, session.id,
            )
            continue
        session = reducer(session, event)

    return session
