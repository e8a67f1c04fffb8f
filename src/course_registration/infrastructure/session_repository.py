"""Event-sourced repository for ``RegistrationSession`` aggregates.

The repository is the only way to read current session state.  It stores
nothing itself: every lookup fetches the session's stream from the event
store and replays it.  Because session ids are derived from
``(student_id, term)``, a lookup by business key is a single stream read.
"""

from __future__ import annotations

import logging
from typing import Protocol

from course_registration.core.enums import AggregateType
from course_registration.core.errors import ReconstructionFailed, SessionNotFound
from course_registration.domain.replay import reconstruct_session
from course_registration.domain.session import RegistrationSession
from course_registration.domain.value_objects import (
    RegistrationSessionId,
    StudentId,
    Term,
)
from course_registration.infrastructure.event_store import IEventStore

logger = logging.getLogger(__name__)


class IRegistrationSessionRepository(Protocol):
    async def find_by_id(self, session_id: RegistrationSessionId) -> RegistrationSession:
        ...

    async def load(
        self, session_id: RegistrationSessionId,
    ) -> tuple[RegistrationSession, int]:
        ...

    async def find_by_student_and_term(
        self, student_id: StudentId, term: Term,
    ) -> RegistrationSession:
        ...


class EventSourcedSessionRepository:
    """Rebuilds sessions by replaying their event streams.

    Raises ``SessionNotFound`` for an empty stream, ``ReconstructionFailed``
    for a corrupted one, and lets ``EventStoreError`` from the store pass
    through untouched.
    """

    aggregate_type = AggregateType.REGISTRATION_SESSION

    def __init__(self, event_store: IEventStore) -> None:
        self._event_store = event_store

    async def find_by_id(self, session_id: RegistrationSessionId) -> RegistrationSession:
        session, _ = await self.load(session_id)
        return session

    async def load(
        self, session_id: RegistrationSessionId,
    ) -> tuple[RegistrationSession, int]:
        """Return the session and the length of its stream.

        The stream length is the expected version for the next append; it
        can exceed ``session.version`` when unknown events were skipped.
        """
        events = await self._event_store.get_events(session_id, self.aggregate_type)
        if not events:
            raise SessionNotFound(session_id)
        try:
            session = reconstruct_session(events)
        except ReconstructionFailed as exc:
            logger.error(
                "Corrupted event stream for session %s: %s (events=%d)",
                session_id, exc.reason, exc.event_count,
            )
            raise
        return session, len(events)

    async def find_by_student_and_term(
        self, student_id: StudentId, term: Term,
    ) -> RegistrationSession:
        return await self.find_by_id(RegistrationSessionId.create(student_id, term))

    async def exists(self, session_id: RegistrationSessionId) -> bool:
        """True when a session stream exists and replays cleanly."""
        try:
            await self.find_by_id(session_id)
        except SessionNotFound:
            return False
        return True
