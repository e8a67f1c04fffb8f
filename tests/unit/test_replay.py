"""Tests for event replay (``domain/replay.py``).

Covers:
- Creation event seeds a Draft aggregate at version 1.
- Reducers for courses-added and status events.
- Corrupted and empty streams raise ReconstructionFailed.
- Unregistered event types are skipped with a warning.
- Replaying the same stream twice yields equal aggregates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from course_registration.core.errors import ReconstructionFailed
from course_registration.domain.events import (
    CourseInfo,
    CoursesAddedToSession,
    DomainEvent,
    EnrollmentRequest,
    RegistrationSessionApproved,
    RegistrationSessionCreated,
    RegistrationSessionRejected,
    RegistrationSessionSubmitted,
)
from course_registration.domain.replay import SESSION_REDUCERS, reconstruct_session
from course_registration.domain.session import Approved, Draft, Rejected, Submitted
from course_registration.domain.value_objects import (
    CourseId,
    EnrollmentId,
    NonEmptyString,
    RegistrationSessionId,
    StudentId,
    Term,
)

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
STUDENT = StudentId("S12345678")
TERM = Term("2024-Spring")
SID = RegistrationSessionId.create(STUDENT, TERM)


@dataclass(frozen=True, kw_only=True)
class SessionArchived(DomainEvent):
    """An event type this build has no reducer for."""

    archived_by: str = "system"


def _created() -> RegistrationSessionCreated:
    return RegistrationSessionCreated(
        session_id=SID, student_id=STUDENT, term=TERM, created_at=T0,
        event_id="ev-created", timestamp=T0,
    )


def _added(*courses: tuple[str, int], event_id: str = "ev-added") -> CoursesAddedToSession:
    infos = tuple(CourseInfo(course_id=CourseId(c), units=u) for c, u in courses)
    return CoursesAddedToSession(
        session_id=SID,
        event_id=event_id,
        timestamp=T0,
        added_at=T0,
        added_courses=infos,
        enrollment_requests=tuple(
            EnrollmentRequest(
                enrollment_id=EnrollmentId.create(STUDENT, i.course_id, TERM),
                course_id=i.course_id,
                units=i.units,
            )
            for i in infos
        ),
    )


class TestSeed:
    def test_created_only(self):
        session = reconstruct_session([_created()])
        assert session.id == SID
        assert session.student_id == STUDENT
        assert session.term == TERM
        assert session.status == Draft(created_at=T0)
        assert session.total_units == 0
        assert session.version == 1

    def test_empty_stream(self):
        with pytest.raises(ReconstructionFailed) as excinfo:
            reconstruct_session([])
        assert excinfo.value.event_count == 0

    def test_wrong_leading_event(self):
        with pytest.raises(ReconstructionFailed) as excinfo:
            reconstruct_session([_added(("C100000", 3))])
        assert excinfo.value.event_count == 1
        assert "CoursesAddedToSession" in excinfo.value.reason


class TestReducers:
    def test_courses_added(self):
        session = reconstruct_session([
            _created(),
            _added(("C100000", 3), ("C200000", 4)),
            _added(("C300000", 5), event_id="ev-added-2"),
        ])
        assert session.total_units == 12
        assert [str(e.course_id) for e in session.enrollments] == [
            "C100000", "C200000", "C300000",
        ]
        assert session.enrollments[0].enrollment_id == EnrollmentId(
            "S12345678:C100000:2024-Spring"
        )
        assert session.version == 3

    def test_status_events(self):
        submitted = RegistrationSessionSubmitted(session_id=SID, submitted_at=T0)
        approved = RegistrationSessionApproved(
            session_id=SID, approved_by=NonEmptyString("registrar"), approved_at=T0,
        )
        session = reconstruct_session([_created(), submitted, approved])
        assert session.status == Approved(
            approved_at=T0, approved_by=NonEmptyString("registrar"),
        )
        assert session.version == 3

        s2 = reconstruct_session([_created(), submitted])
        assert s2.status == Submitted(submitted_at=T0)

    def test_rejected(self):
        rejected = RegistrationSessionRejected(
            session_id=SID,
            rejected_by=NonEmptyString("registrar"),
            reason=NonEmptyString("missing prerequisites"),
            rejected_at=T0,
        )
        session = reconstruct_session([_created(), rejected])
        assert isinstance(session.status, Rejected)
        assert session.status.reason == NonEmptyString("missing prerequisites")

    def test_every_non_creation_event_has_reducer(self):
        assert set(SESSION_REDUCERS) == {
            CoursesAddedToSession,
            RegistrationSessionSubmitted,
            RegistrationSessionApproved,
            RegistrationSessionRejected,
        }


class TestForwardCompatibility:
    def test_unknown_event_skipped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="course_registration.domain.replay"):
            session = reconstruct_session([
                _created(),
                SessionArchived(session_id=SID, event_id="ev-archived"),
                _added(("C100000", 3)),
            ])
        assert session.total_units == 3
        assert session.version == 2
        assert "SessionArchived" in caplog.text

    def test_custom_registry(self):
        session = reconstruct_session(
            [_created(), _added(("C100000", 3))], reducers={},
        )
        assert session.total_units == 0
        assert session.version == 1


def test_replay_is_idempotent():
    events = [_created(), _added(("C100000", 3), ("C200000", 4))]
    assert reconstruct_session(events) == reconstruct_session(list(events))
