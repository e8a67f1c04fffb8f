"""End-to-end registration flows against a wired application.

Uses ``build_registration_app`` with both the in-memory and the JSONL
event store backends.
"""

from __future__ import annotations

import pytest

from course_registration.application.bootstrap import build_registration_app
from course_registration.core.config import Settings
from course_registration.core.enums import AggregateType, EventStoreBackend
from course_registration.core.errors import (
    DuplicateCourseInSession,
    MaxUnitsExceeded,
    ReconstructionFailed,
    SessionAlreadyExists,
    SessionNotFound,
)
from course_registration.domain.events import (
    CourseInfo,
    CoursesAddedToSession,
    DomainEvent,
    EnrollmentRequest,
    RegistrationSessionCreated,
)
from course_registration.domain.value_objects import (
    CourseId,
    EnrollmentId,
    RegistrationSessionId,
    StudentId,
    Term,
)

STUDENT = StudentId("S12345678")
TERM = Term("2024-Spring")


def _course(course_id: str, units: int) -> CourseInfo:
    return CourseInfo(course_id=CourseId(course_id), units=units)


@pytest.fixture(params=["memory", "jsonl"])
def app(request, tmp_path):
    settings = Settings(
        event_store={
            "backend": request.param,
            "path": str(tmp_path / "events.jsonl"),
        },
    )
    return build_registration_app(settings)


@pytest.mark.asyncio
async def test_course_addition_scenario(app):
    captured: list[DomainEvent] = []

    async def capture(event: DomainEvent) -> None:
        captured.append(event)

    app.event_bus.subscribe(capture)

    sid = await app.open_session(STUDENT, TERM)
    assert str(sid) == "S12345678:2024-Spring"

    await app.add_courses_to_session(sid, [_course("C100000", 3), _course("C200000", 4)])
    session = await app.repository.find_by_id(sid)
    assert session.total_units == 7
    assert len(session.enrollments) == 2

    with pytest.raises(DuplicateCourseInSession) as dup:
        await app.add_courses_to_session(sid, [_course("C100000", 1)])
    assert dup.value.duplicate_course_ids == ["C100000"]

    with pytest.raises(MaxUnitsExceeded) as over:
        await app.add_courses_to_session(
            sid, [_course("C300000", 10), _course("C400000", 11)],
        )
    assert (over.value.current_units, over.value.requested_units, over.value.max_units) == (
        7, 21, 20,
    )

    assert [type(e) for e in captured] == [RegistrationSessionCreated, CoursesAddedToSession]
    stored = await app.event_store.get_events(sid, AggregateType.REGISTRATION_SESSION)
    assert len(stored) == 2


@pytest.mark.asyncio
async def test_uniqueness_per_student_and_term(app):
    await app.open_session(STUDENT, TERM)
    with pytest.raises(SessionAlreadyExists):
        await app.open_session(STUDENT, TERM)

    sid = RegistrationSessionId.create(STUDENT, TERM)
    stored = await app.event_store.get_events(sid, AggregateType.REGISTRATION_SESSION)
    created = [e for e in stored if isinstance(e, RegistrationSessionCreated)]
    assert len(created) == 1
    assert len(app.event_bus.get_history(RegistrationSessionCreated)) == 1


@pytest.mark.asyncio
async def test_lookup_by_key_matches_lookup_by_id(app):
    sid = await app.open_session(STUDENT, TERM)
    await app.add_courses_to_session(sid, [_course("C100000", 3)])
    by_key = await app.repository.find_by_student_and_term(STUDENT, TERM)
    by_id = await app.repository.find_by_id(RegistrationSessionId.create(STUDENT, TERM))
    assert by_key == by_id


@pytest.mark.asyncio
async def test_find_unknown_session(app):
    with pytest.raises(SessionNotFound):
        await app.repository.find_by_id(RegistrationSessionId("S99999999:2024-Fall"))


@pytest.mark.asyncio
async def test_corrupted_stream(app):
    sid = RegistrationSessionId.create(STUDENT, TERM)
    info = _course("C100000", 3)
    await app.event_store.append_event(
        sid,
        AggregateType.REGISTRATION_SESSION,
        CoursesAddedToSession(
            session_id=sid,
            added_courses=(info,),
            enrollment_requests=(
                EnrollmentRequest(
                    enrollment_id=EnrollmentId.create(STUDENT, info.course_id, TERM),
                    course_id=info.course_id,
                    units=3,
                ),
            ),
        ),
    )
    with pytest.raises(ReconstructionFailed) as excinfo:
        await app.repository.find_by_id(sid)
    assert excinfo.value.event_count == 1


@pytest.mark.asyncio
async def test_jsonl_sessions_survive_restart(tmp_path):
    settings = Settings(
        event_store={
            "backend": EventStoreBackend.JSONL,
            "path": str(tmp_path / "events.jsonl"),
        },
    )
    first = build_registration_app(settings)
    sid = await first.open_session(STUDENT, TERM)
    await first.add_courses_to_session(sid, [_course("C100000", 3), _course("C200000", 4)])

    second = build_registration_app(settings)
    session = await second.repository.find_by_id(sid)
    assert session.total_units == 7
    with pytest.raises(SessionAlreadyExists):
        await second.open_session(STUDENT, TERM)
