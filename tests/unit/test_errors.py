"""Error taxonomy: domain outcomes vs. infrastructure faults."""

import pytest

from course_registration.core.errors import (
    ConcurrencyConflict,
    DomainRuleViolation,
    DuplicateCourseInSession,
    EventStoreError,
    InfrastructureError,
    InvalidRegistrationSessionId,
    InvalidSessionState,
    MaxUnitsExceeded,
    ReconstructionFailed,
    RegistrationError,
    SessionAlreadyExists,
    SessionNotFound,
)


@pytest.mark.parametrize(
    "error",
    [
        InvalidRegistrationSessionId("S1", "2024-Spring", "bad"),
        SessionAlreadyExists("S12345678", "2024-Spring", "S12345678:2024-Spring"),
        SessionNotFound("S12345678:2024-Spring"),
        InvalidSessionState("S12345678:2024-Spring", "Submitted", "addCourses"),
        DuplicateCourseInSession("S12345678:2024-Spring", ["C100000"]),
        MaxUnitsExceeded(7, 21, 20),
    ],
)
def test_domain_rule_violations(error):
    assert isinstance(error, DomainRuleViolation)
    assert not isinstance(error, InfrastructureError)
    assert not error.retry_safe


@pytest.mark.parametrize(
    "error, retry_safe",
    [
        (EventStoreError(OSError("disk full")), True),
        (ConcurrencyConflict("S12345678:2024-Spring", 1, 2), True),
        (ReconstructionFailed("first event must be RegistrationSessionCreated", 1), False),
    ],
)
def test_infrastructure_errors(error, retry_safe):
    assert isinstance(error, InfrastructureError)
    assert isinstance(error, RegistrationError)
    assert not isinstance(error, DomainRuleViolation)
    assert error.retry_safe is retry_safe


def test_event_store_error_keeps_cause():
    cause = OSError("disk full")
    assert EventStoreError(cause).cause is cause


def test_messages_include_fields():
    assert "C100000, C200000" in str(
        DuplicateCourseInSession("S12345678:2024-Spring", ["C100000", "C200000"])
    )
    assert "requested=21" in str(MaxUnitsExceeded(7, 21, 20))
    assert "events=1" in str(ReconstructionFailed("corrupted", 1))
