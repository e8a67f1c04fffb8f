"""Custom exception hierarchy for the registration platform.

Business-rule violations (``DomainRuleViolation``) are expected outcomes
surfaced to the command caller.  ``InfrastructureError`` subclasses signal
storage or data-integrity problems; ``retry_safe`` tells a user-facing
surface whether repeating the command can help.
"""

from __future__ import annotations

from typing import Any, Sequence


class RegistrationError(Exception):
    """Base exception for all registration platform errors."""

    retry_safe: bool = False


# --- Configuration ---
class ConfigError(RegistrationError):
    """Invalid or missing configuration."""


# --- Input ---
class ValueObjectValidationError(RegistrationError, ValueError):
    """A raw value does not match the structural pattern of its type."""

    def __init__(self, type_name: str, value: Any, reason: str):
        self.type_name = type_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {type_name} {value!r}: {reason}")


class EmptyCourseList(RegistrationError, ValueError):
    """An add-courses command carried no courses."""


# --- Domain rules ---
class DomainRuleViolation(RegistrationError):
    """A command was rejected by a business rule."""


class InvalidRegistrationSessionId(DomainRuleViolation):
    """The (student, term) pair does not form a valid composite session id."""

    def __init__(self, student_id: Any, term: Any, reason: str):
        self.student_id = str(student_id)
        self.term = str(term)
        self.reason = reason
        super().__init__(
            f"Cannot build session id from student={self.student_id!r}, "
            f"term={self.term!r}: {reason}"
        )


class SessionAlreadyExists(DomainRuleViolation):
    """A session already exists for the student and term."""

    def __init__(self, student_id: Any, term: Any, existing_session_id: Any):
        self.student_id = str(student_id)
        self.term = str(term)
        self.existing_session_id = str(existing_session_id)
        super().__init__(
            f"Registration session already exists: student={self.student_id}, "
            f"term={self.term} (id={self.existing_session_id})"
        )


class SessionNotFound(DomainRuleViolation):
    """No events exist for the requested session id."""

    def __init__(self, session_id: Any):
        self.session_id = str(session_id)
        super().__init__(f"Registration session not found: {self.session_id}")


class InvalidSessionState(DomainRuleViolation):
    """The session's status does not allow the attempted action."""

    def __init__(self, session_id: Any, current_state: str, attempted_action: str):
        self.session_id = str(session_id)
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(
            f"Invalid state transition: session={self.session_id}, "
            f"state={current_state}, action={attempted_action}"
        )


class DuplicateCourseInSession(DomainRuleViolation):
    """One or more requested courses are already in the session."""

    def __init__(self, session_id: Any, duplicate_course_ids: Sequence[Any]):
        self.session_id = str(session_id)
        self.duplicate_course_ids = [str(c) for c in duplicate_course_ids]
        super().__init__(
            f"Duplicate courses in session {self.session_id}: "
            f"{', '.join(self.duplicate_course_ids)}"
        )


class MaxUnitsExceeded(DomainRuleViolation):
    """Adding the requested courses would breach the per-term unit ceiling."""

    def __init__(self, current_units: int, requested_units: int, max_units: int):
        self.current_units = current_units
        self.requested_units = requested_units
        self.max_units = max_units
        super().__init__(
            f"Maximum units exceeded: current={current_units}, "
            f"requested={requested_units}, max={max_units}"
        )


# --- Infrastructure ---
class InfrastructureError(RegistrationError):
    """Storage or data-integrity failure, not a business-rule outcome."""


class EventStoreError(InfrastructureError):
    """Wraps any underlying storage fault during append or read."""

    retry_safe = True

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Event store failure: {cause!r}")


class ConcurrencyConflict(InfrastructureError):
    """The stream moved on since the aggregate was loaded."""

    retry_safe = True

    def __init__(self, aggregate_id: Any, expected_version: int, actual_version: int):
        self.aggregate_id = str(aggregate_id)
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification of {self.aggregate_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


class ReconstructionFailed(InfrastructureError):
    """An event stream is corrupted and cannot be folded into an aggregate."""

    def __init__(self, reason: str, event_count: int):
        self.reason = reason
        self.event_count = event_count
        super().__init__(
            f"Failed to reconstruct aggregate: {reason} (events={event_count})"
        )
