"""Shared fixtures for the course-registration test suite."""

from __future__ import annotations

import logging

import pytest
import structlog

from course_registration.application.commands import (
    AddCoursesToSessionHandler,
    CreateRegistrationSessionHandler,
)
from course_registration.domain.value_objects import (
    RegistrationSessionId,
    StudentId,
    Term,
)
from course_registration.infrastructure.event_bus import InMemoryEventBus
from course_registration.infrastructure.event_store import InMemoryEventStore
from course_registration.infrastructure.session_repository import (
    EventSourcedSessionRepository,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

@pytest.fixture
def restore_logging():
    """Undo root handler, level and structlog changes made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

@pytest.fixture
def student_id() -> StudentId:
    return StudentId("S12345678")


@pytest.fixture
def term() -> Term:
    return Term("2024-Spring")


@pytest.fixture
def session_id(student_id: StudentId, term: Term) -> RegistrationSessionId:
    return RegistrationSessionId.create(student_id, term)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def repository(event_store: InMemoryEventStore) -> EventSourcedSessionRepository:
    return EventSourcedSessionRepository(event_store)


@pytest.fixture
def create_handler(
    event_store, event_bus, repository,
) -> CreateRegistrationSessionHandler:
    return CreateRegistrationSessionHandler(event_store, event_bus, repository)


@pytest.fixture
def add_handler(event_store, event_bus, repository) -> AddCoursesToSessionHandler:
    return AddCoursesToSessionHandler(event_store, event_bus, repository)
