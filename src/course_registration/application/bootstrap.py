"""Build a fully wired registration application from ``Settings``."""

from __future__ import annotations

from dataclasses import dataclass

from course_registration.application.commands import (
    AddCoursesToSession,
    AddCoursesToSessionHandler,
    CreateRegistrationSession,
    CreateRegistrationSessionHandler,
)
from course_registration.core.config import Settings
from course_registration.core.enums import EventStoreBackend
from course_registration.domain.events import CourseInfo
from course_registration.domain.value_objects import (
    RegistrationSessionId,
    StudentId,
    Term,
)
from course_registration.infrastructure.event_bus import InMemoryEventBus
from course_registration.infrastructure.event_store import (
    IEventStore,
    InMemoryEventStore,
    JsonFileEventStore,
)
from course_registration.infrastructure.session_repository import (
    EventSourcedSessionRepository,
)
from course_registration.observability.logger import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class RegistrationApp:
    settings: Settings
    event_store: IEventStore
    event_bus: InMemoryEventBus
    repository: EventSourcedSessionRepository
    create_session: CreateRegistrationSessionHandler
    add_courses: AddCoursesToSessionHandler

    async def open_session(self, student_id: StudentId, term: Term) -> RegistrationSessionId:
        return await self.create_session.handle(
            CreateRegistrationSession(student_id=student_id, term=term)
        )

    async def add_courses_to_session(
        self, session_id: RegistrationSessionId, courses: list[CourseInfo],
    ) -> RegistrationSessionId:
        return await self.add_courses.handle(
            AddCoursesToSession(session_id=session_id, courses=tuple(courses))
        )


def build_event_store(settings: Settings) -> IEventStore:
    match settings.event_store.backend:
        case EventStoreBackend.MEMORY:
            return InMemoryEventStore()
        case EventStoreBackend.JSONL:
            return JsonFileEventStore(settings.event_store.path)
    raise ValueError(f"Unsupported event store backend: {settings.event_store.backend}")


def build_registration_app(
    settings: Settings | None = None,
    *,
    configure_logging: bool = False,
) -> RegistrationApp:
    """Wire store, bus, repository and command handlers.

    Args:
        settings: Application settings; defaults to ``Settings()``.
        configure_logging: Also install the structlog configuration.
    """
    if settings is None:
        settings = Settings()
    if configure_logging:
        setup_logging(
            level=settings.observability.log_level,
            format=settings.observability.log_format,
        )

    policy = settings.registration
    store = build_event_store(settings)
    bus = InMemoryEventBus()
    repository = EventSourcedSessionRepository(store)

    app = RegistrationApp(
        settings=settings,
        event_store=store,
        event_bus=bus,
        repository=repository,
        create_session=CreateRegistrationSessionHandler(
            store, bus, repository,
            optimistic_concurrency=policy.optimistic_concurrency,
        ),
        add_courses=AddCoursesToSessionHandler(
            store, bus, repository,
            max_units=policy.max_units_per_term,
            optimistic_concurrency=policy.optimistic_concurrency,
        ),
    )
    logger.info(
        "registration_app_ready",
        event_store=settings.event_store.backend.value,
        max_units=policy.max_units_per_term,
        optimistic_concurrency=policy.optimistic_concurrency,
    )
    return app
