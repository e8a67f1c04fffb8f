"""Event bus abstraction and in-memory implementation.

Design goals
------------
1.  **Fan-out**: ``publish()`` delivers the event to every handler that
    is subscribed at the time of the call.  Handlers run concurrently;
    no ordering between handlers is guaranteed.
2.  **Handler isolation**: a failing handler never affects the
    publisher or the other handlers.  Failures are logged and kept as
    dead letters for inspection.
3.  **Observability**: published events are kept in a history list.

This module provides:

*  ``IEventBus``: the protocol (interface).
*  ``InMemoryEventBus``: in-process implementation.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from course_registration.domain.events import DomainEvent

logger = logging.getLogger(__name__)

# Type alias for async event handlers.
EventHandler = Callable[[DomainEvent], Awaitable[None]]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventBus(Protocol):
    """Publish/subscribe bus for ``DomainEvent`` instances."""

    async def publish(self, event: DomainEvent) -> None:
        """Deliver *event* to all currently subscribed handlers."""
        ...

    def subscribe(self, handler: EventHandler) -> None:
        """Register *handler* for every subsequently published event."""
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryEventBus:
    """In-process event bus with concurrent fan-out."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._history: list[DomainEvent] = []
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[tuple[DomainEvent, str]] = []
        self._messages_processed: int = 0

    # -- Core API ----------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Publish *event* to all subscribed handlers.

        Handlers registered while this call is in flight do not receive
        the event.
        """
        self._history.append(event)
        handlers = list(self._handlers)
        if not handlers:
            return

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )
        for handler, result in zip(handlers, results):
            if isinstance(result, BaseException):
                key = event.event_type
                self._error_counts[key] += 1
                self._dead_letters.append((event, str(result)))
                logger.error(
                    "Handler %r failed on %s: %s",
                    getattr(handler, "__name__", handler), key, result,
                    exc_info=result,
                )
            else:
                self._messages_processed += 1

    def subscribe(self, handler: EventHandler) -> None:
        """Register *handler* for all events."""
        self._handlers.append(handler)

    # -- Observability -----------------------------------------------------

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]:
        """Return published events, optionally filtered."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if type(e) is event_type]

    def clear_history(self) -> None:
        """Clear the event history (testing helper)."""
        self._history.clear()

    def get_error_counts(self) -> dict[str, int]:
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[tuple[DomainEvent, str]]:
        return list(self._dead_letters)

    def clear_dead_letters(self) -> list[tuple[DomainEvent, str]]:
        """Drain and return dead letters."""
        drained = self._dead_letters[:]
        self._dead_letters.clear()
        return drained

    @property
    def messages_processed(self) -> int:
        return self._messages_processed

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)
