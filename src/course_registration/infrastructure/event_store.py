"""Append-only event store for replay and state reconstruction.

Design invariants
-----------------
1.  ``get_events()`` returns the events of one
    ``(aggregate_id, aggregate_type)`` stream in **append order**.  That
    order is the only source of truth for current state.
2.  The store is **append-only**: events can never be deleted or
    modified.  ``clear()`` exists only for testing.
3.  ``aggregate_type`` partitions the log, so different entity kinds may
    share a textual id space.
4.  Any underlying fault is raised as ``EventStoreError`` wrapping the
    original cause.  A missing stream is an empty list, never an error.
5.  When ``expected_version`` is passed, ``append_event()`` only writes if
    the stream currently holds exactly that many events; otherwise it
    raises ``ConcurrencyConflict`` and stores nothing.

This module provides:

*  ``IEventStore``: the protocol.
*  ``InMemoryEventStore``: dict-backed implementation for tests and
   local development.
*  ``JsonFileEventStore``: append-to-JSONL-file implementation for
   durable local persistence.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import types
import typing
from collections import defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, Union, runtime_checkable

from course_registration.core.enums import AggregateType
from course_registration.core.errors import ConcurrencyConflict, EventStoreError
from course_registration.core.ids import utc_now
from course_registration.domain.events import ALL_DOMAIN_EVENTS, DomainEvent

logger = logging.getLogger(__name__)

StreamKey = tuple[AggregateType, str]


def _stream_key(aggregate_id: Any, aggregate_type: AggregateType) -> StreamKey:
    return (AggregateType(aggregate_type), str(aggregate_id))


def _check_version(
    aggregate_id: Any, expected_version: int | None, actual_version: int,
) -> None:
    if expected_version is not None and expected_version != actual_version:
        raise ConcurrencyConflict(aggregate_id, expected_version, actual_version)


# ---------------------------------------------------------------------------
# JSON helpers (value objects / datetime safe)
# ---------------------------------------------------------------------------

def _is_value_object(obj: Any) -> bool:
    """Single-field ``value`` dataclasses serialize as bare strings."""
    if not dataclasses.is_dataclass(obj):
        return False
    names = [f.name for f in dataclasses.fields(obj)]
    return names == ["value"]


def _to_jsonable(obj: Any) -> Any:
    if _is_value_object(obj):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: _to_jsonable(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(item) for item in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


def _from_jsonable(tp: Any, raw: Any) -> Any:
    """Rebuild a value of type *tp* from its JSON representation."""
    origin = typing.get_origin(tp)
    if origin in (Union, types.UnionType):
        if raw is None:
            return None
        inner = [a for a in typing.get_args(tp) if a is not type(None)]
        return _from_jsonable(inner[0], raw)
    if origin is tuple:
        item_type = typing.get_args(tp)[0]
        return tuple(_from_jsonable(item_type, item) for item in raw)
    if tp is datetime:
        return datetime.fromisoformat(raw)
    if isinstance(tp, type) and issubclass(tp, Enum):
        return tp(raw)
    if isinstance(tp, type) and _is_value_object(tp):
        return tp(raw)
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        hints = typing.get_type_hints(tp)
        return tp(**{
            f.name: _from_jsonable(hints[f.name], raw[f.name])
            for f in dataclasses.fields(tp)
            if f.name in raw
        })
    return raw


def _event_to_dict(event: DomainEvent) -> dict[str, Any]:
    d = _to_jsonable(event)
    d["__event_type__"] = event.event_type
    return d


def _event_from_dict(
    d: dict[str, Any],
    registry: dict[str, type[DomainEvent]],
) -> DomainEvent | None:
    """Deserialize a dict back into a DomainEvent subclass.

    Returns ``None`` if the event type is unrecognized (forward compat).
    """
    d = dict(d)
    type_name = d.pop("__event_type__", None)
    if type_name is None or type_name not in registry:
        return None
    return _from_jsonable(registry[type_name], d)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventStore(Protocol):
    """Append-only, per-aggregate ordered event log."""

    async def append_event(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
        event: DomainEvent,
        expected_version: int | None = None,
    ) -> None:
        """Append *event* to the end of its stream."""
        ...

    async def get_events(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
    ) -> list[DomainEvent]:
        """Return the stream in append order (possibly empty)."""
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryEventStore:
    """Dict-backed event store.  No persistence across restarts.

    Good for: unit tests, local development.
    """

    def __init__(self) -> None:
        self._streams: dict[StreamKey, list[DomainEvent]] = defaultdict(list)
        self._log: list[tuple[StreamKey, DomainEvent]] = []

    async def append_event(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
        event: DomainEvent,
        expected_version: int | None = None,
    ) -> None:
        # Suspension point, as with any I/O-backed store
        await asyncio.sleep(0)
        try:
            key = _stream_key(aggregate_id, aggregate_type)
            stream = self._streams[key]
        except (TypeError, ValueError) as exc:
            raise EventStoreError(exc) from exc
        _check_version(aggregate_id, expected_version, len(stream))
        stream.append(event)
        self._log.append((key, event))
        logger.debug(
            "Appended %s to %s/%s (version %d)",
            event.event_type, key[0].value, key[1], len(stream),
        )

    async def get_events(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
    ) -> list[DomainEvent]:
        await asyncio.sleep(0)
        try:
            key = _stream_key(aggregate_id, aggregate_type)
        except (TypeError, ValueError) as exc:
            raise EventStoreError(exc) from exc
        return list(self._streams.get(key, ()))

    # -- Testing helpers ---------------------------------------------------

    def all_events(self) -> list[DomainEvent]:
        """Every stored event across all streams, in global append order."""
        return [event for _, event in self._log]

    def clear(self) -> None:
        """Remove all events.  Testing only."""
        self._streams.clear()
        self._log.clear()

    def __len__(self) -> int:
        return len(self._log)


# ---------------------------------------------------------------------------
# JSON-Lines file implementation
# ---------------------------------------------------------------------------

class JsonFileEventStore:
    """Append-only JSONL file store.  Durable across restarts.

    Each line is a JSON object::

        {"aggregate_id": ..., "aggregate_type": ..., "stored_at": ...,
         "event": {"__event_type__": ..., ...}}

    Lines whose event type is unknown to this process are skipped on read
    with a warning.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._registry: dict[str, type[DomainEvent]] = self._build_registry()
        self._lock = asyncio.Lock()

    @staticmethod
    def _build_registry() -> dict[str, type[DomainEvent]]:
        """Build name → class lookup from all known event types."""
        return {cls.__name__: cls for cls in ALL_DOMAIN_EVENTS}

    @property
    def path(self) -> Path:
        return self._path

    def _read_stream(self, key: StreamKey) -> list[DomainEvent]:
        out: list[DomainEvent] = []
        if not self._path.exists():
            return out
        with self._path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                if (record["aggregate_type"], record["aggregate_id"]) != (
                    key[0].value, key[1],
                ):
                    continue
                event = _event_from_dict(record["event"], self._registry)
                if event is None:
                    logger.warning(
                        "Skipping unknown event type %r at %s:%d",
                        record["event"].get("__event_type__"), self._path, lineno,
                    )
                    continue
                out.append(event)
        return out

    def _count_stream(self, key: StreamKey) -> int:
        count = 0
        if not self._path.exists():
            return count
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                if (record["aggregate_type"], record["aggregate_id"]) == (
                    key[0].value, key[1],
                ):
                    count += 1
        return count

    async def append_event(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
        event: DomainEvent,
        expected_version: int | None = None,
    ) -> None:
        async with self._lock:
            try:
                key = _stream_key(aggregate_id, aggregate_type)
                if expected_version is not None:
                    actual = self._count_stream(key)
                else:
                    actual = 0
            except (OSError, ValueError, KeyError, TypeError) as exc:
                raise EventStoreError(exc) from exc
            _check_version(aggregate_id, expected_version, actual)
            record = {
                "aggregate_id": key[1],
                "aggregate_type": key[0].value,
                "stored_at": utc_now().isoformat(),
                "event": _event_to_dict(event),
            }
            try:
                line = json.dumps(record)
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except (OSError, TypeError, ValueError) as exc:
                raise EventStoreError(exc) from exc
        logger.debug(
            "Appended %s to %s/%s in %s",
            event.event_type, key[0].value, key[1], self._path,
        )

    async def get_events(
        self,
        aggregate_id: Any,
        aggregate_type: AggregateType,
    ) -> list[DomainEvent]:
        async with self._lock:
            try:
                return self._read_stream(_stream_key(aggregate_id, aggregate_type))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                raise EventStoreError(exc) from exc
