"""Enumerations used across the registration platform."""

from enum import Enum


class AggregateType(str, Enum):
    """Partitions the event log by entity kind."""

    REGISTRATION_SESSION = "RegistrationSession"
    ENROLLMENT = "Enrollment"


class SeasonName(str, Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"
    W = "W"  # Withdrawn
    I = "I"  # Incomplete  # noqa: E741
    P = "P"  # Pass


class EventStoreBackend(str, Enum):
    MEMORY = "memory"
    JSONL = "jsonl"
