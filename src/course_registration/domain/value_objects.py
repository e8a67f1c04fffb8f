"""Validated, immutable identifiers.

Every value object wraps a single string and validates it on
construction, so an instance that exists is always well-formed.  They
compare and hash by value and ``str()`` yields the raw string.

Composite ids (``RegistrationSessionId``, ``EnrollmentId``) are pure
functions of their business keys: the same inputs always produce the
same id, which is what makes "does a session exist" a simple stream
lookup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from course_registration.core.enums import SeasonName
from course_registration.core.errors import (
    InvalidRegistrationSessionId,
    ValueObjectValidationError,
)

ID_DELIMITER = ":"

_STUDENT_ID = r"S[0-9]{8}"
_COURSE_ID = r"C[0-9]{6}"
_TERM = r"[0-9]{4}-(?:Spring|Fall|Summer)"


@dataclass(frozen=True)
class _PatternString:
    """Base for string value objects validated against a full-match regex."""

    value: str

    pattern: ClassVar[re.Pattern[str]]
    description: ClassVar[str]

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueObjectValidationError(
                type(self).__name__, self.value, "must be a string",
            )
        if self.pattern.fullmatch(self.value) is None:
            raise ValueObjectValidationError(
                type(self).__name__, self.value, self.description,
            )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NonEmptyString:
    """A string with at least one character (actors, reasons)."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or len(self.value) < 1:
            raise ValueObjectValidationError(
                "NonEmptyString", self.value, "must contain at least 1 character",
            )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StudentId(_PatternString):
    pattern = re.compile(_STUDENT_ID)
    description = "must be 'S' followed by 8 digits"


@dataclass(frozen=True)
class CourseId(_PatternString):
    pattern = re.compile(_COURSE_ID)
    description = "must be 'C' followed by 6 digits"


@dataclass(frozen=True)
class Term(_PatternString):
    pattern = re.compile(_TERM)
    description = "must look like 'YYYY-Spring', 'YYYY-Fall' or 'YYYY-Summer'"

    @property
    def year(self) -> int:
        return int(self.value.split("-", 1)[0])

    @property
    def season(self) -> SeasonName:
        return SeasonName(self.value.split("-", 1)[1])


@dataclass(frozen=True)
class RegistrationSessionId(_PatternString):
    """Composite key ``StudentId:Term``."""

    pattern = re.compile(f"{_STUDENT_ID}{ID_DELIMITER}{_TERM}")
    description = "must be '<StudentId>:<Term>'"

    @classmethod
    def create(cls, student_id: StudentId, term: Term) -> RegistrationSessionId:
        """Derive the session id for a (student, term) pair.

        Acts as a joint validator: a delimiter or any other stray
        character inside either component breaks the composite pattern
        and is reported as ``InvalidRegistrationSessionId``.
        """
        raw = f"{student_id}{ID_DELIMITER}{term}"
        if cls.pattern.fullmatch(raw) is None:
            raise InvalidRegistrationSessionId(
                student_id, term, f"composite {raw!r} {cls.description}",
            )
        return cls(raw)

    @classmethod
    def from_string(cls, raw: str) -> RegistrationSessionId:
        """Decode a raw session id, reporting failures as a domain error."""
        try:
            return cls(raw)
        except ValueObjectValidationError as exc:
            student, _, term = str(raw).partition(ID_DELIMITER)
            raise InvalidRegistrationSessionId(student, term, exc.reason) from exc

    def parse(self) -> tuple[StudentId, Term]:
        student, term = self.value.split(ID_DELIMITER)
        return StudentId(student), Term(term)

    @property
    def student_id(self) -> StudentId:
        return self.parse()[0]

    @property
    def term(self) -> Term:
        return self.parse()[1]


@dataclass(frozen=True)
class EnrollmentId(_PatternString):
    """Composite key ``StudentId:CourseId:Term``."""

    pattern = re.compile(
        f"{_STUDENT_ID}{ID_DELIMITER}{_COURSE_ID}{ID_DELIMITER}{_TERM}"
    )
    description = "must be '<StudentId>:<CourseId>:<Term>'"

    @classmethod
    def create(
        cls, student_id: StudentId, course_id: CourseId, term: Term,
    ) -> EnrollmentId:
        return cls(ID_DELIMITER.join((str(student_id), str(course_id), str(term))))

    def parse(self) -> tuple[StudentId, CourseId, Term]:
        student, course, term = self.value.split(ID_DELIMITER)
        return StudentId(student), CourseId(course), Term(term)
