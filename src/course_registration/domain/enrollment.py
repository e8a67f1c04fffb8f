"""Enrollment entity: one student's participation in one course for a term.

Enrollments are requested through ``CoursesAddedToSession`` and carry
their own status lifecycle::

    Requested -> EnrollmentApproved -> InProgress -> Completed
        |               |                  |
        +-> Cancelled <-+                  +-> Withdrawn
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from course_registration.core.enums import Grade
from course_registration.domain.value_objects import (
    CourseId,
    EnrollmentId,
    NonEmptyString,
    RegistrationSessionId,
    StudentId,
    Term,
)


@dataclass(frozen=True)
class Requested:
    requested_at: datetime


@dataclass(frozen=True)
class EnrollmentApproved:
    approved_at: datetime
    approved_by: NonEmptyString


@dataclass(frozen=True)
class InProgress:
    started_at: datetime


@dataclass(frozen=True)
class Completed:
    completed_at: datetime
    grade: Grade


@dataclass(frozen=True)
class Cancelled:
    cancelled_at: datetime
    reason: NonEmptyString


@dataclass(frozen=True)
class Withdrawn:
    withdrawn_at: datetime
    reason: NonEmptyString | None = None


EnrollmentStatus = Union[
    Requested, EnrollmentApproved, InProgress, Completed, Cancelled, Withdrawn,
]


@dataclass(frozen=True)
class Enrollment:
    id: EnrollmentId
    session_id: RegistrationSessionId
    student_id: StudentId
    course_id: CourseId
    term: Term
    status: EnrollmentStatus
    version: int

    @classmethod
    def create(
        cls,
        session_id: RegistrationSessionId,
        course_id: CourseId,
        requested_at: datetime,
    ) -> Enrollment:
        student_id, term = session_id.parse()
        return cls(
            id=EnrollmentId.create(student_id, course_id, term),
            session_id=session_id,
            student_id=student_id,
            course_id=course_id,
            term=term,
            status=Requested(requested_at=requested_at),
            version=1,
        )

    @property
    def status_tag(self) -> str:
        match self.status:
            case Requested():
                return "Requested"
            case EnrollmentApproved():
                return "Approved"
            case InProgress():
                return "InProgress"
            case Completed():
                return "Completed"
            case Cancelled():
                return "Cancelled"
            case Withdrawn():
                return "Withdrawn"
        raise TypeError(f"Unknown enrollment status: {self.status!r}")

    def can_approve(self) -> bool:
        return isinstance(self.status, Requested)

    def can_start(self) -> bool:
        return isinstance(self.status, EnrollmentApproved)

    def can_complete(self) -> bool:
        return isinstance(self.status, InProgress)

    def can_withdraw(self) -> bool:
        return isinstance(self.status, InProgress)

    def can_cancel(self) -> bool:
        return isinstance(self.status, (Requested, EnrollmentApproved))

    def has_grade(self) -> bool:
        return self.grade is not None

    @property
    def grade(self) -> Grade | None:
        """Completed enrollments carry their grade; withdrawals count as W."""
        match self.status:
            case Completed(grade=grade):
                return grade
            case Withdrawn():
                return Grade.W
            case Requested() | EnrollmentApproved() | InProgress() | Cancelled():
                return None
        raise TypeError(f"Unknown enrollment status: {self.status!r}")
