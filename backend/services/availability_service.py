"""
Program capacity and enrollment availability.

Decides the initial status of a new submission: contacts are always
pending; enrollments are waitlisted once a program's pending enrollments
reach its configured capacity.
"""

from typing import Protocol, Union

from loguru import logger
from sqlalchemy.orm import Session

from models.config import settings
from models.schemas import (
    AvailabilityResponse,
    ContactPayload,
    EnrollmentPayload,
    Program,
)
from repositories.db_models import SubmissionStatus
from repositories.submission_repository import SubmissionRepository


class StatusPolicy(Protocol):
    """Decides the status a new submission is stored with."""

    def decide(
        self, payload: Union[ContactPayload, EnrollmentPayload]
    ) -> SubmissionStatus: ...


class ProgramCapacityPolicy:
    """Status policy backed by configured program capacities."""

    def __init__(self, db: Session, capacity: dict[str, int] | None = None):
        self.repo = SubmissionRepository(db)
        self.capacity = capacity if capacity is not None else settings.PROGRAM_CAPACITY

    def _counts(self, program: Program) -> tuple[int, int, int]:
        capacity = self.capacity.get(program.value, 0)
        pending = self.repo.count_enrollments(program.value, SubmissionStatus.PENDING)
        waitlisted = self.repo.count_enrollments(
            program.value, SubmissionStatus.WAITLISTED
        )
        return capacity, pending, waitlisted

    def decide(
        self, payload: Union[ContactPayload, EnrollmentPayload]
    ) -> SubmissionStatus:
        if not isinstance(payload, EnrollmentPayload):
            return SubmissionStatus.PENDING

        capacity, pending, _ = self._counts(payload.program)
        if pending >= capacity:
            logger.info(
                f"Program {payload.program.value} at capacity "
                f"({pending}/{capacity}); waitlisting application"
            )
            return SubmissionStatus.WAITLISTED
        return SubmissionStatus.PENDING

    def check_availability(self, program: Program) -> AvailabilityResponse:
        """Report open spots and waitlist length for a program."""
        capacity, pending, waitlisted = self._counts(program)
        spots_remaining = max(capacity - pending, 0)
        return AvailabilityResponse(
            program=program,
            available=spots_remaining > 0,
            spots_remaining=spots_remaining,
            waitlist_length=waitlisted,
        )
