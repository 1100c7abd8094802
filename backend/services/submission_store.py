"""
Submission persistence.

The store assigns the public identifier and initial status and writes the
submission exactly once per idempotency key. Datastore connectivity
problems surface as TransientStoreException so the caller's retry policy
can decide whether to try again.
"""

import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from loguru import logger
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from helpers.request_utils import RequestMetadata
from helpers.time_utils import utc_now
from models.exceptions import TransientStoreException
from models.schemas import ContactPayload, EnrollmentPayload, StoredSubmission
from repositories.db_models import Submission, SubmissionKind
from repositories.submission_repository import SubmissionRepository
from services.availability_service import StatusPolicy

ID_PREFIXES = {
    SubmissionKind.CONTACT: "CON",
    SubmissionKind.ENROLLMENT: "ENR",
}

# Never stored: transport-only fields
EXCLUDED_FIELDS = {"idempotency_key", "website"}


def generate_submission_id(kind: SubmissionKind) -> str:
    """Public identifier such as "ENR-20250114-9F2C41AB"."""
    return f"{ID_PREFIXES[kind]}-{utc_now():%Y%m%d}-{secrets.token_hex(4).upper()}"


@dataclass
class SubmissionRecord:
    """A validated payload plus where it came from."""

    payload: Union[ContactPayload, EnrollmentPayload]
    metadata: RequestMetadata = field(default_factory=RequestMetadata)
    locale: str = "en"

    @property
    def kind(self) -> SubmissionKind:
        return SubmissionKind(self.payload.kind)


class SubmissionStore(ABC):
    """Persists submissions."""

    @abstractmethod
    def persist(
        self, record: SubmissionRecord, idempotency_key: str
    ) -> StoredSubmission:
        """
        Store a submission once per idempotency key.

        Raises:
            TransientStoreException: The datastore could not be reached.
        """
        pass


class SqlSubmissionStore(SubmissionStore):
    """SQLAlchemy-backed submission store."""

    def __init__(
        self,
        db: Session,
        status_policy: StatusPolicy,
        id_factory: Callable[[SubmissionKind], str] = generate_submission_id,
    ):
        self.db = db
        self.repo = SubmissionRepository(db)
        self.status_policy = status_policy
        self.id_factory = id_factory

    def persist(
        self, record: SubmissionRecord, idempotency_key: str
    ) -> StoredSubmission:
        try:
            return self._persist(record, idempotency_key)
        except TransientStoreException:
            raise
        except IntegrityError as e:
            # Public ID collision; a retry draws a fresh identifier
            self.db.rollback()
            raise TransientStoreException(
                "Submission identifier collision"
            ) from e
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            self.db.rollback()
            logger.warning(f"Submission store unavailable: {e.__class__.__name__}")
            raise TransientStoreException() from e

    def _persist(
        self, record: SubmissionRecord, idempotency_key: str
    ) -> StoredSubmission:
        existing = self.repo.get_by_idempotency_key(idempotency_key)
        if existing is not None:
            logger.info(
                f"Duplicate submission for idempotency key; returning {existing.public_id}"
            )
            return StoredSubmission(
                id=existing.public_id, status=existing.status, created=False
            )

        payload = record.payload
        status = self.status_policy.decide(payload)
        submission = Submission(
            public_id=self.id_factory(record.kind),
            kind=record.kind,
            status=status,
            idempotency_key=idempotency_key,
            name=(
                payload.parent_name
                if isinstance(payload, EnrollmentPayload)
                else payload.name
            ),
            email=payload.email,
            phone=payload.phone,
            program=(
                payload.program.value if isinstance(payload, EnrollmentPayload) else None
            ),
            urgency=(
                payload.urgency.value if isinstance(payload, ContactPayload) else None
            ),
            fields=payload.model_dump(mode="json", exclude=EXCLUDED_FIELDS),
            locale=record.locale,
            ip_address=record.metadata.ip_address,
            user_agent=record.metadata.user_agent,
        )

        try:
            self.repo.create(submission)
        except IntegrityError:
            # A concurrent request with the same key won the insert
            self.db.rollback()
            existing = self.repo.get_by_idempotency_key(idempotency_key)
            if existing is None:
                raise
            return StoredSubmission(
                id=existing.public_id, status=existing.status, created=False
            )

        logger.info(
            f"Stored {record.kind.value} submission {submission.public_id} "
            f"with status {status.value}"
        )
        return StoredSubmission(id=submission.public_id, status=status)
