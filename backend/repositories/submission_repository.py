"""
Submission repository for form submission persistence.
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.base import BaseRepository


class SubmissionRepository(BaseRepository[db_models.Submission]):
    """Repository for contact and enrollment submissions."""

    def __init__(self, db: Session):
        super().__init__(db_models.Submission, db)

    def get_by_public_id(self, public_id: str) -> db_models.Submission | None:
        return self.get_one_by(public_id=public_id)

    def get_by_idempotency_key(self, key: str) -> db_models.Submission | None:
        return self.get_one_by(idempotency_key=key)

    def count_enrollments(
        self, program: str, status: db_models.SubmissionStatus
    ) -> int:
        """
        Count enrollment submissions for a program in a given status.

        Args:
            program: Program code (e.g. "toddler")
            status: Submission status to count

        Returns:
            Number of matching submissions
        """
        return (
            self.db.query(db_models.Submission)
            .filter(
                db_models.Submission.kind == db_models.SubmissionKind.ENROLLMENT,
                db_models.Submission.program == program,
                db_models.Submission.status == status,
            )
            .count()
        )
