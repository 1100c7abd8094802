"""
Rate limit record repository.
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.base import BaseRepository


class RateLimitRepository(BaseRepository[db_models.RateLimitRecord]):
    """Repository for per-identifier attempt counters."""

    def __init__(self, db: Session):
        super().__init__(db_models.RateLimitRecord, db)

    def get_by_identifier(self, identifier: str) -> db_models.RateLimitRecord | None:
        return self.get_one_by(identifier=identifier)

    def save(self, record: db_models.RateLimitRecord) -> db_models.RateLimitRecord:
        """Insert or update a record and commit."""
        self.db.add(record)
        self.db.commit()
        return record
