"""
Referral repository.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.base import BaseRepository


class ReferralRepository(BaseRepository[db_models.Referral]):
    """Repository for family referrals."""

    def __init__(self, db: Session):
        super().__init__(db_models.Referral, db)

    def code_exists(self, code: str) -> bool:
        return self.get_one_by(referral_code=code) is not None

    def list_filtered(
        self,
        status: db_models.ReferralStatus | None = None,
        referrer_type: db_models.ReferrerType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[db_models.Referral], int]:
        """
        List referrals with optional filters, newest first.

        Returns:
            Tuple of (page of referrals, total matching count)
        """
        query = self.db.query(db_models.Referral)
        if status is not None:
            query = query.filter(db_models.Referral.status == status)
        if referrer_type is not None:
            query = query.filter(db_models.Referral.referrer_type == referrer_type)

        total = query.count()
        items = (
            query.order_by(
                db_models.Referral.created_at.desc(), db_models.Referral.id.desc()
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    def count_by_status(self) -> dict[db_models.ReferralStatus, int]:
        """Referral counts grouped by status (statuses with no rows omitted)."""
        rows = (
            self.db.query(db_models.Referral.status, func.count(db_models.Referral.id))
            .group_by(db_models.Referral.status)
            .all()
        )
        return {status: count for status, count in rows}
