"""
Referral tracker.

Referrals get a code like "REF-2025-0427" and expire 90 days after
creation if they never progress past pending.
"""

import secrets
from datetime import timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from helpers.time_utils import ensure_utc, utc_now
from models.exceptions import ConflictException, ReferralNotFoundException
from models.schemas import ReferralCreate, ReferralMetrics
from repositories.db_models import Referral, ReferralStatus, ReferrerType
from repositories.referral_repository import ReferralRepository

REFERRAL_EXPIRY = timedelta(days=90)
MAX_CODE_ATTEMPTS = 10


def generate_referral_code(year: int) -> str:
    return f"REF-{year}-{secrets.randbelow(10000):04d}"


class ReferralService:
    """Create, list and progress referrals."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReferralRepository(db)

    def _unique_code(self) -> str:
        year = utc_now().year
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_referral_code(year)
            if not self.repo.code_exists(code):
                return code
        raise ConflictException("Could not allocate a referral code")

    def create(self, data: ReferralCreate) -> Referral:
        now = utc_now()
        referral = Referral(
            referral_code=self._unique_code(),
            referrer_name=data.referrer_name,
            referrer_email=str(data.referrer_email).lower(),
            referrer_phone=data.referrer_phone,
            referrer_type=data.referrer_type,
            referred_family_name=data.referred_family_name,
            referred_parent_name=data.referred_parent_name,
            referred_email=str(data.referred_email).lower(),
            referred_phone=data.referred_phone,
            referred_children_count=data.referred_children_count,
            notes=data.notes,
            status=ReferralStatus.PENDING,
            created_at=now,
            expires_at=now + REFERRAL_EXPIRY,
        )
        referral = self.repo.create(referral)
        logger.info(f"Created referral {referral.referral_code}")
        return referral

    def expire_stale(self) -> int:
        """Mark pending referrals past their expiry date as expired."""
        now = utc_now()
        pending, _ = self.repo.list_filtered(
            status=ReferralStatus.PENDING, limit=10_000
        )
        expired = 0
        for referral in pending:
            if ensure_utc(referral.expires_at) <= now:
                referral.status = ReferralStatus.EXPIRED
                expired += 1
        if expired:
            self.repo.commit()
            logger.info(f"Expired {expired} stale referral(s)")
        return expired

    def list(
        self,
        status: Optional[ReferralStatus] = None,
        referrer_type: Optional[ReferrerType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Referral], int, ReferralMetrics]:
        self.expire_stale()
        items, total = self.repo.list_filtered(status, referrer_type, limit, offset)
        return items, total, self.metrics()

    def metrics(self) -> ReferralMetrics:
        counts = self.repo.count_by_status()
        total = sum(counts.values())
        enrolled = counts.get(ReferralStatus.ENROLLED, 0)
        return ReferralMetrics(
            total=total,
            pending=counts.get(ReferralStatus.PENDING, 0),
            active=counts.get(ReferralStatus.CONTACTED, 0)
            + counts.get(ReferralStatus.TOURING, 0),
            enrolled=enrolled,
            conversion_rate=round(enrolled / total * 100, 1) if total else 0.0,
        )

    def update_status(
        self, referral_id: int, status: ReferralStatus, notes: Optional[str] = None
    ) -> Referral:
        referral = self.repo.get_by_id(referral_id)
        if referral is None:
            raise ReferralNotFoundException(referral_id)
        referral.status = status
        if notes is not None:
            referral.notes = notes
        logger.info(f"Referral {referral.referral_code} moved to {status.value}")
        return self.repo.update(referral)
