"""Referral tracker router (feature flagged)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from models.schemas import (
    ReferralCreate,
    ReferralListResponse,
    ReferralResponse,
    ReferralStatusUpdate,
)
from repositories.database import get_db
from repositories.db_models import ReferralStatus, ReferrerType
from services.referral_service import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get("", response_model=ReferralListResponse)
def list_referrals(
    status: Optional[ReferralStatus] = None,
    referrer_type: Optional[ReferrerType] = Query(default=None, alias="referrerType"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> ReferralListResponse:
    """List referrals, newest first, with program-wide metrics."""
    items, total, metrics = ReferralService(db).list(
        status, referrer_type, limit, offset
    )
    return ReferralListResponse(
        referrals=[ReferralResponse.model_validate(r) for r in items],
        total=total,
        metrics=metrics,
    )


@router.post("", response_model=ReferralResponse, status_code=201)
def create_referral(
    referral: ReferralCreate,
    db: Session = Depends(get_db),
) -> ReferralResponse:
    """Record a new referral. Codes expire after 90 days."""
    return ReferralResponse.model_validate(ReferralService(db).create(referral))


@router.patch("/{referral_id}/status", response_model=ReferralResponse)
def update_referral_status(
    referral_id: int,
    update: ReferralStatusUpdate,
    db: Session = Depends(get_db),
) -> ReferralResponse:
    """Move a referral through pending/contacted/touring/enrolled/declined."""
    referral = ReferralService(db).update_status(
        referral_id, update.status, update.notes
    )
    return ReferralResponse.model_validate(referral)
