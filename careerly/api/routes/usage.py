"""
Usage tracking endpoints.

Provides quota information and the check-and-consume entry point used by
the feature endpoints.
"""
import logging
from fastapi import APIRouter, Depends, status, HTTPException
from sqlalchemy.orm import Session

from careerly.db.session import get_db
from careerly.db.models.user import User
from careerly.core.auth_dependency import get_current_user_obj
from careerly.core.errors import NoActiveSubscription
from careerly.core.plan_limits import parse_feature
from careerly.core.quota_guard import enforce_quota, no_subscription_exception
from careerly.schemas.usage import ConsumeResponse, QuotaResponse, SubscriptionRead
from careerly.services.quota_service import get_user_quota
from careerly.services.subscription_service import get_active_subscription

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Usage"])


@router.get("/quota", response_model=QuotaResponse, status_code=status.HTTP_200_OK)
def get_quota(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Get current month quota for the authenticated user.

    Returns:
    - plan_name: Display name of the active plan
    - period: First day of the current month (UTC)
    - features: Dictionary mapping feature names to usage details
        Each feature has: limit, used, remaining, unlimited

    Requires authentication via Bearer token.
    """
    try:
        quota = get_user_quota(db, user.id)
    except NoActiveSubscription as e:
        raise no_subscription_exception(e)

    logger.debug(f"Quota summary requested: user_id={user.id}, plan={quota['plan_name']}")
    return quota


@router.get("/subscription", response_model=SubscriptionRead)
def get_subscription(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    subscription = get_active_subscription(db, user.id)
    if not subscription:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active subscription found")
    return subscription


@router.post("/quota/{feature}/consume", response_model=ConsumeResponse)
def consume_quota(
    feature: str,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Consume one unit of a feature's monthly allowance."""
    try:
        feature = parse_feature(feature)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    quota = enforce_quota(db, user, feature)
    return ConsumeResponse(
        feature=quota.feature,
        used=quota.used,
        limit=quota.limit,
        remaining=quota.remaining,
    )
