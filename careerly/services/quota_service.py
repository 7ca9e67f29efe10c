"""
Quota service for managing usage limits and tracking.

Every paid feature passes through check_and_consume() before doing its own
work. The allowance is consumed up front, so a unit is spent whether or not
the downstream AI call succeeds.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from careerly.core.errors import NoActiveSubscription, QuotaExceeded
from careerly.core.plan_limits import SUPPORTED_FEATURES, get_plan_limit, parse_feature
from careerly.db.base import utcnow
from careerly.db.models.usage import Usage
from careerly.services.subscription_service import get_active_subscription

logger = logging.getLogger(__name__)


@dataclass
class QuotaStatus:
    """Outcome of an allowed check_and_consume call."""
    feature: str
    used: int
    limit: Optional[int]
    remaining: Optional[int]

    @property
    def unlimited(self) -> bool:
        return self.limit is None


def find_or_create_usage(db: Session, user_id: str, feature: str, period: date) -> Usage:
    """
    Get the usage counter for (user, feature, period), creating it at zero.

    Two requests racing to create the same row both end up with the single
    row that won the unique constraint.
    """
    usage = db.query(Usage).filter(
        Usage.user_id == user_id,
        Usage.feature == feature,
        Usage.period_month == period,
    ).first()
    if usage:
        return usage

    usage = Usage(user_id=user_id, feature=feature, period_month=period, count=0)
    db.add(usage)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.debug(f"Usage row created concurrently: user_id={user_id}, feature={feature}, period={period}")
        usage = db.query(Usage).filter(
            Usage.user_id == user_id,
            Usage.feature == feature,
            Usage.period_month == period,
        ).one()
    else:
        db.refresh(usage)
    return usage


def check_and_consume(
    db: Session,
    user_id: str,
    feature,
    now: Optional[datetime] = None,
) -> QuotaStatus:
    """
    Check quota and consume one unit atomically if allowed.

    This function:
    1. Resolves the user's active subscription
    2. Resolves the plan limit for the feature
    3. Finds or creates the current month's usage row
    4. Increments the counter with a single conditional UPDATE that only
       matches while count < limit

    Args:
        db: Database session
        user_id: User ID
        feature: Feature enum or name (resume, ats_check, interview)
        now: Evaluation time (defaults to current UTC time)

    Returns:
        QuotaStatus after consuming this request

    Raises:
        ValueError: Unknown feature
        NoActiveSubscription: The user has no active, unexpired subscription
        QuotaExceeded: The monthly limit is already used up; nothing is recorded
    """
    feature = parse_feature(feature)
    if now is None:
        now = utcnow()

    subscription = get_active_subscription(db, user_id, now)
    if not subscription or subscription.plan is None:
        logger.info(f"Quota denied (no active subscription): user_id={user_id}, feature={feature.value}")
        raise NoActiveSubscription()

    plan = subscription.plan
    limit = get_plan_limit(plan, feature)
    usage = find_or_create_usage(db, user_id, feature.value, Usage.period_start(now))

    query = db.query(Usage).filter(Usage.id == usage.id)
    if not limit.is_unlimited:
        query = query.filter(Usage.count < limit.cap)
    updated = query.update({Usage.count: Usage.count + 1}, synchronize_session=False)
    db.commit()
    db.refresh(usage)

    if updated == 0:
        logger.warning(
            f"Quota exceeded: user_id={user_id}, feature={feature.value}, "
            f"plan={plan.name}, limit={limit.cap}, used={usage.count}"
        )
        raise QuotaExceeded(feature.value, limit.cap, usage.count, plan=plan.name)

    status = QuotaStatus(
        feature=feature.value,
        used=usage.count,
        limit=limit.cap,
        remaining=limit.remaining(usage.count),
    )
    logger.info(
        f"Usage consumed: user_id={user_id}, feature={feature.value}, "
        f"used={status.used}/{status.limit if status.limit else 'unlimited'}, plan={plan.name}"
    )
    return status


def get_user_quota(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict:
    """
    Build a read-only quota snapshot for the user's active plan.

    Usage rows are fetched (or lazily created) per feature; a failure on one
    feature reports its usage as 0 instead of failing the whole call.

    Returns:
        Dictionary with plan_name, period and a features dict
        (limit, used, remaining, unlimited per feature)

    Raises:
        NoActiveSubscription: The user has no active, unexpired subscription
    """
    if now is None:
        now = utcnow()

    subscription = get_active_subscription(db, user_id, now)
    if not subscription or subscription.plan is None:
        raise NoActiveSubscription()

    plan = subscription.plan
    period = Usage.period_start(now)

    features = {}
    for feature in SUPPORTED_FEATURES:
        limit = get_plan_limit(plan, feature)
        try:
            used = find_or_create_usage(db, user_id, feature, period).count
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Usage lookup failed, reporting 0: user_id={user_id}, feature={feature}: {e}")
            used = 0

        features[feature] = {
            "limit": limit.cap,
            "used": used,
            "remaining": limit.remaining(used),
            "unlimited": limit.is_unlimited,
        }

    return {
        "plan_name": plan.display_name,
        "period": period,
        "features": features,
    }
