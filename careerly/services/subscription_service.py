"""
Subscription ledger.

Holds the one-active-subscription-per-user record. Activity is evaluated at
query time (status == active AND end_date > now); there is no background
job flipping expired rows.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from careerly.core import config
from careerly.db.base import utcnow
from careerly.db.models.plan import Plan
from careerly.db.models.subscription import Subscription, SubscriptionStatus
from careerly.db.models.transaction import Transaction
from careerly.services.plan_service import normalize_pagination, build_pagination, DEFAULT_PAGE_LIMIT

logger = logging.getLogger(__name__)


def get_active_subscription(db: Session, user_id: str, now: Optional[datetime] = None) -> Optional[Subscription]:
    """
    Get the user's currently active subscription, if any.

    Rows whose stored status is still "active" but whose end_date has
    passed are excluded.
    """
    if now is None:
        now = utcnow()
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date > now,
            Subscription.deleted_at.is_(None),
        )
        .order_by(Subscription.created_at.desc())
        .first()
    )


def release_active_slot(db: Session, user_id: str, now: datetime) -> int:
    """
    Flip every status=active row of the user out of the active slot.

    Rows still inside their window become canceled (superseded); rows past
    their end date become expired. Returns the number of canceled rows.
    """
    canceled = (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date > now,
            Subscription.deleted_at.is_(None),
        )
        .update({Subscription.status: SubscriptionStatus.CANCELED}, synchronize_session="fetch")
    )
    db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status == SubscriptionStatus.ACTIVE,
        Subscription.end_date <= now,
        Subscription.deleted_at.is_(None),
    ).update({Subscription.status: SubscriptionStatus.EXPIRED}, synchronize_session="fetch")
    return canceled


def activate_subscription(db: Session, transaction: Transaction, now: Optional[datetime] = None) -> Subscription:
    """
    Create the subscription paid for by a successful transaction.

    Any subscription the user currently holds is superseded immediately; there
    is no stacking or grace period. The new row is flushed but not committed so
    the caller can persist it together with the transaction update.

    Args:
        db: Database session
        transaction: Transaction that just reached success
        now: Activation time (defaults to current UTC time)

    Returns:
        The new active Subscription
    """
    if now is None:
        now = utcnow()

    # Soft-deleted plans still back the subscriptions already paid for
    plan = db.query(Plan).filter(Plan.id == transaction.plan_id).first()
    duration_days = config.DEFAULT_SUBSCRIPTION_DAYS
    if plan is not None and plan.duration_days:
        duration_days = plan.duration_days

    canceled = release_active_slot(db, transaction.user_id, now)

    subscription = Subscription(
        user_id=transaction.user_id,
        plan_id=transaction.plan_id,
        start_date=now,
        end_date=now + timedelta(days=duration_days),
        status=SubscriptionStatus.ACTIVE,
        created_at=now,
    )
    db.add(subscription)
    db.flush()

    logger.info(
        f"Subscription activated: user_id={transaction.user_id}, plan_id={transaction.plan_id}, "
        f"subscription_id={subscription.id}, days={duration_days}, superseded={canceled}"
    )
    return subscription


def list_user_subscriptions(
    db: Session,
    user_id: str,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> Tuple[List[Subscription], Dict[str, int]]:
    """Subscription history for a user, newest first."""
    page, limit = normalize_pagination(page, limit)
    query = db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.deleted_at.is_(None),
    )
    total = query.count()
    subscriptions = (
        query.order_by(Subscription.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return subscriptions, build_pagination(page, limit, total)
