"""
Quota enforcement dependency for paid features.

This module provides require_quota() dependency that:
1. Authenticates the user
2. Checks current month usage against the active plan's limit
3. Records usage if allowed
4. Raises HTTPException if there is no subscription or the quota is used up

Feature routes add it as a dependency so the allowance is spent before
the feature itself runs.
"""
import logging
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from careerly.db.session import get_db
from careerly.db.models.user import User
from careerly.core.auth_dependency import get_current_user_obj
from careerly.core.errors import NoActiveSubscription, QuotaExceeded
from careerly.core.plan_limits import parse_feature
from careerly.services.quota_service import QuotaStatus, check_and_consume

logger = logging.getLogger(__name__)


def no_subscription_exception(e: NoActiveSubscription) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail={
            "error": "no_active_subscription",
            "message": e.message,
        },
    )


def quota_exceeded_exception(e: QuotaExceeded) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": "quota_exceeded",
            "feature": e.feature,
            "plan": e.plan,
            "limit": e.limit,
            "used": e.used,
            "remaining": 0,
            "message": e.message,
        },
    )


def enforce_quota(db: Session, user: User, feature) -> QuotaStatus:
    """Run check_and_consume and translate its domain errors to HTTP."""
    try:
        return check_and_consume(db, user.id, feature)
    except NoActiveSubscription as e:
        raise no_subscription_exception(e)
    except QuotaExceeded as e:
        raise quota_exceeded_exception(e)


def require_quota(feature: str):
    """
    Dependency that enforces quota limits before allowing feature usage.

    Args:
        feature: Feature name (resume, ats_check, interview)

    Returns:
        User object if quota allows

    Raises:
        HTTPException 402: No active subscription
        HTTPException 429: Quota exceeded with structured error detail
        HTTPException 401: Unauthorized
    """
    # Fail at import time on a typo rather than on the first request
    feature = parse_feature(feature)

    def quota_checker(
        user: User = Depends(get_current_user_obj),
        db: Session = Depends(get_db)
    ) -> User:
        quota = enforce_quota(db, user, feature)
        logger.debug(
            f"Quota check passed: user_id={user.id}, feature={feature.value}, "
            f"remaining={quota.remaining if not quota.unlimited else 'unlimited'}"
        )
        return user

    return quota_checker
