"""
Domain errors raised by the service layer.

Routes translate these into HTTP responses; nothing below the service
boundary should surface raw storage or HTTP client exceptions to callers.
"""
from typing import Optional


class CareerlyError(Exception):
    """Base class for all domain errors."""

    message = "careerly error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(CareerlyError):
    message = "resource not found"


class UserNotFound(NotFoundError):
    message = "user not found"


class PlanNotFound(NotFoundError):
    message = "plan not found"


class TransactionNotFound(NotFoundError):
    message = "transaction not found"


class PlanNotAvailable(CareerlyError):
    message = "plan is not available for purchase"


class PlanNameExists(CareerlyError):
    message = "plan name already exists"


class InvalidPlanData(CareerlyError):
    message = "invalid plan data"


class ActiveSubscriptionExists(CareerlyError):
    message = "user already has an active subscription for this plan"


class NoActiveSubscription(CareerlyError):
    message = "no active subscription found"


class QuotaExceeded(CareerlyError):
    """Monthly allowance for a feature is used up."""

    message = "quota exceeded for this feature"

    def __init__(self, feature: str, limit: int, used: int, plan: Optional[str] = None):
        super().__init__(f"{feature} quota exceeded for this month ({used}/{limit})")
        self.feature = feature
        self.limit = limit
        self.used = used
        self.plan = plan


class InvalidSignature(CareerlyError):
    message = "invalid webhook signature"


class InvalidWebhookPayload(CareerlyError):
    message = "invalid webhook payload"


class GatewayError(CareerlyError):
    """The payment gateway could not be reached or returned an unusable response."""

    message = "payment gateway request failed"
