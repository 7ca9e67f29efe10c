"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.
"""
from careerly.db.models.user import User
from careerly.db.models.plan import Plan
from careerly.db.models.subscription import Subscription, SubscriptionStatus
from careerly.db.models.usage import Usage
from careerly.db.models.transaction import Transaction, TransactionStatus, TERMINAL_STATUSES

__all__ = [
    "User",
    "Plan",
    "Subscription",
    "SubscriptionStatus",
    "Usage",
    "Transaction",
    "TransactionStatus",
    "TERMINAL_STATUSES",
]
