"""
Transaction model: one payment attempt against the gateway.
"""
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, JSON, Index
from sqlalchemy.orm import relationship
from careerly.db.base import Base, new_id, utcnow


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCEL = "cancel"


# Reconciliation never reprocesses these
TERMINAL_STATUSES = (TransactionStatus.SUCCESS.value, TransactionStatus.FAILED.value)


class Transaction(Base):
    """
    Payment attempt keyed by a globally unique order_id shared with the gateway.

    Inserted once as pending by the purchase request; every later change goes
    through reconciliation.
    """
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=False)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=True)

    order_id = Column(String, unique=True, nullable=False, index=True)
    gross_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default=TransactionStatus.PENDING.value, nullable=False)

    # Gateway-reported fields
    gateway_transaction_id = Column(String, nullable=True)
    gateway_transaction_status = Column(String, nullable=True)
    fraud_status = Column(String, nullable=True)
    payment_type = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    session_token = Column(String, nullable=True)
    redirect_url = Column(String, nullable=True)
    gateway_raw_response = Column(JSON, nullable=True)  # audit copy of the last notification

    paid_at = Column(DateTime, nullable=True)
    expired_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    plan = relationship("Plan")

    __table_args__ = (
        Index("idx_transactions_user_created", "user_id", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<Transaction(order_id='{self.order_id}', status='{self.status}')>"
