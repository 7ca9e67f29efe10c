"""
Pydantic schemas for transactions and gateway notifications.
"""
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field

from careerly.schemas.plan import PlanRead, Pagination


class CreateTransactionRequest(BaseModel):
    """
    Purchase request. Only the plan is accepted; the amount always comes
    from the stored plan price.
    """
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"plan_id": "3f1c2a9e-7d7b-4c8e-9a51-2f0d6c1b9e10"}},
    )

    plan_id: str = Field(..., min_length=1, description="Plan to purchase")


class TransactionRead(BaseModel):
    """Transaction as exposed to its owner. Gateway internals stay hidden."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    plan_id: str
    subscription_id: Optional[str] = None
    order_id: str
    gross_amount: Decimal
    payment_type: Optional[str] = None
    payment_method: Optional[str] = None
    status: str
    redirect_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    plan: Optional[PlanRead] = None


class CreateTransactionResponse(BaseModel):
    transaction: TransactionRead
    session_token: str = Field(..., description="Hosted payment page token")
    redirect_url: str = Field(..., description="Hosted payment page URL")


class TransactionListResponse(BaseModel):
    transactions: List[TransactionRead]
    pagination: Pagination


class WebhookPayload(BaseModel):
    """
    Gateway payment notification.

    Decoded leniently: unknown fields are ignored and missing ones default
    to empty strings. Only order_id is required to do anything useful.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    order_id: str = ""
    status_code: str = ""
    gross_amount: str = ""
    signature_key: str = ""
    transaction_status: str = ""
    fraud_status: str = ""
    payment_type: str = ""
    transaction_id: str = ""


class WebhookAck(BaseModel):
    status: str
    message: Optional[str] = None
