"""
Transaction service: purchase flow and payment reconciliation.

A purchase creates a pending Transaction tied to a hosted gateway session.
Gateway notifications (webhook) and user status polls both converge the
Transaction to its final status through reconcile(), which re-queries the
gateway instead of trusting notification contents and creates exactly one
Subscription per successful payment.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from careerly.core import config
from careerly.core.errors import (
    ActiveSubscriptionExists,
    InvalidSignature,
    InvalidWebhookPayload,
    PlanNotAvailable,
    PlanNotFound,
    TransactionNotFound,
    UserNotFound,
)
from careerly.db.base import utcnow
from careerly.db.models.transaction import Transaction, TransactionStatus, TERMINAL_STATUSES
from careerly.db.models.user import User
from careerly.schemas.transaction import WebhookPayload
from careerly.services.gateway import CustomerDetail, GatewayStatus, ItemDetail
from careerly.services.plan_service import get_plan_model, normalize_pagination, build_pagination, DEFAULT_PAGE_LIMIT
from careerly.services.subscription_service import activate_subscription, get_active_subscription

logger = logging.getLogger(__name__)

# Midtrans rejects item names longer than this
MAX_ITEM_NAME_LENGTH = 50


def map_gateway_status(transaction_status: str, fraud_status: str = "") -> str:
    """
    Map the gateway's transaction/fraud status vocabulary to our internal status.

    Unrecognized values stay pending; nothing unknown ever maps to success.
    """
    if transaction_status == "capture":
        # Card payments: "challenge" waits for manual review
        if fraud_status == "accept":
            return TransactionStatus.SUCCESS.value
        return TransactionStatus.PENDING.value
    if transaction_status == "settlement":
        return TransactionStatus.SUCCESS.value
    if transaction_status == "pending":
        return TransactionStatus.PENDING.value
    if transaction_status == "deny":
        return TransactionStatus.FAILED.value
    if transaction_status == "cancel":
        return TransactionStatus.CANCEL.value
    if transaction_status == "expire":
        return TransactionStatus.EXPIRED.value
    if transaction_status in ("refund", "partial_refund"):
        return TransactionStatus.FAILED.value
    return TransactionStatus.PENDING.value


def build_order_id(plan_id: str, user_id: str, now: datetime) -> str:
    """Order id shared with the gateway: PREFIX-{plan8}-{user8}-{epoch_ms}."""
    epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    return f"{config.ORDER_ID_PREFIX}-{plan_id[:8]}-{user_id[:8]}-{epoch_ms}"


def create_transaction(db: Session, user_id: str, plan_id: str, gateway, now: Optional[datetime] = None) -> Transaction:
    """
    Start a purchase of a plan.

    The gateway is always asked to charge the stored plan price. The pending
    row is inserted only after the hosted session exists, so a gateway
    failure leaves nothing behind.

    Args:
        db: Database session
        user_id: Purchasing user
        plan_id: Plan being purchased
        gateway: Payment gateway adapter
        now: Creation time (defaults to current UTC time)

    Returns:
        The new pending Transaction (session_token and redirect_url populated)

    Raises:
        PlanNotAvailable: Plan missing, inactive, deleted or free
        ActiveSubscriptionExists: User already holds an active subscription to this plan
        UserNotFound: Unknown user
        GatewayError: Hosted session creation failed
    """
    if now is None:
        now = utcnow()

    try:
        plan = get_plan_model(db, plan_id)
    except PlanNotFound:
        raise PlanNotAvailable()

    if not plan.is_purchasable:
        logger.info(f"Purchase rejected, plan not purchasable: plan_id={plan_id}, user_id={user_id}")
        raise PlanNotAvailable()

    existing = get_active_subscription(db, user_id, now)
    if existing and existing.plan_id == plan.id:
        logger.info(f"Purchase rejected, plan already active: plan_id={plan_id}, user_id={user_id}")
        raise ActiveSubscriptionExists()

    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not user:
        raise UserNotFound()

    order_id = build_order_id(plan.id, user.id, now)
    amount = int(plan.price)

    session = gateway.create_hosted_session(
        order_id=order_id,
        amount=amount,
        items=[ItemDetail(id=plan.id, name=plan.display_name[:MAX_ITEM_NAME_LENGTH], price=amount, quantity=1)],
        customer=CustomerDetail(first_name=user.name, email=user.email),
    )

    transaction = Transaction(
        user_id=user.id,
        plan_id=plan.id,
        order_id=order_id,
        gross_amount=plan.price,
        status=TransactionStatus.PENDING.value,
        session_token=session.token,
        redirect_url=session.redirect_url,
        expired_at=now + timedelta(hours=config.TRANSACTION_EXPIRY_HOURS),
        created_at=now,
        updated_at=now,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    logger.info(
        f"Transaction created: order_id={order_id}, user_id={user.id}, "
        f"plan_id={plan.id}, amount={amount}"
    )
    return transaction


def get_transaction(db: Session, user_id: str, transaction_id: str) -> Transaction:
    """
    Get a transaction owned by the user.

    Someone else's transaction is reported as not found.
    """
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.deleted_at.is_(None),
    ).first()
    if not transaction or transaction.user_id != user_id:
        raise TransactionNotFound()
    return transaction


def get_transaction_by_order_id(db: Session, order_id: str) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.order_id == order_id,
        Transaction.deleted_at.is_(None),
    ).first()
    if not transaction:
        raise TransactionNotFound()
    return transaction


def list_user_transactions(
    db: Session,
    user_id: str,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> Tuple[List[Transaction], Dict[str, int]]:
    """User's transactions, newest first, with pagination info."""
    page, limit = normalize_pagination(page, limit)
    query = db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.deleted_at.is_(None),
    )
    total = query.count()
    transactions = (
        query.order_by(Transaction.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return transactions, build_pagination(page, limit, total)


def reconcile(
    db: Session,
    transaction: Transaction,
    gateway_status: GatewayStatus,
    audit_payload: Optional[Dict] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    """
    Apply the gateway's authoritative status to a transaction.

    On success, activates a subscription unless one is already attached, and
    persists both in one commit. The transaction row is written with a
    conditional UPDATE that only matches while it is still non-terminal and
    its subscription_id is what we read; losing that race (a concurrent
    webhook or poll got there first) rolls back our work and returns the
    winner's row.
    """
    if now is None:
        now = utcnow()

    new_status = map_gateway_status(gateway_status.transaction_status, gateway_status.fraud_status)
    expected_subscription_id = transaction.subscription_id

    values = {
        Transaction.status: new_status,
        Transaction.gateway_transaction_status: gateway_status.transaction_status or None,
        Transaction.fraud_status: gateway_status.fraud_status or None,
        Transaction.updated_at: now,
    }
    if gateway_status.gateway_transaction_id:
        values[Transaction.gateway_transaction_id] = gateway_status.gateway_transaction_id
    if gateway_status.payment_type:
        values[Transaction.payment_type] = gateway_status.payment_type
    if audit_payload is not None:
        values[Transaction.gateway_raw_response] = audit_payload

    succeeded = new_status == TransactionStatus.SUCCESS.value
    if succeeded and transaction.paid_at is None:
        values[Transaction.paid_at] = now

    guard = db.query(Transaction).filter(
        Transaction.id == transaction.id,
        Transaction.status.notin_(TERMINAL_STATUSES),
    )
    if expected_subscription_id is None:
        guard = guard.filter(Transaction.subscription_id.is_(None))
    else:
        guard = guard.filter(Transaction.subscription_id == expected_subscription_id)

    try:
        if succeeded and expected_subscription_id is None:
            subscription = activate_subscription(db, transaction, now)
            values[Transaction.subscription_id] = subscription.id

        updated = guard.update(values, synchronize_session=False)
        if updated == 0:
            db.rollback()
            logger.info(f"Reconciliation superseded by a concurrent update: order_id={transaction.order_id}")
        else:
            db.commit()
    except IntegrityError:
        # Another reconciliation already took the user's active slot
        db.rollback()
        db.refresh(transaction)
        if not transaction.is_terminal:
            raise
        logger.info(f"Reconciliation lost activation race: order_id={transaction.order_id}")
        return transaction

    db.refresh(transaction)
    logger.info(
        f"Transaction reconciled: order_id={transaction.order_id}, "
        f"gateway_status={gateway_status.transaction_status}, fraud_status={gateway_status.fraud_status}, "
        f"status={transaction.status}, subscription_id={transaction.subscription_id}"
    )
    return transaction


def decode_webhook_body(raw: Union[Dict, bytes, str]) -> Dict:
    """Decode a notification body to the JSON object the gateway sent, every field kept."""
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise InvalidWebhookPayload("webhook body is not valid JSON")

    if not isinstance(raw, dict):
        raise InvalidWebhookPayload("webhook body must be a JSON object")
    return raw


def parse_webhook_payload(raw: Union[Dict, bytes, str]) -> WebhookPayload:
    """
    Decode a gateway notification into a typed payload.

    Raises:
        InvalidWebhookPayload: Not a JSON object, or no order_id
    """
    body = decode_webhook_body(raw)

    try:
        payload = WebhookPayload.model_validate(body)
    except ValidationError as e:
        raise InvalidWebhookPayload(f"malformed webhook payload: {e.error_count()} invalid fields")

    if not payload.order_id:
        raise InvalidWebhookPayload("missing order_id in webhook payload")
    return payload


def handle_webhook(db: Session, raw_payload: Union[Dict, bytes, str], gateway, now: Optional[datetime] = None) -> Transaction:
    """
    Process a gateway payment notification.

    Steps:
    1. Verify the signature when one is present (sandbox may omit it)
    2. Look up the transaction by order id
    3. Stop if it is already terminal (duplicate or late notification)
    4. Re-query the gateway for the authoritative status and reconcile

    Raises:
        InvalidWebhookPayload: Body unusable
        InvalidSignature: Present signature does not verify; nothing is written
        TransactionNotFound: Unknown order id
        GatewayError: Status re-query failed
    """
    body = decode_webhook_body(raw_payload)
    payload = parse_webhook_payload(body)
    order_id = payload.order_id

    if payload.signature_key:
        if not gateway.verify_signature(order_id, payload.status_code, payload.gross_amount, payload.signature_key):
            logger.warning(f"Webhook signature verification failed: order_id={order_id}")
            raise InvalidSignature()

    transaction = get_transaction_by_order_id(db, order_id)

    if transaction.is_terminal:
        logger.info(f"Webhook ignored, transaction already {transaction.status}: order_id={order_id}")
        return transaction

    gateway_status = gateway.query_status(order_id)
    return reconcile(db, transaction, gateway_status, audit_payload=body, now=now)


def check_transaction_status(db: Session, order_id: str, gateway, now: Optional[datetime] = None) -> Transaction:
    """
    User-triggered reconciliation: same as the webhook path minus the
    signature check.

    Raises:
        TransactionNotFound: Unknown order id
        GatewayError: Status query failed
    """
    transaction = get_transaction_by_order_id(db, order_id)

    if transaction.is_terminal:
        return transaction

    gateway_status = gateway.query_status(order_id)
    return reconcile(db, transaction, gateway_status, audit_payload=gateway_status.raw or None, now=now)
