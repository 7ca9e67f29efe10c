"""
Purchase and payment reconciliation endpoints.

- POST /transactions: start a purchase (hosted payment page)
- GET /transactions[/{id}]: the caller's own transactions
- GET /transactions/{id}/status: reconcile against the gateway on demand
- POST /transactions/webhook: gateway payment notifications (unauthenticated)
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from careerly.core.auth_dependency import get_current_user_obj
from careerly.core.errors import (
    ActiveSubscriptionExists,
    GatewayError,
    InvalidSignature,
    InvalidWebhookPayload,
    PlanNotAvailable,
    TransactionNotFound,
    UserNotFound,
)
from careerly.db.models.user import User
from careerly.db.session import get_db
from careerly.schemas.transaction import (
    CreateTransactionRequest,
    CreateTransactionResponse,
    TransactionListResponse,
    TransactionRead,
    WebhookAck,
)
from careerly.services import transaction_service
from careerly.services.gateway import get_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
):
    """
    Receive a gateway payment notification.

    Acknowledges with 200 for anything the gateway should not retry, including
    unknown orders and internal failures. A bad signature is 401 and an
    unreadable body is 400.
    """
    payload = await request.body()

    try:
        # Blocking work: database writes and the gateway status re-query
        transaction = await run_in_threadpool(transaction_service.handle_webhook, db, payload, gateway)
    except InvalidWebhookPayload as e:
        logger.warning(f"Unparsable webhook payload: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except InvalidSignature as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except TransactionNotFound:
        logger.info("Webhook for unknown order ignored")
        return WebhookAck(status="ignored", message="transaction not found")
    except Exception:
        # Gateway, database or unexpected failure: acknowledged so the gateway stops retrying
        logger.exception("Webhook processing failed")
        return WebhookAck(status="error", message="processing failed")

    return WebhookAck(status="ok", message=f"transaction {transaction.status}")


@router.post("", response_model=CreateTransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: CreateTransactionRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
):
    """
    Start purchasing a plan.

    The amount charged is always the stored plan price. Returns the pending
    transaction with the hosted payment page token and URL.
    """
    try:
        transaction = transaction_service.create_transaction(db, user.id, data.plan_id, gateway)
    except PlanNotAvailable as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ActiveSubscriptionExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return {
        "transaction": transaction,
        "session_token": transaction.session_token,
        "redirect_url": transaction.redirect_url,
    }


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    page: int = Query(1, description="Page number (1-based)"),
    limit: int = Query(10, description="Page size (max 100)"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    transactions, pagination = transaction_service.list_user_transactions(db, user.id, page=page, limit=limit)
    return {"transactions": transactions, "pagination": pagination}


@router.get("/{transaction_id}", response_model=TransactionRead)
def get_transaction(
    transaction_id: str,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    try:
        return transaction_service.get_transaction(db, user.id, transaction_id)
    except TransactionNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get("/{transaction_id}/status", response_model=TransactionRead)
def check_transaction_status(
    transaction_id: str,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
):
    """Reconcile the transaction against the gateway and return it."""
    try:
        transaction = transaction_service.get_transaction(db, user.id, transaction_id)
        return transaction_service.check_transaction_status(db, transaction.order_id, gateway)
    except TransactionNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
