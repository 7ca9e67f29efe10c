"""
Midtrans payment gateway adapter.

Wraps the two gateway endpoints the billing core needs:
- Snap: creates a hosted payment page for an order
- Core API: returns the authoritative status of an order

plus verification of notification signatures.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from careerly.core import config
from careerly.core.errors import GatewayError
from careerly.core.logging_config import sanitize_log_data

logger = logging.getLogger(__name__)

SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1/transactions"
SANDBOX_CORE_URL = "https://api.sandbox.midtrans.com/v2"
PRODUCTION_CORE_URL = "https://api.midtrans.com/v2"


@dataclass
class ItemDetail:
    id: str
    name: str
    price: int
    quantity: int = 1


@dataclass
class CustomerDetail:
    first_name: str
    email: str
    last_name: str = ""
    phone: str = ""


@dataclass
class HostedSession:
    token: str
    redirect_url: str


@dataclass
class GatewayStatus:
    """Authoritative status of one order as reported by the Core API."""
    order_id: str
    transaction_status: str
    fraud_status: str = ""
    gateway_transaction_id: str = ""
    payment_type: str = ""
    gross_amount: str = ""
    status_code: str = ""
    status_message: str = ""
    transaction_time: str = ""
    settlement_time: str = ""
    raw: Dict = field(default_factory=dict)

    @classmethod
    def from_response(cls, data: Dict) -> "GatewayStatus":
        return cls(
            order_id=str(data.get("order_id") or ""),
            transaction_status=str(data.get("transaction_status") or ""),
            fraud_status=str(data.get("fraud_status") or ""),
            gateway_transaction_id=str(data.get("transaction_id") or ""),
            payment_type=str(data.get("payment_type") or ""),
            gross_amount=str(data.get("gross_amount") or ""),
            status_code=str(data.get("status_code") or ""),
            status_message=str(data.get("status_message") or ""),
            transaction_time=str(data.get("transaction_time") or ""),
            settlement_time=str(data.get("settlement_time") or ""),
            raw=dict(data),
        )


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """Midtrans notification signature: SHA512(order_id + status_code + gross_amount + server_key)."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


class MidtransGateway:
    """Payment gateway client for Midtrans Snap and Core API."""

    def __init__(
        self,
        server_key: str,
        client_key: str = "",
        is_production: bool = False,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.server_key = server_key
        self.client_key = client_key
        self.is_production = is_production
        self.timeout = timeout
        self.http = session or requests.Session()
        self.snap_url = PRODUCTION_SNAP_URL if is_production else SANDBOX_SNAP_URL
        self.core_url = PRODUCTION_CORE_URL if is_production else SANDBOX_CORE_URL

    @property
    def is_sandbox(self) -> bool:
        return not self.is_production

    def _request(self, method: str, url: str, **kwargs) -> Dict:
        try:
            res = self.http.request(
                method,
                url,
                auth=(self.server_key, ""),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=self.timeout,
                **kwargs,
            )
            res.raise_for_status()
            return res.json()
        except requests.RequestException as e:
            logger.error(f"Midtrans request failed: {method} {url}: {e}")
            raise GatewayError(f"Midtrans request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Midtrans returned a non-JSON response: {method} {url}")
            raise GatewayError("Midtrans returned a malformed response") from e

    def create_hosted_session(
        self,
        order_id: str,
        amount: int,
        items: List[ItemDetail],
        customer: CustomerDetail,
    ) -> HostedSession:
        """
        Create a Snap hosted payment page for an order.

        Args:
            order_id: Idempotency key shared with the gateway
            amount: Gross amount in whole currency units
            items: Line items (their total must equal amount)
            customer: Customer details shown on the payment page

        Returns:
            HostedSession with the Snap token and redirect URL

        Raises:
            GatewayError: If the order id is empty or the gateway call fails
        """
        if not order_id:
            raise GatewayError("order id is required")

        body = {
            "transaction_details": {"order_id": order_id, "gross_amount": int(amount)},
            "item_details": [
                {"id": item.id, "name": item.name, "price": int(item.price), "quantity": item.quantity}
                for item in items
            ],
            "customer_details": {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
                "phone": customer.phone,
            },
        }

        data = self._request("POST", self.snap_url, json=body)
        token = data.get("token")
        redirect_url = data.get("redirect_url")
        if not token or not redirect_url:
            logger.error(f"Snap response missing token: {sanitize_log_data(data)}")
            raise GatewayError("Midtrans did not return a payment token")

        logger.info(f"Created Snap session: order_id={order_id}, amount={amount}")
        return HostedSession(token=token, redirect_url=redirect_url)

    def query_status(self, order_id: str) -> GatewayStatus:
        """
        Fetch the authoritative status of an order from the Core API.

        Raises:
            GatewayError: If the order id is empty, the gateway is unreachable,
                or it reports the order as unknown
        """
        if not order_id:
            raise GatewayError("order id is required")

        data = self._request("GET", f"{self.core_url}/{order_id}/status")

        # Errors come back in-band with HTTP 200 and no transaction_status
        # (e.g. 404 "Transaction doesn't exist"); 407 still carries "expire".
        status_code = str(data.get("status_code") or "")
        if not data.get("transaction_status"):
            logger.warning(f"Midtrans status check rejected: order_id={order_id}, status_code={status_code}")
            raise GatewayError(f"Midtrans status check failed: {data.get('status_message') or status_code}")

        return GatewayStatus.from_response(data)

    def verify_signature(self, order_id: str, status_code: str, gross_amount: str, signature: str) -> bool:
        """Check a notification signature against the configured server key."""
        expected = compute_signature(order_id, status_code, gross_amount, self.server_key)
        # Bytes, since compare_digest rejects non-ASCII str
        return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))


def get_gateway() -> MidtransGateway:
    """Gateway dependency built from configuration."""
    if not config.MIDTRANS_SERVER_KEY:
        logger.warning("MIDTRANS_SERVER_KEY not configured - gateway calls will be rejected")
    return MidtransGateway(
        server_key=config.MIDTRANS_SERVER_KEY,
        client_key=config.MIDTRANS_CLIENT_KEY,
        is_production=config.MIDTRANS_IS_PRODUCTION,
        timeout=config.MIDTRANS_TIMEOUT_SECONDS,
    )
