"""
Midtrans payment gateway client and webhook verification.

Charges are QRIS only. Notifications are trusted only after their
signature verifies against the configured server key.
"""

import asyncio
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp
import structlog
from pydantic import BaseModel, Field

from ..config import PaymentSettings, get_settings
from .exceptions import PaymentError

logger = structlog.get_logger(__name__)

# Gateway transaction_status -> invoice status
STATUS_MAP: Dict[str, str] = {
    "capture": "paid",
    "settlement": "paid",
    "pending": "pending",
    "deny": "failed",
    "cancel": "cancelled",
    "expire": "expired",
    "refund": "refunded",
    "partial_refund": "partial_refunded",
}


class MidtransNotification(BaseModel):
    """Webhook body as posted by the gateway (snake_case on the wire)."""

    order_id: str = Field(..., min_length=1)
    status_code: str = Field(..., min_length=1)
    gross_amount: str = Field(..., min_length=1)
    signature_key: str = Field(..., min_length=1)
    transaction_status: str = Field(..., min_length=1)
    payment_type: Optional[str] = None
    transaction_id: Optional[str] = None
    fraud_status: Optional[str] = None


@dataclass
class ChargeResult:
    order_id: str
    qris_url: str
    gross_amount: int
    transaction_id: Optional[str]
    status_code: str


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    message = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hmac.new(server_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha512).hexdigest()


def validate_signature(
    order_id: str,
    status_code: str,
    gross_amount: str,
    signature: str,
    server_key: str,
) -> bool:
    """HMAC-SHA512 over order_id+status_code+gross_amount+server_key, compared in constant time."""
    if not signature or not server_key:
        return False
    expected = compute_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))


def map_transaction_status(transaction_status: str) -> Optional[str]:
    return STATUS_MAP.get(transaction_status)


def build_order_id(invoice_id: str, now: Optional[float] = None) -> str:
    """INV-<first 8 of invoice id>-<epoch millis>"""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"INV-{invoice_id[:8].upper()}-{millis}"


def _split_name(name: str) -> Tuple[str, str]:
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


class MidtransClient:
    """Thin async client over the Midtrans Core API."""

    def __init__(self, settings: PaymentSettings) -> None:
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.midtrans_server_key)

    def build_charge_payload(self, invoice: Any, project: Any, user: Any, order_id: str) -> Dict[str, Any]:
        first_name, last_name = _split_name(user.name or project.name)
        return {
            "payment_type": "qris",
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": invoice.amount,
            },
            "customer_details": {
                "email": user.email,
                "first_name": first_name,
                "last_name": last_name,
                "phone": user.phone,
            },
            "item_details": [
                {
                    "id": project.id,
                    "name": f"{project.type.upper()} - {project.name}"[:50],
                    "price": invoice.amount,
                    "quantity": 1,
                    "category": project.type,
                }
            ],
            "qris": {"acquirer": "gopay"},
            "custom_field1": project.id,
            "custom_field2": invoice.id,
        }

    async def charge_qris(self, invoice: Any, project: Any, user: Any) -> ChargeResult:
        """
        Create a QRIS charge for the invoice.

        Raises PaymentError when the gateway is not configured, answers
        with a non-2xx status, or returns no QRIS action URL.
        """
        if not self.configured:
            raise PaymentError("Payment gateway is not configured")

        order_id = build_order_id(invoice.id)
        payload = self.build_charge_payload(invoice, project, user, order_id)
        url = f"{self.settings.base_url}/v2/charge"

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
            ) as session:
                async with session.post(
                    url,
                    json=payload,
                    auth=aiohttp.BasicAuth(self.settings.midtrans_server_key, ""),
                    headers={"Accept": "application/json"},
                ) as response:
                    body = await response.json(content_type=None)
                    http_status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                "Payment gateway request failed",
                invoice_id=invoice.id,
                order_id=order_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PaymentError("Payment gateway unreachable") from e

        return self.parse_charge_response(http_status, body or {}, order_id, invoice)

    @staticmethod
    def parse_charge_response(http_status: int, body: Dict[str, Any], order_id: str, invoice: Any) -> ChargeResult:
        status_code = str(body.get("status_code", http_status))
        if http_status >= 300 or not status_code.startswith("2"):
            logger.warning(
                "Payment gateway rejected charge",
                invoice_id=invoice.id,
                order_id=order_id,
                http_status=http_status,
                status_code=status_code,
                status_message=body.get("status_message"),
            )
            raise PaymentError(
                "Payment gateway rejected the charge",
                details={"status_code": status_code, "status_message": body.get("status_message")},
            )

        actions = body.get("actions") or []
        qris_url = actions[0].get("url") if actions and isinstance(actions[0], dict) else None
        if not qris_url:
            raise PaymentError("QRIS URL not found in payment response")

        gross_amount = body.get("gross_amount")
        try:
            amount = int(float(gross_amount)) if gross_amount is not None else invoice.amount
        except (TypeError, ValueError):
            amount = invoice.amount

        logger.info("QRIS charge created", invoice_id=invoice.id, order_id=body.get("order_id", order_id))

        return ChargeResult(
            order_id=body.get("order_id") or order_id,
            qris_url=qris_url,
            gross_amount=amount,
            transaction_id=body.get("transaction_id"),
            status_code=status_code,
        )


def get_midtrans_client() -> MidtransClient:
    """Route dependency; tests override it with a fake gateway."""
    return MidtransClient(get_settings().payment)
