"""
Payment gateway notifications.

Nothing in the body is trusted until the signature verifies. Not rate
limited: the gateway retries, and a dropped notification leaves an
invoice stuck.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.exceptions import AuthenticationError, ServiceUnavailableError, ValidationError
from ..core.payments import MidtransNotification, map_transaction_status, validate_signature
from ..db import get_db
from ..models import ERROR_RESPONSES, InvoiceStatus
from ..services import InvoiceService
from .common import audit

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", responses=ERROR_RESPONSES)


def _record(request: Request, status: str) -> None:
    metrics = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        metrics.record_payment_notification(status)


@router.post(
    "/midtrans",
    responses={503: {"description": "Server key not configured"}},
    summary="Midtrans payment notification",
)
def midtrans_notification(
    payload: MidtransNotification,
    request: Request,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    server_key = get_settings().payment.midtrans_server_key
    if not server_key:
        logger.error("Payment notification received but server key is not configured")
        raise ServiceUnavailableError("Payment service unavailable")

    if not validate_signature(
        payload.order_id,
        payload.status_code,
        payload.gross_amount,
        payload.signature_key,
        server_key,
    ):
        logger.warning("Invalid payment notification signature", order_id=payload.order_id)
        _record(request, "invalid_signature")
        raise AuthenticationError("Invalid signature")

    new_status = map_transaction_status(payload.transaction_status)
    if new_status is None:
        logger.warning(
            "Unknown transaction status",
            order_id=payload.order_id,
            transaction_status=payload.transaction_status,
        )
        _record(request, "unknown_status")
        return {"status": "unknown_status_handled"}

    service = InvoiceService(db)
    invoice = service.find_by_order_id(payload.order_id)
    if invoice is None:
        logger.warning("Invoice not found for payment notification", order_id=payload.order_id)
        _record(request, "invoice_not_found")
        return {"status": "invoice_not_found"}

    try:
        amount_matches = float(payload.gross_amount) == float(invoice.amount)
    except ValueError:
        amount_matches = False
    if not amount_matches:
        logger.error(
            "Payment amount mismatch",
            order_id=payload.order_id,
            expected=invoice.amount,
            received=payload.gross_amount,
        )
        _record(request, "amount_mismatch")
        raise ValidationError("Amount validation failed")

    result = service.apply_payment_notification(invoice, new_status)

    if result.changed:
        audit(
            db,
            request,
            None,
            "PAYMENT_SUCCESS" if new_status == InvoiceStatus.PAID.value else "PAYMENT_FAILED",
            "invoice",
            resource_id=invoice.id,
            old_values={"status": result.old_status, "project_status": result.old_project_status},
            new_values={
                "status": result.new_status,
                "project_status": result.new_project_status,
                "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
            },
        )
    _record(request, new_status)

    return {
        "status": "success",
        "order_id": payload.order_id,
        "invoice_id": invoice.id,
        "new_status": new_status,
    }
