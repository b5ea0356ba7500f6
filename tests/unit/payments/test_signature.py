"""
Tests for Midtrans signature verification, status mapping and charge parsing.
"""

import hashlib
import hmac
from types import SimpleNamespace

import pytest

from jasaweb.config import PaymentSettings
from jasaweb.core.exceptions import PaymentError
from jasaweb.core.payments import (
    MidtransClient,
    build_order_id,
    compute_signature,
    map_transaction_status,
    validate_signature,
)

SERVER_KEY = "SB-Mid-server-unit0123456789"

INVOICE = SimpleNamespace(id="3f2a9c1e-7b4d-4e8a-9c1f-000000000001", amount=2500000)
PROJECT = SimpleNamespace(id="proj-1", name="Website SMA Negeri 1", type="sekolah")
USER = SimpleNamespace(name="Budi Santoso", email="budi@sekolah.test", phone="081234567890")


class TestSignature:
    """HMAC-SHA512 notification signatures."""

    def test_compute_matches_hmac(self):
        expected = hmac.new(
            SERVER_KEY.encode(),
            f"INV-12002500000.00{SERVER_KEY}".encode(),
            hashlib.sha512,
        ).hexdigest()

        assert compute_signature("INV-1", "200", "2500000.00", SERVER_KEY) == expected

    def test_valid_signature(self):
        signature = compute_signature("INV-1", "200", "2500000.00", SERVER_KEY)
        assert validate_signature("INV-1", "200", "2500000.00", signature, SERVER_KEY)

    def test_tampered_amount(self):
        signature = compute_signature("INV-1", "200", "2500000.00", SERVER_KEY)
        assert not validate_signature("INV-1", "200", "1.00", signature, SERVER_KEY)

    def test_wrong_key(self):
        signature = compute_signature("INV-1", "200", "2500000.00", "another-key")
        assert not validate_signature("INV-1", "200", "2500000.00", signature, SERVER_KEY)

    def test_empty_signature_or_key(self):
        signature = compute_signature("INV-1", "200", "2500000.00", SERVER_KEY)
        assert not validate_signature("INV-1", "200", "2500000.00", "", SERVER_KEY)
        assert not validate_signature("INV-1", "200", "2500000.00", signature, "")


class TestStatusMapping:
    """Gateway transaction_status to invoice status."""

    @pytest.mark.parametrize(
        "gateway,invoice",
        [
            ("capture", "paid"),
            ("settlement", "paid"),
            ("pending", "pending"),
            ("deny", "failed"),
            ("cancel", "cancelled"),
            ("expire", "expired"),
            ("refund", "refunded"),
            ("partial_refund", "partial_refunded"),
        ],
    )
    def test_known_statuses(self, gateway, invoice):
        assert map_transaction_status(gateway) == invoice

    def test_unknown_status(self):
        assert map_transaction_status("authorize") is None


class TestOrderId:
    def test_format(self):
        order_id = build_order_id("3f2a9c1e-7b4d", now=1700000000.123)
        assert order_id == "INV-3F2A9C1E-1700000000123"


class TestChargeParsing:
    """Interpreting the gateway's charge response."""

    def test_success(self):
        body = {
            "status_code": "201",
            "order_id": "INV-3F2A9C1E-1",
            "transaction_id": "tx-1",
            "gross_amount": "2500000.00",
            "actions": [{"name": "generate-qr-code", "url": "https://api.sandbox.midtrans.com/qr"}],
        }

        result = MidtransClient.parse_charge_response(201, body, "INV-3F2A9C1E-1", INVOICE)

        assert result.qris_url == "https://api.sandbox.midtrans.com/qr"
        assert result.gross_amount == 2500000
        assert result.transaction_id == "tx-1"

    def test_http_error(self):
        with pytest.raises(PaymentError) as exc_info:
            MidtransClient.parse_charge_response(401, {"status_message": "Unauthorized"}, "o", INVOICE)
        assert exc_info.value.message == "Payment gateway rejected the charge"
        assert exc_info.value.status_code == 502

    def test_gateway_status_error(self):
        with pytest.raises(PaymentError):
            MidtransClient.parse_charge_response(200, {"status_code": "406"}, "o", INVOICE)

    def test_missing_qris_url(self):
        with pytest.raises(PaymentError) as exc_info:
            MidtransClient.parse_charge_response(200, {"status_code": "201", "actions": []}, "o", INVOICE)
        assert exc_info.value.message == "QRIS URL not found in payment response"

    def test_unparseable_amount_falls_back_to_invoice(self):
        body = {"status_code": "201", "gross_amount": "n/a", "actions": [{"url": "https://qr"}]}

        result = MidtransClient.parse_charge_response(201, body, "o", INVOICE)

        assert result.gross_amount == 2500000
        assert result.order_id == "o"


class TestChargePayload:
    """Request body sent to the gateway."""

    def test_payload(self):
        client = MidtransClient(PaymentSettings(midtrans_server_key=SERVER_KEY))

        payload = client.build_charge_payload(INVOICE, PROJECT, USER, "INV-1")

        assert payload["payment_type"] == "qris"
        assert payload["transaction_details"] == {"order_id": "INV-1", "gross_amount": 2500000}
        assert payload["customer_details"]["first_name"] == "Budi"
        assert payload["customer_details"]["last_name"] == "Santoso"
        assert payload["item_details"][0]["name"] == "SEKOLAH - Website SMA Negeri 1"
        assert payload["custom_field2"] == INVOICE.id

    def test_configured(self):
        assert MidtransClient(PaymentSettings(midtrans_server_key=SERVER_KEY)).configured
        assert not MidtransClient(PaymentSettings(midtrans_server_key="")).configured

    @pytest.mark.asyncio
    async def test_unconfigured_charge_refused(self):
        client = MidtransClient(PaymentSettings(midtrans_server_key=""))

        with pytest.raises(PaymentError):
            await client.charge_qris(INVOICE, PROJECT, USER)
