"""
Integration tests for the client portal: projects, invoices, payments and tickets.
"""

from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from jasaweb.core.exceptions import PaymentError
from jasaweb.core.payments import ChargeResult, get_midtrans_client
from jasaweb.db.tables import PricingPlan, User


class FakeGateway:
    """Stands in for the Midtrans client."""

    def __init__(self, configured: bool = True, error: Optional[Exception] = None) -> None:
        self.configured = configured
        self.error = error
        self.charges: List[Any] = []

    async def charge_qris(self, invoice, project, user) -> ChargeResult:
        if self.error is not None:
            raise self.error
        self.charges.append((invoice.id, project.id, user.email))
        return ChargeResult(
            order_id=f"INV-{invoice.id[:8].upper()}-1700000000000",
            qris_url="https://api.sandbox.midtrans.com/v2/qris/tx-1/qr-code",
            gross_amount=invoice.amount,
            transaction_id="tx-1",
            status_code="201",
        )


@pytest.fixture
def gateway(app: FastAPI) -> FakeGateway:
    fake = FakeGateway()
    app.dependency_overrides[get_midtrans_client] = lambda: fake
    return fake


def create_project(client: TestClient, headers: Dict[str, str], project_type: str = "sekolah") -> Dict[str, Any]:
    response = client.post(
        "/api/client/projects", json={"name": "Website SMA Negeri 1", "type": project_type}, headers=headers
    )
    assert response.status_code == 201
    return response.json()


def create_invoice(client: TestClient, headers: Dict[str, str], project_id: str):
    return client.post("/api/client/invoices", json={"projectId": project_id}, headers=headers)


class TestProfile:
    def test_read_and_update(self, test_client: TestClient, client_headers: Dict[str, str], client_user: User):
        profile = test_client.get("/api/client/profile", headers=client_headers).json()
        assert profile["email"] == client_user.email

        updated = test_client.put(
            "/api/client/profile", json={"name": "Budi S.", "phone": "081234567890"}, headers=client_headers
        )
        assert updated.json()["phone"] == "081234567890"

    def test_change_password(self, test_client: TestClient, client_headers: Dict[str, str], client_user: User):
        wrong = test_client.put(
            "/api/client/password",
            json={"currentPassword": "salah-sandi", "newPassword": "baru12345"},
            headers=client_headers,
        )
        assert wrong.status_code == 400
        assert wrong.json()["message"] == "Current password is incorrect"

        same = test_client.put(
            "/api/client/password",
            json={"currentPassword": "rahasia123", "newPassword": "rahasia123"},
            headers=client_headers,
        )
        assert same.status_code == 400

        changed = test_client.put(
            "/api/client/password",
            json={"currentPassword": "rahasia123", "newPassword": "baru12345"},
            headers=client_headers,
        )
        assert changed.json()["message"] == "Password changed"

        login = test_client.post("/api/auth/login", json={"email": client_user.email, "password": "baru12345"})
        assert login.status_code == 200

    def test_admin_has_no_client_profile_restriction(self, test_client: TestClient, admin_headers: Dict[str, str]):
        assert test_client.get("/api/client/profile", headers=admin_headers).status_code == 200

    def test_anonymous(self, test_client: TestClient):
        assert test_client.get("/api/client/profile").status_code == 401


class TestProjects:
    """Ordering and viewing own projects."""

    def test_new_project_awaits_payment(self, test_client: TestClient, client_headers: Dict[str, str]):
        project = create_project(test_client, client_headers)

        assert project["status"] == "pending_payment"
        listing = test_client.get("/api/client/projects", headers=client_headers).json()
        assert listing["pagination"]["total"] == 1

    def test_invalid_type(self, test_client: TestClient, client_headers: Dict[str, str]):
        response = test_client.post(
            "/api/client/projects", json={"name": "Toko", "type": "toko"}, headers=client_headers
        )
        assert response.status_code == 400

    def test_other_users_project_forbidden(
        self, test_client: TestClient, client_headers: Dict[str, str], other_client: User, auth_headers
    ):
        project = create_project(test_client, client_headers)

        response = test_client.get(f"/api/client/projects/{project['id']}", headers=auth_headers(other_client))

        assert response.status_code == 403
        assert test_client.get("/api/client/projects", headers=auth_headers(other_client)).json()["data"] == []

    def test_listing_filter(self, test_client: TestClient, client_headers: Dict[str, str]):
        create_project(test_client, client_headers, "sekolah")
        create_project(test_client, client_headers, "berita")

        body = test_client.get("/api/client/projects?type=berita", headers=client_headers).json()

        assert body["pagination"]["total"] == 1
        assert body["data"][0]["type"] == "berita"


class TestInvoices:
    """Invoice creation from the pricing plan."""

    def test_create_and_duplicate(
        self, test_client: TestClient, client_headers: Dict[str, str], pricing_plans: List[PricingPlan]
    ):
        project = create_project(test_client, client_headers)

        first = create_invoice(test_client, client_headers, project["id"])
        second = create_invoice(test_client, client_headers, project["id"])

        assert first.status_code == 201
        assert first.json()["message"] == "Invoice created"
        assert first.json()["invoice"]["amount"] == 2500000
        assert first.json()["invoice"]["status"] == "unpaid"
        assert second.status_code == 200
        assert second.json()["duplicate"] is True
        assert second.json()["invoice"]["id"] == first.json()["invoice"]["id"]

    def test_no_plan_for_type(self, test_client: TestClient, client_headers: Dict[str, str]):
        project = create_project(test_client, client_headers, "company")

        response = create_invoice(test_client, client_headers, project["id"])

        assert response.status_code == 400

    def test_invoice_ownership(
        self,
        test_client: TestClient,
        client_headers: Dict[str, str],
        other_client: User,
        auth_headers,
        pricing_plans: List[PricingPlan],
    ):
        project = create_project(test_client, client_headers)
        invoice = create_invoice(test_client, client_headers, project["id"]).json()["invoice"]

        own = test_client.get(f"/api/client/invoices/{invoice['id']}", headers=client_headers)
        foreign = test_client.get(f"/api/client/invoices/{invoice['id']}", headers=auth_headers(other_client))

        assert own.status_code == 200
        assert own.json()["project"]["name"] == "Website SMA Negeri 1"
        assert foreign.status_code == 403


class TestPayment:
    """QRIS payment initiation through the gateway."""

    @pytest.fixture
    def invoice(self, test_client: TestClient, client_headers: Dict[str, str], pricing_plans: List[PricingPlan]):
        project = create_project(test_client, client_headers)
        return create_invoice(test_client, client_headers, project["id"]).json()["invoice"]

    def test_payment_returns_qris(
        self, test_client: TestClient, client_headers: Dict[str, str], gateway: FakeGateway, invoice
    ):
        response = test_client.post("/api/client/payment", json={"invoiceId": invoice["id"]}, headers=client_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["qrisUrl"].startswith("https://api.sandbox.midtrans.com/")
        assert body["amount"] == 2500000
        assert body["status"] == "unpaid"
        assert gateway.charges[0][2] == "budi@sekolah.test"

        stored = test_client.get(f"/api/client/invoices/{invoice['id']}", headers=client_headers).json()
        assert stored["midtransOrderId"] == body["orderId"]

    def test_second_payment_rejected(
        self, test_client: TestClient, client_headers: Dict[str, str], gateway: FakeGateway, invoice
    ):
        test_client.post("/api/client/payment", json={"invoiceId": invoice["id"]}, headers=client_headers)

        response = test_client.post("/api/client/payment", json={"invoiceId": invoice["id"]}, headers=client_headers)

        assert response.status_code == 400
        assert len(gateway.charges) == 1

    def test_foreign_invoice(
        self, test_client: TestClient, other_client: User, auth_headers, gateway: FakeGateway, invoice
    ):
        response = test_client.post(
            "/api/client/payment", json={"invoiceId": invoice["id"]}, headers=auth_headers(other_client)
        )

        assert response.status_code == 404
        assert gateway.charges == []

    def test_gateway_not_configured(
        self, app: FastAPI, test_client: TestClient, client_headers: Dict[str, str], invoice
    ):
        app.dependency_overrides[get_midtrans_client] = lambda: FakeGateway(configured=False)

        response = test_client.post("/api/client/payment", json={"invoiceId": invoice["id"]}, headers=client_headers)

        assert response.status_code == 503

    def test_gateway_failure(self, app: FastAPI, test_client: TestClient, client_headers: Dict[str, str], invoice):
        app.dependency_overrides[get_midtrans_client] = lambda: FakeGateway(
            error=PaymentError("Payment gateway unreachable")
        )

        response = test_client.post("/api/client/payment", json={"invoiceId": invoice["id"]}, headers=client_headers)

        assert response.status_code == 502
        assert response.json()["error"] == "payment_error"
        stored = test_client.get(f"/api/client/invoices/{invoice['id']}", headers=client_headers).json()
        assert stored["midtransOrderId"] is None


class TestTickets:
    def test_open_and_list(self, test_client: TestClient, client_headers: Dict[str, str]):
        created = test_client.post(
            "/api/client/tickets",
            json={"title": "Tidak bisa login", "description": "Muncul error 500"},
            headers=client_headers,
        )

        assert created.status_code == 201
        assert created.json()["status"] == "open"
        listing = test_client.get("/api/client/tickets?status=open", headers=client_headers).json()
        assert listing["pagination"]["total"] == 1

    def test_short_title(self, test_client: TestClient, client_headers: Dict[str, str]):
        response = test_client.post(
            "/api/client/tickets", json={"title": "x", "description": "y"}, headers=client_headers
        )
        assert response.status_code == 400


class TestDashboard:
    """Client dashboard widgets."""

    def test_stats(self, test_client: TestClient, client_headers: Dict[str, str], pricing_plans: List[PricingPlan]):
        project = create_project(test_client, client_headers)
        create_invoice(test_client, client_headers, project["id"])

        stats = test_client.get("/dashboard/stats", headers=client_headers).json()

        assert stats["totalProjects"] == 1
        assert stats["unpaidInvoices"] == 1
        assert stats["invoices"]["unpaidAmount"] == 2500000

    def test_projects_overview(self, test_client: TestClient, client_headers: Dict[str, str]):
        create_project(test_client, client_headers)

        body = test_client.get("/dashboard/projects-overview?limit=3", headers=client_headers).json()

        assert body["data"][0]["statusLabel"] == "Menunggu Bayar"

    def test_limit_bounds(self, test_client: TestClient, client_headers: Dict[str, str]):
        assert test_client.get("/dashboard/projects-overview?limit=0", headers=client_headers).status_code == 400

    def test_anonymous(self, test_client: TestClient):
        assert test_client.get("/dashboard/stats").status_code == 401
