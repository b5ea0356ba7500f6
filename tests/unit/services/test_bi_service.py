"""
Tests for the analytics aggregates.
"""

from datetime import datetime, timezone
from typing import List

import pytest
from sqlalchemy.orm import Session

from jasaweb.core.exceptions import ValidationError
from jasaweb.db.tables import PricingPlan, User
from jasaweb.models import ProjectCreate
from jasaweb.services import BusinessIntelligenceService, InvoiceService, ProjectService
from jasaweb.services.bi import period_key


def pay_project(session: Session, user: User, name: str, project_type: str) -> None:
    project = ProjectService(session).create_for_user(user.id, ProjectCreate(name=name, type=project_type))
    service = InvoiceService(session)
    invoice = service.create_for_project(project.id, user.id).invoice
    service.apply_payment_notification(invoice, "paid")


@pytest.fixture
def paid_projects(
    db_session: Session, client_user: User, other_client: User, pricing_plans: List[PricingPlan]
) -> None:
    pay_project(db_session, client_user, "SMA 1", "sekolah")
    pay_project(db_session, client_user, "Portal", "berita")
    # An unpaid project for the other client
    ProjectService(db_session).create_for_user(other_client.id, ProjectCreate(name="PT Maju", type="company"))


class TestBusinessIntelligence:
    """Revenue, growth and project aggregates."""

    def test_revenue(self, db_session: Session, paid_projects):
        revenue = BusinessIntelligenceService(db_session).revenue_analytics("monthly")

        assert revenue["totalRevenue"] == 5_500_000
        assert sum(row["amount"] for row in revenue["revenueByPeriod"]) == 5_500_000
        assert revenue["averageRevenuePerUser"] == 2_750_000
        by_type = {row["type"]: row for row in revenue["revenueByProjectType"]}
        assert by_type["berita"]["amount"] == 3_000_000
        assert sum(row["percentage"] for row in by_type.values()) == pytest.approx(100)

    def test_invalid_period(self, db_session: Session):
        with pytest.raises(ValidationError):
            BusinessIntelligenceService(db_session).revenue_analytics("weekly")

    def test_user_growth(self, db_session: Session, paid_projects):
        growth = BusinessIntelligenceService(db_session).user_growth("daily")

        assert growth["totalUsers"] == 2
        assert sum(row["count"] for row in growth["newUsersByPeriod"]) == 2
        assert growth["activeUsers"] == 2

    def test_project_analytics(self, db_session: Session, paid_projects):
        projects = BusinessIntelligenceService(db_session).project_analytics()

        assert projects["totalProjects"] == 3
        statuses = {row["status"]: row["count"] for row in projects["projectsByStatus"]}
        assert statuses == {"in_progress": 2, "pending_payment": 1}
        # One of two users has paid
        assert projects["conversionRate"] == 50

    def test_empty_database(self, db_session: Session):
        service = BusinessIntelligenceService(db_session)

        assert service.revenue_analytics()["averageRevenuePerUser"] == 0
        assert service.project_analytics()["conversionRate"] == 0

    def test_summary(self, db_session: Session, paid_projects):
        fixed = datetime(2024, 6, 1, tzinfo=timezone.utc)
        summary = BusinessIntelligenceService(db_session, clock=lambda: fixed).summary()

        assert summary["revenue"]["total"] == 5_500_000
        assert summary["projects"]["total"] == 3
        assert summary["generatedAt"] == fixed.isoformat()

    def test_period_key(self):
        moment = datetime(2024, 2, 9, 10, 0)
        assert period_key(moment, "daily") == "2024-02-09"
        assert period_key(moment, "monthly") == "2024-02"
