"""
Business intelligence aggregates for the admin analytics screens.

Period grouping happens in Python over the paid invoices and user rows so
the same code runs on SQLite and PostgreSQL.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.exceptions import ValidationError
from ..db.tables import AuditLog, Invoice, Project, User
from ..models import InvoiceStatus

PERIODS = ("daily", "monthly")
ACTIVE_WINDOW_DAYS = 30


def period_key(moment: datetime, period: str) -> str:
    return moment.strftime("%Y-%m-%d" if period == "daily" else "%Y-%m")


def _validate_period(period: str) -> str:
    if period not in PERIODS:
        raise ValidationError(f"Period must be one of {', '.join(PERIODS)}", details={"period": period})
    return period


class BusinessIntelligenceService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self.session = session
        self.clock = clock

    def _total_users(self) -> int:
        return self.session.scalar(select(func.count(User.id))) or 0

    def _total_revenue(self) -> int:
        total = self.session.scalar(
            select(func.coalesce(func.sum(Invoice.amount), 0)).where(Invoice.status == InvoiceStatus.PAID.value)
        )
        return int(total or 0)

    def revenue_analytics(self, period: str = "monthly") -> Dict[str, Any]:
        _validate_period(period)

        paid = self.session.execute(
            select(Invoice.amount, Invoice.paid_at, Project.type)
            .join(Project, Invoice.project_id == Project.id)
            .where(Invoice.status == InvoiceStatus.PAID.value)
        ).all()

        by_period: Dict[str, int] = defaultdict(int)
        by_type: Dict[str, int] = defaultdict(int)
        for amount, paid_at, project_type in paid:
            by_type[project_type] += amount
            if paid_at is not None:
                by_period[period_key(paid_at, period)] += amount

        total_revenue = self._total_revenue()
        total_users = self._total_users()
        typed_total = sum(by_type.values())

        return {
            "totalRevenue": total_revenue,
            "revenueByPeriod": [{"date": key, "amount": by_period[key]} for key in sorted(by_period)],
            "averageRevenuePerUser": total_revenue / total_users if total_users else 0,
            "revenueByProjectType": [
                {
                    "type": project_type,
                    "amount": amount,
                    "percentage": (amount / typed_total) * 100 if typed_total else 0,
                }
                for project_type, amount in sorted(by_type.items())
            ],
        }

    def user_growth(self, period: str = "monthly") -> Dict[str, Any]:
        _validate_period(period)

        counts: Dict[str, int] = defaultdict(int)
        for (created_at,) in self.session.execute(select(User.created_at)):
            counts[period_key(created_at, period)] += 1

        return {
            "totalUsers": self._total_users(),
            "newUsersByPeriod": [{"date": key, "count": counts[key]} for key in sorted(counts)],
            "activeUsers": len(self.active_user_ids()),
        }

    def active_user_ids(self, now: Optional[datetime] = None) -> Set[str]:
        """Users who touched a project or left an audit trail in the last 30 days."""
        since = (now or self.clock()) - timedelta(days=ACTIVE_WINDOW_DAYS)

        active = set(self.session.scalars(select(Project.user_id).where(Project.updated_at >= since).distinct()))
        active.update(
            self.session.scalars(
                select(AuditLog.user_id)
                .where(AuditLog.timestamp >= since, AuditLog.user_id.is_not(None))
                .distinct()
            )
        )
        return active

    def project_analytics(self) -> Dict[str, Any]:
        by_status = self.session.execute(select(Project.status, func.count(Project.id)).group_by(Project.status)).all()
        by_type = self.session.execute(select(Project.type, func.count(Project.id)).group_by(Project.type)).all()

        paying_users = self.session.scalar(
            select(func.count(func.distinct(Project.user_id)))
            .select_from(Project)
            .join(Invoice, Invoice.project_id == Project.id)
            .where(Invoice.status == InvoiceStatus.PAID.value)
        ) or 0
        total_users = self._total_users()

        return {
            "totalProjects": sum(count for _, count in by_status),
            "projectsByStatus": [{"status": status, "count": count} for status, count in sorted(by_status)],
            "projectsByType": [{"type": project_type, "count": count} for project_type, count in sorted(by_type)],
            "conversionRate": (paying_users / total_users) * 100 if total_users else 0,
        }

    def summary(self) -> Dict[str, Any]:
        revenue = self.revenue_analytics()
        users = self.user_growth()
        projects = self.project_analytics()

        return {
            "revenue": {"total": revenue["totalRevenue"], "arpu": revenue["averageRevenuePerUser"]},
            "users": {"total": users["totalUsers"], "active": users["activeUsers"]},
            "projects": {"total": projects["totalProjects"], "conversionRate": projects["conversionRate"]},
            "generatedAt": self.clock().isoformat(),
        }
