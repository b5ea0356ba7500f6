"""
Client portal dashboard aggregates for the signed-in user.
"""

from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.tables import Invoice, Project, Ticket
from ..models import InvoiceStatus, ProjectStatus, TicketStatus

STATUS_LABELS = {
    ProjectStatus.PENDING_PAYMENT.value: "Menunggu Bayar",
    ProjectStatus.IN_PROGRESS.value: "Dalam Proses",
    ProjectStatus.REVIEW.value: "Review",
    ProjectStatus.COMPLETED.value: "Selesai",
}

OPEN_TICKET_STATUSES = (TicketStatus.OPEN.value, TicketStatus.IN_PROGRESS.value)


class ClientDashboardService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def stats(self, user_id: str) -> Dict[str, Any]:
        project_counts = dict(
            self.session.execute(
                select(Project.status, func.count(Project.id))
                .where(Project.user_id == user_id)
                .group_by(Project.status)
            ).all()
        )

        invoice_rows = self.session.execute(
            select(Invoice.status, func.count(Invoice.id), func.coalesce(func.sum(Invoice.amount), 0))
            .join(Project, Invoice.project_id == Project.id)
            .where(Project.user_id == user_id)
            .group_by(Invoice.status)
        ).all()
        invoice_counts = {status: count for status, count, _ in invoice_rows}
        invoice_amounts = {status: int(amount) for status, _, amount in invoice_rows}

        open_tickets = self.session.scalar(
            select(func.count(Ticket.id)).where(
                Ticket.reporter_id == user_id,
                Ticket.status.in_(OPEN_TICKET_STATUSES),
            )
        )

        return {
            "totalProjects": sum(project_counts.values()),
            "projectsByStatus": {s.value: project_counts.get(s.value, 0) for s in ProjectStatus},
            "inProgress": project_counts.get(ProjectStatus.IN_PROGRESS.value, 0),
            "completed": project_counts.get(ProjectStatus.COMPLETED.value, 0),
            "unpaidInvoices": invoice_counts.get(InvoiceStatus.UNPAID.value, 0),
            "openTickets": open_tickets or 0,
            "invoices": {
                "total": sum(invoice_counts.values()),
                "totalAmount": sum(invoice_amounts.values()),
                "unpaidAmount": invoice_amounts.get(InvoiceStatus.UNPAID.value, 0),
                "paidAmount": invoice_amounts.get(InvoiceStatus.PAID.value, 0),
            },
        }

    def projects_overview(self, user_id: str, limit: int = 6) -> List[Dict[str, Any]]:
        projects = self.session.scalars(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc())
            .limit(limit)
        )
        return [
            {
                "id": p.id,
                "name": p.name,
                "type": p.type,
                "status": p.status,
                "statusLabel": STATUS_LABELS.get(p.status, p.status),
                "url": p.url,
                "createdAt": p.created_at.isoformat(),
            }
            for p in projects
        ]
