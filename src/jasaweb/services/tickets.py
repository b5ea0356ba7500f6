"""
Support tickets raised by clients and worked by admins.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import case, func, select

from ..core.exceptions import NotFoundError
from ..core.pagination import QueryDescriptor
from ..db.tables import Project, Ticket, User
from ..models import Role, TicketCreate, TicketPriority, TicketStatus, TicketUpdate
from .base import BaseCrudService

logger = structlog.get_logger(__name__)

# Sort ranks: severity for priority, workflow order for status
PRIORITY_RANK = {p.value: rank for rank, p in enumerate(TicketPriority)}
STATUS_RANK = {s.value: rank for rank, s in enumerate(TicketStatus)}


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class TicketService(BaseCrudService):
    model = Ticket
    entity_name = "Ticket"
    search_fields = ("title", "description")
    sort_fields = ("created_at", "updated_at", "priority", "status")
    filter_fields = {
        "status": tuple(s.value for s in TicketStatus),
        "priority": tuple(p.value for p in TicketPriority),
    }

    def query_config(self, **overrides: Any):
        # priority is not one of the default listing filters
        return super().query_config(filter_fields=("status", "priority"), **overrides)

    def sort_expression(self, name: str) -> Any:
        if name == "priority":
            return case(PRIORITY_RANK, value=Ticket.priority, else_=-1)
        if name == "status":
            return case(STATUS_RANK, value=Ticket.status, else_=-1)
        return super().sort_expression(name)

    def list_for_user(self, user_id: str, query: QueryDescriptor) -> Tuple[List[Ticket], int]:
        stmt = self.apply_filters(self.base_query(), query).where(Ticket.reporter_id == user_id)
        return self.paginate(stmt, query)

    def create_for_user(self, user_id: str, data: TicketCreate) -> Ticket:
        if data.project_id is not None:
            owned = self.session.scalar(
                select(Project.id).where(Project.id == data.project_id, Project.user_id == user_id)
            )
            if owned is None:
                raise NotFoundError("Project", data.project_id)

        return self.create({
            "reporter_id": user_id,
            "project_id": data.project_id,
            "title": data.title,
            "description": data.description,
            "priority": data.priority,
            "status": TicketStatus.OPEN.value,
        })

    def update_ticket(self, ticket_id: str, data: TicketUpdate) -> Ticket:
        self.get(ticket_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        if "assignee_id" in changes:
            assignee = self.session.get(User, changes["assignee_id"])
            if assignee is None or assignee.role != Role.ADMIN.value:
                raise NotFoundError("Assignee", changes["assignee_id"])
        return self.update(ticket_id, changes)

    def metrics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Counts by status and priority, plus tickets resolved this month."""
        by_status = dict(self.session.execute(select(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status)).all())
        by_priority = dict(
            self.session.execute(select(Ticket.priority, func.count(Ticket.id)).group_by(Ticket.priority)).all()
        )
        resolved_this_month = self.session.scalar(
            select(func.count(Ticket.id)).where(
                Ticket.status.in_((TicketStatus.RESOLVED.value, TicketStatus.CLOSED.value)),
                Ticket.updated_at >= start_of_month(now),
            )
        )

        return {
            "total": sum(by_status.values()),
            "byStatus": {s.value: by_status.get(s.value, 0) for s in TicketStatus},
            "byPriority": {p.value: by_priority.get(p.value, 0) for p in TicketPriority},
            "resolvedThisMonth": resolved_this_month or 0,
        }
