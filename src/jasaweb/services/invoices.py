"""
Invoices and their payment lifecycle.

An invoice is created from a project; its amount is the active pricing
plan for the project type. Payment state changes arrive from the gateway
webhook and are applied idempotently.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import Select, select
from sqlalchemy.orm import joinedload

from ..core.exceptions import NotFoundError, ValidationError
from ..core.pagination import LIKE_ESCAPE, QueryDescriptor, contains_pattern
from ..db.tables import Invoice, Project, utcnow
from ..models import InvoiceStatus, ProjectStatus
from .base import BaseCrudService
from .pricing import PricingService

logger = structlog.get_logger(__name__)


@dataclass
class InvoiceCreation:
    invoice: Invoice
    duplicate: bool


@dataclass
class NotificationResult:
    invoice: Invoice
    old_status: str
    new_status: str
    old_project_status: str
    new_project_status: str
    changed: bool


class InvoiceService(BaseCrudService):
    model = Invoice
    entity_name = "Invoice"
    sort_fields = ("created_at", "amount", "paid_at", "status")
    filter_fields = {"status": tuple(s.value for s in InvoiceStatus)}

    def base_query(self) -> Select:
        return select(Invoice).options(joinedload(Invoice.project))

    def apply_filters(self, stmt: Select, query: QueryDescriptor) -> Select:
        # Search matches the project name rather than invoice columns
        stmt = super().apply_filters(stmt, query)
        if query.search:
            stmt = stmt.where(
                Invoice.project.has(Project.name.ilike(contains_pattern(query.search), escape=LIKE_ESCAPE))
            )
        return stmt

    def list_for_user(self, user_id: str, query: QueryDescriptor) -> Tuple[List[Invoice], int]:
        stmt = self.apply_filters(self.base_query(), query).where(Invoice.project.has(Project.user_id == user_id))
        return self.paginate(stmt, query)

    def get_for_user(self, invoice_id: str, user_id: str) -> Invoice:
        invoice = self.session.scalar(
            self.base_query().where(Invoice.id == invoice_id, Invoice.project.has(Project.user_id == user_id))
        )
        if invoice is None:
            raise NotFoundError(self.entity_name, invoice_id)
        return invoice

    def create_for_project(self, project_id: str, user_id: str) -> InvoiceCreation:
        """
        Create an unpaid invoice for the user's project.

        An existing unpaid invoice is returned instead of creating a second
        one, flagged as a duplicate.
        """
        project = self.session.scalar(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        if project is None:
            raise NotFoundError("Project", project_id)

        existing = self.session.scalar(
            self.base_query().where(
                Invoice.project_id == project.id,
                Invoice.status == InvoiceStatus.UNPAID.value,
            )
        )
        if existing is not None:
            logger.info("Returning existing unpaid invoice", invoice_id=existing.id, project_id=project.id)
            return InvoiceCreation(invoice=existing, duplicate=True)

        amount = PricingService(self.session).get_price(project.type)
        if amount is None:
            raise ValidationError(
                "No active pricing plan for this project type",
                details={"type": project.type},
            )

        invoice = self.create({
            "project_id": project.id,
            "amount": amount,
            "status": InvoiceStatus.UNPAID.value,
        })
        return InvoiceCreation(invoice=invoice, duplicate=False)

    @staticmethod
    def validate_for_payment(invoice: Invoice) -> None:
        if invoice.status != InvoiceStatus.UNPAID.value:
            raise ValidationError(
                f"Invoice cannot be paid in status '{invoice.status}'",
                details={"status": invoice.status},
            )
        if invoice.amount <= 0:
            raise ValidationError("Invoice amount is invalid")
        if invoice.midtrans_order_id:
            raise ValidationError(
                "A payment was already created for this invoice",
                details={"order_id": invoice.midtrans_order_id},
            )

    def mark_payment_initiated(self, invoice: Invoice, order_id: str, qris_url: str) -> Invoice:
        invoice.midtrans_order_id = order_id
        invoice.qris_url = qris_url
        self._commit()
        logger.info("Payment initiated", invoice_id=invoice.id, order_id=order_id)
        return invoice

    def find_by_order_id(self, order_id: str) -> Optional[Invoice]:
        return self.session.scalar(self.base_query().where(Invoice.midtrans_order_id == order_id))

    def apply_payment_notification(self, invoice: Invoice, new_status: str) -> NotificationResult:
        """
        Move the invoice to new_status; a paid invoice starts its project.

        Replaying a notification already applied changes nothing.
        """
        project = invoice.project
        old_status = invoice.status
        old_project_status = project.status

        changed = old_status != new_status
        if changed:
            invoice.status = new_status
            if new_status == InvoiceStatus.PAID.value and invoice.paid_at is None:
                invoice.paid_at = utcnow()

        if new_status == InvoiceStatus.PAID.value and project.status == ProjectStatus.PENDING_PAYMENT.value:
            project.status = ProjectStatus.IN_PROGRESS.value
            changed = True

        if changed:
            self._commit()
            logger.info(
                "Payment notification applied",
                invoice_id=invoice.id,
                old_status=old_status,
                new_status=new_status,
                project_status=project.status,
            )

        return NotificationResult(
            invoice=invoice,
            old_status=old_status,
            new_status=new_status,
            old_project_status=old_project_status,
            new_project_status=project.status,
            changed=changed,
        )

