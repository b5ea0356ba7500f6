"""
Database-driven pricing plans.

Plans are never hard-deleted: invoices reference the price of the plan
whose identifier equals the project type, so deleting only deactivates.
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select

from ..core.exceptions import NotFoundError, ValidationError
from ..db.tables import PricingPlan
from ..models import PricingPlanCreate, PricingPlanUpdate, format_rupiah
from .base import BaseCrudService

logger = structlog.get_logger(__name__)

DEFAULT_SORT_ORDER = 999


class PricingService(BaseCrudService):
    model = PricingPlan
    entity_name = "Pricing plan"
    search_fields = ("name", "identifier")
    sort_fields = ("sort_order", "price", "created_at")
    default_sort_by = "sort_order"

    @staticmethod
    def format_price(amount: int) -> str:
        return format_rupiah(amount)

    def list_active(self) -> List[PricingPlan]:
        stmt = (
            select(PricingPlan)
            .where(PricingPlan.is_active.is_(True))
            .order_by(PricingPlan.sort_order.asc(), PricingPlan.created_at.asc())
        )
        return list(self.session.scalars(stmt))

    def list_all(self) -> List[PricingPlan]:
        stmt = select(PricingPlan).order_by(PricingPlan.sort_order.asc(), PricingPlan.created_at.asc())
        return list(self.session.scalars(stmt))

    def get_by_identifier(self, identifier: str, active_only: bool = True) -> Optional[PricingPlan]:
        stmt = select(PricingPlan).where(PricingPlan.identifier == identifier)
        if active_only:
            stmt = stmt.where(PricingPlan.is_active.is_(True))
        return self.session.scalar(stmt)

    def get_price(self, identifier: str) -> Optional[int]:
        plan = self.get_by_identifier(identifier)
        return plan.price if plan is not None else None

    def _reject_duplicate_identifier(self, identifier: str, exclude_id: Optional[str] = None) -> None:
        existing = self.get_by_identifier(identifier, active_only=False)
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(
                f"Pricing plan identifier '{identifier}' already exists",
                details={"identifier": identifier},
            )

    def create_plan(self, data: PricingPlanCreate) -> PricingPlan:
        self._reject_duplicate_identifier(data.identifier)
        values = data.model_dump()
        if values.get("sort_order") is None:
            values["sort_order"] = DEFAULT_SORT_ORDER
        return self.create(values)

    def update_plan(self, plan_id: str, data: PricingPlanUpdate) -> PricingPlan:
        self.get(plan_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        if "identifier" in changes:
            self._reject_duplicate_identifier(changes["identifier"], exclude_id=plan_id)
        return self.update(plan_id, changes)

    def delete(self, entity_id: str) -> None:
        plan = self.find(entity_id)
        if plan is None:
            raise NotFoundError(self.entity_name, entity_id)
        plan.is_active = False
        self._commit()
        logger.info("Pricing plan deactivated", id=entity_id, identifier=plan.identifier)
