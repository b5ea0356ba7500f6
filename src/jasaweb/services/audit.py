"""
Audit trail of security-relevant and back-office actions.

Writing an audit row never fails the caller: errors are logged and the
session is rolled back.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from fastapi import Request
from sqlalchemy import Select

from ..core.auth import SessionUser
from ..core.exceptions import ValidationError
from ..core.masking import get_masking_engine
from ..core.pagination import QueryDescriptor
from ..core.rate_limit import client_ip
from ..db.tables import AuditLog
from .base import BaseCrudService

logger = structlog.get_logger(__name__)

ACTIONS = (
    "CREATE",
    "UPDATE",
    "DELETE",
    "LOGIN",
    "LOGOUT",
    "PAYMENT_INIT",
    "PAYMENT_SUCCESS",
    "PAYMENT_FAILED",
    "ROLE_CHANGE",
)


class AuditService(BaseCrudService):
    model = AuditLog
    entity_name = "Audit log"
    sort_fields = ("timestamp",)
    default_sort_by = "timestamp"
    filter_fields = {"action": ACTIONS, "resource": ()}

    def log(
        self,
        action: str,
        resource: str,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLog]:
        masking = get_masking_engine()
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            old_values=masking.mask(old_values) if old_values else None,
            new_values=masking.mask(new_values) if new_values else None,
            ip_address=ip_address or "unknown",
            user_agent=(user_agent or "unknown")[:512],
        )
        try:
            self.session.add(entry)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(
                "Failed to write audit log",
                action=action,
                resource=resource,
                resource_id=resource_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return None

        logger.debug("Audit log written", action=action, resource=resource, resource_id=resource_id)
        return entry

    def log_request(
        self,
        request: Request,
        user: Optional[SessionUser],
        action: str,
        resource: str,
        **fields: Any,
    ) -> Optional[AuditLog]:
        return self.log(
            action,
            resource,
            user_id=user.id if user is not None else None,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            **fields,
        )

    def list_filtered(
        self, query: QueryDescriptor, params: Mapping[str, Any]
    ) -> Tuple[List[AuditLog], int]:
        stmt: Select = self.apply_filters(self.base_query(), query)

        user_id = params.get("userId") or params.get("user_id")
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        resource_id = params.get("resourceId") or params.get("resource_id")
        if resource_id:
            stmt = stmt.where(AuditLog.resource_id == resource_id)

        start = _parse_date(params, "startDate")
        end = _parse_date(params, "endDate")
        if start is not None:
            stmt = stmt.where(AuditLog.timestamp >= start)
        if end is not None:
            stmt = stmt.where(AuditLog.timestamp <= end)

        return self.paginate(stmt, query)


def _parse_date(params: Mapping[str, Any], name: str) -> Optional[datetime]:
    raw = params.get(name)
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO 8601 date", details={name: raw})
