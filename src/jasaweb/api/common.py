"""
Helpers shared by the route modules: listing envelopes and audit writes.
"""

from typing import Any, Dict, Iterable, Optional, Type

from fastapi import Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.auth import SessionUser
from ..core.pagination import QueryDescriptor, create_response, parse_query
from ..services import AuditService, BaseCrudService


def parse_listing(request: Request, service: BaseCrudService, **overrides: Any) -> QueryDescriptor:
    return parse_query(request.query_params, service.query_config(**overrides))


def page_response(
    rows: Iterable[Any],
    total: int,
    query: QueryDescriptor,
    schema: Type[BaseModel],
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """{data, pagination, links} with each row rendered through schema."""
    data = [schema.model_validate(row) for row in rows]
    return create_response(data, total, query.pagination, base_url=base_url)


def audit(
    db: Session,
    request: Request,
    user: Optional[SessionUser],
    action: str,
    resource: str,
    **fields: Any,
) -> None:
    AuditService(db).log_request(request, user, action, resource, **fields)
