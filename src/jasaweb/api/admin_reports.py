"""
Back-office reporting: dashboard totals, business analytics and the audit trail.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.policy import require_admin
from ..db import get_db
from ..models import ERROR_RESPONSES, AuditLogResponse
from ..services import AdminUserService, AuditService, BusinessIntelligenceService
from .common import page_response, parse_listing

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)], responses=ERROR_RESPONSES)


@router.get("/dashboard", summary="Back-office dashboard totals")
def dashboard(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return AdminUserService(db).dashboard_stats()


@router.get("/analytics/summary", summary="Revenue, user and project headline numbers")
def analytics_summary(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return BusinessIntelligenceService(db).summary()


@router.get("/analytics/revenue", summary="Revenue by period and project type")
def analytics_revenue(
    period: str = Query(default="monthly"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return BusinessIntelligenceService(db).revenue_analytics(period)


@router.get("/analytics/users", summary="User growth and activity")
def analytics_users(
    period: str = Query(default="monthly"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return BusinessIntelligenceService(db).user_growth(period)


@router.get("/analytics/projects", summary="Project counts and conversion rate")
def analytics_projects(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return BusinessIntelligenceService(db).project_analytics()


@router.get("/audit", summary="Audit trail")
def list_audit_logs(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Filters: action, resource, userId, resourceId, startDate, endDate
    (ISO 8601). Newest first by default.
    """
    service = AuditService(db)
    query = parse_listing(request, service)
    rows, total = service.list_filtered(query, request.query_params)
    return page_response(rows, total, query, AuditLogResponse, base_url=request.url.path)
