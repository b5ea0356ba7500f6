"""
Client dashboard widgets.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import SessionUser
from ..core.policy import READ, require
from ..db import get_db
from ..models import ERROR_RESPONSES
from ..services import ClientDashboardService

router = APIRouter(prefix="/dashboard", responses=ERROR_RESPONSES)


@router.get("/stats", summary="Project, invoice and ticket counts for the signed-in user")
def stats(
    user: SessionUser = Depends(require("dashboard", READ)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ClientDashboardService(db).stats(user.id)


@router.get("/projects-overview", summary="Most recent projects of the signed-in user")
def projects_overview(
    limit: int = Query(default=6, ge=1, le=50),
    user: SessionUser = Depends(require("dashboard", READ)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return {"data": ClientDashboardService(db).projects_overview(user.id, limit)}
