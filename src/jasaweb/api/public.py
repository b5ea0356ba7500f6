"""
Public content endpoints used by the marketing site.

No session required. Posts are limited to published ones; pricing to
active plans.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ERROR_RESPONSES, PageResponse, PostResponse, PricingPlanResponse, TemplateResponse
from ..services import BlogService, CmsService, PricingService, TemplateService
from .common import page_response, parse_listing

router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)


@router.get("/pages", summary="List pages, or fetch one by slug")
def list_pages(
    request: Request,
    slug: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> Any:
    service = CmsService(db)
    if slug:
        return PageResponse.model_validate(service.get_by_slug(slug))

    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, PageResponse, base_url=request.url.path)


@router.get("/posts", summary="List published posts, or fetch one by slug")
def list_posts(
    request: Request,
    slug: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> Any:
    service = BlogService(db)
    if slug:
        return PostResponse.model_validate(service.get_published_by_slug(slug))

    query = parse_listing(request, service, filter_fields=())
    rows, total = service.list_published(query)
    return page_response(rows, total, query, PostResponse, base_url=request.url.path)


@router.get("/templates", summary="List website templates")
def list_templates(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = TemplateService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, TemplateResponse, base_url=request.url.path)


@router.get("/pricing", summary="Active pricing plans")
def list_pricing(db: Session = Depends(get_db)) -> Dict[str, Any]:
    plans = PricingService(db).list_active()
    return {"data": [PricingPlanResponse.model_validate(plan) for plan in plans]}
