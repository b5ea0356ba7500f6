"""
Back-office CMS endpoints: pages, blog posts, templates and pricing plans.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..core.auth import SessionUser
from ..core.policy import require_admin
from ..core.rate_limit import RateLimit
from ..db import get_db
from ..models import (
    ERROR_RESPONSES,
    MessageResponse,
    PageCreate,
    PageResponse,
    PageUpdate,
    PostCreate,
    PostResponse,
    PostUpdate,
    PricingPlanCreate,
    PricingPlanResponse,
    PricingPlanUpdate,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from ..services import BlogService, CmsService, PricingService, TemplateService, snapshot
from .common import audit, page_response, parse_listing

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)], responses=ERROR_RESPONSES)

PAGE_FIELDS = ("title", "slug", "content")
POST_FIELDS = ("title", "slug", "status", "featured_image", "published_at")
TEMPLATE_FIELDS = ("name", "category", "image_url", "demo_url")
PLAN_FIELDS = ("identifier", "name", "price", "popular", "color", "sort_order", "is_active")

template_rate_limit = RateLimit(60, 60)


# Pages

@router.get("/pages", summary="List pages")
def list_pages(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = CmsService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, PageResponse, base_url=request.url.path)


@router.post("/pages", response_model=PageResponse, status_code=201, summary="Create a page")
def create_page(
    body: PageCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PageResponse:
    page = CmsService(db).create_page(body)
    audit(db, request, user, "CREATE", "page", resource_id=page.id, new_values=snapshot(page, PAGE_FIELDS))
    return PageResponse.model_validate(page)


@router.get("/pages/{page_id}", response_model=PageResponse, summary="Get a page")
def get_page(page_id: str, db: Session = Depends(get_db)) -> PageResponse:
    return PageResponse.model_validate(CmsService(db).get(page_id))


@router.put("/pages/{page_id}", response_model=PageResponse, summary="Update a page")
def update_page(
    page_id: str,
    body: PageUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PageResponse:
    service = CmsService(db)
    old_values = snapshot(service.get(page_id), PAGE_FIELDS)
    page = service.update_page(page_id, body)
    audit(
        db, request, user, "UPDATE", "page",
        resource_id=page.id, old_values=old_values, new_values=snapshot(page, PAGE_FIELDS),
    )
    return PageResponse.model_validate(page)


@router.delete("/pages/{page_id}", response_model=MessageResponse, summary="Delete a page")
def delete_page(
    page_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = CmsService(db)
    old_values = snapshot(service.get(page_id), PAGE_FIELDS)
    service.delete(page_id)
    audit(db, request, user, "DELETE", "page", resource_id=page_id, old_values=old_values)
    return MessageResponse(message="Page deleted")


# Posts

@router.get("/posts", summary="List posts (all statuses)")
def list_posts(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = BlogService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, PostResponse, base_url=request.url.path)


@router.post("/posts", response_model=PostResponse, status_code=201, summary="Create a post")
def create_post(
    body: PostCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PostResponse:
    post = BlogService(db).create_post(body)
    audit(db, request, user, "CREATE", "post", resource_id=post.id, new_values=snapshot(post, POST_FIELDS))
    return PostResponse.model_validate(post)


@router.get("/posts/{post_id}", response_model=PostResponse, summary="Get a post")
def get_post(post_id: str, db: Session = Depends(get_db)) -> PostResponse:
    return PostResponse.model_validate(BlogService(db).get(post_id))


@router.put("/posts/{post_id}", response_model=PostResponse, summary="Update a post")
def update_post(
    post_id: str,
    body: PostUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PostResponse:
    service = BlogService(db)
    old_values = snapshot(service.get(post_id), POST_FIELDS)
    post = service.update_post(post_id, body)
    audit(
        db, request, user, "UPDATE", "post",
        resource_id=post.id, old_values=old_values, new_values=snapshot(post, POST_FIELDS),
    )
    return PostResponse.model_validate(post)


@router.delete("/posts/{post_id}", response_model=MessageResponse, summary="Delete a post")
def delete_post(
    post_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = BlogService(db)
    old_values = snapshot(service.get(post_id), POST_FIELDS)
    service.delete(post_id)
    audit(db, request, user, "DELETE", "post", resource_id=post_id, old_values=old_values)
    return MessageResponse(message="Post deleted")


# Templates

@router.get("/templates", summary="List templates")
def list_templates(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = TemplateService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, TemplateResponse, base_url=request.url.path)


@router.post(
    "/templates",
    response_model=TemplateResponse,
    status_code=201,
    dependencies=[Depends(template_rate_limit)],
    summary="Create a template",
)
def create_template(
    body: TemplateCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> TemplateResponse:
    template = TemplateService(db).create_template(body)
    audit(
        db, request, user, "CREATE", "template",
        resource_id=template.id, new_values=snapshot(template, TEMPLATE_FIELDS),
    )
    return TemplateResponse.model_validate(template)


@router.get("/templates/{template_id}", response_model=TemplateResponse, summary="Get a template")
def get_template(template_id: str, db: Session = Depends(get_db)) -> TemplateResponse:
    return TemplateResponse.model_validate(TemplateService(db).get(template_id))


@router.put(
    "/templates/{template_id}",
    response_model=TemplateResponse,
    dependencies=[Depends(template_rate_limit)],
    summary="Update a template",
)
def update_template(
    template_id: str,
    body: TemplateUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> TemplateResponse:
    service = TemplateService(db)
    old_values = snapshot(service.get(template_id), TEMPLATE_FIELDS)
    template = service.update_template(template_id, body)
    audit(
        db, request, user, "UPDATE", "template",
        resource_id=template.id, old_values=old_values, new_values=snapshot(template, TEMPLATE_FIELDS),
    )
    return TemplateResponse.model_validate(template)


@router.delete(
    "/templates/{template_id}",
    response_model=MessageResponse,
    dependencies=[Depends(template_rate_limit)],
    summary="Delete a template",
)
def delete_template(
    template_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = TemplateService(db)
    old_values = snapshot(service.get(template_id), TEMPLATE_FIELDS)
    service.delete(template_id)
    audit(db, request, user, "DELETE", "template", resource_id=template_id, old_values=old_values)
    return MessageResponse(message="Template deleted")


# Pricing plans

@router.get("/pricing", summary="All pricing plans, including inactive ones")
def list_pricing(db: Session = Depends(get_db)) -> Dict[str, Any]:
    plans = PricingService(db).list_all()
    return {"data": [PricingPlanResponse.model_validate(plan) for plan in plans]}


@router.post("/pricing", response_model=PricingPlanResponse, status_code=201, summary="Create a pricing plan")
def create_pricing_plan(
    body: PricingPlanCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PricingPlanResponse:
    plan = PricingService(db).create_plan(body)
    audit(db, request, user, "CREATE", "pricing_plan", resource_id=plan.id, new_values=snapshot(plan, PLAN_FIELDS))
    return PricingPlanResponse.model_validate(plan)


@router.put("/pricing/{plan_id}", response_model=PricingPlanResponse, summary="Update a pricing plan")
def update_pricing_plan(
    plan_id: str,
    body: PricingPlanUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PricingPlanResponse:
    service = PricingService(db)
    old_values = snapshot(service.get(plan_id), PLAN_FIELDS)
    plan = service.update_plan(plan_id, body)
    audit(
        db, request, user, "UPDATE", "pricing_plan",
        resource_id=plan.id, old_values=old_values, new_values=snapshot(plan, PLAN_FIELDS),
    )
    return PricingPlanResponse.model_validate(plan)


@router.delete("/pricing/{plan_id}", response_model=MessageResponse, summary="Deactivate a pricing plan")
def delete_pricing_plan(
    plan_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    PricingService(db).delete(plan_id)
    audit(
        db, request, user, "DELETE", "pricing_plan",
        resource_id=plan_id, old_values={"is_active": True}, new_values={"is_active": False},
    )
    return MessageResponse(message="Pricing plan deactivated")
