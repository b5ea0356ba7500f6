"""
Read-only GraphQL endpoint over public content and the current session.

Served at /api/graphql for both GET and POST. Field names are camelCase.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import strawberry
import structlog
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from ..core.auth import get_current_user
from ..core.pagination import parse_query
from ..db import get_db
from ..services import AdminUserService, BlogService, CmsService, PricingService, TemplateService

logger = structlog.get_logger(__name__)


@strawberry.type
class PageType:
    id: strawberry.ID
    title: str
    slug: str
    content: str
    created_at: datetime
    updated_at: datetime


@strawberry.type
class PostType:
    id: strawberry.ID
    title: str
    slug: str
    content: str
    featured_image: Optional[str]
    status: str
    published_at: Optional[datetime]
    created_at: datetime


@strawberry.type
class TemplateType:
    id: strawberry.ID
    name: str
    category: str
    image_url: str
    demo_url: str


@strawberry.type
class PricingPlanType:
    id: strawberry.ID
    identifier: str
    name: str
    price: int
    price_formatted: str
    description: str
    features: List[str]
    popular: bool
    color: str
    sort_order: int


@strawberry.type
class UserType:
    id: strawberry.ID
    name: str
    email: str
    phone: Optional[str]
    role: str
    created_at: datetime


def _listing_params(page: int, limit: int, search: Optional[str], **filters: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if search:
        params["search"] = search
    params.update({name: value for name, value in filters.items() if value})
    return params


def _db(info: Info) -> Session:
    return info.context["db"]


# Loaders run in the threadpool; resolvers only await them


def load_pages(db: Session, params: Dict[str, Any]) -> List[PageType]:
    service = CmsService(db)
    rows, _ = service.list(parse_query(params, service.query_config()))
    return [
        PageType(
            id=row.id,
            title=row.title,
            slug=row.slug,
            content=row.content,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        for row in rows
    ]


def load_posts(db: Session, params: Dict[str, Any]) -> List[PostType]:
    service = BlogService(db)
    config = service.query_config(filter_fields=())
    rows, _ = service.list_published(parse_query(params, config))
    return [
        PostType(
            id=row.id,
            title=row.title,
            slug=row.slug,
            content=row.content,
            featured_image=row.featured_image,
            status=row.status,
            published_at=row.published_at,
            created_at=row.created_at,
        )
        for row in rows
    ]


def load_templates(db: Session, params: Dict[str, Any]) -> List[TemplateType]:
    service = TemplateService(db)
    rows, _ = service.list(parse_query(params, service.query_config()))
    return [
        TemplateType(
            id=row.id,
            name=row.name,
            category=row.category,
            image_url=row.image_url,
            demo_url=row.demo_url,
        )
        for row in rows
    ]


def load_pricing_plans(db: Session) -> List[PricingPlanType]:
    return [
        PricingPlanType(
            id=plan.id,
            identifier=plan.identifier,
            name=plan.name,
            price=plan.price,
            price_formatted=PricingService.format_price(plan.price),
            description=plan.description,
            features=list(plan.features or []),
            popular=plan.popular,
            color=plan.color,
            sort_order=plan.sort_order,
        )
        for plan in PricingService(db).list_active()
    ]


def load_user(db: Session, user_id: str) -> Optional[UserType]:
    row = AdminUserService(db).find(user_id)
    if row is None:
        return None
    return UserType(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        role=row.role,
        created_at=row.created_at,
    )


@strawberry.type
class Query:
    @strawberry.field(description="CMS pages, newest first")
    async def pages(
        self, info: Info, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> List[PageType]:
        return await run_in_threadpool(load_pages, _db(info), _listing_params(page, limit, search))

    @strawberry.field(description="Published blog posts, newest first")
    async def posts(
        self, info: Info, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> List[PostType]:
        return await run_in_threadpool(load_posts, _db(info), _listing_params(page, limit, search))

    @strawberry.field(description="Website templates, optionally by category")
    async def templates(
        self, info: Info, page: int = 1, limit: int = 10, category: Optional[str] = None
    ) -> List[TemplateType]:
        params = _listing_params(page, limit, None, category=category)
        return await run_in_threadpool(load_templates, _db(info), params)

    @strawberry.field(description="Active pricing plans in display order")
    async def pricing_plans(self, info: Info) -> List[PricingPlanType]:
        return await run_in_threadpool(load_pricing_plans, _db(info))

    @strawberry.field(description="The signed-in user, or null")
    async def me(self, info: Info) -> Optional[UserType]:
        subject = get_current_user(info.context["request"])
        if subject is None:
            return None
        return await run_in_threadpool(load_user, _db(info), subject.id)


schema = strawberry.Schema(query=Query)


async def get_context(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {"request": request, "db": db}


def create_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context)
