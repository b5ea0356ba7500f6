"""
CMS models: pages, blog posts, templates and pricing plans.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, computed_field, field_validator

from .common import APIModel, PlanColor, PostStatus, ProjectType, format_rupiah


class PageCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class PageUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)


class PageResponse(APIModel):
    id: str
    title: str
    slug: str
    content: str
    created_at: datetime
    updated_at: datetime


class PostCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    featured_image: Optional[str] = Field(default=None, max_length=512)
    status: PostStatus = PostStatus.DRAFT


class PostUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    featured_image: Optional[str] = Field(default=None, max_length=512)
    status: Optional[PostStatus] = None


class PostResponse(APIModel):
    id: str
    title: str
    slug: str
    content: str
    featured_image: Optional[str] = None
    status: PostStatus
    published_at: Optional[datetime] = None
    created_at: datetime


class TemplateCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: ProjectType
    image_url: str = Field(..., min_length=1, max_length=512)
    demo_url: str = Field(..., min_length=1, max_length=512)


class TemplateUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[ProjectType] = None
    image_url: Optional[str] = Field(default=None, min_length=1, max_length=512)
    demo_url: Optional[str] = Field(default=None, min_length=1, max_length=512)


class TemplateResponse(APIModel):
    id: str
    name: str
    category: ProjectType
    image_url: str
    demo_url: str
    created_at: datetime


class PricingPlanCreate(APIModel):
    identifier: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_-]+$")
    name: str = Field(..., min_length=1, max_length=255)
    price: int = Field(..., ge=0, description="Whole rupiah")
    description: str = Field(..., min_length=1)
    features: List[str] = Field(default_factory=list)
    popular: bool = False
    color: PlanColor = PlanColor.PRIMARY
    sort_order: Optional[int] = None

    @field_validator("features")
    def validate_features(cls, v: List[str]) -> List[str]:
        if any(not item.strip() for item in v):
            raise ValueError("Features cannot contain empty entries")
        return v


class PricingPlanUpdate(APIModel):
    identifier: Optional[str] = Field(default=None, min_length=1, max_length=64, pattern=r"^[a-z0-9_-]+$")
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    price: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, min_length=1)
    features: Optional[List[str]] = None
    popular: Optional[bool] = None
    color: Optional[PlanColor] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class PricingPlanResponse(APIModel):
    id: str
    identifier: str
    name: str
    price: int
    description: str
    features: List[str]
    popular: bool
    color: PlanColor
    sort_order: int
    is_active: bool

    @computed_field(alias="priceFormatted")
    @property
    def price_formatted(self) -> str:
        return format_rupiah(self.price)
