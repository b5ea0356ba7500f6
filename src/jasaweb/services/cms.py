"""
CMS pages, blog posts and website templates.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select

from ..core.exceptions import NotFoundError, ValidationError
from ..core.pagination import QueryDescriptor
from ..db.tables import Page, Post, Template, utcnow
from ..models import PageCreate, PageUpdate, PostCreate, PostStatus, PostUpdate, ProjectType
from ..models import TemplateCreate, TemplateUpdate
from .base import BaseCrudService, slugify


class SluggedService(BaseCrudService):
    """Rows addressed publicly by a slug derived from their title."""

    def make_slug(self, title: str, exclude_id: Optional[str] = None) -> str:
        slug = slugify(title)
        if not slug:
            raise ValidationError("Title must contain letters or digits", details={"title": title})
        self.ensure_unique("slug", slug, exclude_id)
        return slug

    def get_by_slug(self, slug: str) -> Any:
        entity = self.session.scalar(select(self.model).where(self.model.slug == slug))
        if entity is None:
            raise NotFoundError(self.entity_name)
        return entity


class CmsService(SluggedService):
    model = Page
    entity_name = "Page"
    search_fields = ("title", "content")
    sort_fields = ("created_at", "updated_at", "title")

    def create_page(self, data: PageCreate) -> Page:
        return self.create({
            "title": data.title,
            "content": data.content,
            "slug": self.make_slug(data.title),
        })

    def update_page(self, page_id: str, data: PageUpdate) -> Page:
        self.get(page_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        if "title" in changes:
            changes["slug"] = self.make_slug(changes["title"], exclude_id=page_id)
        return self.update(page_id, changes)


class BlogService(SluggedService):
    model = Post
    entity_name = "Post"
    search_fields = ("title", "content")
    sort_fields = ("created_at", "published_at", "title")
    filter_fields = {"status": tuple(s.value for s in PostStatus)}

    def create_post(self, data: PostCreate) -> Post:
        values = data.model_dump()
        values["slug"] = self.make_slug(data.title)
        values["published_at"] = utcnow() if values["status"] == PostStatus.PUBLISHED.value else None
        return self.create(values)

    def update_post(self, post_id: str, data: PostUpdate) -> Post:
        post = self.get(post_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        if "title" in changes:
            changes["slug"] = self.make_slug(changes["title"], exclude_id=post_id)
        # First publication stamps the date; re-saving a published post keeps it
        if changes.get("status") == PostStatus.PUBLISHED.value and post.published_at is None:
            changes["published_at"] = utcnow()
        elif changes.get("status") == PostStatus.DRAFT.value:
            changes["published_at"] = None
        return self.update(post_id, changes)

    def list_published(self, query: QueryDescriptor) -> Tuple[List[Post], int]:
        stmt = self.apply_filters(self.base_query(), query).where(Post.status == PostStatus.PUBLISHED.value)
        return self.paginate(stmt, query)

    def get_published_by_slug(self, slug: str) -> Post:
        post = self.get_by_slug(slug)
        if post.status != PostStatus.PUBLISHED.value:
            raise NotFoundError(self.entity_name)
        return post


class TemplateService(BaseCrudService):
    model = Template
    entity_name = "Template"
    search_fields = ("name",)
    sort_fields = ("created_at", "name")
    filter_fields = {"category": tuple(t.value for t in ProjectType)}

    def create_template(self, data: TemplateCreate) -> Template:
        return self.create(data.model_dump())

    def update_template(self, template_id: str, data: TemplateUpdate) -> Template:
        return self.update(template_id, data.model_dump(exclude_unset=True, exclude_none=True))
