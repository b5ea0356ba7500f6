"""
Tests for pages, posts and templates.
"""

import pytest
from sqlalchemy.orm import Session

from jasaweb.core.exceptions import ConflictError, NotFoundError, ValidationError
from jasaweb.core.pagination import parse_query
from jasaweb.models import PageCreate, PageUpdate, PostCreate, PostUpdate, TemplateCreate
from jasaweb.services import BlogService, CmsService, TemplateService, slugify


class TestSlugify:
    @pytest.mark.parametrize(
        "title,slug",
        [
            ("Tentang Kami", "tentang-kami"),
            ("  Layanan  Kami!  ", "layanan-kami"),
            ("Harga & Paket -- 2024", "harga-paket-2024"),
            ("UPPER case", "upper-case"),
        ],
    )
    def test_slugify(self, title, slug):
        assert slugify(title) == slug


class TestCmsService:
    """Pages addressed by slug."""

    def test_create_derives_slug(self, db_session: Session):
        page = CmsService(db_session).create_page(PageCreate(title="Tentang Kami", content="<p>Halo</p>"))

        assert page.slug == "tentang-kami"
        assert page.id

    def test_duplicate_slug_conflicts(self, db_session: Session):
        service = CmsService(db_session)
        service.create_page(PageCreate(title="Kontak", content="a"))

        with pytest.raises(ConflictError) as exc_info:
            service.create_page(PageCreate(title="kontak!", content="b"))

        assert exc_info.value.status_code == 409

    def test_title_without_slug_characters(self, db_session: Session):
        with pytest.raises(ValidationError):
            CmsService(db_session).create_page(PageCreate(title="!!!", content="a"))

    def test_update_title_regenerates_slug(self, db_session: Session):
        service = CmsService(db_session)
        page = service.create_page(PageCreate(title="Layanan", content="a"))

        updated = service.update_page(page.id, PageUpdate(title="Layanan Kami"))

        assert updated.slug == "layanan-kami"

    def test_update_keeping_title_is_not_a_conflict(self, db_session: Session):
        service = CmsService(db_session)
        page = service.create_page(PageCreate(title="Layanan", content="a"))

        updated = service.update_page(page.id, PageUpdate(title="Layanan", content="b"))

        assert updated.content == "b"

    def test_get_by_slug(self, db_session: Session):
        service = CmsService(db_session)
        service.create_page(PageCreate(title="FAQ", content="a"))

        assert service.get_by_slug("faq").title == "FAQ"
        with pytest.raises(NotFoundError):
            service.get_by_slug("missing")

    def test_list_search_and_sort(self, db_session: Session):
        service = CmsService(db_session)
        for title in ("Beranda", "Kontak", "Tentang"):
            service.create_page(PageCreate(title=title, content=f"Isi {title}"))

        query = parse_query({"search": "kon", "sortBy": "title", "sortOrder": "asc"}, service.query_config())
        rows, total = service.list(query)

        assert total == 1
        assert rows[0].title == "Kontak"

    def test_delete(self, db_session: Session):
        service = CmsService(db_session)
        page = service.create_page(PageCreate(title="Sementara", content="a"))

        service.delete(page.id)

        with pytest.raises(NotFoundError):
            service.get(page.id)


class TestBlogService:
    """Publication state of posts."""

    def test_draft_has_no_publish_date(self, db_session: Session):
        post = BlogService(db_session).create_post(PostCreate(title="Draf", content="a"))

        assert post.status == "draft"
        assert post.published_at is None

    def test_published_post_stamped(self, db_session: Session):
        post = BlogService(db_session).create_post(PostCreate(title="Rilis", content="a", status="published"))
        assert post.published_at is not None

    def test_publish_then_unpublish(self, db_session: Session):
        service = BlogService(db_session)
        post = service.create_post(PostCreate(title="Berita", content="a"))

        published = service.update_post(post.id, PostUpdate(status="published"))
        assert published.published_at is not None

        draft = service.update_post(post.id, PostUpdate(status="draft"))
        assert draft.published_at is None

    def test_republish_keeps_original_date(self, db_session: Session):
        service = BlogService(db_session)
        post = service.create_post(PostCreate(title="Berita", content="a", status="published"))
        first = post.published_at

        again = service.update_post(post.id, PostUpdate(status="published", content="b"))

        assert again.published_at == first

    def test_public_listing_hides_drafts(self, db_session: Session):
        service = BlogService(db_session)
        service.create_post(PostCreate(title="Terbit", content="a", status="published"))
        service.create_post(PostCreate(title="Draf", content="a"))

        rows, total = service.list_published(parse_query({}, service.query_config()))

        assert total == 1
        assert rows[0].title == "Terbit"

    def test_draft_slug_not_public(self, db_session: Session):
        service = BlogService(db_session)
        service.create_post(PostCreate(title="Rahasia", content="a"))

        with pytest.raises(NotFoundError):
            service.get_published_by_slug("rahasia")

    def test_invalid_status_filter(self, db_session: Session):
        service = BlogService(db_session)

        with pytest.raises(ValidationError):
            service.list(parse_query({"status": "archived"}, service.query_config()))


class TestTemplateService:
    def test_filter_by_category(self, db_session: Session):
        service = TemplateService(db_session)
        for name, category in (("Sekolah Modern", "sekolah"), ("Portal Cepat", "berita")):
            service.create_template(
                TemplateCreate(
                    name=name,
                    category=category,
                    image_url=f"https://cdn.test/{category}.png",
                    demo_url=f"https://demo.test/{category}",
                )
            )

        rows, total = service.list(parse_query({"category": "berita"}, service.query_config()))

        assert total == 1
        assert rows[0].name == "Portal Cepat"
