"""
Tests for back-office user management and organizations.
"""

import pytest
from sqlalchemy.orm import Session

from jasaweb.core.auth import verify_password
from jasaweb.core.exceptions import ConflictError, NotFoundError
from jasaweb.db.tables import User
from jasaweb.models import OrganizationCreate, ProfileUpdate, ProjectCreate, UserCreate, UserUpdate
from jasaweb.services import AdminUserService, OrganizationService, ProjectService


class TestAdminUserService:
    """Account lifecycle rules."""

    def test_register_client_forces_role(self, db_session: Session):
        user = AdminUserService(db_session).register_client("Rina", "rina@toko.test", "rahasia123")

        assert user.role == "client"
        assert verify_password("rahasia123", user.password_hash)

    def test_duplicate_email(self, db_session: Session, client_user: User):
        with pytest.raises(ConflictError):
            AdminUserService(db_session).register_client("Budi", client_user.email, "rahasia123")

    def test_create_admin(self, db_session: Session):
        user = AdminUserService(db_session).create_user(
            UserCreate(name="Ops", email="ops@jasaweb.test", password="rahasia123", role="admin")
        )
        assert user.role == "admin"

    def test_create_with_unknown_organization(self, db_session: Session):
        with pytest.raises(NotFoundError):
            AdminUserService(db_session).create_user(
                UserCreate(name="X", email="x@y.test", password="rahasia123", organization_id="missing")
            )

    def test_update_password_rehashes(self, db_session: Session, client_user: User):
        service = AdminUserService(db_session)

        service.update_user(client_user.id, UserUpdate(password="baru12345"))

        assert verify_password("baru12345", service.get(client_user.id).password_hash)

    def test_update_email_collision(self, db_session: Session, client_user: User, other_client: User):
        with pytest.raises(ConflictError):
            AdminUserService(db_session).update_user(client_user.id, UserUpdate(email=other_client.email))

    def test_profile_clears_phone(self, db_session: Session, client_user: User):
        service = AdminUserService(db_session)
        service.update_profile(client_user.id, ProfileUpdate(phone="081234567890"))

        service.update_profile(client_user.id, ProfileUpdate(phone=None))

        assert service.get(client_user.id).phone is None

    def test_profile_name_only_keeps_phone(self, db_session: Session, client_user: User):
        service = AdminUserService(db_session)
        service.update_profile(client_user.id, ProfileUpdate(phone="081234567890"))

        service.update_profile(client_user.id, ProfileUpdate(name="Budi S."))

        user = service.get(client_user.id)
        assert (user.name, user.phone) == ("Budi S.", "081234567890")

    def test_delete_user_with_projects(self, db_session: Session, client_user: User):
        ProjectService(db_session).create_for_user(client_user.id, ProjectCreate(name="Web", type="sekolah"))

        with pytest.raises(ConflictError) as exc_info:
            AdminUserService(db_session).delete(client_user.id)

        assert exc_info.value.details == {"projects": 1}

    def test_delete_user_without_projects(self, db_session: Session, other_client: User):
        service = AdminUserService(db_session)
        user_id = other_client.id

        service.delete(user_id)

        assert service.find(user_id) is None

    def test_dashboard_stats(self, db_session: Session, admin_user: User, client_user: User):
        ProjectService(db_session).create_for_user(client_user.id, ProjectCreate(name="Web", type="sekolah"))

        stats = AdminUserService(db_session).dashboard_stats()

        assert stats["totalUsers"] == 2
        assert stats["totalProjects"] == 1
        assert stats["totalRevenue"] == 0
        assert stats["activeProjects"] == 0
        assert stats["recentProjects"][0]["user"]["email"] == client_user.email


class TestOrganizationService:
    def test_slug_from_name(self, db_session: Session):
        org = OrganizationService(db_session).create_organization(OrganizationCreate(name="SMA Negeri 1"))
        assert org.slug == "sma-negeri-1"

    def test_duplicate_slug(self, db_session: Session):
        service = OrganizationService(db_session)
        service.create_organization(OrganizationCreate(name="Yayasan", slug="yayasan"))

        with pytest.raises(ConflictError):
            service.create_organization(OrganizationCreate(name="Yayasan Lain", slug="yayasan"))

    def test_member_counts(self, db_session: Session):
        org = OrganizationService(db_session).create_organization(OrganizationCreate(name="Berita Kita"))
        AdminUserService(db_session).create_user(
            UserCreate(name="Siti", email="siti@kita.test", password="rahasia123", organization_id=org.id)
        )

        counts = OrganizationService(db_session).member_counts([org.id, "empty"])

        assert counts == {org.id: 1}
        assert OrganizationService(db_session).member_counts([]) == {}
