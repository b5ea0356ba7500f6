"""
Back-office user management, dashboard statistics and organizations.
"""

from typing import Any, Dict, List

import structlog
from sqlalchemy import func, select

from ..core.auth import hash_password
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..db.tables import Invoice, Organization, Project, User
from ..models import InvoiceStatus, OrganizationCreate, ProfileUpdate, ProjectStatus, Role, UserCreate, UserUpdate
from .base import BaseCrudService, slugify

logger = structlog.get_logger(__name__)

ACTIVE_PROJECT_STATUSES = (ProjectStatus.IN_PROGRESS.value, ProjectStatus.REVIEW.value)


class AdminUserService(BaseCrudService):
    model = User
    entity_name = "User"
    search_fields = ("name", "email")
    sort_fields = ("created_at", "name", "email")
    filter_fields = {"role": tuple(r.value for r in Role)}

    def dashboard_stats(self) -> Dict[str, Any]:
        total_revenue = self.session.scalar(
            select(func.coalesce(func.sum(Invoice.amount), 0)).where(Invoice.status == InvoiceStatus.PAID.value)
        )
        recent_users = self.session.scalars(select(User).order_by(User.created_at.desc()).limit(5))
        recent_projects = self.session.scalars(select(Project).order_by(Project.created_at.desc()).limit(5))

        return {
            "totalUsers": self.session.scalar(select(func.count(User.id))),
            "totalProjects": self.session.scalar(select(func.count(Project.id))),
            "totalRevenue": int(total_revenue or 0),
            "activeProjects": self.session.scalar(
                select(func.count(Project.id)).where(Project.status.in_(ACTIVE_PROJECT_STATUSES))
            ),
            "pendingPayments": self.session.scalar(
                select(func.count(Invoice.id)).where(Invoice.status == InvoiceStatus.UNPAID.value)
            ),
            "recentUsers": [
                {
                    "id": u.id,
                    "name": u.name,
                    "email": u.email,
                    "role": u.role,
                    "createdAt": u.created_at.isoformat(),
                }
                for u in recent_users
            ],
            "recentProjects": [
                {
                    "id": p.id,
                    "name": p.name,
                    "type": p.type,
                    "status": p.status,
                    "createdAt": p.created_at.isoformat(),
                    "user": {"id": p.user.id, "name": p.user.name, "email": p.user.email},
                }
                for p in recent_projects
            ],
        }

    def get_by_email(self, email: str) -> Any:
        return self.session.scalar(select(User).where(User.email == email))

    def register_client(self, name: str, email: str, password: str, phone: Any = None) -> User:
        """Self-service signup; always creates a client."""
        self.ensure_unique("email", email)
        return self.create({
            "name": name,
            "email": email,
            "phone": phone or None,
            "password_hash": hash_password(password),
            "role": Role.CLIENT.value,
        })

    def create_user(self, data: UserCreate) -> User:
        self.ensure_unique("email", data.email)
        if data.organization_id:
            self._require_organization(data.organization_id)
        values = data.model_dump(exclude={"password"})
        values["phone"] = values.get("phone") or None
        values["password_hash"] = hash_password(data.password)
        return self.create(values)

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        self.get(user_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            self.ensure_unique("email", changes["email"], exclude_id=user_id)
        if "organization_id" in changes:
            self._require_organization(changes["organization_id"])
        if "password" in changes:
            changes["password_hash"] = hash_password(changes.pop("password"))
        return self.update(user_id, changes)

    def update_profile(self, user_id: str, data: ProfileUpdate) -> User:
        changes: Dict[str, Any] = {}
        if data.name:
            changes["name"] = data.name
        # An explicit null or empty phone clears it
        if "phone" in data.model_fields_set:
            changes["phone"] = data.phone or None
        return self.update(user_id, changes)

    def change_password(self, user_id: str, new_password: str) -> None:
        self.update(user_id, {"password_hash": hash_password(new_password)})

    def delete(self, entity_id: str) -> None:
        self.get(entity_id)
        project_count = self.session.scalar(select(func.count(Project.id)).where(Project.user_id == entity_id))
        if project_count:
            raise ConflictError(
                "Cannot delete user with existing projects",
                details={"projects": project_count},
            )
        super().delete(entity_id)

    def _require_organization(self, organization_id: str) -> None:
        if self.session.get(Organization, organization_id) is None:
            raise NotFoundError("Organization", organization_id)


class OrganizationService(BaseCrudService):
    model = Organization
    entity_name = "Organization"
    search_fields = ("name", "slug")
    sort_fields = ("created_at", "name")

    def create_organization(self, data: OrganizationCreate) -> Organization:
        slug = data.slug or slugify(data.name)
        if not slug:
            raise ValidationError("Organization name must contain letters or digits")
        self.ensure_unique("slug", slug)
        return self.create({"name": data.name, "slug": slug})

    def member_counts(self, organization_ids: List[str]) -> Dict[str, int]:
        if not organization_ids:
            return {}
        rows = self.session.execute(
            select(User.organization_id, func.count(User.id))
            .where(User.organization_id.in_(organization_ids))
            .group_by(User.organization_id)
        )
        return {org_id: count for org_id, count in rows}
