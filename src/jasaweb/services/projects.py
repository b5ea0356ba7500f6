"""
Website projects ordered by clients.
"""

from typing import Any, Dict, List, Tuple

from sqlalchemy import select

from ..core.exceptions import NotFoundError
from ..core.pagination import QueryDescriptor
from ..db.tables import Project
from ..models import ProjectCreate, ProjectStatus, ProjectType, ProjectUpdate
from .base import BaseCrudService


class ProjectService(BaseCrudService):
    model = Project
    entity_name = "Project"
    search_fields = ("name",)
    sort_fields = ("created_at", "updated_at", "name", "status")
    filter_fields = {
        "status": tuple(s.value for s in ProjectStatus),
        "type": tuple(t.value for t in ProjectType),
    }

    def list_for_user(self, user_id: str, query: QueryDescriptor) -> Tuple[List[Project], int]:
        stmt = self.apply_filters(self.base_query(), query).where(Project.user_id == user_id)
        return self.paginate(stmt, query)

    def get_for_user(self, project_id: str, user_id: str) -> Project:
        """A project owned by user_id; someone else's project reads as missing."""
        project = self.session.scalar(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        if project is None:
            raise NotFoundError(self.entity_name, project_id)
        return project

    def create_for_user(self, user_id: str, data: ProjectCreate) -> Project:
        return self.create({
            "user_id": user_id,
            "name": data.name,
            "type": data.type,
            "status": ProjectStatus.PENDING_PAYMENT.value,
        })

    def update_project(self, project_id: str, data: ProjectUpdate) -> Project:
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
        # url may be cleared explicitly; the rest ignore nulls
        changes = {k: v for k, v in changes.items() if v is not None or k == "url"}
        return self.update(project_id, changes)
