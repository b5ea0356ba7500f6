"""
Back-office account endpoints: users, organizations, client projects and
support tickets.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..core.auth import SessionUser
from ..core.pagination import create_response
from ..core.policy import require_admin
from ..db import get_db
from ..models import (
    ERROR_RESPONSES,
    MessageResponse,
    OrganizationCreate,
    OrganizationResponse,
    ProjectResponse,
    ProjectUpdate,
    TicketResponse,
    TicketUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from ..services import AdminUserService, OrganizationService, ProjectService, TicketService, snapshot
from .common import audit, page_response, parse_listing

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)], responses=ERROR_RESPONSES)

USER_FIELDS = ("name", "email", "phone", "role", "organization_id")
PROJECT_FIELDS = ("name", "status", "url")
TICKET_FIELDS = ("status", "priority", "assignee_id")


# Users

@router.get("/users", summary="List users")
def list_users(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = AdminUserService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, UserResponse, base_url=request.url.path)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=201,
    responses={409: {"description": "Email already registered"}},
    summary="Create a user",
)
def create_user(
    body: UserCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    created = AdminUserService(db).create_user(body)
    audit(db, request, user, "CREATE", "user", resource_id=created.id, new_values=snapshot(created, USER_FIELDS))
    return UserResponse.model_validate(created)


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get a user")
def get_user(user_id: str, db: Session = Depends(get_db)) -> UserResponse:
    return UserResponse.model_validate(AdminUserService(db).get(user_id))


@router.put("/users/{user_id}", response_model=UserResponse, summary="Update a user")
def update_user(
    user_id: str,
    body: UserUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    service = AdminUserService(db)
    old_values = snapshot(service.get(user_id), USER_FIELDS)
    updated = service.update_user(user_id, body)
    new_values = snapshot(updated, USER_FIELDS)

    action = "ROLE_CHANGE" if old_values["role"] != new_values["role"] else "UPDATE"
    audit(db, request, user, action, "user", resource_id=user_id, old_values=old_values, new_values=new_values)
    if action == "ROLE_CHANGE":
        logger.warning(
            "User role changed",
            user_id=user_id,
            old_role=old_values["role"],
            new_role=new_values["role"],
            changed_by=user.id,
        )

    return UserResponse.model_validate(updated)


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    responses={409: {"description": "User still owns projects"}},
    summary="Delete a user",
)
def delete_user(
    user_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = AdminUserService(db)
    old_values = snapshot(service.get(user_id), USER_FIELDS)
    service.delete(user_id)
    audit(db, request, user, "DELETE", "user", resource_id=user_id, old_values=old_values)
    return MessageResponse(message="User deleted")


# Organizations

@router.get("/organizations", summary="List organizations with member counts")
def list_organizations(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = OrganizationService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    counts = service.member_counts([org.id for org in rows])

    data = [
        OrganizationResponse.model_validate(org).model_copy(update={"member_count": counts.get(org.id, 0)})
        for org in rows
    ]
    return create_response(data, total, query.pagination, base_url=request.url.path)


@router.post("/organizations", response_model=OrganizationResponse, status_code=201, summary="Create an organization")
def create_organization(
    body: OrganizationCreate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> OrganizationResponse:
    org = OrganizationService(db).create_organization(body)
    audit(
        db, request, user, "CREATE", "organization",
        resource_id=org.id, new_values={"name": org.name, "slug": org.slug},
    )
    return OrganizationResponse.model_validate(org)


# Projects

@router.get("/projects", summary="List all client projects")
def list_projects(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = ProjectService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, ProjectResponse, base_url=request.url.path)


@router.get("/projects/{project_id}", response_model=ProjectResponse, summary="Get a project")
def get_project(project_id: str, db: Session = Depends(get_db)) -> ProjectResponse:
    return ProjectResponse.model_validate(ProjectService(db).get(project_id))


@router.put("/projects/{project_id}", response_model=ProjectResponse, summary="Update project status or URL")
def update_project(
    project_id: str,
    body: ProjectUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    service = ProjectService(db)
    old_values = snapshot(service.get(project_id), PROJECT_FIELDS)
    project = service.update_project(project_id, body)
    audit(
        db, request, user, "UPDATE", "project",
        resource_id=project_id, old_values=old_values, new_values=snapshot(project, PROJECT_FIELDS),
    )
    return ProjectResponse.model_validate(project)


# Tickets

@router.get("/tickets", summary="List all tickets")
def list_tickets(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = TicketService(db)
    query = parse_listing(request, service)
    rows, total = service.list(query)
    return page_response(rows, total, query, TicketResponse, base_url=request.url.path)


@router.get("/tickets/metrics", summary="Ticket counts by status and priority")
def ticket_metrics(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return TicketService(db).metrics()


@router.get("/tickets/{ticket_id}", response_model=TicketResponse, summary="Get a ticket")
def get_ticket(ticket_id: str, db: Session = Depends(get_db)) -> TicketResponse:
    return TicketResponse.model_validate(TicketService(db).get(ticket_id))


@router.put("/tickets/{ticket_id}", response_model=TicketResponse, summary="Update ticket status, priority or assignee")
def update_ticket(
    ticket_id: str,
    body: TicketUpdate,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> TicketResponse:
    service = TicketService(db)
    old_values = snapshot(service.get(ticket_id), TICKET_FIELDS)
    ticket = service.update_ticket(ticket_id, body)
    audit(
        db, request, user, "UPDATE", "ticket",
        resource_id=ticket_id, old_values=old_values, new_values=snapshot(ticket, TICKET_FIELDS),
    )
    return TicketResponse.model_validate(ticket)


@router.delete("/tickets/{ticket_id}", response_model=MessageResponse, summary="Delete a ticket")
def delete_ticket(
    ticket_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = TicketService(db)
    old_values = snapshot(service.get(ticket_id), TICKET_FIELDS)
    service.delete(ticket_id)
    audit(db, request, user, "DELETE", "ticket", resource_id=ticket_id, old_values=old_values)
    return MessageResponse(message="Ticket deleted")
