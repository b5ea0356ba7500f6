"""
Client portal endpoints: profile, projects, invoices, payments and tickets.

Every route acts on the signed-in user's own rows. Collection routes are
guarded by policy dependencies; single-row routes check ownership of the
loaded row.
"""

from typing import Any, Dict, Tuple

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..core.auth import SessionUser, verify_password
from ..core.exceptions import ServiceUnavailableError, ValidationError
from ..core.payments import MidtransClient, get_midtrans_client
from ..core.policy import CREATE, READ, WRITE, ensure_authorized, require
from ..core.rate_limit import RateLimit
from ..db import get_db
from ..db.tables import Invoice, User
from ..models import (
    ERROR_RESPONSES,
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoiceResponse,
    MessageResponse,
    PasswordChange,
    PaymentRequest,
    PaymentResponse,
    ProfileResponse,
    ProfileUpdate,
    ProjectCreate,
    ProjectResponse,
    TicketCreate,
    TicketResponse,
)
from ..services import AdminUserService, InvoiceService, ProjectService, TicketService, snapshot
from .common import audit, page_response, parse_listing

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/client", responses=ERROR_RESPONSES)


# Profile

@router.get("/profile", response_model=ProfileResponse, summary="Own profile")
def get_profile(
    user: SessionUser = Depends(require("profile", READ)),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    return ProfileResponse.model_validate(AdminUserService(db).get(user.id))


@router.put("/profile", response_model=ProfileResponse, summary="Update name or phone")
def update_profile(
    body: ProfileUpdate,
    request: Request,
    user: SessionUser = Depends(require("profile", WRITE)),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    service = AdminUserService(db)
    old_values = snapshot(service.get(user.id), ("name", "phone"))
    updated = service.update_profile(user.id, body)
    audit(
        db, request, user, "UPDATE", "user",
        resource_id=user.id, old_values=old_values, new_values=snapshot(updated, ("name", "phone")),
    )
    return ProfileResponse.model_validate(updated)


@router.put("/password", response_model=MessageResponse, summary="Change own password")
def change_password(
    body: PasswordChange,
    request: Request,
    user: SessionUser = Depends(require("profile", WRITE)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = AdminUserService(db)
    account = service.get(user.id)
    if not verify_password(body.current_password, account.password_hash):
        raise ValidationError("Current password is incorrect")
    if body.current_password == body.new_password:
        raise ValidationError("New password must differ from the current password")

    service.change_password(user.id, body.new_password)
    audit(db, request, user, "UPDATE", "user", resource_id=user.id)
    logger.info("Password changed", user_id=user.id)
    return MessageResponse(message="Password changed")


# Projects

@router.get("/projects", summary="Own projects")
def list_projects(
    request: Request,
    user: SessionUser = Depends(require("project", READ)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    service = ProjectService(db)
    query = parse_listing(request, service)
    rows, total = service.list_for_user(user.id, query)
    return page_response(rows, total, query, ProjectResponse, base_url=request.url.path)


@router.post("/projects", response_model=ProjectResponse, status_code=201, summary="Order a new website")
def create_project(
    body: ProjectCreate,
    request: Request,
    user: SessionUser = Depends(require("project", CREATE)),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    project = ProjectService(db).create_for_user(user.id, body)
    audit(
        db, request, user, "CREATE", "project",
        resource_id=project.id, new_values=snapshot(project, ("name", "type", "status")),
    )
    return ProjectResponse.model_validate(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse, summary="One own project")
def get_project(
    project_id: str,
    user: SessionUser = Depends(require("project", READ)),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    project = ProjectService(db).get(project_id)
    ensure_authorized(user, "project", READ, owner_id=project.user_id)
    return ProjectResponse.model_validate(project)


# Invoices

@router.get("/invoices", summary="Own invoices")
def list_invoices(
    request: Request,
    user: SessionUser = Depends(require("invoice", READ)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    service = InvoiceService(db)
    query = parse_listing(request, service)
    rows, total = service.list_for_user(user.id, query)
    return page_response(rows, total, query, InvoiceResponse, base_url=request.url.path)


@router.post(
    "/invoices",
    response_model=InvoiceCreateResponse,
    status_code=201,
    dependencies=[Depends(RateLimit(5, 60))],
    summary="Create the invoice for a project",
    description="An existing unpaid invoice for the project is returned (200) instead of creating another.",
)
def create_invoice(
    body: InvoiceCreate,
    request: Request,
    response: Response,
    user: SessionUser = Depends(require("invoice", CREATE)),
    db: Session = Depends(get_db),
) -> InvoiceCreateResponse:
    result = InvoiceService(db).create_for_project(body.project_id, user.id)
    invoice = result.invoice

    if result.duplicate:
        response.status_code = 200
        message = "An unpaid invoice already exists for this project"
    else:
        audit(
            db, request, user, "CREATE", "invoice",
            resource_id=invoice.id,
            new_values={"project_id": invoice.project_id, "amount": invoice.amount, "status": invoice.status},
        )
        message = "Invoice created"

    return InvoiceCreateResponse(
        invoice=InvoiceResponse.model_validate(invoice),
        duplicate=result.duplicate,
        message=message,
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse, summary="One own invoice")
def get_invoice(
    invoice_id: str,
    user: SessionUser = Depends(require("invoice", READ)),
    db: Session = Depends(get_db),
) -> InvoiceResponse:
    invoice = InvoiceService(db).get(invoice_id)
    ensure_authorized(user, "invoice", READ, owner_id=invoice.project.user_id)
    return InvoiceResponse.model_validate(invoice)


# Payments

@router.post(
    "/payment",
    response_model=PaymentResponse,
    dependencies=[Depends(RateLimit(10, 60))],
    responses={502: {"description": "Payment gateway error"}, 503: {"description": "Payment gateway not configured"}},
    summary="Start a QRIS payment for an unpaid invoice",
)
async def create_payment(
    body: PaymentRequest,
    request: Request,
    user: SessionUser = Depends(require("payment", CREATE)),
    db: Session = Depends(get_db),
    gateway: MidtransClient = Depends(get_midtrans_client),
) -> PaymentResponse:
    service = InvoiceService(db)

    def load() -> Tuple[Invoice, User]:
        invoice = service.get_for_user(body.invoice_id, user.id)
        service.validate_for_payment(invoice)
        return invoice, AdminUserService(db).get(user.id)

    invoice, account = await run_in_threadpool(load)

    if not gateway.configured:
        logger.error("Payment requested but gateway server key is not configured")
        raise ServiceUnavailableError("Payment service unavailable")

    charge = await gateway.charge_qris(invoice, invoice.project, account)

    def save() -> None:
        service.mark_payment_initiated(invoice, charge.order_id, charge.qris_url)
        audit(
            db, request, user, "PAYMENT_INIT", "invoice",
            resource_id=invoice.id,
            new_values={"order_id": charge.order_id, "qris_url": charge.qris_url, "amount": invoice.amount},
        )

    await run_in_threadpool(save)

    return PaymentResponse(
        invoice_id=invoice.id,
        order_id=charge.order_id,
        qris_url=charge.qris_url,
        amount=invoice.amount,
        status=invoice.status,
    )


# Tickets

@router.get("/tickets", summary="Own support tickets")
def list_tickets(
    request: Request,
    user: SessionUser = Depends(require("ticket", READ)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    service = TicketService(db)
    query = parse_listing(request, service)
    rows, total = service.list_for_user(user.id, query)
    return page_response(rows, total, query, TicketResponse, base_url=request.url.path)


@router.post("/tickets", response_model=TicketResponse, status_code=201, summary="Open a support ticket")
def create_ticket(
    body: TicketCreate,
    request: Request,
    user: SessionUser = Depends(require("ticket", CREATE)),
    db: Session = Depends(get_db),
) -> TicketResponse:
    ticket = TicketService(db).create_for_user(user.id, body)
    audit(
        db, request, user, "CREATE", "ticket",
        resource_id=ticket.id, new_values=snapshot(ticket, ("title", "priority", "project_id")),
    )
    return TicketResponse.model_validate(ticket)
