"""
Client portal models: projects, invoices, tickets and payment initiation.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import APIModel, InvoiceStatus, ProjectStatus, ProjectType, TicketPriority, TicketStatus


class ProjectCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ProjectType


class ProjectUpdate(APIModel):
    """Admin-side project changes."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[ProjectStatus] = None
    url: Optional[str] = Field(default=None, max_length=512)


class ProjectResponse(APIModel):
    id: str
    user_id: str
    name: str
    type: ProjectType
    status: ProjectStatus
    url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InvoiceCreate(APIModel):
    project_id: str = Field(..., min_length=1)


class InvoiceProject(APIModel):
    id: str
    name: str
    type: ProjectType
    status: ProjectStatus


class InvoiceResponse(APIModel):
    id: str
    project_id: str
    amount: int
    status: InvoiceStatus
    midtrans_order_id: Optional[str] = None
    qris_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    project: Optional[InvoiceProject] = None


class InvoiceCreateResponse(APIModel):
    invoice: InvoiceResponse
    duplicate: bool = False
    message: str


class PaymentRequest(APIModel):
    invoice_id: str = Field(..., min_length=1)


class PaymentResponse(APIModel):
    invoice_id: str
    order_id: str
    qris_url: str
    amount: int
    status: InvoiceStatus


class TicketCreate(APIModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM
    project_id: Optional[str] = None


class TicketUpdate(APIModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assignee_id: Optional[str] = None


class TicketResponse(APIModel):
    id: str
    reporter_id: str
    project_id: Optional[str] = None
    assignee_id: Optional[str] = None
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    created_at: datetime
    updated_at: datetime
