"""
Pydantic data models package.

Contains request and response bodies for:
- Authentication and profiles
- CMS content and pricing plans
- Client projects, invoices, tickets and payments
- Back-office users, organizations and audit entries
"""

from .admin import (
    AuditLogResponse,
    OrganizationCreate,
    OrganizationResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from .auth import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    PasswordChange,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)
from .client import (
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoiceResponse,
    PaymentRequest,
    PaymentResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
)
from .common import (
    ERROR_RESPONSES,
    APIModel,
    ErrorResponse,
    InvoiceStatus,
    MessageResponse,
    PaginationMeta,
    PlanColor,
    PostStatus,
    ProjectStatus,
    ProjectType,
    Role,
    TicketPriority,
    TicketStatus,
    format_rupiah,
)
from .content import (
    PageCreate,
    PageResponse,
    PageUpdate,
    PostCreate,
    PostResponse,
    PostUpdate,
    PricingPlanCreate,
    PricingPlanResponse,
    PricingPlanUpdate,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)

__all__ = [
    # Shared
    "APIModel",
    "ERROR_RESPONSES",
    "ErrorResponse",
    "MessageResponse",
    "PaginationMeta",
    "format_rupiah",
    "Role",
    "ProjectType",
    "ProjectStatus",
    "InvoiceStatus",
    "TicketStatus",
    "TicketPriority",
    "PostStatus",
    "PlanColor",

    # Auth
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "MeResponse",
    "UserSummary",
    "ProfileResponse",
    "ProfileUpdate",
    "PasswordChange",

    # Content
    "PageCreate",
    "PageUpdate",
    "PageResponse",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "PricingPlanCreate",
    "PricingPlanUpdate",
    "PricingPlanResponse",

    # Client
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "InvoiceCreate",
    "InvoiceResponse",
    "InvoiceCreateResponse",
    "PaymentRequest",
    "PaymentResponse",
    "TicketCreate",
    "TicketUpdate",
    "TicketResponse",

    # Admin
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "OrganizationCreate",
    "OrganizationResponse",
    "AuditLogResponse",
]
