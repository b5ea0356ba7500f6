"""
Shared API models: camelCase serialization base, enums, error and pagination envelopes.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class APIModel(BaseModel):
    """
    Base for request and response bodies.

    JSON uses camelCase; Python attributes stay snake_case. Responses read
    straight from ORM rows.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        validate_default=True,
    )


class Role(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


class ProjectType(str, Enum):
    """Website package; also the category of a template."""

    SEKOLAH = "sekolah"
    BERITA = "berita"
    COMPANY = "company"


class ProjectStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REFUNDED = "refunded"
    PARTIAL_REFUNDED = "partial_refunded"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class PlanColor(str, Enum):
    PRIMARY = "primary"
    SUCCESS = "success"
    WARNING = "warning"


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error: str = Field(description="Error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class MessageResponse(BaseModel):
    message: str


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Forbidden or CSRF token mismatch"},
    404: {"model": ErrorResponse, "description": "Not found"},
}


def format_rupiah(amount: int) -> str:
    """2500000 -> 'Rp 2.500.000'"""
    return "Rp " + f"{amount:,}".replace(",", ".")
