"""
Back-office models: users, organizations and audit entries.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from .common import EMAIL_PATTERN, APIModel, Role


class UserCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=32)
    role: Role = Role.CLIENT
    organization_id: Optional[str] = None


class UserUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=32)
    role: Optional[Role] = None
    organization_id: Optional[str] = None


class UserResponse(APIModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    organization_id: Optional[str] = None
    created_at: datetime


class OrganizationCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255, pattern=r"^[a-z0-9-]+$")


class OrganizationResponse(APIModel):
    id: str
    name: str
    slug: str
    created_at: datetime
    member_count: int = 0


class AuditLogResponse(APIModel):
    id: str
    user_id: Optional[str] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    ip_address: str
    user_agent: str
    timestamp: datetime
