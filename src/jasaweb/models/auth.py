"""
Authentication and profile request/response models.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import EMAIL_PATTERN, APIModel, Role


class RegisterRequest(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=8, max_length=128, description="At least 8 characters")
    phone: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(APIModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserSummary(APIModel):
    id: str
    name: str
    email: str
    role: Role


class LoginResponse(APIModel):
    message: str
    user: UserSummary
    csrf_token: str = Field(description="Echo this value in the X-CSRF-Token header for cookie sessions")
    token: str = Field(description="Session token for Authorization: Bearer clients")


class RegisterResponse(APIModel):
    message: str
    user: UserSummary


class ProfileResponse(APIModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    created_at: datetime


class ProfileUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)


class PasswordChange(APIModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class MeResponse(APIModel):
    user: UserSummary
    auth_source: Optional[str] = None
