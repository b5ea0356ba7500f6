"""
Authentication primitives: password hashing, session tokens and CSRF tokens.

Token verification is pure; callers treat any failure as an anonymous
request and clear stored credentials.
"""

import hmac
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import jwt
import structlog
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Request

from ..config import SecuritySettings, get_settings
from .exceptions import AuthenticationError

logger = structlog.get_logger(__name__)

_password_hasher = PasswordHasher()

ROLES = ("admin", "client")


@dataclass(frozen=True)
class SessionUser:
    """Claims carried by a session token and attached to request.state.user."""

    id: str
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def issue_token(
    user: SessionUser,
    secret: str,
    lifetime_seconds: int,
    algorithm: str = "HS256",
) -> str:
    """Sign a session token for the user."""
    now = int(time.time())
    payload = {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "iat": now,
        "exp": now + lifetime_seconds,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> SessionUser:
    """
    Verify a session token and return its claims.

    Raises AuthenticationError for a bad signature, expiry, or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("Token verification failed", reason=type(e).__name__)
        raise AuthenticationError("Invalid or expired token") from e

    role = payload.get("role")
    if role not in ROLES:
        raise AuthenticationError("Invalid or expired token")

    return SessionUser(
        id=str(payload["sub"]),
        email=str(payload.get("email", "")),
        name=str(payload.get("name", "")),
        role=role,
    )


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    return token or None


def generate_csrf_token() -> str:
    """32 random bytes as 64 hex characters."""
    return secrets.token_hex(32)


def validate_csrf_token(header_token: Optional[str], cookie_token: Optional[str]) -> bool:
    """True only when both tokens are present and exactly equal."""
    if not header_token or not cookie_token:
        return False
    return hmac.compare_digest(header_token.encode("utf-8"), cookie_token.encode("utf-8"))


def auth_cookie_options(security: SecuritySettings) -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": security.cookie_secure,
        "samesite": "lax",
        "path": "/",
        "max_age": security.token_lifetime_seconds,
    }


def csrf_cookie_options(security: SecuritySettings) -> Dict[str, Any]:
    # Readable by the frontend so it can echo the value in the header
    return {
        "httponly": False,
        "secure": security.cookie_secure,
        "samesite": "strict",
        "path": "/",
        "max_age": security.token_lifetime_seconds,
    }


def mask_token(token: str) -> str:
    return token[:8] + "..." if len(token) >= 8 else "invalid"


def get_current_user(request: Request) -> Optional[SessionUser]:
    """Dependency returning the session user set by the session middleware, if any."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> SessionUser:
    """Dependency for routes that only need an authenticated subject."""
    user = get_current_user(request)
    if user is None:
        raise AuthenticationError()
    return user


def session_user_from_row(row: Any) -> SessionUser:
    """Build claims from a users table row."""
    return SessionUser(id=row.id, email=row.email, name=row.name, role=row.role)


def token_for_user(row: Any) -> str:
    settings = get_settings()
    return issue_token(
        session_user_from_row(row),
        settings.security.jwt_secret,
        settings.security.token_lifetime_seconds,
        settings.security.jwt_algorithm,
    )
