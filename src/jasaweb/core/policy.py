"""
Authorization predicate.

One decision function over (subject, resource, action) replaces ad hoc
per-route role checks. Route dependencies built by require() run before
any database dependency, so a rejected call never opens a session.
"""

from typing import Callable, Dict, FrozenSet, Optional

import structlog
from fastapi import Request

from .auth import SessionUser, get_current_user
from .exceptions import AuthenticationError, AuthorizationError

logger = structlog.get_logger(__name__)

READ = "read"
WRITE = "write"
CREATE = "create"
DELETE = "delete"

# Resources a client may touch when they own the row
CLIENT_OWNED: Dict[str, FrozenSet[str]] = {
    "project": frozenset({READ, WRITE}),
    "invoice": frozenset({READ, WRITE}),
    "ticket": frozenset({READ, WRITE}),
    "profile": frozenset({READ, WRITE}),
}

# Resources a client may act on without an owner (the owner is the client)
CLIENT_UNOWNED: Dict[str, FrozenSet[str]] = {
    "project": frozenset({CREATE, READ}),
    "invoice": frozenset({CREATE, READ}),
    "ticket": frozenset({CREATE, READ}),
    "payment": frozenset({CREATE}),
    "profile": frozenset({READ, WRITE}),
    "dashboard": frozenset({READ}),
}


def authorize(
    subject: Optional[SessionUser],
    resource: str,
    action: str,
    owner_id: Optional[str] = None,
) -> bool:
    """
    Decide whether subject may perform action on resource.

    owner_id is the owning user of a concrete row; leave it None for
    collection-level checks (list own rows, create).
    """
    if subject is None:
        return False

    if subject.is_admin:
        return True

    if subject.role != "client":
        return False

    if owner_id is not None:
        return owner_id == subject.id and action in CLIENT_OWNED.get(resource, frozenset())

    return action in CLIENT_UNOWNED.get(resource, frozenset())


def ensure_authorized(
    subject: Optional[SessionUser],
    resource: str,
    action: str,
    owner_id: Optional[str] = None,
) -> SessionUser:
    """Raise 401/403 unless authorize() allows the action; returns the subject."""
    if subject is None:
        raise AuthenticationError()

    if not authorize(subject, resource, action, owner_id):
        logger.warning(
            "Authorization denied",
            user_id=subject.id,
            role=subject.role,
            resource=resource,
            action=action,
        )
        raise AuthorizationError()

    return subject


def require(resource: str, action: str) -> Callable[[Request], SessionUser]:
    """Build a route dependency enforcing a collection-level permission."""

    def dependency(request: Request) -> SessionUser:
        return ensure_authorized(get_current_user(request), resource, action)

    dependency.__name__ = f"require_{resource}_{action}"
    return dependency


def require_admin(request: Request) -> SessionUser:
    """Dependency for back-office routes."""
    return ensure_authorized(get_current_user(request), "admin", READ)
