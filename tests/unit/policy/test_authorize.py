"""
Tests for the authorization predicate and its route dependencies.
"""

from types import SimpleNamespace

import pytest

from jasaweb.core.auth import SessionUser
from jasaweb.core.exceptions import AuthenticationError, AuthorizationError
from jasaweb.core.policy import (
    CREATE,
    DELETE,
    READ,
    WRITE,
    authorize,
    ensure_authorized,
    require,
    require_admin,
)

ADMIN = SessionUser(id="admin-1", email="admin@jasaweb.test", name="Admin", role="admin")
CLIENT = SessionUser(id="client-1", email="budi@sekolah.test", name="Budi", role="client")


def fake_request(user):
    return SimpleNamespace(state=SimpleNamespace(user=user))


class TestAuthorize:
    """Decisions over (subject, resource, action)."""

    def test_anonymous_denied(self):
        assert not authorize(None, "page", READ)

    @pytest.mark.parametrize("resource", ["page", "user", "invoice", "audit", "admin"])
    @pytest.mark.parametrize("action", [READ, WRITE, CREATE, DELETE])
    def test_admin_allowed_everything(self, resource, action):
        assert authorize(ADMIN, resource, action)

    def test_client_owns_row(self):
        assert authorize(CLIENT, "project", READ, owner_id="client-1")
        assert authorize(CLIENT, "invoice", WRITE, owner_id="client-1")

    def test_client_foreign_row_denied(self):
        assert not authorize(CLIENT, "project", READ, owner_id="client-2")

    def test_client_cannot_delete_own_row(self):
        assert not authorize(CLIENT, "project", DELETE, owner_id="client-1")

    @pytest.mark.parametrize(
        "resource,action",
        [("project", CREATE), ("invoice", CREATE), ("ticket", CREATE), ("payment", CREATE), ("dashboard", READ)],
    )
    def test_client_collection_actions(self, resource, action):
        assert authorize(CLIENT, resource, action)

    @pytest.mark.parametrize("resource", ["admin", "page", "user", "audit"])
    def test_client_back_office_denied(self, resource):
        assert not authorize(CLIENT, resource, READ)

    def test_unknown_role_denied(self):
        guest = SessionUser(id="g", email="g@x.test", name="G", role="guest")
        assert not authorize(guest, "project", READ)


class TestEnsureAuthorized:
    """Exceptions raised for denied decisions."""

    def test_anonymous_is_401(self):
        with pytest.raises(AuthenticationError):
            ensure_authorized(None, "project", READ)

    def test_denied_is_403(self):
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_authorized(CLIENT, "invoice", READ, owner_id="someone-else")
        assert exc_info.value.status_code == 403

    def test_returns_subject(self):
        assert ensure_authorized(CLIENT, "invoice", READ, owner_id="client-1") is CLIENT


class TestDependencies:
    """require() and require_admin read the session user from the request."""

    def test_require_builds_named_dependency(self):
        dependency = require("dashboard", READ)

        assert dependency.__name__ == "require_dashboard_read"
        assert dependency(fake_request(CLIENT)) is CLIENT

    def test_require_rejects_anonymous(self):
        with pytest.raises(AuthenticationError):
            require("project", CREATE)(fake_request(None))

    def test_require_admin(self):
        assert require_admin(fake_request(ADMIN)) is ADMIN
        with pytest.raises(AuthorizationError):
            require_admin(fake_request(CLIENT))
        with pytest.raises(AuthenticationError):
            require_admin(fake_request(None))
