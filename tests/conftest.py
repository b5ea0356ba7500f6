"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules. Every test
gets a fresh in-memory SQLite database and an empty rate limiter.
"""

import os

# Settings are cached on first read; test values must be in place before the app is imported
os.environ["JASAWEB_SECURITY_JWT_SECRET"] = "test_jwt_secret_0123456789abcdefghijklmnop"
os.environ["JASAWEB_DATABASE_URL"] = "sqlite://"
os.environ["JASAWEB_PAYMENT_MIDTRANS_SERVER_KEY"] = "SB-Mid-server-test0123456789"
os.environ["JASAWEB_CONFIG_FILE"] = "/nonexistent/jasaweb-test-config.yaml"
os.environ["JASAWEB_LOG_LEVEL"] = "WARNING"

from typing import Callable, Dict, Generator, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from jasaweb.config import reload_settings
from jasaweb.core.auth import token_for_user
from jasaweb.core.rate_limit import set_rate_limiter
from jasaweb.db import get_session_factory, init_db, reset_engine
from jasaweb.db.tables import PricingPlan, User
from jasaweb.main import create_app
from jasaweb.models import UserCreate
from jasaweb.services import AdminUserService

TEST_PASSWORD = "rahasia123"


@pytest.fixture(autouse=True)
def isolated_state() -> Generator[None, None, None]:
    """Fresh settings, limiter and database for every test."""
    reload_settings()
    set_rate_limiter(None)
    reset_engine()
    yield
    set_rate_limiter(None)
    reset_engine()


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def test_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI test client with the lifespan (schema, metrics, health) running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Session on the same in-memory database the app uses."""
    init_db()
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def create_account(
    session: Session,
    email: str,
    role: str = "client",
    name: str = "Budi Santoso",
    password: str = TEST_PASSWORD,
) -> User:
    return AdminUserService(session).create_user(
        UserCreate(name=name, email=email, password=password, role=role)
    )


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory for extra accounts: make_user("email", role="admin")."""

    def build(email: str, **kwargs: str) -> User:
        return create_account(db_session, email, **kwargs)

    return build


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return create_account(db_session, "admin@jasaweb.test", role="admin", name="Admin JasaWeb")


@pytest.fixture
def client_user(db_session: Session) -> User:
    return create_account(db_session, "budi@sekolah.test", name="Budi Santoso")


@pytest.fixture
def other_client(db_session: Session) -> User:
    return create_account(db_session, "siti@berita.test", name="Siti Rahma")


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Bearer headers for a user row."""

    def build(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token_for_user(user)}"}

    return build


@pytest.fixture
def admin_headers(admin_user: User, auth_headers: Callable[[User], Dict[str, str]]) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def client_headers(client_user: User, auth_headers: Callable[[User], Dict[str, str]]) -> Dict[str, str]:
    return auth_headers(client_user)


@pytest.fixture
def pricing_plans(db_session: Session) -> List[PricingPlan]:
    """One active plan per project type."""
    plans = [
        PricingPlan(
            identifier="sekolah",
            name="Website Sekolah",
            price=2_500_000,
            description="Website profil sekolah",
            features=["PPDB online", "Galeri kegiatan"],
            sort_order=1,
        ),
        PricingPlan(
            identifier="berita",
            name="Portal Berita",
            price=3_000_000,
            description="Portal berita dengan CMS",
            features=["Editor artikel", "Kategori berita"],
            popular=True,
            color="success",
            sort_order=2,
        ),
        PricingPlan(
            identifier="company",
            name="Company Profile",
            price=2_000_000,
            description="Website profil perusahaan",
            features=["Halaman layanan"],
            color="warning",
            sort_order=3,
        ),
    ]
    db_session.add_all(plans)
    db_session.commit()
    return plans
