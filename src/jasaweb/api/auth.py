"""
Authentication endpoints: register, login, logout and the current session.

Login answers both kinds of client: browsers get an httpOnly session
cookie plus a readable CSRF cookie; API clients use the returned token
as a Bearer credential.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.auth import (
    SessionUser,
    auth_cookie_options,
    csrf_cookie_options,
    generate_csrf_token,
    get_current_user,
    require_user,
    session_user_from_row,
    token_for_user,
    verify_password,
)
from ..core.exceptions import AuthenticationError
from ..core.rate_limit import RateLimit
from ..db import get_db
from ..models import (
    ERROR_RESPONSES,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)
from ..services import AdminUserService
from .common import audit

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth")


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    responses={**ERROR_RESPONSES, 409: {"description": "Email already registered"}},
    dependencies=[Depends(RateLimit(5, 60))],
    summary="Register a client account",
)
def register(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> RegisterResponse:
    user = AdminUserService(db).register_client(body.name, body.email, body.password, body.phone)

    audit(
        db,
        request,
        session_user_from_row(user),
        "CREATE",
        "user",
        resource_id=user.id,
        new_values={"name": user.name, "email": user.email, "role": user.role},
    )
    logger.info("Client registered", user_id=user.id)

    return RegisterResponse(
        message="Registration successful",
        user=UserSummary.model_validate(user),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(RateLimit(5, 60))],
    summary="Log in with email and password",
)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    user = AdminUserService(db).get_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.warning("Login failed", email_known=user is not None)
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics.record_auth_failure("invalid_credentials")
        raise AuthenticationError("Invalid email or password")

    security = get_settings().security
    token = token_for_user(user)
    csrf_token = generate_csrf_token()

    response.set_cookie(security.auth_cookie_name, token, **auth_cookie_options(security))
    response.set_cookie(security.csrf_cookie_name, csrf_token, **csrf_cookie_options(security))

    audit(db, request, session_user_from_row(user), "LOGIN", "user", resource_id=user.id)
    logger.info("User logged in", user_id=user.id, role=user.role)

    return LoginResponse(
        message="Login successful",
        user=UserSummary.model_validate(user),
        csrf_token=csrf_token,
        token=token,
    )


@router.post("/logout", response_model=MessageResponse, summary="End the session")
def logout(
    request: Request,
    response: Response,
    user: Optional[SessionUser] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    security = get_settings().security
    response.delete_cookie(security.auth_cookie_name, path="/")
    response.delete_cookie(security.csrf_cookie_name, path="/")

    if user is not None:
        audit(db, request, user, "LOGOUT", "user", resource_id=user.id)
        logger.info("User logged out", user_id=user.id)

    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=MeResponse, responses=ERROR_RESPONSES, summary="Current session")
def me(request: Request, user: SessionUser = Depends(require_user)) -> MeResponse:
    return MeResponse(
        user=UserSummary(**user.to_dict()),
        auth_source=getattr(request.state, "auth_source", None),
    )
