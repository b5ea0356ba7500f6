"""
Per-request session resolution, CSRF enforcement and request metrics.
"""

import time
from typing import Awaitable, Callable, Optional, Tuple

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import Settings, get_settings
from .auth import SessionUser, extract_bearer_token, mask_token, validate_csrf_token, verify_token
from .exceptions import AuthenticationError, CsrfError

logger = structlog.get_logger(__name__)

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

RequestHandler = Callable[[Request], Awaitable[Response]]


def error_response(exc: CsrfError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": exc.message, "details": exc.details},
    )


def is_csrf_protected(path: str, prefixes) -> bool:
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in prefixes)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session user for every request.

    The token is read from the Authorization header first, then from the
    auth cookie. A token that fails verification leaves the request
    anonymous; when it came from the cookie both session cookies are
    cleared on the way out. Cookie sessions must echo the CSRF cookie in
    the CSRF header for mutations on protected prefixes.
    """

    def __init__(self, app, settings: Optional[Settings] = None) -> None:
        super().__init__(app)
        self.settings = settings or get_settings()

    def _resolve(self, request: Request) -> Tuple[Optional[SessionUser], Optional[str], bool]:
        """Returns (user, auth_source, clear_cookies)."""
        security = self.settings.security

        token = extract_bearer_token(request.headers.get("authorization"))
        source = "bearer"
        if token is None:
            token = request.cookies.get(security.auth_cookie_name)
            source = "cookie"

        if not token:
            return None, None, False

        try:
            user = verify_token(token, security.jwt_secret, security.jwt_algorithm)
        except AuthenticationError:
            logger.info("Rejected session token", token=mask_token(token), source=source)
            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.record_auth_failure(f"invalid_{source}_token")
            return None, None, source == "cookie"

        return user, source, False

    async def dispatch(self, request: Request, call_next: RequestHandler) -> Response:
        security = self.settings.security
        user, source, clear_cookies = self._resolve(request)

        request.state.user = user
        request.state.auth_source = source

        if (
            source == "cookie"
            and request.method in UNSAFE_METHODS
            and is_csrf_protected(request.url.path, security.csrf_protected_prefixes)
        ):
            header_token = request.headers.get(security.csrf_header_name)
            cookie_token = request.cookies.get(security.csrf_cookie_name)
            if not validate_csrf_token(header_token, cookie_token):
                logger.warning(
                    "CSRF validation failed",
                    path=request.url.path,
                    method=request.method,
                    user_id=user.id if user else None,
                    header_present=bool(header_token),
                    cookie_present=bool(cookie_token),
                )
                metrics = getattr(request.app.state, "metrics", None)
                if metrics is not None:
                    metrics.record_csrf_rejection()
                return error_response(CsrfError())

        response = await call_next(request)

        if clear_cookies:
            response.delete_cookie(security.auth_cookie_name, path="/")
            response.delete_cookie(security.csrf_cookie_name, path="/")

        return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Records count and latency of every request by route template."""

    async def dispatch(self, request: Request, call_next: RequestHandler) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", None) or "unmatched"
            metrics.record_request(
                method=request.method,
                endpoint=endpoint,
                status_code=response.status_code,
                duration_seconds=time.perf_counter() - started,
            )

        return response
