"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import (
    admin_accounts_router,
    admin_content_router,
    admin_reports_router,
    auth_router,
    client_router,
    create_graphql_router,
    dashboard_router,
    healthz_router,
    metrics_router,
    public_router,
    webhooks_router,
)
from .config import Settings, get_settings, validate_settings
from .core.exceptions import ConfigurationError, JasaWebException
from .core.health import HealthChecker
from .core.metrics import MetricsCollector
from .core.rate_limit import RateLimit
from .core.session import RequestMetricsMiddleware, SessionMiddleware
from .db import init_db, reset_engine


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Ensures the schema exists and wires the metrics collector and
        health checker into app state.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting JasaWeb API", version=app.version, environment=settings.environment)

        init_db()

        app.state.metrics = MetricsCollector()
        app.state.health_checker = HealthChecker()

        try:
            logger.info("JasaWeb API started successfully")
            yield
        finally:
            logger.info("Shutting down JasaWeb API")
            reset_engine()
            logger.info("JasaWeb API shutdown complete")

    return lifespan


def _error_body(exc: JasaWebException) -> Dict[str, Any]:
    return {
        "error": exc.error_code,
        "message": exc.message,
        "details": exc.details,
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(JasaWebException)
    async def jasaweb_exception_handler(request: Request, exc: JasaWebException) -> JSONResponse:
        """Handle custom JasaWeb exceptions."""
        logger = structlog.get_logger(__name__)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            error=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        headers = {}

        # Add Retry-After header for rate limit errors
        if exc.status_code == 429 and "retry_after" in exc.details:
            headers["Retry-After"] = str(exc.details["retry_after"])

        return JSONResponse(status_code=exc.status_code, content=_error_body(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and query parameters are 400s in the shared error shape."""
        errors = [
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": error.get("msg", ""),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": errors},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Raises ConfigurationError when required settings are missing, before
    anything else is set up.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    try:
        validate_settings(settings)
    except ConfigurationError as e:
        structlog.get_logger(__name__).critical("Refusing to start", problems=e.problems)
        raise

    lifespan = create_lifespan_handler(settings)

    app = FastAPI(
        title="JasaWeb",
        description="Website agency platform: CMS, client portal, billing and back office",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Added innermost first: CORS wraps request metrics, which wraps the session layer
    app.add_middleware(SessionMiddleware, settings=settings)
    app.add_middleware(RequestMetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, tags=["auth"])
    app.include_router(public_router, tags=["public"])
    app.include_router(admin_content_router, tags=["admin"])
    app.include_router(admin_accounts_router, tags=["admin"])
    app.include_router(admin_reports_router, tags=["admin"])
    app.include_router(client_router, tags=["client"])
    app.include_router(dashboard_router, tags=["dashboard"])
    app.include_router(webhooks_router, tags=["webhooks"])
    app.include_router(
        create_graphql_router(),
        prefix="/api/graphql",
        tags=["graphql"],
        dependencies=[Depends(RateLimit(100, 60))],
    )
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "JasaWeb",
            "version": app.version,
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "jasaweb.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
