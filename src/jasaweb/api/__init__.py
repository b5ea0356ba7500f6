"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /api/auth - Register, login, logout, current session
- /api/pages, /api/posts, /api/templates, /api/pricing - Public content
- /api/admin - Back-office CMS, accounts and reports
- /api/client - Client portal
- /dashboard - Client dashboard widgets
- /api/webhooks/midtrans - Payment notifications
- /api/graphql - Read-only GraphQL
- /metrics, /healthz, /readyz - Operations
"""
from .admin_accounts import router as admin_accounts_router
from .admin_content import router as admin_content_router
from .admin_reports import router as admin_reports_router
from .auth import router as auth_router
from .client import router as client_router
from .dashboard import router as dashboard_router
from .graphql import create_graphql_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router
from .public import router as public_router
from .webhooks import router as webhooks_router

__all__ = [
    "admin_accounts_router",
    "admin_content_router",
    "admin_reports_router",
    "auth_router",
    "client_router",
    "create_graphql_router",
    "dashboard_router",
    "healthz_router",
    "metrics_router",
    "public_router",
    "webhooks_router",
]
