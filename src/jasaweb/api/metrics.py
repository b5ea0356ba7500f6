"""
Prometheus metrics endpoint.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - http_requests_total{method,endpoint,status_code} - Requests served
    - http_request_duration_seconds - Request latency histogram
    - rate_limit_rejections_total{path} - Requests refused by the rate limiter
    - auth_failures_total{reason} - Rejected tokens and credentials
    - csrf_rejections_total - Mutations refused for a CSRF mismatch
    - payment_notifications_total{status} - Gateway notifications processed
    """,
)
async def get_metrics(request: Request) -> Response:
    metrics_collector = getattr(request.app.state, "metrics", None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics_data = metrics_collector.render()
    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
