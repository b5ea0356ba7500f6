"""
Health checker for the readiness probe.

The API has one hard dependency: the relational database.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

import structlog

from ..db import ping_db

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    details: Dict[str, Any]
    last_check: float


@dataclass
class HealthStatus:
    """Overall health status."""
    is_healthy: bool
    checks: Dict[str, HealthCheck]
    failed_checks: List[str]
    timestamp: float


class HealthChecker:
    """Runs dependency checks; overall health requires every check to pass."""

    def __init__(self, ping: Callable[[], None] = ping_db) -> None:
        self._ping = ping
        logger.info("Health Checker initialized")

    async def check_all(self) -> HealthStatus:
        """Perform all health checks and return overall status."""
        checks: Dict[str, HealthCheck] = {}
        failed_checks: List[str] = []

        check_results = await asyncio.gather(
            asyncio.to_thread(self._check_database),
            return_exceptions=True,
        )

        check_names = ["database"]
        for name, result in zip(check_names, check_results):
            if isinstance(result, BaseException):
                checks[name] = HealthCheck(
                    name=name,
                    status="unhealthy",
                    message=f"Check failed: {result}",
                    details={"error": str(result), "error_type": type(result).__name__},
                    last_check=time.time(),
                )
                failed_checks.append(name)
            else:
                checks[name] = result
                if result.status != "healthy":
                    failed_checks.append(name)

        return HealthStatus(
            is_healthy=not failed_checks,
            checks=checks,
            failed_checks=failed_checks,
            timestamp=time.time(),
        )

    def _check_database(self) -> HealthCheck:
        started = time.perf_counter()
        try:
            self._ping()
        except Exception as e:
            logger.warning("Database health check failed", error=str(e), error_type=type(e).__name__)
            return HealthCheck(
                name="database",
                status="unhealthy",
                message="Database unreachable",
                details={"error_type": type(e).__name__},
                last_check=time.time(),
            )

        return HealthCheck(
            name="database",
            status="healthy",
            message="Database reachable",
            details={"latency_ms": round((time.perf_counter() - started) * 1000, 2)},
            last_check=time.time(),
        )
