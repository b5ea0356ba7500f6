"""
Sliding-window rate limiting.

State is one in-process map of key -> request timestamps. Checks run in
async dependencies on the event loop and contain no await, so a check and
its append are never interleaved with another request.
"""

import math
import random
import time
from typing import Callable, Dict, List, Optional

import structlog
from fastapi import Request

from ..config import get_settings
from .exceptions import RateLimitError

logger = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """
    Per-key sliding window limiter.

    A request is accepted when fewer than `limit` earlier requests for the
    same key fall inside the trailing window.
    """

    def __init__(
        self,
        default_limit: int = 5,
        default_window: float = 60,
        cleanup_probability: float = 0.01,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.default_limit = default_limit
        self.default_window = default_window
        self.cleanup_probability = cleanup_probability
        self.clock = clock
        self.rng = rng
        self.requests: Dict[str, List[float]] = {}

    @staticmethod
    def build_key(ip: str, user_id: Optional[str], path: str) -> str:
        return f"{ip}:{user_id or 'anonymous'}:{path}"

    def hit(self, key: str, limit: Optional[int] = None, window: Optional[float] = None) -> None:
        """
        Record one request for key.

        Raises RateLimitError when the window is already full.
        """
        limit = self.default_limit if limit is None else limit
        window = self.default_window if window is None else window
        now = self.clock()

        timestamps = [t for t in self.requests.get(key, []) if now - t < window]

        if len(timestamps) >= limit:
            self.requests[key] = timestamps
            retry_after = max(1, math.ceil(window - (now - timestamps[0])))
            logger.warning(
                "Rate limit exceeded",
                key=key,
                limit=limit,
                window=window,
                retry_after=retry_after,
            )
            raise RateLimitError(retry_after=retry_after)

        timestamps.append(now)
        self.requests[key] = timestamps

        logger.debug("Rate limit check passed", key=key, remaining=limit - len(timestamps))

        if self.rng() < self.cleanup_probability:
            self.cleanup()

    def cleanup(self) -> int:
        """Drop timestamps older than twice the default window; returns keys removed."""
        now = self.clock()
        horizon = self.default_window * 2
        removed = 0

        for key in list(self.requests.keys()):
            fresh = [t for t in self.requests[key] if now - t < horizon]
            if fresh:
                self.requests[key] = fresh
            else:
                del self.requests[key]
                removed += 1

        if removed:
            logger.debug("Rate limit state cleaned", removed_keys=removed, tracked_keys=len(self.requests))

        return removed

    def reset(self) -> None:
        self.requests.clear()


# Global rate limiter instance
_rate_limiter: Optional[SlidingWindowRateLimiter] = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get or create global rate limiter."""
    global _rate_limiter

    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = SlidingWindowRateLimiter(
            default_limit=settings.rate_limit.default_limit,
            default_window=settings.rate_limit.default_window_seconds,
            cleanup_probability=settings.rate_limit.cleanup_probability,
        )

    return _rate_limiter


def set_rate_limiter(limiter: Optional[SlidingWindowRateLimiter]) -> None:
    """Replace the global limiter (None recreates it from settings on next use)."""
    global _rate_limiter
    _rate_limiter = limiter


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimit:
    """
    Route dependency applying the guard with per-route limits.

        @router.post("/login", dependencies=[Depends(RateLimit(5, 60))])
    """

    def __init__(self, limit: Optional[int] = None, window: Optional[float] = None) -> None:
        self.limit = limit
        self.window = window

    async def __call__(self, request: Request) -> None:
        user = getattr(request.state, "user", None)
        key = SlidingWindowRateLimiter.build_key(
            client_ip(request),
            user.id if user is not None else None,
            request.url.path,
        )
        try:
            get_rate_limiter().hit(key, self.limit, self.window)
        except RateLimitError:
            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.record_rate_limit_rejection(request.url.path)
            raise
