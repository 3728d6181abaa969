"""Per-client rate limiting for authentication endpoints.

A fixed-window counter per client IP held in process memory. It is a
single-process guard: counts are not shared between API workers.
Expired windows are swept lazily every RATE_LIMIT_SWEEP_INTERVAL seconds.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, status

from ..api.client_info import get_client_ip
from ..api.errors import ApiError, ErrorMessages
from ..config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float


class RateLimiter:
    """Fixed-window rate limiter keyed by an arbitrary identifier.

    Example:
        limiter = RateLimiter(max_requests=5, window_seconds=900)
        result = limiter.check("203.0.113.7")
        if not result.allowed:
            ...
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: int = 15 * 60,
        sweep_interval: int = 5 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            self._maybe_sweep(now)
            entry = self._entries.get(identifier)

            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(count=1, reset_time=now + self.window_seconds)
                self._entries[identifier] = entry
                return RateLimitResult(True, self.max_requests - 1, entry.reset_time)

            if entry.count >= self.max_requests:
                return RateLimitResult(False, 0, entry.reset_time)

            entry.count += 1
            return RateLimitResult(True, self.max_requests - entry.count, entry.reset_time)

    def get_status(self, identifier: str) -> RateLimitResult:
        """Report the current window for identifier without counting a request."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None or now > entry.reset_time:
                return RateLimitResult(True, self.max_requests, now + self.window_seconds)
            return RateLimitResult(
                entry.count < self.max_requests,
                max(0, self.max_requests - entry.count),
                entry.reset_time,
            )

    def reset(self, identifier: Optional[str] = None) -> None:
        with self._lock:
            if identifier is None:
                self._entries.clear()
            else:
                self._entries.pop(identifier, None)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval:
            return
        expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit entries")


_settings = get_settings()
rate_limiter = RateLimiter(
    max_requests=_settings.RATE_LIMIT_MAX_ATTEMPTS,
    window_seconds=_settings.RATE_LIMIT_WINDOW,
    sweep_interval=_settings.RATE_LIMIT_SWEEP_INTERVAL,
)


def check_rate_limit(request: Request) -> None:
    """FastAPI dependency: raise 429 once the caller's IP exhausts its window.

        @router.post("/login")
        async def login(..., _: None = Depends(check_rate_limit)):
            ...
    """
    identifier = get_client_ip(request) or "unknown"
    result = rate_limiter.check(identifier)
    if not result.allowed:
        retry_after = max(1, int(result.reset_time - rate_limiter._clock()))
        logger.warning(f"Rate limit exceeded for {identifier} on {request.url.path}")
        raise ApiError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            ErrorMessages.RATE_LIMITED,
            code="RATE_LIMITED",
            headers={"Retry-After": str(retry_after)},
        )
