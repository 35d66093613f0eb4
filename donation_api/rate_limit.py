import asyncio
import os
import time
from collections import defaultdict, deque

from fastapi import Request, status

from .responses import format_response
from .utils.network import get_client_ip


class RateLimiter:
    """Sliding-window, in-memory request limiter keyed by an arbitrary string."""

    def __init__(self, limit: int, period: int) -> None:
        self.limit = limit
        self.period = period
        self.history: dict[str, deque] = defaultdict(deque)
        self.lock = asyncio.Lock()
        self._last_sweep = time.monotonic()

    def _sweep(self, now: float, cutoff: float) -> None:
        """Forget keys whose newest hit has left the window."""

        if now - self._last_sweep < self.period:
            return
        self._last_sweep = now
        for key in [k for k, q in self.history.items() if not q or q[-1] <= cutoff]:
            del self.history[key]

    async def is_allowed(self, key: str) -> tuple[bool, int, float]:
        now = time.monotonic()
        cutoff = now - self.period
        async with self.lock:
            self._sweep(now, cutoff)
            q = self.history[key]
            while q and q[0] <= cutoff:
                q.popleft()
            if len(q) >= self.limit:
                retry_after = self.period - (now - q[0])
                return False, 0, retry_after
            q.append(now)
            remaining = self.limit - len(q)
        return True, remaining, 0.0


AUTH_RATE_LIMIT = int(os.getenv("AUTH_RATE_LIMIT", "30"))
GENERAL_RATE_LIMIT = int(os.getenv("GENERAL_RATE_LIMIT", "600"))
RATE_PERIOD = int(os.getenv("RATE_PERIOD", "60"))

_CREDENTIAL_PATHS = ("/auth/login", "/dashboard/login")

auth_limiter = RateLimiter(AUTH_RATE_LIMIT, RATE_PERIOD)
general_limiter = RateLimiter(GENERAL_RATE_LIMIT, RATE_PERIOD)


async def rate_limit(request: Request, call_next):
    """Apply per client IP rate limiting, with a tighter budget for credential checks."""
    ip = get_client_ip(request)
    limiter = auth_limiter if request.url.path.endswith(_CREDENTIAL_PATHS) else general_limiter
    allowed, remaining, retry_after = await limiter.is_allowed(ip)
    if not allowed:
        return format_response(
            "failed",
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too Many Requests",
            headers={
                "Retry-After": str(int(retry_after)),
                "X-RateLimit-Remaining": "0",
            },
        )
    response = await call_next(request)
    if "X-RateLimit-Remaining" not in response.headers:
        response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response
