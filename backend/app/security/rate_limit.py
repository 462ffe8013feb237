"""Fixed-window request rate limiting."""
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the window closes
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter:
    """In-memory fixed-window counter per client key.

    The first request from a key opens a window of ``window_seconds``; at
    most ``max_requests`` are allowed inside it. Expired windows are
    replaced lazily on the next request and swept by ``cleanup``.
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 60, clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}  # key -> (count, reset_at)
        self._lock = threading.Lock()

    @staticmethod
    def client_key(ip: Optional[str], user_agent: Optional[str]) -> str:
        ua_hash = hashlib.sha256((user_agent or "").encode()).hexdigest()[:12]
        return f"{ip or 'unknown'}:{ua_hash}"

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + self.window_seconds

            if count >= self.max_requests:
                retry_after = max(1, int(reset_at - now + 0.999))
                return RateLimitResult(False, self.max_requests, 0, reset_at, retry_after)

            count += 1
            self._windows[key] = (count, reset_at)
            return RateLimitResult(True, self.max_requests, self.max_requests - count, reset_at)

    def reset(self, key: Optional[str] = None):
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def cleanup(self) -> int:
        """Drop closed windows. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
            for k in expired:
                del self._windows[k]
        if expired:
            logger.debug(f"Rate limiter dropped {len(expired)} expired windows")
        return len(expired)

    def __len__(self):
        return len(self._windows)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, path_prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        ip = request.client.host if request.client else None
        key = RateLimiter.client_key(ip, request.headers.get("user-agent"))
        result = self.limiter.check(key)

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {ip} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "retry_after": result.retry_after},
                headers=result.headers(),
            )

        response = await call_next(request)
        response.headers.update(result.headers())
        return response


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        from app.config import get_settings
        settings = get_settings()
        _rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter
