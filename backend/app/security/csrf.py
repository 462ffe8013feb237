"""Double-submit CSRF tokens signed with HMAC-SHA256.

A token is ``urlsafe_b64("<random>:<issued_at>:<signature>")``. A request
passes when the ``csrf-token`` cookie and the ``X-CSRF-Token`` header carry
the same token and that token is validly signed and not expired.
"""
import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Callable, Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CSRFProtection:
    def __init__(self, secret: str, ttl_seconds: int = 86400, clock: Callable[[], float] = time.time):
        self._secret = secret.encode()
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode(), hashlib.sha256).hexdigest()

    def generate_token(self) -> str:
        payload = f"{secrets.token_urlsafe(24)}:{int(self._clock())}"
        raw = f"{payload}:{self._sign(payload)}"
        return base64.urlsafe_b64encode(raw.encode()).decode()

    def validate_token(self, token: Optional[str]) -> bool:
        if not token:
            return False
        try:
            raw = base64.urlsafe_b64decode(token.encode()).decode()
        except (ValueError, UnicodeDecodeError):
            return False

        parts = raw.split(":")
        if len(parts) != 3:
            return False
        random_part, issued_at, signature = parts

        if not hmac.compare_digest(signature, self._sign(f"{random_part}:{issued_at}")):
            return False

        try:
            age = self._clock() - int(issued_at)
        except ValueError:
            return False
        return 0 <= age <= self.ttl_seconds

    def verify_request(self, cookie_token: Optional[str], header_token: Optional[str]) -> tuple[bool, Optional[str]]:
        """Returns (ok, reason)."""
        if not cookie_token or not header_token:
            return False, "missing token"
        if not hmac.compare_digest(cookie_token, header_token):
            return False, "token mismatch"
        if not self.validate_token(header_token):
            return False, "invalid or expired token"
        return True, None


class CSRFMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        protection: CSRFProtection,
        enforce: bool = True,
        path_prefix: str = "/api/",
        exempt_paths: Iterable[str] = ("/api/csrf-token",),
    ):
        super().__init__(app)
        self.protection = protection
        self.enforce = enforce
        self.path_prefix = path_prefix
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if (
            not self.enforce
            or request.method in SAFE_METHODS
            or not path.startswith(self.path_prefix)
            or path in self.exempt_paths
        ):
            return await call_next(request)

        ok, reason = self.protection.verify_request(
            request.cookies.get(CSRF_COOKIE_NAME),
            request.headers.get(CSRF_HEADER_NAME),
        )
        if not ok:
            logger.warning(f"CSRF check failed for {request.method} {path}: {reason}")
            return JSONResponse(status_code=403, content={"error": "CSRF validation failed", "reason": reason})

        return await call_next(request)


_csrf: Optional[CSRFProtection] = None


def get_csrf_protection() -> CSRFProtection:
    global _csrf
    if _csrf is None:
        from app.config import get_settings
        settings = get_settings()
        _csrf = CSRFProtection(settings.csrf_secret, settings.csrf_token_ttl_seconds)
    return _csrf
