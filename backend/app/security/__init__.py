from app.security.rate_limit import RateLimiter, RateLimitMiddleware, RateLimitResult, get_rate_limiter
from app.security.csrf import (
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    CSRFMiddleware,
    CSRFProtection,
    get_csrf_protection,
)
from app.security.headers import SecurityHeadersMiddleware

__all__ = [
    "RateLimiter",
    "RateLimitMiddleware",
    "RateLimitResult",
    "get_rate_limiter",
    "CSRF_COOKIE_NAME",
    "CSRF_HEADER_NAME",
    "CSRFMiddleware",
    "CSRFProtection",
    "get_csrf_protection",
    "SecurityHeadersMiddleware",
]
