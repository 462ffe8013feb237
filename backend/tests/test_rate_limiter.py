"""Tests for the fixed-window rate limiter and its middleware."""
import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.security.rate_limit import RateLimiter, RateLimitMiddleware


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())
        results = [limiter.check("a") for _ in range(3)]
        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

    def test_blocks_over_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.check("a")
        limiter.check("a")
        clock.now += 15
        result = limiter.check("a")
        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 45
        assert result.headers()["Retry-After"] == "45"

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
        clock.now += 60
        assert limiter.check("a").allowed

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_cleanup_drops_expired(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=10, clock=clock)
        limiter.check("a")
        limiter.check("b")
        clock.now += 11
        limiter.check("c")
        assert limiter.cleanup() == 2
        assert len(limiter) == 1

    def test_client_key_hashes_user_agent(self):
        key = RateLimiter.client_key("10.0.0.1", "Mozilla/5.0")
        assert key.startswith("10.0.0.1:")
        assert "Mozilla" not in key
        assert key != RateLimiter.client_key("10.0.0.1", "curl/8.0")


def _app(limiter: RateLimiter) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    @app.get("/api/thing")
    async def thing():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


class TestRateLimitMiddleware:
    async def test_headers_and_429(self):
        app = _app(RateLimiter(max_requests=2, window_seconds=60))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            first = await client.get("/api/thing")
            assert first.status_code == 200
            assert first.headers["X-RateLimit-Limit"] == "2"
            assert first.headers["X-RateLimit-Remaining"] == "1"

            await client.get("/api/thing")
            blocked = await client.get("/api/thing")
            assert blocked.status_code == 429
            assert blocked.json()["error"] == "Too many requests"
            assert "Retry-After" in blocked.headers

    async def test_non_api_paths_unlimited(self):
        app = _app(RateLimiter(max_requests=1, window_seconds=60))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(3):
                response = await client.get("/health")
                assert response.status_code == 200
                assert "X-RateLimit-Limit" not in response.headers
