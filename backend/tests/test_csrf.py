"""Tests for CSRF token signing and the enforcing middleware."""
import base64

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.security.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CSRFMiddleware, CSRFProtection


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCSRFProtection:
    def test_generated_token_validates(self):
        csrf = CSRFProtection("secret")
        assert csrf.validate_token(csrf.generate_token()) is True

    def test_tokens_are_unique(self):
        csrf = CSRFProtection("secret")
        assert csrf.generate_token() != csrf.generate_token()

    def test_token_layout(self):
        raw = base64.urlsafe_b64decode(CSRFProtection("secret").generate_token()).decode()
        random_part, issued_at, signature = raw.split(":")
        assert issued_at.isdigit()
        assert len(signature) == 64

    def test_wrong_secret_rejected(self):
        token = CSRFProtection("secret").generate_token()
        assert CSRFProtection("other").validate_token(token) is False

    def test_tampered_token_rejected(self):
        csrf = CSRFProtection("secret")
        raw = base64.urlsafe_b64decode(csrf.generate_token()).decode()
        random_part, issued_at, signature = raw.split(":")
        forged = base64.urlsafe_b64encode(f"{random_part}:{int(issued_at) + 100}:{signature}".encode()).decode()
        assert csrf.validate_token(forged) is False

    def test_expired_token_rejected(self):
        clock = FakeClock()
        csrf = CSRFProtection("secret", ttl_seconds=60, clock=clock)
        token = csrf.generate_token()
        clock.now += 61
        assert csrf.validate_token(token) is False

    @pytest.mark.parametrize("token", [None, "", "not-base64!!", base64.urlsafe_b64encode(b"a:b").decode()])
    def test_garbage_rejected(self, token):
        assert CSRFProtection("secret").validate_token(token) is False

    def test_verify_request(self):
        csrf = CSRFProtection("secret")
        token = csrf.generate_token()
        assert csrf.verify_request(token, token) == (True, None)
        assert csrf.verify_request(None, token) == (False, "missing token")
        assert csrf.verify_request(token, csrf.generate_token()) == (False, "token mismatch")


def _app(csrf: CSRFProtection) -> FastAPI:
    app = FastAPI()
    app.add_middleware(CSRFMiddleware, protection=csrf, enforce=True)

    @app.post("/api/things")
    async def create_thing():
        return {"ok": True}

    @app.get("/api/things")
    async def list_things():
        return []

    return app


class TestCSRFMiddleware:
    async def test_post_without_token_forbidden(self):
        app = _app(CSRFProtection("secret"))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/api/things")
        assert response.status_code == 403
        assert response.json()["error"] == "CSRF validation failed"

    async def test_post_with_double_submit_passes(self):
        csrf = CSRFProtection("secret")
        token = csrf.generate_token()
        app = _app(csrf)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/things",
                headers={"Cookie": f"{CSRF_COOKIE_NAME}={token}", CSRF_HEADER_NAME: token},
            )
        assert response.status_code == 200

    async def test_safe_methods_skip_check(self):
        app = _app(CSRFProtection("secret"))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/things")
        assert response.status_code == 200
