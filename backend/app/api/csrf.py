from fastapi import APIRouter, Response

from app.config import get_settings
from app.security.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, get_csrf_protection

settings = get_settings()

router = APIRouter()


@router.get("/csrf-token")
async def issue_csrf_token(response: Response):
    """Issue a token and set it as a cookie; echo it back in the header on writes."""
    protection = get_csrf_protection()
    token = protection.generate_token()
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=settings.csrf_token_ttl_seconds,
        httponly=False,  # the client reads it to fill the header
        samesite="strict",
        secure=settings.env == "prod",
    )
    return {"csrf_token": token, "header_name": CSRF_HEADER_NAME}
