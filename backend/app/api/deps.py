from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User


def get_current_user(
    x_user_email: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the ``X-User-Email`` header."""
    if not x_user_email or not x_user_email.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = User.get_by_email(db, x_user_email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
