from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.api.deps import client_ip, get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.audit import record_audit

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=201)
async def register_user(payload: UserCreate, request: Request, db: Session = Depends(get_db)):
    if User.get_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)

    record_audit(db, "create", "user", user.id, user_id=user.id, ip_address=client_ip(request))
    return user


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserResponse)
async def update_me(
    payload: UserUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)

    record_audit(
        db, "update", "user", user.id, user_id=user.id,
        details={"fields": sorted(changes)}, ip_address=client_ip(request),
    )
    return user
