from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.api.deps import client_ip, get_current_user
from app.api.trips import invalidate_schengen_cache
from app.database import get_db
from app.errors import ActiveEntryExistsError, InvalidDateRangeError
from app.models.country_visit import CountryVisit
from app.models.user import User
from app.models.visa import UserVisa, VisaEntry
from app.schemas.visa import (
    VisaCheckResponse,
    VisaCreate,
    VisaEntryCreate,
    VisaEntryResponse,
    VisaEntryUpdate,
    VisaResponse,
    VisaUpdate,
)
from app.services.audit import record_audit
from app.services.countries import require_country
from app.services.visa_alerts import VisaAlertService

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_owned_visa(db: Session, visa_id: int, user: User) -> UserVisa:
    visa = db.query(UserVisa).filter(UserVisa.id == visa_id, UserVisa.user_id == user.id).first()
    if not visa:
        raise HTTPException(status_code=404, detail="Visa not found")
    return visa


def _get_owned_entry(db: Session, entry_id: int, user: User) -> VisaEntry:
    entry = (
        db.query(VisaEntry)
        .join(UserVisa, VisaEntry.user_visa_id == UserVisa.id)
        .filter(VisaEntry.id == entry_id, UserVisa.user_id == user.id)
        .first()
    )
    if not entry:
        raise HTTPException(status_code=404, detail="Visa entry not found")
    return entry


# Entry routes come first so "/entries" is not taken for a visa id

@router.get("/entries", response_model=list[VisaEntryResponse])
async def list_entries(
    visa_id: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        db.query(VisaEntry)
        .join(UserVisa, VisaEntry.user_visa_id == UserVisa.id)
        .filter(UserVisa.user_id == user.id)
    )
    if visa_id is not None:
        query = query.filter(VisaEntry.user_visa_id == visa_id)
    return query.order_by(VisaEntry.entry_date.desc()).all()


@router.post("/entries", response_model=VisaEntryResponse, status_code=201)
async def create_entry(
    payload: VisaEntryCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    visa = _get_owned_visa(db, payload.user_visa_id, user)

    if payload.exit_date is None and any(e.exit_date is None for e in visa.entries):
        raise ActiveEntryExistsError("Visa already has an entry without an exit date", user_visa_id=visa.id)

    fields = payload.model_dump(exclude={"create_trip"})
    entry = VisaEntry(**fields)
    if entry.exit_date:
        entry.stay_days = entry.days_in_country()

    if payload.create_trip:
        visit = CountryVisit(
            user_id=user.id,
            country=visa.country_name,
            entry_date=payload.entry_date,
            exit_date=payload.exit_date,
            visa_type=visa.visa_type,
            max_days=visa.max_stay_days or 90,
            notes=payload.notes,
        )
        db.add(visit)
        entry.country_visit = visit

    db.add(entry)
    db.commit()
    db.refresh(entry)

    invalidate_schengen_cache(user.id)
    record_audit(
        db, "create", "visa_entry", entry.id, user_id=user.id,
        details={"visa_id": visa.id, "entry_date": entry.entry_date.isoformat()},
        ip_address=client_ip(request),
    )
    return entry


@router.put("/entries/{entry_id}", response_model=VisaEntryResponse)
async def update_entry(
    entry_id: int,
    payload: VisaEntryUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit an entry; setting ``exit_date`` records the departure."""
    entry = _get_owned_entry(db, entry_id, user)
    changes = payload.model_dump(exclude_unset=True)

    entry_date = changes.get("entry_date", entry.entry_date)
    exit_date = changes.get("exit_date", entry.exit_date)
    if exit_date is not None and exit_date < entry_date:
        raise InvalidDateRangeError("exit_date must not be before entry_date", start=entry_date, end=exit_date)

    for field, value in changes.items():
        setattr(entry, field, value)
    entry.stay_days = entry.days_in_country() if entry.exit_date else None

    if entry.country_visit is not None:
        entry.country_visit.entry_date = entry.entry_date
        entry.country_visit.exit_date = entry.exit_date

    db.commit()
    db.refresh(entry)

    invalidate_schengen_cache(user.id)
    record_audit(
        db, "update", "visa_entry", entry.id, user_id=user.id,
        details={"fields": sorted(changes)}, ip_address=client_ip(request),
    )
    return entry


@router.delete("/entries/{entry_id}")
async def delete_entry(
    entry_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = _get_owned_entry(db, entry_id, user)
    db.delete(entry)
    db.commit()

    record_audit(db, "delete", "visa_entry", entry_id, user_id=user.id, ip_address=client_ip(request))
    return {"deleted": True}


@router.post("/check-expiry", response_model=VisaCheckResponse)
async def check_expiry(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Run the expiry check for the caller's visas right away."""
    result = await VisaAlertService().check_expiring_visas(db, user_id=user.id)
    return result.to_dict()


@router.get("", response_model=list[VisaResponse])
async def list_visas(
    status: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(UserVisa).filter(UserVisa.user_id == user.id)
    if status:
        query = query.filter(UserVisa.status == status)
    return query.order_by(UserVisa.expiry_date).all()


@router.post("", response_model=VisaResponse, status_code=201)
async def create_visa(
    payload: VisaCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    country = require_country(payload.country_code)
    visa = UserVisa(user_id=user.id, country_name=country.name, **payload.model_dump())
    visa.status = visa.status_on(date.today())
    db.add(visa)
    db.commit()
    db.refresh(visa)

    record_audit(
        db, "create", "visa", visa.id, user_id=user.id,
        details={"country_code": visa.country_code, "expiry_date": visa.expiry_date.isoformat()},
        ip_address=client_ip(request),
    )
    logger.info(f"User {user.id} added {visa.country_code} visa {visa.id}")
    return visa


@router.get("/{visa_id}", response_model=VisaResponse)
async def get_visa(visa_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_owned_visa(db, visa_id, user)


@router.put("/{visa_id}", response_model=VisaResponse)
async def update_visa(
    visa_id: int,
    payload: VisaUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    visa = _get_owned_visa(db, visa_id, user)
    changes = payload.model_dump(exclude_unset=True)

    issue_date = changes.get("issue_date", visa.issue_date)
    expiry_date = changes.get("expiry_date", visa.expiry_date)
    if expiry_date < issue_date:
        raise InvalidDateRangeError("expiry_date must not be before issue_date", start=issue_date, end=expiry_date)

    for field, value in changes.items():
        setattr(visa, field, value)
    if "expiry_date" in changes:
        visa.status = visa.status_on(date.today())
        visa.last_alert_sent = None
    db.commit()
    db.refresh(visa)

    record_audit(
        db, "update", "visa", visa.id, user_id=user.id,
        details={"fields": sorted(changes)}, ip_address=client_ip(request),
    )
    return visa


@router.delete("/{visa_id}")
async def delete_visa(
    visa_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    visa = _get_owned_visa(db, visa_id, user)
    db.delete(visa)
    db.commit()

    record_audit(db, "delete", "visa", visa_id, user_id=user.id, ip_address=client_ip(request))
    return {"deleted": True}
