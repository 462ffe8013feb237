from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import client_ip, get_current_user
from app.cache import get_response_cache
from app.database import get_db
from app.errors import InvalidDateRangeError
from app.models.country_visit import CountryVisit
from app.models.user import User
from app.schemas.schengen import FutureTripResponse
from app.schemas.trip import PlannedTrip, TripCreate, TripResponse, TripUpdate
from app.services.audit import record_audit
from app.services.countries import SCHENGEN_COUNTRIES
from app.services.schengen import validate_future_trip

logger = logging.getLogger(__name__)

router = APIRouter()


def invalidate_schengen_cache(user_id: int) -> int:
    return get_response_cache().invalidate_prefix(f"schengen:{user_id}:")


def _get_owned_trip(db: Session, trip_id: int, user: User) -> CountryVisit:
    trip = db.query(CountryVisit).filter(
        CountryVisit.id == trip_id,
        CountryVisit.user_id == user.id,
    ).first()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@router.get("", response_model=list[TripResponse])
async def list_trips(
    country: Optional[str] = None,
    schengen_only: bool = Query(False),
    since: Optional[date] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(CountryVisit).filter(CountryVisit.user_id == user.id)
    if country:
        query = query.filter(CountryVisit.country == country)
    if schengen_only:
        query = query.filter(CountryVisit.country.in_(SCHENGEN_COUNTRIES))
    if since:
        query = query.filter((CountryVisit.exit_date.is_(None)) | (CountryVisit.exit_date >= since))
    return query.order_by(CountryVisit.entry_date.desc()).all()


@router.post("", response_model=TripResponse, status_code=201)
async def create_trip(
    payload: TripCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    trip = CountryVisit(user_id=user.id, **payload.model_dump())
    db.add(trip)
    db.commit()
    db.refresh(trip)

    invalidate_schengen_cache(user.id)
    record_audit(
        db, "create", "trip", trip.id, user_id=user.id,
        details={"country": trip.country, "entry_date": trip.entry_date.isoformat()},
        ip_address=client_ip(request),
    )
    logger.info(f"User {user.id} added trip {trip.id} to {trip.country}")
    return trip


@router.post("/validate", response_model=FutureTripResponse)
async def validate_trip(
    payload: PlannedTrip,
    user: User = Depends(get_current_user),
):
    """Check a planned trip against the user's recorded visits."""
    return validate_future_trip(user.visits, payload.entry_date, payload.exit_date, payload.country)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_owned_trip(db, trip_id, user)


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int,
    payload: TripUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    trip = _get_owned_trip(db, trip_id, user)
    changes = payload.model_dump(exclude_unset=True)

    entry_date = changes.get("entry_date", trip.entry_date)
    exit_date = changes.get("exit_date", trip.exit_date)
    if exit_date is not None and exit_date < entry_date:
        raise InvalidDateRangeError("exit_date must not be before entry_date", start=entry_date, end=exit_date)

    for field, value in changes.items():
        setattr(trip, field, value)
    db.commit()
    db.refresh(trip)

    invalidate_schengen_cache(user.id)
    record_audit(
        db, "update", "trip", trip.id, user_id=user.id,
        details={"fields": sorted(changes)}, ip_address=client_ip(request),
    )
    return trip


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    trip = _get_owned_trip(db, trip_id, user)
    country = trip.country
    db.delete(trip)
    db.commit()

    invalidate_schengen_cache(user.id)
    record_audit(
        db, "delete", "trip", trip_id, user_id=user.id,
        details={"country": country}, ip_address=client_ip(request),
    )
    return {"deleted": True}
