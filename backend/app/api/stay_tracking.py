from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.models.visa import UserVisa, VisaEntry
from app.schemas.visa import OverstayReportResponse, StayTrackingResponse
from app.services.stay_tracking import build_current_stays, check_overstay_warnings, summarize_stays

router = APIRouter()


@router.get("/stay-tracking", response_model=StayTrackingResponse)
async def stay_tracking(
    today: Optional[date] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = today or date.today()
    entries = (
        db.query(VisaEntry)
        .join(UserVisa, VisaEntry.user_visa_id == UserVisa.id)
        .filter(UserVisa.user_id == user.id)
        .all()
    )
    stays = build_current_stays(entries, today)
    summary = summarize_stays(stays, entries, today)
    return {"current_stays": [asdict(s) for s in stays], **summary}


@router.get("/overstay-warnings", response_model=OverstayReportResponse)
async def overstay_warnings(
    today: Optional[date] = None,
    user: User = Depends(get_current_user),
):
    report = check_overstay_warnings(user.visas, today or date.today(), visits=user.visits)
    return {
        "warnings": [asdict(w) for w in report.warnings],
        "schengen_warnings": [asdict(w) for w in report.schengen_warnings],
        "summary": report.summary,
    }
