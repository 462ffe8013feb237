from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.cache import get_response_cache
from app.database import get_db
from app.scheduler import get_scheduler_status
from app.utils.version import get_version

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "ok" if db_status == "healthy" else "degraded",
        "database": db_status,
        "version": get_version(),
        "cache": get_response_cache().stats(),
        "scheduler": get_scheduler_status(),
    }
