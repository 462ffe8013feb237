from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.api import audit, countries, csrf, email, health, notifications, schengen, stay_tracking, trips, users, visas
from app.scheduler import start_scheduler, stop_scheduler
from app.services.notification import get_global_notifier, shutdown_notifier
from app.config import get_settings
from app.database import engine, Base, ensure_sqlite_columns
from app.errors import DinoError
from app.models import User, CountryVisit, UserVisa, VisaEntry, AuditLog  # noqa: F401 - register tables
from app.security import (
    CSRFMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    get_csrf_protection,
    get_rate_limiter,
)
from app.utils.version import get_version

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Starting DINO ({settings.env})")

    if settings.database_url.startswith("sqlite"):
        logger.info("SQLite detected - creating tables if needed")
        Base.metadata.create_all(bind=engine)
        ensure_sqlite_columns()

    if settings.scheduler_enabled:
        try:
            start_scheduler()
            logger.info("✅ APScheduler started")

            notifier = get_global_notifier()
            await notifier.send_startup_notification()
        except Exception as e:
            logger.error(f"❌ Startup failed: {e}")

    yield

    logger.info("🛑 Shutting down DINO")

    try:
        stop_scheduler()
        await shutdown_notifier()
        logger.info("✅ Scheduler and notifier shut down")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


app = FastAPI(
    title="DINO",
    description="Digital nomad visa and Schengen 90/180 compliance tracker",
    version=get_version(),
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        details.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(DinoError)
async def dino_error_handler(request: Request, exc: DinoError):
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Last added runs first: CORS, security headers, rate limiting, then CSRF
app.add_middleware(CSRFMiddleware, protection=get_csrf_protection(), enforce=settings.env != "dev")
app.add_middleware(RateLimitMiddleware, limiter=get_rate_limiter())
app.add_middleware(SecurityHeadersMiddleware, hsts=settings.env == "prod")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.env == "dev" else [settings.base_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(csrf.router, prefix="/api", tags=["security"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(trips.router, prefix="/api/trips", tags=["trips"])
app.include_router(schengen.router, prefix="/api/schengen", tags=["schengen"])
app.include_router(countries.router, prefix="/api/countries", tags=["countries"])
app.include_router(visas.router, prefix="/api/visas", tags=["visas"])
app.include_router(stay_tracking.router, prefix="/api", tags=["stay-tracking"])
app.include_router(email.router, prefix="/api/email", tags=["email"])
app.include_router(notifications.router, prefix="/api", tags=["notifications"])
app.include_router(audit.router, prefix="/api", tags=["audit"])


# Health check for monitoring/Docker
@app.get("/ping")
async def ping():
    """Simple ping endpoint for health checks."""
    return {"status": "ok"}
