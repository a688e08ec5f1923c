from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import asyncio
import logging
import time
import uuid

from .config import settings
from .database import create_tables, SessionLocal
from .services.exceptions import (
    AvailabilityError, BookingConflictError, CapacityError, FormatError,
    InvalidRangeError, NetworkError, NotFoundError, StoreError, UnauthorizedSourceError,
)
from .utils.logging_config import setup_logging, use_json_logs, get_logger, set_request_context, clear_request_context
from .utils.rate_limiter import limiter

from .routers import availability, bookings, ical, health

setup_logging(settings.log_level, json_format=use_json_logs(settings))
logger = logging.getLogger(__name__)
request_logger = get_logger("app.requests")


async def run_auto_sync_worker(poll_seconds: int):
    """Sync overdue calendar feeds every ``poll_seconds``."""
    from .services.availability_store import SqlAlchemyAvailabilityStore
    from .services.ical_sync_service import ICalSyncService

    worker_logger = logging.getLogger("ical_worker")
    worker_logger.info(f"🔄 Calendar sync worker started (interval: {poll_seconds}s)")

    while True:
        worker_db = SessionLocal()
        try:
            results = await ICalSyncService(SqlAlchemyAvailabilityStore(worker_db)).sync_pending()
            if results:
                ok = sum(1 for r in results if r.success)
                worker_logger.info(f"Calendar sync: {ok}✓/{len(results) - ok}✗")
        except AvailabilityError as e:
            worker_logger.error(f"Calendar sync worker error: {e.message}")
        finally:
            worker_db.close()

        await asyncio.sleep(poll_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting availability service...")
    logger.info(f"📍 Environment: {settings.environment}")
    logger.info(f"🔐 CORS Origins: {settings.cors_origins}")

    create_tables()
    logger.info("✅ Database ready")

    worker_task = None
    if settings.auto_sync_enabled:
        worker_task = asyncio.create_task(run_auto_sync_worker(settings.auto_sync_poll_seconds))
    else:
        logger.info("⚠️  Automatic calendar sync disabled")

    yield

    logger.info("👋 Shutting down...")
    if worker_task:
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass
        logger.info("🔄 Calendar sync worker stopped")


app = FastAPI(
    title="Room Availability API",
    description="Availability, bookings and external calendar sync",
    version=health.VERSION,
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        started = time.monotonic()
        try:
            response = await call_next(request)
            request_logger.api_request(
                request.method,
                request.url.path,
                response.status_code,
                round((time.monotonic() - started) * 1000, 2),
            )
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# ================================
# ERROR HANDLERS
# ================================

ERROR_STATUS = [
    (InvalidRangeError, 422),
    (CapacityError, 422),
    (BookingConflictError, 409),
    (NotFoundError, 404),
    (UnauthorizedSourceError, 403),
    (NetworkError, 502),
    (FormatError, 502),
    (StoreError, 503),
]


def status_for(exc: AvailabilityError) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 400


@app.exception_handler(AvailabilityError)
async def availability_error_handler(request: Request, exc: AvailabilityError):
    content = {"detail": exc.message, "code": exc.code}

    if isinstance(exc, BookingConflictError) and exc.verdict is not None:
        content["conflicts"] = [
            {"type": "booking", "check_in": c.check_in.isoformat(), "check_out": c.check_out.isoformat()}
            if c.type == "booking"
            else {"type": "blocked", "date": c.date.isoformat(), "reason": c.reason}
            for c in exc.verdict.conflicts
        ]

    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later"}
    )


app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(ical.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Room Availability API",
        "version": health.VERSION,
        "docs": "/docs",
        "status": "running",
    }
