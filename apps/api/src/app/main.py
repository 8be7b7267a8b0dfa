"""
Campus SIS API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Background job scheduler (email outbox retries)
- CORS middleware
- API routing and error handlers
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError

from app.api import api_router
from app.core.config import settings
from app.core.database import async_session_maker, close_db, init_db
from app.core.exceptions import ServiceError, TransientInfraError
from app.core.redis import close_redis, get_redis, init_redis
from app.core.scheduler import (
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from app.modules.notifications.jobs import register_notification_jobs

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Redis is optional everywhere; the database and scheduler are required in
    production.
    """
    print(f"Starting Campus SIS API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed, rate limits fall back to memory: {e}")

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        register_notification_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    print("Shutting down Campus SIS API...")

    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Campus SIS API",
    description="School information system: enrollment, provisioning and accounts",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error handlers
# ============================================


@app.exception_handler(ServiceError)
async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    """Fallback for service errors not converted inside a router."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"error": exc.error_code, "message": exc.message}},
    )


@app.exception_handler(OperationalError)
@app.exception_handler(TimeoutError)
async def transient_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store unreachable or timed out: tell the client to retry."""
    logger.error(f"Transient infrastructure error on {request.url.path}: {exc}")
    error = TransientInfraError()
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": {"error": error.error_code, "message": error.message}},
    )


@app.exception_handler(DBAPIError)
async def dbapi_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    if exc.connection_invalidated:
        return await transient_error_handler(request, exc)
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "INTERNAL_ERROR", "message": "Unexpected database error."}},
    )


# ============================================
# Service endpoints
# ============================================


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {"service": "campus-sis-api", "environment": settings.python_env}


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness probe. Does not touch the database."""
    return {"status": "ok"}


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """Readiness probe: 503 until the database answers."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}


# ============================================
# Development-only diagnostics
# ============================================


def _require_development() -> None:
    if not settings.is_development:
        raise HTTPException(status_code=404, detail="Not Found")


@app.get("/debug/db", tags=["Debug"])
async def debug_db():
    _require_development()
    try:
        async with async_session_maker() as session:
            value = (await session.execute(text("SELECT 1"))).scalar()
    except Exception as e:
        return {"database": "error", "detail": str(e)}
    return {"database": "ok", "select_1": value}


@app.get("/debug/redis", tags=["Debug"])
async def debug_redis():
    _require_development()
    client = await get_redis()
    if client is None:
        return {"redis": "disabled"}
    try:
        await client.ping()
    except Exception as e:
        return {"redis": "error", "detail": str(e)}
    return {"redis": "ok"}


@app.get("/debug/jobs", tags=["Debug"])
async def debug_jobs():
    """Registered background jobs with next run time and pause state."""
    _require_development()
    return {"jobs": list_registered_jobs()}


@app.post("/debug/jobs/{job_id}/{action}", tags=["Debug"])
async def debug_job_action(job_id: str, action: str):
    """
    Run, pause or resume a background job, e.g.
    ``POST /debug/jobs/notifications_retry_outbox/trigger``.

    Raises:
        HTTPException 400: Unknown job or action
    """
    _require_development()
    if action == "trigger":
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
    if action == "pause":
        return {"job_id": job_id, "paused": pause_job(job_id)}
    if action == "resume":
        return {"job_id": job_id, "resumed": resume_job(job_id)}
    raise HTTPException(status_code=400, detail=f"Unknown action '{action}'")
