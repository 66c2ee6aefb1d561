"""RecruitDash — FastAPI Application Entry Point.

Recruitment metrics dashboard core for dental clinics.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recruitdash.config import settings
from recruitdash.database import init_db, test_connection, db_url
from recruitdash.scheduler.jobs import start_scheduler, stop_scheduler
from recruitdash.api.metrics_routes import router as metrics_router
from recruitdash.api.clinic_routes import router as clinic_router
from recruitdash.api.goal_routes import router as goal_router
from recruitdash.core.logging import get_logger

logger = get_logger("main")


IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("RecruitDash starting up...")
    logger.info(f"Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    if test_connection():
        try:
            init_db()
        except Exception as e:
            logger.error(f"Table creation failed: {e}")
    else:
        logger.error("Database NOT connected, endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("RecruitDash shut down")


app = FastAPI(
    title="RecruitDash",
    description="Recruitment metrics for dental clinics: normalize portal scrapes, reconcile manual input, track goals.",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(metrics_router)
app.include_router(clinic_router)
app.include_router(goal_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "healthy",
        "service": "recruitdash",
        "version": settings.app_version,
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Check database connectivity."""
    from recruitdash.database import _mask_url

    error = None
    connected = False
    try:
        connected = test_connection()
    except Exception as e:
        error = str(e)

    backend = "postgresql" if db_url.startswith("postgresql") else "sqlite"
    return {
        "connected": connected,
        "backend": backend,
        "url": _mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
        "error": error,
    }
