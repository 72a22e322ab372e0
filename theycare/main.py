"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging — structlog configured before anything logs
  2. Lifespan manager — creates tables on startup, disposes the engine on shutdown
  3. Middleware — CORS, request logging and correlation ids
  4. Exception handlers — maps domain errors to HTTP responses
  5. Routers — /auth and /admin

Running locally:
    uvicorn theycare.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from theycare.config import settings
from theycare.database import engine, Base
from theycare.exceptions import register_exception_handlers
from theycare.logging import configure_logging
from theycare.middleware import setup_middleware
from theycare.routers import admin, auth

import theycare.models  # noqa: F401  (registers every table on Base.metadata)

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Creates all database tables if they don't exist.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "application_started",
        environment=settings.ENVIRONMENT,
        otp_channel=settings.OTP_CHANNEL,
    )
    yield
    # --- Shutdown ---
    await engine.dispose()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Authentication, role-based access control and OTP verification for the barangay portal",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment probes."""
    return {"status": "ok", "version": settings.APP_VERSION}
