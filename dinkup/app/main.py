"""
FastAPI Application Entry Point.

This is the main application file for the DinkUp Payment Ledger.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from dinkup.app.core.config import settings
from dinkup.app.api.v1.router import router as api_v1_router
from dinkup.app.core.observability import ObservabilityMiddleware, configure_logging
from dinkup.app.db.session import engine, init_models
from dinkup.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from dinkup.app.models.player import Player
from dinkup.app.models.pool import Pool
from dinkup.app.models.play_session import PlaySession
from dinkup.app.models.session_participant import SessionParticipant
from dinkup.app.models.payment import Payment
from dinkup.app.models.payment_transaction import PaymentTransaction
from dinkup.app.models.notification_log import NotificationLogEntry
from dinkup.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    """
    configure_logging(settings.log_level)
    await init_models()
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Payment ledger and Venmo reconciliation for pickleball sessions",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the DinkUp Payment Ledger API",
        "docs": "/docs",
        "health": "/health",
    }
