"""FastAPI application entry point.

Run with: uvicorn timeclock.main:app --host 127.0.0.1 --port 8080
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from timeclock import __version__
from timeclock.api.routes import api_router
from timeclock.core.config import Settings, settings as default_settings
from timeclock.core.exceptions import (
    EntryNotEditableError,
    EntryNotFoundError,
    KioskBusyError,
    KioskStateError,
)
from timeclock.core.logging import configure_logging
from timeclock.core.observability import setup_observability
from timeclock.services.backend_client import KioskBackendClient
from timeclock.services.kiosk_session import KioskSession
from timeclock.services.timers import AsyncioScheduler
from timeclock.services.wake_lock import WakeLockManager, detect_wake_lock_provider

logger = logging.getLogger(__name__)


def _error_response(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


def create_app(session: Optional[KioskSession] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the kiosk app. A prebuilt session is used as-is (tests); otherwise one is wired at startup."""
    settings = settings or default_settings
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting time-clock kiosk")
        backend = None
        scheduler = None
        if app.state.kiosk_session is None:
            backend = KioskBackendClient.from_settings(settings)
            scheduler = AsyncioScheduler()
            wake_lock = WakeLockManager(detect_wake_lock_provider(settings))
            if not wake_lock.supported:
                logger.info("No wake lock provider available, screen may blank")
            app.state.kiosk_session = KioskSession(backend, scheduler, settings, wake_lock=wake_lock)
            logger.info(f"Kiosk backend: {settings.backend_url}")

        kiosk_session = app.state.kiosk_session
        await kiosk_session.start()

        yield

        await kiosk_session.close()
        if scheduler is not None:
            await scheduler.aclose()
        if backend is not None:
            await backend.aclose()
        logger.info("Shutting down time-clock kiosk")

    app = FastAPI(
        title="Time Clock Kiosk",
        description="Self-service employee time clock",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.kiosk_session = session

    app.add_exception_handler(KioskStateError, _error_response(409))
    app.add_exception_handler(KioskBusyError, _error_response(409))
    app.add_exception_handler(EntryNotEditableError, _error_response(409))
    app.add_exception_handler(EntryNotFoundError, _error_response(404))

    setup_observability(app, request_logging=settings.request_logging_enabled)

    # Include API routes
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health")
    def health_check():
        """Basic liveness check endpoint."""
        kiosk_session = app.state.kiosk_session
        return {
            "status": "healthy",
            "version": __version__,
            "step": kiosk_session.step.value if kiosk_session is not None else None,
        }

    return app


app = create_app()
