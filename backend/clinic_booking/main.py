import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .dependencies import Container, build_container
from .redis_client import make_redis
from .routers import bookings, reminders
from .schemas.bookings import RejectionCode
from .services.booking import (
    BookingNotFound,
    ConfigurationError,
    NotificationFailure,
    SlotConflictError,
    ValidationRejected,
)

logger = logging.getLogger(__name__)


def rejection_status(code: str) -> int:
    if code == RejectionCode.ONLINE_BOOKING_DISABLED.value:
        return 403
    if code in (RejectionCode.SERVICE_NOT_FOUND.value, RejectionCode.STAFF_NOT_FOUND.value):
        return 404
    if code == RejectionCode.SLOT_CONFLICT.value:
        return 409
    return 400


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """
    Application factory and composition root.

    The reminder scheduler is constructed here and started/stopped by the
    lifespan, never on import.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.container is None:
            from .database import SessionLocal
            app.state.container = build_container(
                settings,
                SessionLocal,
                redis=make_redis(settings.redis_url),
            )

        scheduler = app.state.container.reminders
        if settings.reminders_enabled:
            scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()

    app = FastAPI(title="Clinic Booking API", lifespan=lifespan)
    app.state.container = container

    app.include_router(bookings.router)
    app.include_router(reminders.router)

    @app.exception_handler(ValidationRejected)
    async def handle_rejection(request: Request, exc: ValidationRejected):
        return JSONResponse(
            status_code=rejection_status(exc.code),
            content={
                "detail": exc.reason,
                "code": exc.code,
                "hours_remaining": exc.hours_remaining,
            },
        )

    @app.exception_handler(BookingNotFound)
    async def handle_not_found(request: Request, exc: BookingNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SlotConflictError)
    async def handle_conflict(request: Request, exc: SlotConflictError):
        return JSONResponse(
            status_code=409,
            content={
                "detail": "The selected slot has just been booked. Please choose another time.",
                "code": RejectionCode.SLOT_CONFLICT.value,
            },
        )

    @app.exception_handler(ConfigurationError)
    async def handle_configuration(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "code": RejectionCode.CONFIGURATION_ERROR.value},
        )

    @app.exception_handler(NotificationFailure)
    async def handle_notification(request: Request, exc: NotificationFailure):
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/health")
    def health():
        scheduler = app.state.container.reminders if app.state.container else None
        return {"reminders_running": bool(scheduler and scheduler.running)}

    return app


def run() -> FastAPI:
    logging.basicConfig(level=default_settings.log_level)
    return create_app()
