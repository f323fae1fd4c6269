"""FastAPI application bootstrap and lifecycle wiring."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from hotel_booking.api.context import AppContext, build_context
from hotel_booking.config.settings import Settings
from hotel_booking.handlers import register_error_handlers
from hotel_booking.handlers.admin_handlers import router as admin_router
from hotel_booking.handlers.booking_handlers import router as booking_router
from hotel_booking.handlers.payment_handlers import router as payment_router
from hotel_booking.handlers.system.health import router as health_router
from hotel_booking.logging import get_logger

logger = get_logger(__name__)


def create_app(
    ctx: Optional[AppContext] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the app.

    With ``ctx`` the given services are used as they are and left open.
    Otherwise the service graph is built from ``settings`` at startup and
    closed at shutdown.
    """
    if ctx is None and settings is None:
        raise ValueError("create_app needs either a context or settings")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.ctx is not None:
            yield
            return

        app.state.ctx = await build_context(settings)
        logger.info("api_started", environment=settings.environment)
        try:
            yield
        finally:
            logger.info("api_stopping")
            await app.state.ctx.close()
            app.state.ctx = None

    app = FastAPI(
        title=(ctx.settings if ctx else settings).app_name,
        lifespan=lifespan,
    )
    app.include_router(health_router)
    app.include_router(booking_router)
    app.include_router(payment_router)
    app.include_router(admin_router)
    register_error_handlers(app)

    app.state.ctx = ctx

    return app
