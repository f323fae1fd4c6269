"""Service wiring shared by every request handler."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from hotel_booking.config.settings import Settings
from hotel_booking.logging import get_logger
from hotel_booking.security.permissions import PermissionChecker
from hotel_booking.security.rate_limit import RateLimiter
from hotel_booking.services.admin import AdminService
from hotel_booking.services.availability import AvailabilityCalculator
from hotel_booking.services.notifications import LoggingBookingNotifier
from hotel_booking.services.payment_gateway import RazorpayPaymentGateway
from hotel_booking.services.reservation_flow import ReservationFlowService
from hotel_booking.storage.database import Database
from hotel_booking.storage.redis_locks import LocalLockHelper, RedisLockHelper
from hotel_booking.storage.unit_of_work import postgres_uow_factory

logger = get_logger(__name__)

LockHelper = Union[RedisLockHelper, LocalLockHelper]


@dataclass
class AppContext:
    """Long-lived services, built once at startup."""

    settings: Settings
    availability: AvailabilityCalculator
    reservations: ReservationFlowService
    admin: AdminService
    db: Optional[Database] = None
    lock_helper: Optional[LockHelper] = None
    rate_limiter: Optional[RateLimiter] = None

    async def close(self) -> None:
        if self.rate_limiter is not None:
            await self.rate_limiter.disconnect()
        if self.lock_helper is not None:
            await self.lock_helper.disconnect()
        if self.db is not None:
            await self.db.disconnect()


def build_lock_helper(settings: Settings) -> LockHelper:
    """Redis lock for multi-process deployments, asyncio lock otherwise."""
    if settings.lock_backend == "local":
        return LocalLockHelper(wait_timeout_seconds=settings.lock_wait_timeout_seconds)
    if settings.lock_backend != "redis":
        raise ValueError(f"Unknown lock backend: {settings.lock_backend}")
    return RedisLockHelper(
        settings.redis_url,
        ttl_seconds=settings.redis_lock_ttl_seconds,
        wait_timeout_seconds=settings.lock_wait_timeout_seconds,
    )


async def build_context(settings: Settings) -> AppContext:
    """Connect storage and build the service graph."""
    db = Database(settings)
    await db.connect()
    uow_factory = postgres_uow_factory(db)

    lock_helper = build_lock_helper(settings)
    await lock_helper.connect()

    rate_limiter = RateLimiter(
        settings.redis_url,
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    await rate_limiter.connect()

    availability = AvailabilityCalculator(
        uow_factory,
        hold_window=timedelta(minutes=settings.hold_window_minutes),
    )

    reservations = ReservationFlowService(
        uow_factory=uow_factory,
        lock_helper=lock_helper,
        availability=availability,
        gateway=RazorpayPaymentGateway(
            settings.razorpay_key_id,
            key_secret=settings.payment_key_secret,
            webhook_secret=settings.payment_webhook_secret,
        ),
        notifier=LoggingBookingNotifier(),
        currency=settings.currency,
        gateway_timeout_seconds=settings.gateway_timeout_seconds,
    )

    admin = AdminService(uow_factory, PermissionChecker(settings.admin_identities))

    logger.info(
        "app_context_ready",
        lock_backend=settings.lock_backend,
        hold_window_minutes=settings.hold_window_minutes,
        admin_count=len(settings.admin_identities),
    )

    return AppContext(
        settings=settings,
        availability=availability,
        reservations=reservations,
        admin=admin,
        db=db,
        lock_helper=lock_helper,
        rate_limiter=rate_limiter,
    )
