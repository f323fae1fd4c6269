"""Health check endpoint.

Reports whether the API can take bookings. PostgreSQL is required.
Redis backs the room type locks and rate limiting. An empty inventory or
missing payment secrets leave the service up but unable to complete a
booking, so they degrade the status instead of failing it.
"""

import os
import resource
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from hotel_booking.api.context import AppContext
from hotel_booking.config.settings import Settings
from hotel_booking.handlers.dependencies import get_context
from hotel_booking.logging import get_logger
from hotel_booking.models.room_type import RoomTypeStatus
from hotel_booking.storage.database import Database
from hotel_booking.storage.db_models import RoomTypeTable

logger = get_logger(__name__)

router = APIRouter(tags=["system"])

_start_time: float = time.time()

APP_VERSION: str = os.environ.get("APP_VERSION", "0.0.0-dev")

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

_PAYMENT_SECRETS = ("razorpay_key_id", "payment_key_secret", "payment_webhook_secret")


@dataclass
class DependencyHealth:
    """Health of one backing service."""

    status: str  # HEALTHY or UNHEALTHY
    response_time_ms: int | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.response_time_ms is not None:
            data["response_time_ms"] = self.response_time_ms
        if self.error:
            data["error"] = self.error
        data.update(self.details)
        return data


@dataclass
class ResourceMetrics:
    """Process resource usage."""

    memory_rss_bytes: int
    cpu_user_seconds: float
    cpu_system_seconds: float
    open_fds: int | None = None  # Linux only

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "memory_rss_bytes": self.memory_rss_bytes,
            "cpu_user_seconds": round(self.cpu_user_seconds, 3),
            "cpu_system_seconds": round(self.cpu_system_seconds, 3),
        }
        if self.open_fds is not None:
            data["open_fds"] = self.open_fds
        return data


@dataclass
class HealthCheckResult:
    """Overall health plus per-dependency detail."""

    status: str
    version: str
    uptime_seconds: int
    timestamp: str
    dependencies: dict[str, DependencyHealth] = field(default_factory=dict)
    resources: ResourceMetrics | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "version": self.version,
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
            "dependencies": {name: dep.to_dict() for name, dep in self.dependencies.items()},
        }
        if self.resources is not None:
            data["resources"] = self.resources.to_dict()
        if self.warnings:
            data["warnings"] = self.warnings
        if self.errors:
            data["errors"] = self.errors
        return data


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def collect_resource_metrics() -> ResourceMetrics:
    """Memory, CPU and file descriptor usage of this process."""
    usage = resource.getrusage(resource.RUSAGE_SELF)

    # ru_maxrss is in KB on Linux; /proc gives the current value
    memory_rss = usage.ru_maxrss * 1024
    open_fds = None
    try:
        with open("/proc/self/status", "r") as f:
            for line in f:
                if line.startswith("VmRSS:"):
                    memory_rss = int(line.split()[1]) * 1024
        open_fds = len(os.listdir("/proc/self/fd"))
    except (FileNotFoundError, PermissionError):
        pass

    return ResourceMetrics(
        memory_rss_bytes=memory_rss,
        cpu_user_seconds=usage.ru_utime,
        cpu_system_seconds=usage.ru_stime,
        open_fds=open_fds,
    )


async def check_postgres_health(db: Database) -> DependencyHealth:
    """Query the active room type count; a reply proves connectivity."""
    start = time.perf_counter()
    try:
        async with db.session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(RoomTypeTable)
                .where(RoomTypeTable.status == RoomTypeStatus.ACTIVE)
            )
            active_room_types = int(result.scalar_one())
    except Exception as e:
        logger.error("postgres_health_check_failed", error=str(e))
        return DependencyHealth(status=UNHEALTHY, error=f"Connection failed: {str(e)[:100]}")

    return DependencyHealth(
        status=HEALTHY,
        response_time_ms=_elapsed_ms(start),
        details={"active_room_types": active_room_types},
    )


async def check_redis_health(redis_url: str) -> DependencyHealth:
    """Ping Redis on a short-lived connection."""
    start = time.perf_counter()
    client = None
    try:
        client = redis.from_url(redis_url, socket_timeout=5.0)
        await client.ping()
        return DependencyHealth(status=HEALTHY, response_time_ms=_elapsed_ms(start))
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return DependencyHealth(status=UNHEALTHY, error=f"Connection failed: {str(e)[:100]}")
    finally:
        if client:
            await client.aclose()


def missing_payment_secrets(settings: Settings) -> list[str]:
    """Names of payment settings left empty."""
    return [name for name in _PAYMENT_SECRETS if not getattr(settings, name)]


async def perform_health_check(
    db: Optional[Database] = None,
    redis_url: Optional[str] = None,
    include_resources: bool = True,
    settings: Optional[Settings] = None,
) -> HealthCheckResult:
    """Check every dependency and derive the overall status.

    Args:
        db: Database for the PostgreSQL and inventory check
        redis_url: Redis URL for the lock and rate limit backend check
        include_resources: Whether to include process metrics
        settings: When given, payment configuration is checked too

    Returns:
        HealthCheckResult: unhealthy without PostgreSQL, degraded when
        bookings cannot complete, healthy otherwise
    """
    result = HealthCheckResult(
        status=HEALTHY,
        version=APP_VERSION,
        uptime_seconds=int(time.time() - _start_time),
        timestamp=_timestamp(),
    )

    if include_resources:
        result.resources = collect_resource_metrics()

    if db is not None and db.is_connected:
        result.dependencies["postgres"] = await check_postgres_health(db)
    else:
        result.dependencies["postgres"] = DependencyHealth(status=UNHEALTHY, error="Database not connected")

    if redis_url:
        result.dependencies["redis"] = await check_redis_health(redis_url)
    else:
        result.dependencies["redis"] = DependencyHealth(status=UNHEALTHY, error="Redis URL not configured")

    unhealthy = [name for name, dep in result.dependencies.items() if dep.status == UNHEALTHY]

    if result.dependencies["postgres"].status == UNHEALTHY:
        result.status = UNHEALTHY
        result.errors = [f"Critical: {name} connection failed" for name in unhealthy]
        return result

    result.warnings.extend(f"{name.capitalize()} unavailable" for name in unhealthy)

    if result.dependencies["postgres"].details.get("active_room_types") == 0:
        result.warnings.append("No active room types; bookings cannot be created")

    if settings is not None:
        missing = missing_payment_secrets(settings)
        if missing:
            result.warnings.append(f"Payment configuration incomplete: {', '.join(missing)}")

    if result.warnings:
        result.status = DEGRADED

    return result


def get_http_status_code(health_status: str) -> int:
    """503 when unhealthy; degraded still serves traffic."""
    return 503 if health_status == UNHEALTHY else 200


@router.get("/health")
async def health_check(ctx: AppContext = Depends(get_context)) -> JSONResponse:
    try:
        result = await perform_health_check(ctx.db, ctx.settings.redis_url, settings=ctx.settings)
    except Exception as e:
        logger.error("health_check_error", error=str(e), exc_info=True)
        result = HealthCheckResult(
            status=UNHEALTHY,
            version=APP_VERSION,
            uptime_seconds=int(time.time() - _start_time),
            timestamp=_timestamp(),
            errors=[f"Health check failed: {str(e)}"],
        )

    return JSONResponse(
        status_code=get_http_status_code(result.status),
        content=result.to_dict(),
        headers={"Cache-Control": "no-cache"},
    )


def reset_start_time() -> None:
    """Reset start time for testing purposes."""
    global _start_time
    _start_time = time.time()
