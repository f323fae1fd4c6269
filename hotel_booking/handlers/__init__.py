"""Handlers package - FastAPI routers for the booking API.

Each router calls one service operation per endpoint. Typed booking
errors are mapped to status codes by the handlers registered in
``register_error_handlers`` and nowhere else.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from hotel_booking.errors import BookingError
from hotel_booking.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"

STATUS_BY_CODE: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "ROOM_TYPE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RESERVATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CAPACITY_UNAVAILABLE": status.HTTP_409_CONFLICT,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "SIGNATURE_INVALID": status.HTTP_401_UNAUTHORIZED,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "GATEWAY_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "RESERVATION_BUSY": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Request parts FastAPI prefixes to an error location
_LOCATION_PREFIXES = ("body", "query", "path", "header")


def to_json(value: Any) -> Any:
    """Convert models (or lists of them) to JSON-safe structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [to_json(v) for v in value]
    return value


def ok(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = to_json(data)
    return body


def _field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    details = []
    for e in errors:
        loc = list(e.get("loc", ()))
        if len(loc) > 1 and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        details.append({"field": ".".join(str(p) for p in loc), "message": e["msg"]})
    return details


def validation_response(errors: list[dict[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "errors": _field_errors(errors),
        },
    )


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Map a typed error to its status and body."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        code=exc.code,
        error=exc.message,
    )
    headers = {}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST),
        content=exc.to_dict(),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return validation_response(list(exc.errors()))


async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("request_validation_failed", path=request.url.path, errors=exc.error_count())
    return validation_response(exc.errors())


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the error-to-response mapping on ``app``."""
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
