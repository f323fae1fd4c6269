"""Typed booking errors.

Every error carries a stable ``code`` so callers (HTTP handlers, admin
tooling) can map failures to user-visible messages without inspecting
free-text strings.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all expected booking failures."""

    code = "BOOKING_ERROR"
    retryable = False

    def __init__(self, message: str, *, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        """Serialize for an error response body."""
        body = {"success": False, "code": self.code, "message": self.message}
        if self.reason:
            body["reason"] = self.reason
        if self.retryable:
            body["retryable"] = True
        return body


class BookingValidationError(BookingError):
    """Malformed request: bad interval, non-positive count, bad fields."""

    code = "VALIDATION_ERROR"


class RoomTypeNotFound(BookingError):
    """Room type key or id does not exist."""

    code = "ROOM_TYPE_NOT_FOUND"


class ReservationNotFound(BookingError):
    """Reservation could not be resolved by id, reference or order."""

    code = "RESERVATION_NOT_FOUND"


class CapacityUnavailable(BookingError):
    """Not enough free units for the requested interval."""

    code = "CAPACITY_UNAVAILABLE"


class InvalidState(BookingError):
    """Transition not allowed from the reservation's current state."""

    code = "INVALID_STATE"


class SignatureInvalid(BookingError):
    """Payment or webhook signature did not verify."""

    code = "SIGNATURE_INVALID"


class GatewayUnavailable(BookingError):
    """Payment gateway timed out or could not be reached."""

    code = "GATEWAY_UNAVAILABLE"
    retryable = True


class ReservationBusy(BookingError):
    """Room type lock could not be taken in time while confirming a payment."""

    code = "RESERVATION_BUSY"
    retryable = True


class PermissionDenied(BookingError):
    """Caller identity lacks the admin role."""

    code = "PERMISSION_DENIED"


class RateLimited(BookingError):
    """Caller exceeded the request budget for an action."""

    code = "RATE_LIMITED"
    retryable = True

    def __init__(self, message: str, *, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body
