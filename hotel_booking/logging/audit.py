"""Structured audit logging for critical business actions.

Provides detailed audit trails for payment reconciliation and security
monitoring. Security events are emitted at error level so they can be
alerted on separately from ordinary business activity.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from hotel_booking.logging import get_logger

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
GATEWAY_ACTOR = "payment_gateway"


class AuditEventType(str, Enum):
    """Types of auditable events."""

    # Inventory management
    ROOM_TYPE_CREATED = "room_type_created"
    ROOM_TYPE_UPDATED = "room_type_updated"
    ROOM_TYPE_DEACTIVATED = "room_type_deactivated"

    # Reservation lifecycle
    RESERVATION_CREATED = "reservation_created"
    PAYMENT_ORDER_OPENED = "payment_order_opened"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    STATE_OVERRIDDEN = "state_overridden"

    # Security
    SIGNATURE_INVALID = "signature_invalid"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"


_SECURITY_EVENTS = frozenset(
    {
        AuditEventType.SIGNATURE_INVALID,
        AuditEventType.PERMISSION_DENIED,
    }
)


class AuditLogger:
    """Centralized audit logging service."""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        actor_id: str,
        resource_type: str,
        resource_id: UUID | str,
        action: str,
        success: bool = True,
        metadata: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Log an auditable event with structured context.

        Args:
            event_type: Type of audit event
            actor_id: Identity performing the action (admin id, guest email,
                "payment_gateway" or "system")
            resource_type: Type of resource (room_type, reservation, system)
            resource_id: ID of the affected resource
            action: Human-readable action description
            success: Whether the action succeeded
            metadata: Additional context (amounts, states, etc.)
            error: Error message if action failed
        """
        audit_entry = {
            "event_type": event_type.value,
            "actor_id": actor_id,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "action": action,
            "success": success,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }

        if error:
            audit_entry["error"] = error

        if event_type in _SECURITY_EVENTS:
            logger.error("security_audit_event", **audit_entry)
        else:
            logger.info("audit_event", **audit_entry)

    @staticmethod
    def log_room_type_changed(
        event_type: AuditEventType,
        actor_id: str,
        room_type_id: UUID,
        room_type: str,
        changes: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log room type creation, edits and deactivation."""
        AuditLogger.log_event(
            event_type=event_type,
            actor_id=actor_id,
            resource_type="room_type",
            resource_id=room_type_id,
            action=f"{event_type.value.replace('_', ' ').capitalize()}: {room_type}",
            metadata={"room_type": room_type, "changes": changes or {}},
        )

    @staticmethod
    def log_reservation_created(
        actor_id: str,
        reservation_id: UUID,
        room_type: str,
        room_count: int,
        total_amount: Decimal,
    ) -> None:
        """Log a new pending reservation."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_CREATED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Reservation created",
            metadata={
                "room_type": room_type,
                "room_count": room_count,
                "total_amount": str(total_amount),
            },
        )

    @staticmethod
    def log_payment_order_opened(
        reservation_id: UUID,
        order_id: str,
        amount: Decimal,
    ) -> None:
        """Log a payment order opened against a reservation."""
        AuditLogger.log_event(
            event_type=AuditEventType.PAYMENT_ORDER_OPENED,
            actor_id=SYSTEM_ACTOR,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Payment order opened",
            metadata={"order_id": order_id, "amount": str(amount)},
        )

    @staticmethod
    def log_payment_confirmed(
        reservation_id: UUID,
        order_id: str,
        payment_id: str,
        amount: Decimal,
    ) -> None:
        """Log first confirmation of a payment."""
        AuditLogger.log_event(
            event_type=AuditEventType.PAYMENT_CONFIRMED,
            actor_id=GATEWAY_ACTOR,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Payment confirmed",
            metadata={
                "order_id": order_id,
                "payment_id": payment_id,
                "amount": str(amount),
            },
        )

    @staticmethod
    def log_payment_failed(
        reservation_id: UUID,
        payment_id: Optional[str],
        reason: str,
    ) -> None:
        """Log gateway-reported payment failure."""
        AuditLogger.log_event(
            event_type=AuditEventType.PAYMENT_FAILED,
            actor_id=GATEWAY_ACTOR,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Payment failed",
            success=False,
            metadata={"payment_id": payment_id, "reason": reason},
        )

    @staticmethod
    def log_state_overridden(
        actor_id: str,
        reservation_id: UUID,
        previous_state: str,
        new_state: str,
    ) -> None:
        """Log a manual payment state override."""
        AuditLogger.log_event(
            event_type=AuditEventType.STATE_OVERRIDDEN,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action=f"Payment state overridden: {previous_state} -> {new_state}",
            metadata={"previous_state": previous_state, "new_state": new_state},
        )

    @staticmethod
    def log_signature_invalid(
        source: str,
        order_id: Optional[str],
        payment_id: Optional[str] = None,
    ) -> None:
        """Log a rejected payment signature."""
        AuditLogger.log_event(
            event_type=AuditEventType.SIGNATURE_INVALID,
            actor_id=GATEWAY_ACTOR,
            resource_type="payment",
            resource_id=order_id or "unknown",
            action=f"Invalid {source} signature rejected",
            success=False,
            metadata={"source": source, "payment_id": payment_id},
        )

    @staticmethod
    def log_permission_denied(
        actor_id: str,
        resource_type: str,
        resource_id: UUID | str,
        attempted_action: str,
    ) -> None:
        """Log unauthorized access attempts."""
        AuditLogger.log_event(
            event_type=AuditEventType.PERMISSION_DENIED,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=f"Permission denied: {attempted_action}",
            success=False,
            metadata={"attempted_action": attempted_action},
        )

    @staticmethod
    def log_rate_limit_exceeded(
        actor_id: str,
        action: str,
        limit: int,
        window_seconds: int,
    ) -> None:
        """Log rate limit violations."""
        AuditLogger.log_event(
            event_type=AuditEventType.RATE_LIMIT_EXCEEDED,
            actor_id=actor_id,
            resource_type="system",
            resource_id="rate_limiter",
            action=f"Rate limit exceeded: {action}",
            success=False,
            metadata={
                "action": action,
                "limit": limit,
                "window_seconds": window_seconds,
            },
        )
