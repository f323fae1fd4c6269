"""Permission checks for administrative actions."""

from enum import Enum
from typing import Optional

from hotel_booking.errors import PermissionDenied
from hotel_booking.logging import get_logger
from hotel_booking.logging.audit import AuditLogger

logger = get_logger(__name__)


class Permission(str, Enum):
    """Permission types."""

    MANAGE_ROOM_TYPES = "manage_room_types"
    VIEW_RESERVATIONS = "view_reservations"
    OVERRIDE_PAYMENT_STATE = "override_payment_state"
    VIEW_ANALYTICS = "view_analytics"


class PermissionChecker:
    """Check caller identities against the admin role."""

    def __init__(self, admin_user_ids: Optional[list[str]] = None):
        """Initialize permission checker."""
        self.admin_user_ids = set(admin_user_ids or [])

    def is_admin(self, identity: Optional[str]) -> bool:
        """Check if identity holds the admin role."""
        return bool(identity) and identity in self.admin_user_ids

    def require_admin(
        self,
        identity: Optional[str],
        permission: Permission,
        resource_type: str = "system",
        resource_id: str = "admin",
    ) -> str:
        """Return the identity if it is an admin, otherwise raise PermissionDenied."""
        if self.is_admin(identity):
            return identity  # type: ignore[return-value]

        logger.warning(
            "admin_permission_denied",
            identity=identity,
            permission=permission.value,
        )
        AuditLogger.log_permission_denied(
            actor_id=identity or "anonymous",
            resource_type=resource_type,
            resource_id=resource_id,
            attempted_action=permission.value,
        )
        raise PermissionDenied("Administrator access required.")
