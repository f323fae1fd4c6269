"""Room type (inventory unit) domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from hotel_booking.models.clock import utcnow


class RoomTypeStatus(str, Enum):
    """Room type lifecycle status. Deactivation is a soft flag."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class RoomType(BaseModel):
    """Room type entity: a category of bookable units sharing rate and capacity."""

    id: UUID = Field(default_factory=uuid4)
    room_type: str = Field(min_length=1, max_length=100, description="Stable type key, e.g. 'deluxe'")
    display_name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    total_rooms: int = Field(ge=0, description="Total unit count (capacity)")
    current_rate: Decimal = Field(gt=0, description="Nightly rate per unit")
    status: RoomTypeStatus = Field(default=RoomTypeStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        """Check if the room type can be booked."""
        return self.status == RoomTypeStatus.ACTIVE


class RoomTypeInput(BaseModel):
    """Input model for room type creation."""

    room_type: str = Field(min_length=1, max_length=100)
    display_name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    total_rooms: int = Field(ge=0)
    current_rate: Decimal = Field(gt=0)
    status: RoomTypeStatus = RoomTypeStatus.ACTIVE

    @field_validator("room_type")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Trim the key and reject blank values."""
        v = v.strip()
        if not v:
            raise ValueError("room_type is required and must be a non-empty string")
        return v


class RoomTypeUpdate(BaseModel):
    """Partial update for a room type. Only provided fields are changed."""

    room_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    total_rooms: Optional[int] = Field(default=None, ge=0)
    current_rate: Optional[Decimal] = Field(default=None, gt=0)
    status: Optional[RoomTypeStatus] = None

    @field_validator("room_type")
    @classmethod
    def validate_key(cls, v: Optional[str]) -> Optional[str]:
        """Trim the key and reject blank values."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("room_type must be a non-empty string")
        return v

    def changes(self) -> dict:
        """Fields explicitly set on this update."""
        return self.model_dump(exclude_unset=True)
