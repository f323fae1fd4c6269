"""Gateway webhook payloads."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class WebhookPayment(BaseModel):
    """Payment entity carried by ``payment.*`` events."""

    id: str = Field(min_length=1)
    order_id: str = Field(min_length=1)
    status: Optional[str] = None
    error_description: Optional[str] = None
    notes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("notes", mode="before")
    @classmethod
    def empty_notes(cls, v: Any) -> Any:
        """Empty notes arrive as ``[]``."""
        if v is None or v == []:
            return {}
        return v

    @property
    def reservation_hint(self) -> Optional[str]:
        value = self.notes.get("reservation_id")
        return str(value) if value else None


class PaymentEntity(BaseModel):
    entity: WebhookPayment


class PaymentEventPayload(BaseModel):
    payment: PaymentEntity


class WebhookEnvelope(BaseModel):
    """Outer webhook body: ``{"event": ..., "payload": {...}}``."""

    event: str
    payload: dict[str, Any] = Field(default_factory=dict)
