"""Payment handlers: order creation, checkout verification, webhook."""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, Field

from hotel_booking.handlers import ok
from hotel_booking.handlers.dependencies import get_reservations
from hotel_booking.logging import get_logger
from hotel_booking.services.reservation_flow import ReservationFlowService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payment", tags=["payment"])


class CreateOrderBody(BaseModel):
    reservation_id: UUID


class VerifyPaymentBody(BaseModel):
    """Fields the checkout widget hands back after a successful payment."""

    order_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)


@router.post("/create-order")
async def create_order(
    body: CreateOrderBody,
    reservations: ReservationFlowService = Depends(get_reservations),
) -> dict[str, Any]:
    order = await reservations.open_payment_order(body.reservation_id)
    return ok(order.to_dict())


@router.post("/verify")
async def verify_payment(
    body: VerifyPaymentBody,
    reservations: ReservationFlowService = Depends(get_reservations),
) -> dict[str, Any]:
    reservation = await reservations.confirm_payment(
        body.order_id, body.payment_id, body.signature
    )
    return ok(
        {
            "reference_number": reservation.reference_number,
            "payment_id": reservation.payment_id,
            "payment_state": reservation.payment_state.value,
            "total_amount": str(reservation.total_amount),
        },
        message="Payment verified.",
    )


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(default=None),
    reservations: ReservationFlowService = Depends(get_reservations),
) -> dict[str, Any]:
    """The signature covers the raw body bytes, so the body is handed over unparsed."""
    raw_body = await request.body()
    result = await reservations.handle_webhook(raw_body, x_razorpay_signature)
    return ok(result, message="Webhook received.")
