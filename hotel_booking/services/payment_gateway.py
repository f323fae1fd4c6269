"""Payment gateway client and signature verification.

The gateway is Razorpay. An order id is the handle a guest pays against,
and each attempt to pay it gets a payment id. Two signatures guard
confirmation, both checked with the SDK's ``utility`` helpers:

- the checkout return carries ``HMAC-SHA256(order_id|payment_id)`` keyed
  with the API key secret;
- webhooks carry ``HMAC-SHA256(raw body)`` in ``X-Razorpay-Signature``,
  keyed with the separate webhook secret.
"""

import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional, Protocol, TypeVar
from uuid import UUID

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from hotel_booking.errors import GatewayUnavailable
from hotel_booking.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CAPTURED = "captured"
MISMATCHED = "mismatched"

_SDK_ERRORS = (BadRequestError, GatewayError, ServerError, ConnectionError)


@dataclass(frozen=True)
class OrderHandle:
    """Gateway order returned to the client for checkout."""

    order_id: str
    amount: Decimal
    currency: str
    key_id: Optional[str] = None
    reservation_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "key_id": self.key_id,
        }


@dataclass(frozen=True)
class GatewayPayment:
    """Payment status as reported by the gateway."""

    order_id: str
    payment_id: str
    status: str
    reservation_id: Optional[str] = None

    @property
    def is_captured(self) -> bool:
        return self.status == CAPTURED


class PaymentGateway(Protocol):
    """Operations the reservation flow needs from a gateway."""

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        reservation_id: UUID,
    ) -> OrderHandle:
        ...

    async def fetch_order(self, order_id: str) -> OrderHandle:
        ...

    async def fetch_payment(self, order_id: str, payment_id: str) -> GatewayPayment:
        ...

    def verify_payment_signature(
        self, order_id: str, payment_id: str, signature: Optional[str]
    ) -> bool:
        ...

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        ...


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (rupees) to minor units (paise)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: Optional[int]) -> Decimal:
    return Decimal(amount or 0) / 100


def _note(entity: dict[str, Any], key: str) -> Optional[str]:
    # Razorpay sends empty notes as [] rather than {}
    notes = entity.get("notes")
    if not isinstance(notes, dict):
        return None
    return notes.get(key)


class RazorpayPaymentGateway:
    """Gateway client backed by the Razorpay SDK.

    The SDK is synchronous, so each network call runs in a worker thread.
    Callers bound the wait with their own timeout.
    """

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str):
        """
        Initialize Razorpay gateway.

        Args:
            key_id: Public API key id, also handed to the checkout page
            key_secret: API key secret; signs the checkout return
            webhook_secret: Secret configured on the webhook endpoint
        """
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.client = razorpay.Client(auth=(key_id, key_secret))

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        reference: str,
        reservation_id: UUID,
    ) -> OrderHandle:
        """Create an order for a reservation; the reservation id rides in the notes."""
        order = await self._call(
            self.client.order.create,
            {
                "amount": to_minor_units(amount),
                "currency": currency.upper(),
                "receipt": reference,
                "payment_capture": 1,
                "notes": {
                    "reservation_id": str(reservation_id),
                    "reference_number": reference,
                },
            },
            operation="create_order",
        )

        logger.info("gateway_order_created", order_id=order["id"], reference=reference)

        return OrderHandle(
            order_id=order["id"],
            amount=amount,
            currency=order.get("currency", currency).upper(),
            key_id=self.key_id,
            reservation_id=str(reservation_id),
        )

    async def fetch_order(self, order_id: str) -> OrderHandle:
        """Retrieve an existing order."""
        order = await self._call(self.client.order.fetch, order_id, operation="fetch_order")
        return OrderHandle(
            order_id=order["id"],
            amount=from_minor_units(order.get("amount")),
            currency=(order.get("currency") or "").upper(),
            key_id=self.key_id,
            reservation_id=_note(order, "reservation_id"),
        )

    async def fetch_payment(self, order_id: str, payment_id: str) -> GatewayPayment:
        """Report whether ``payment_id`` was captured against ``order_id``."""
        payment = await self._call(self.client.payment.fetch, payment_id, operation="fetch_payment")

        if payment.get("order_id") != order_id:
            status = MISMATCHED
        else:
            status = payment.get("status") or "unknown"

        return GatewayPayment(
            order_id=order_id,
            payment_id=payment_id,
            status=status,
            reservation_id=_note(payment, "reservation_id"),
        )

    def verify_payment_signature(
        self,
        order_id: str,
        payment_id: str,
        signature: Optional[str],
    ) -> bool:
        """Check the checkout return signature over ``order_id|payment_id``."""
        if not self.key_secret or not signature or not signature.isascii():
            return False
        try:
            self.client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_id,
                    "razorpay_payment_id": payment_id,
                    "razorpay_signature": signature,
                }
            )
        except SignatureVerificationError:
            return False
        return True

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """Check a webhook body signature. A missing secret or header never verifies."""
        if not self.webhook_secret or not signature or not signature.isascii():
            return False
        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            return False
        try:
            self.client.utility.verify_webhook_signature(body, signature, self.webhook_secret)
        except SignatureVerificationError:
            return False
        return True

    async def _call(self, func: Callable[..., T], *args: Any, operation: str) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except _SDK_ERRORS as e:
            logger.error("gateway_call_failed", operation=operation, error=str(e))
            raise GatewayUnavailable("Failed to reach payment gateway.") from e
