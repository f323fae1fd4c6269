"""Reservation flow service with race-free creation and idempotent confirmation.

Lifecycle: ``Pending -> {Success, Failed}``, ``Success -> Refunded`` (admin).

Creation holds the per-room-type lock and, inside one transaction, locks
the room type row, rechecks availability and inserts. The synchronous
verification path and the webhook path both end in
``_apply_confirmation``, which is a no-op on a reservation that is
already ``Success``. A payment that arrives after the hold lapsed is only
accepted if the units are still free.
"""

import asyncio
from datetime import timedelta
from typing import Any, Awaitable, Optional, TypeVar
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError

from hotel_booking.errors import (
    BookingValidationError,
    CapacityUnavailable,
    GatewayUnavailable,
    InvalidState,
    ReservationBusy,
    ReservationNotFound,
    RoomTypeNotFound,
    SignatureInvalid,
)
from hotel_booking.logging import get_logger
from hotel_booking.logging.audit import AuditLogger
from hotel_booking.models.payment import PaymentEventPayload, WebhookEnvelope, WebhookPayment
from hotel_booking.models.reservation import (
    BookingRequest,
    PaymentState,
    Reservation,
    ReservationInput,
    can_transition,
)
from hotel_booking.services.availability import (
    AvailabilityCalculator,
    is_capacity_holding,
    validate_unit_count,
)
from hotel_booking.services.notifications import BookingNotifier
from hotel_booking.services.payment_gateway import OrderHandle, PaymentGateway
from hotel_booking.storage.redis_locks import RoomTypeLock
from hotel_booking.storage.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory

logger = get_logger(__name__)

T = TypeVar("T")

CREATE_ATTEMPTS = 2

EVENT_CAPTURED = "payment.captured"
EVENT_FAILED = "payment.failed"


class ReservationFlowService:
    """Drives a reservation from creation through payment."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lock_helper: RoomTypeLock,
        availability: AvailabilityCalculator,
        gateway: PaymentGateway,
        notifier: BookingNotifier,
        currency: str = "INR",
        gateway_timeout_seconds: float = 10.0,
    ):
        """
        Initialize reservation flow service.

        Args:
            uow_factory: Builds one transaction per call
            lock_helper: Per-room-type lock (Redis or in-process)
            availability: Calculator used for the in-transaction recheck
            gateway: Payment gateway client; also verifies signatures
            notifier: Sends confirmation on first transition into Success
            currency: ISO currency of all reservations
            gateway_timeout_seconds: Upper bound on any gateway call
        """
        self.uow_factory = uow_factory
        self.lock_helper = lock_helper
        self.availability = availability
        self.gateway = gateway
        self.notifier = notifier
        self.currency = currency
        self.gateway_timeout_seconds = gateway_timeout_seconds

    @property
    def hold_window(self) -> timedelta:
        return self.availability.hold_window

    async def create_reservation(self, request: BookingRequest) -> Reservation:
        """
        Create a Pending reservation after rechecking availability.

        Raises:
            BookingValidationError: non-positive room count
            RoomTypeNotFound: unknown room type key
            CapacityUnavailable: inactive room type, not enough units, lock
                wait timed out, or a storage conflict persisted after retry
        """
        validate_unit_count(request.room_count)

        async with self.lock_helper.acquire_room_type_lock(request.room_type) as acquired:
            if not acquired:
                logger.warning("room_type_lock_timeout", room_type=request.room_type)
                raise CapacityUnavailable(
                    "This room type is busy right now. Please try again."
                )

            for attempt in range(1, CREATE_ATTEMPTS + 1):
                try:
                    async with self.uow_factory() as uow:
                        reservation = await self._recheck_and_insert(uow, request)
                    break
                except DBAPIError as e:
                    if attempt < CREATE_ATTEMPTS:
                        logger.warning(
                            "reservation_insert_conflict_retrying",
                            room_type=request.room_type,
                            attempt=attempt,
                            error=str(e),
                        )
                        continue
                    logger.error(
                        "reservation_insert_conflict",
                        room_type=request.room_type,
                        attempts=attempt,
                        error=str(e),
                    )
                    raise CapacityUnavailable(
                        "Rooms may have just been taken. Please check availability again."
                    ) from e

        logger.info(
            "reservation_created",
            reservation_id=str(reservation.id),
            reference_number=reservation.reference_number,
            room_type=reservation.room_type,
            room_count=reservation.room_count,
            total_amount=str(reservation.total_amount),
        )
        AuditLogger.log_reservation_created(
            actor_id=request.user_id or reservation.guest_info.email,
            reservation_id=reservation.id,
            room_type=reservation.room_type,
            room_count=reservation.room_count,
            total_amount=reservation.total_amount,
        )

        return reservation

    async def _recheck_and_insert(
        self,
        uow: AbstractUnitOfWork,
        request: BookingRequest,
    ) -> Reservation:
        room = await uow.room_types.lock_by_key(request.room_type)
        if room is None:
            raise RoomTypeNotFound(f"Room type '{request.room_type}' does not exist.")

        result = await self.availability.compute_for_room(
            uow, request.room_type, room, request.check_in, request.check_out
        )

        if not result.is_available(request.room_count):
            logger.info(
                "reservation_capacity_unavailable",
                room_type=request.room_type,
                requested=request.room_count,
                available=result.display_units,
                reason=result.reason,
            )
            raise CapacityUnavailable(
                result.message(request.room_count),
                reason=result.reason,
            )

        return await uow.reservations.create(
            ReservationInput(
                room_type_id=room.id,
                room_type=room.room_type,
                room_count=request.room_count,
                adult_count=request.adult_count,
                child_count=request.child_count,
                check_in=request.check_in,
                check_out=request.check_out,
                total_amount=result.total_price(request.room_count),
                currency=self.currency,
                guest_info=request.guest_info,
                user_id=request.user_id,
            )
        )

    async def open_payment_order(self, reservation_id: UUID) -> OrderHandle:
        """
        Open a gateway order for a Pending reservation.

        Re-opening returns the order already attached to the reservation.

        Raises:
            ReservationNotFound: unknown reservation
            InvalidState: reservation is not Pending or its hold has lapsed
            GatewayUnavailable: gateway timed out or failed
        """
        async with self.uow_factory() as uow:
            reservation = await uow.reservations.lock_by_id(reservation_id)
            if reservation is None:
                raise ReservationNotFound(f"Reservation {reservation_id} not found.")

            if reservation.payment_state != PaymentState.PENDING:
                raise InvalidState(
                    f"Reservation is {reservation.payment_state.value}; "
                    "payment can only be opened for a Pending reservation."
                )

            if not is_capacity_holding(
                reservation.payment_state,
                reservation.created_at,
                self.availability.clock(),
                self.hold_window,
            ):
                raise InvalidState(
                    "The hold on this reservation has expired. Please book again.",
                    reason="hold_expired",
                )

            if reservation.payment_order_id:
                logger.info(
                    "payment_order_reused",
                    reservation_id=str(reservation.id),
                    order_id=reservation.payment_order_id,
                )
                return await self._call_gateway(
                    self.gateway.fetch_order(reservation.payment_order_id),
                    "fetch_order",
                )

            order = await self._call_gateway(
                self.gateway.create_order(
                    reservation.total_amount,
                    reservation.currency,
                    reservation.reference_number,
                    reservation.id,
                ),
                "create_order",
            )
            await uow.reservations.attach_order(reservation.id, order.order_id)

        AuditLogger.log_payment_order_opened(
            reservation_id=reservation.id,
            order_id=order.order_id,
            amount=reservation.total_amount,
        )

        return order

    async def confirm_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: Optional[str],
    ) -> Reservation:
        """
        Verify a synchronous payment return and confirm the reservation.

        Raises:
            SignatureInvalid: HMAC over ``order_id|payment_id`` did not match
            GatewayUnavailable: gateway timed out or failed
            InvalidState: payment not captured, or reservation not Pending
            ReservationNotFound: no reservation for the order
            CapacityUnavailable: hold lapsed and the units were sold again; the
                reservation is marked Failed for refund
            ReservationBusy: room type lock not obtained in time
        """
        if not self.gateway.verify_payment_signature(order_id, payment_id, signature):
            logger.error(
                "payment_signature_invalid",
                order_id=order_id,
                payment_id=payment_id,
            )
            AuditLogger.log_signature_invalid("payment", order_id, payment_id)
            raise SignatureInvalid("Payment signature verification failed.")

        payment = await self._call_gateway(
            self.gateway.fetch_payment(order_id, payment_id),
            "fetch_payment",
        )
        if not payment.is_captured:
            logger.warning(
                "payment_not_captured",
                order_id=order_id,
                payment_id=payment_id,
                status=payment.status,
            )
            raise InvalidState("Payment has not been captured.", reason=payment.status)

        return await self._apply_confirmation(order_id, payment_id, payment.reservation_id)

    async def fail_payment(
        self,
        order_id: str,
        payment_id: Optional[str] = None,
        reason: str = "Payment failed",
        reservation_hint: Optional[str] = None,
    ) -> Reservation:
        """
        Mark a Pending reservation Failed. Repeating on a Failed one is a no-op.

        Raises:
            ReservationNotFound: no reservation for the order
            InvalidState: reservation is Success or Refunded
        """
        async with self.uow_factory() as uow:
            reservation = await self._resolve_for_update(uow, order_id, reservation_hint)

            if reservation.payment_state == PaymentState.FAILED:
                return reservation

            if not can_transition(reservation.payment_state, PaymentState.FAILED):
                raise InvalidState(
                    f"Cannot fail a reservation that is {reservation.payment_state.value}."
                )

            updated = await uow.reservations.update_state(
                reservation.id, PaymentState.FAILED, payment_id=payment_id
            )

        logger.info(
            "payment_failed",
            reservation_id=str(updated.id),
            order_id=order_id,
            payment_id=payment_id,
            reason=reason,
        )
        AuditLogger.log_payment_failed(updated.id, payment_id, reason)

        return updated

    async def handle_webhook(self, raw_body: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Process a signed gateway webhook.

        Body shape: ``{"event": ..., "payload": {"payment": {"entity":
        {"id", "order_id", "status", "error_description", "notes"}}}}``.
        Unknown events are acknowledged and ignored.

        Raises:
            SignatureInvalid: body HMAC did not match the webhook secret
            BookingValidationError: body is not a well-formed event
        """
        if not self.gateway.verify_webhook_signature(raw_body, signature):
            logger.error("webhook_signature_invalid", has_signature=bool(signature))
            AuditLogger.log_signature_invalid("webhook", None)
            raise SignatureInvalid("Webhook signature verification failed.")

        try:
            envelope = WebhookEnvelope.model_validate_json(raw_body)
        except ValidationError as e:
            logger.warning("webhook_body_invalid", errors=e.error_count())
            raise BookingValidationError("Webhook body is not a valid event.") from e

        event = envelope.event
        if event not in (EVENT_CAPTURED, EVENT_FAILED):
            logger.info("webhook_ignored", webhook_event=event)
            return {"event": event, "status": "ignored"}

        try:
            payment = PaymentEventPayload.model_validate(envelope.payload).payment.entity
        except ValidationError as e:
            logger.warning("webhook_payment_invalid", webhook_event=event, errors=e.error_count())
            raise BookingValidationError("Webhook payment entity is malformed.") from e

        logger.info(
            "webhook_received",
            webhook_event=event,
            order_id=payment.order_id,
            payment_id=payment.id,
        )

        if event == EVENT_CAPTURED:
            try:
                reservation = await self._apply_confirmation(
                    payment.order_id, payment.id, payment.reservation_hint
                )
            except CapacityUnavailable:
                # The guest paid but the lapsed hold was resold; acknowledge
                # so the gateway stops redelivering.
                return self._webhook_result(event, "capacity_unavailable", payment)
        else:
            try:
                reservation = await self.fail_payment(
                    payment.order_id,
                    payment_id=payment.id,
                    reason=payment.error_description or "Payment failed",
                    reservation_hint=payment.reservation_hint,
                )
            except InvalidState as e:
                logger.warning(
                    "webhook_failure_ignored",
                    order_id=payment.order_id,
                    payment_id=payment.id,
                    error=e.message,
                )
                return {"event": event, "status": "ignored"}

        return {
            "event": event,
            "status": "processed",
            "reference_number": reservation.reference_number,
            "payment_state": reservation.payment_state.value,
        }

    def _webhook_result(self, event: str, status: str, payment: WebhookPayment) -> dict[str, Any]:
        return {
            "event": event,
            "status": status,
            "order_id": payment.order_id,
            "payment_id": payment.id,
        }

    async def _apply_confirmation(
        self,
        order_id: str,
        payment_id: str,
        reservation_hint: Optional[str] = None,
    ) -> Reservation:
        """Single Pending -> Success transition shared by both confirmation paths.

        A Pending reservation is confirmed under its room type lock. When
        its hold has lapsed the units may have been sold again, so
        availability is rechecked without it; if it no longer fits it is
        marked Failed with the payment id kept for refund and
        ``CapacityUnavailable`` is raised.
        """
        async with self.uow_factory() as uow:
            current = await self._resolve(uow, order_id, reservation_hint)

        if current.payment_state == PaymentState.SUCCESS:
            logger.info(
                "payment_already_confirmed",
                reservation_id=str(current.id),
                order_id=order_id,
            )
            return current

        async with self.lock_helper.acquire_room_type_lock(current.room_type) as acquired:
            if not acquired:
                logger.warning(
                    "confirmation_lock_timeout",
                    room_type=current.room_type,
                    order_id=order_id,
                )
                raise ReservationBusy(
                    "Reservation is busy right now. Please retry confirmation."
                )
            return await self._confirm_locked(current.id, order_id, payment_id)

    async def _confirm_locked(
        self,
        reservation_id: UUID,
        order_id: str,
        payment_id: str,
    ) -> Reservation:
        first_confirmation = False
        capacity_lost = False

        async with self.uow_factory() as uow:
            reservation = await uow.reservations.lock_by_id(reservation_id)
            if reservation is None:
                raise ReservationNotFound(f"No reservation found for order {order_id}.")

            if reservation.payment_state == PaymentState.SUCCESS:
                confirmed = reservation
            elif not can_transition(reservation.payment_state, PaymentState.SUCCESS):
                raise InvalidState(
                    f"Cannot confirm a reservation that is {reservation.payment_state.value}."
                )
            elif await self._still_fits(uow, reservation):
                confirmed = await uow.reservations.update_state(
                    reservation.id, PaymentState.SUCCESS, payment_id=payment_id
                )
                first_confirmation = True
            else:
                confirmed = await uow.reservations.update_state(
                    reservation.id, PaymentState.FAILED, payment_id=payment_id
                )
                capacity_lost = True

        if capacity_lost:
            logger.error(
                "late_payment_capacity_lost",
                reservation_id=str(confirmed.id),
                order_id=order_id,
                payment_id=payment_id,
                refund_required=True,
            )
            AuditLogger.log_payment_failed(
                confirmed.id, payment_id, "Hold expired and capacity was taken; refund required"
            )
            raise CapacityUnavailable(
                "The hold on this reservation expired and the rooms were booked by "
                "someone else. The payment will be refunded.",
                reason="hold_expired",
            )

        if first_confirmation:
            logger.info(
                "payment_confirmed",
                reservation_id=str(confirmed.id),
                order_id=order_id,
                payment_id=payment_id,
            )
            AuditLogger.log_payment_confirmed(
                confirmed.id, order_id, payment_id, confirmed.total_amount
            )
            await self._notify(confirmed)

        return confirmed

    async def _still_fits(self, uow: AbstractUnitOfWork, reservation: Reservation) -> bool:
        """True while the reservation holds, or when its units are still free without it."""
        if is_capacity_holding(
            reservation.payment_state,
            reservation.created_at,
            self.availability.clock(),
            self.hold_window,
        ):
            return True

        # An expired Pending reservation is not counted by the calculator
        room = await uow.room_types.lock_by_key(reservation.room_type)
        result = await self.availability.compute_for_room(
            uow, reservation.room_type, room, reservation.check_in, reservation.check_out
        )
        logger.info(
            "late_payment_recheck",
            reservation_id=str(reservation.id),
            requested=reservation.room_count,
            available=result.display_units,
            reason=result.reason,
        )
        return result.is_available(reservation.room_count)

    async def _resolve(
        self,
        uow: AbstractUnitOfWork,
        order_id: str,
        reservation_hint: Optional[str],
    ) -> Reservation:
        """Find the reservation for an order, falling back to the id in the notes."""
        reservation = await uow.reservations.get_by_order_id(order_id)

        if reservation is None and reservation_hint:
            try:
                reservation = await uow.reservations.get_by_id(UUID(reservation_hint))
            except ValueError:
                reservation = None

        if reservation is None:
            logger.warning("reservation_for_order_not_found", order_id=order_id)
            raise ReservationNotFound(f"No reservation found for order {order_id}.")

        return reservation

    async def _resolve_for_update(
        self,
        uow: AbstractUnitOfWork,
        order_id: str,
        reservation_hint: Optional[str],
    ) -> Reservation:
        """Find the reservation for an order and lock its row."""
        reservation = await self._resolve(uow, order_id, reservation_hint)
        locked = await uow.reservations.lock_by_id(reservation.id)
        if locked is None:
            raise ReservationNotFound(f"No reservation found for order {order_id}.")
        return locked

    async def _notify(self, reservation: Reservation) -> None:
        try:
            await self.notifier.send_booking_confirmation(reservation)
        except Exception as e:
            # Confirmation stands even if the guest could not be notified
            logger.error(
                "booking_notification_failed",
                reservation_id=str(reservation.id),
                error=str(e),
                exc_info=True,
            )

    async def _call_gateway(self, call: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.gateway_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning(
                "payment_gateway_timeout",
                operation=operation,
                timeout_seconds=self.gateway_timeout_seconds,
            )
            raise GatewayUnavailable(
                "Payment gateway did not respond in time. Please retry."
            ) from e

    async def get_by_reference(self, reference_number: str) -> Reservation:
        """Customer lookup by reference number."""
        async with self.uow_factory() as uow:
            reservation = await uow.reservations.get_by_reference(reference_number)
        if reservation is None:
            raise ReservationNotFound(f"Booking {reference_number} not found.")
        return reservation

    async def get_by_order_id(self, order_id: str) -> Reservation:
        """Customer lookup by payment order id."""
        async with self.uow_factory() as uow:
            reservation = await uow.reservations.get_by_order_id(order_id)
        if reservation is None:
            raise ReservationNotFound(f"No booking found for order {order_id}.")
        return reservation
