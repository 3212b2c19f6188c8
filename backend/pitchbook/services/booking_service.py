# backend/pitchbook/services/booking_service.py
"""
Booking Service for PitchBook

Handles all booking-related business logic including:
- Creating bookings with slot conflict detection
- Managing the booking lifecycle (confirm, complete, no-show)
- Enforcing the pitch's cancellation-notice policy
- Payment-status bookkeeping driven by the payment collaborator
- Paginated listings for players and pitch owners
"""

from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    AlreadyCancelledError,
    CancellationWindowError,
    InvalidIntervalError,
    InvalidStateError,
    NotFoundException,
    PermissionDeniedError,
    SlotConflictError,
    TerminalStateError,
    ValidationException,
)
from ..core.slot_lock import slot_lock
from ..core.time_utils import (
    combine_date_and_time,
    hours_until,
    on_reference_day,
    utc_now,
)
from ..models.booking import (
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    PaymentStatus,
    status_value,
)
from ..models.pitch import Pitch
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.pitch_repository import PitchRepository
from ..schemas.booking import BookingCreate, BookingSearch, BookingUpdate
from .base import BaseService
from .conflict_checker import ConflictChecker
from .pricing_service import PricingService, hours_from_minutes, round2

logger = logging.getLogger(__name__)

SLOT_CONFLICT_MESSAGE = "This time slot is already booked"
SLOT_BUSY_MESSAGE = "This time slot is being booked by another request, please retry"
EXCLUSION_CONSTRAINT_NAME = "bookings_no_overlap_per_pitch"


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Centralizes all booking business logic; repositories only load and flush.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        pitch_repository: Optional[PitchRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        pricing_service: Optional[PricingService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.pitch_repository = pitch_repository or RepositoryFactory.create_pitch_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.repository)
        self.pricing_service = pricing_service or PricingService()

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(self, user_id: str, booking_data: BookingCreate) -> Booking:
        """
        Create a pending booking for ``[start_time, end_time)``.

        Args:
            user_id: Player making the booking
            booking_data: Validated request (times already ``HH:mm``)

        Returns:
            The new booking, status ``pending``, payment ``pending``

        Raises:
            NotFoundException: Pitch missing or inactive
            InvalidIntervalError: ``end_time`` not after ``start_time``
            SlotConflictError: Slot occupied, or concurrently being booked
        """
        self.log_operation(
            "create_booking",
            user_id=user_id,
            pitch_id=booking_data.pitch_id,
            booking_date=booking_data.booking_date.isoformat(),
            start_time=booking_data.start_time,
            end_time=booking_data.end_time,
        )

        pitch = self._get_active_pitch_or_404(booking_data.pitch_id)

        start = on_reference_day(booking_data.start_time)
        end = on_reference_day(booking_data.end_time)
        if end <= start:
            raise InvalidIntervalError(booking_data.start_time, booking_data.end_time)

        duration_minutes = int((end - start).total_seconds() // 60)
        total_amount = self.pricing_service.calculate_booking_amount(
            pitch.hourly_rate, hours_from_minutes(duration_minutes)
        )

        with slot_lock(pitch.id, booking_data.booking_date) as acquired:
            if not acquired:
                raise SlotConflictError(
                    SLOT_BUSY_MESSAGE, details=self._conflict_details(booking_data)
                )

            with self.transaction():
                conflicts = self.conflict_checker.get_conflicting_bookings(
                    pitch.id,
                    booking_data.booking_date,
                    booking_data.start_time,
                    booking_data.end_time,
                )
                if conflicts:
                    details = self._conflict_details(booking_data)
                    details["conflicts"] = self.conflict_checker.describe_conflicts(conflicts)
                    raise SlotConflictError(SLOT_CONFLICT_MESSAGE, details=details)

                try:
                    booking = self.repository.create(
                        user_id=user_id,
                        pitch_id=pitch.id,
                        booking_date=booking_data.booking_date,
                        start_time=booking_data.start_time,
                        end_time=booking_data.end_time,
                        duration_minutes=duration_minutes,
                        hourly_rate=pitch.hourly_rate,
                        total_amount=total_amount,
                        currency=pitch.currency,
                        status=BookingStatus.PENDING.value,
                        payment_status=PaymentStatus.PENDING.value,
                        notes=booking_data.notes,
                        number_of_players=booking_data.number_of_players,
                    )
                except IntegrityError as exc:
                    if self._is_overlap_violation(exc):
                        raise SlotConflictError(
                            SLOT_CONFLICT_MESSAGE, details=self._conflict_details(booking_data)
                        ) from exc
                    raise

        prometheus_metrics.record_booking_transition("new", BookingStatus.PENDING.value)
        logger.info(
            f"Booking {booking.id} created for pitch {pitch.id} "
            f"on {booking.booking_date} {booking.start_time}-{booking.end_time}"
        )
        return booking

    # Reads

    def get_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Visible to the player who booked and to the pitch owner."""
        booking = self._get_booking_or_404(booking_id)
        pitch = self._get_pitch_for_booking(booking)
        if actor_id not in (booking.user_id, pitch.owner_id):
            raise PermissionDeniedError("You do not have permission to view this booking")
        return booking

    def list_bookings_for_user(self, user_id: str, search: BookingSearch) -> Dict[str, Any]:
        rows, total = self.repository.list_for_user(
            user_id,
            page=search.page,
            limit=self._clamp_limit(search.limit),
            **self._filters(search),
        )
        return self._page(rows, total, search)

    def list_bookings_for_pitch_owner(self, owner_id: str, search: BookingSearch) -> Dict[str, Any]:
        rows, total = self.repository.list_for_pitch_owner(
            owner_id,
            page=search.page,
            limit=self._clamp_limit(search.limit),
            **self._filters(search),
        )
        return self._page(rows, total, search)

    # Player-side mutations

    @BaseService.measure_operation("update_booking")
    def update_booking(self, booking_id: str, actor_id: str, update_data: BookingUpdate) -> Booking:
        """Change notes or player count on a pending booking the actor made."""
        booking = self.get_booking(booking_id, actor_id)

        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError(
                "Only pending bookings can be updated", current_status=status_value(booking.status)
            )
        if booking.user_id != actor_id:
            raise PermissionDeniedError("You do not have permission to update this booking")

        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            return booking

        self.log_operation("update_booking", booking_id=booking_id, fields=sorted(changes))
        with self.transaction():
            for field, value in changes.items():
                setattr(booking, field, value)
            self.db.flush()
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, actor_id: str, reason: str) -> Booking:
        """
        Cancel a pending or confirmed booking.

        Cancellation is accepted while at least ``min_cancellation_hours``
        remain before the booking starts; exactly on the boundary is allowed.
        Payment status is left untouched for the payment collaborator.

        Raises:
            AlreadyCancelledError: Booking already cancelled
            TerminalStateError: Booking completed or marked no-show
            CancellationWindowError: Too close to the start
        """
        booking = self.get_booking(booking_id, actor_id)
        current = status_value(booking.status)

        if current == BookingStatus.CANCELLED.value:
            raise AlreadyCancelledError(current)
        if current in (BookingStatus.COMPLETED.value, BookingStatus.NO_SHOW.value):
            raise TerminalStateError(current)

        pitch = self._get_pitch_for_booking(booking)
        starts_at = combine_date_and_time(
            booking.booking_date, booking.start_time, settings.booking_timezone
        )
        remaining = hours_until(starts_at, utc_now())
        if remaining < pitch.min_cancellation_hours:
            raise CancellationWindowError(pitch.min_cancellation_hours, remaining)

        self.log_operation(
            "cancel_booking",
            booking_id=booking_id,
            actor_id=actor_id,
            hours_until_booking=round(remaining, 2),
        )
        with self.transaction():
            booking.cancel(actor_id, reason, at=utc_now())
            self.db.flush()

        prometheus_metrics.record_booking_transition(current, BookingStatus.CANCELLED.value)
        return booking

    # Owner-side transitions

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(self, booking_id: str, actor_id: str) -> Booking:
        booking, _pitch = self._get_booking_as_pitch_owner(booking_id, actor_id, "confirm")
        self._require_status(
            booking, BookingStatus.PENDING, "Only pending bookings can be confirmed"
        )

        with self.transaction():
            booking.confirm(at=utc_now())
            self.db.flush()

        prometheus_metrics.record_booking_transition(
            BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value
        )
        return booking

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Complete a confirmed booking and bump the pitch's booking counter."""
        booking, pitch = self._get_booking_as_pitch_owner(booking_id, actor_id, "complete")
        self._require_status(
            booking, BookingStatus.CONFIRMED, "Only confirmed bookings can be completed"
        )

        with self.transaction():
            booking.complete(at=utc_now())
            self.pitch_repository.increment_total_bookings(pitch.id)
            self.db.flush()

        prometheus_metrics.record_booking_transition(
            BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value
        )
        return booking

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, booking_id: str, actor_id: str) -> Booking:
        booking, _pitch = self._get_booking_as_pitch_owner(booking_id, actor_id, "mark no-show on")
        self._require_status(
            booking, BookingStatus.CONFIRMED, "Only confirmed bookings can be marked as no-show"
        )

        with self.transaction():
            booking.mark_no_show()
            self.db.flush()

        prometheus_metrics.record_booking_transition(
            BookingStatus.CONFIRMED.value, BookingStatus.NO_SHOW.value
        )
        return booking

    # Payment collaborator hooks

    def attach_payment_intent(self, booking_id: str, payment_intent_id: str) -> Booking:
        booking = self._get_booking_or_404(booking_id)
        with self.transaction():
            booking.payment_intent_id = payment_intent_id
            self.db.flush()
        return booking

    @BaseService.measure_operation("record_payment_succeeded")
    def record_payment_succeeded(self, booking_id: str) -> Booking:
        """
        Mark the booking paid. A pending booking is confirmed by the payment;
        terminal bookings only get the payment-status update.
        """
        booking = self._get_booking_or_404(booking_id)
        payment = status_value(booking.payment_status)

        if payment == PaymentStatus.PAID.value:
            return booking
        if payment == PaymentStatus.REFUNDED.value:
            raise InvalidStateError(
                "Refunded bookings cannot be marked as paid",
                current_status=payment,
                code="INVALID_PAYMENT_STATE",
            )

        confirmed = False
        with self.transaction():
            booking.payment_status = PaymentStatus.PAID.value
            if booking.status == BookingStatus.PENDING:
                booking.confirm(at=utc_now())
                confirmed = True
            self.db.flush()

        if confirmed:
            prometheus_metrics.record_booking_transition(
                BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value
            )
        self.log_operation("record_payment_succeeded", booking_id=booking_id, confirmed=confirmed)
        return booking

    def record_payment_failed(self, booking_id: str) -> Booking:
        booking = self._get_booking_or_404(booking_id)
        payment = status_value(booking.payment_status)
        if payment != PaymentStatus.PENDING.value:
            raise InvalidStateError(
                "Only pending payments can fail",
                current_status=payment,
                code="INVALID_PAYMENT_STATE",
            )

        with self.transaction():
            booking.payment_status = PaymentStatus.FAILED.value
            self.db.flush()
        logger.warning(f"Payment failed for booking {booking_id}")
        return booking

    @BaseService.measure_operation("record_refund")
    def record_refund(
        self, booking_id: str, refund_id: str, amount: Optional[Decimal] = None
    ) -> Booking:
        """
        Record a refund issued by the payment collaborator.

        ``amount`` defaults to everything not yet refunded. The payment becomes
        ``refunded`` once the full total has been returned, otherwise it stays
        ``paid``.
        """
        booking = self._get_booking_or_404(booking_id)
        payment = status_value(booking.payment_status)
        if payment != PaymentStatus.PAID.value:
            raise InvalidStateError(
                "Only paid bookings can be refunded",
                current_status=payment,
                code="INVALID_PAYMENT_STATE",
            )

        already_refunded = Decimal(booking.refund_amount or 0)
        refundable = Decimal(booking.total_amount) - already_refunded
        refund = refundable if amount is None else round2(Decimal(str(amount)))

        if refund <= 0 or refund > refundable:
            raise ValidationException(
                "Refund amount must be positive and not exceed the refundable amount",
                details={
                    "field": "amount",
                    "requested": str(refund),
                    "refundable": str(refundable),
                },
            )

        with self.transaction():
            booking.refund_id = refund_id
            booking.refund_amount = already_refunded + refund
            if booking.refund_amount >= Decimal(booking.total_amount):
                booking.payment_status = PaymentStatus.REFUNDED.value
            self.db.flush()

        self.log_operation(
            "record_refund",
            booking_id=booking_id,
            refund_id=refund_id,
            amount=str(refund),
        )
        return booking

    # Helpers

    def _get_booking_or_404(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def _get_active_pitch_or_404(self, pitch_id: str) -> Pitch:
        pitch = self.pitch_repository.get_active_pitch(pitch_id)
        if not pitch:
            raise NotFoundException("Pitch not found", details={"pitch_id": pitch_id})
        return pitch

    def _get_pitch_for_booking(self, booking: Booking) -> Pitch:
        pitch = self.pitch_repository.get_by_id(booking.pitch_id)
        if not pitch:
            raise NotFoundException("Pitch not found", details={"pitch_id": booking.pitch_id})
        return pitch

    def _get_booking_as_pitch_owner(
        self, booking_id: str, actor_id: str, action: str
    ) -> Tuple[Booking, Pitch]:
        booking = self._get_booking_or_404(booking_id)
        pitch = self._get_pitch_for_booking(booking)
        if pitch.owner_id != actor_id:
            raise PermissionDeniedError(f"Only the pitch owner can {action} this booking")
        return booking, pitch

    @staticmethod
    def _require_status(booking: Booking, expected: BookingStatus, message: str) -> None:
        current = status_value(booking.status)
        if current == expected.value:
            return
        if current in {status.value for status in TERMINAL_STATUSES}:
            raise TerminalStateError(current)
        raise InvalidStateError(message, current_status=current)

    @staticmethod
    def _conflict_details(booking_data: BookingCreate) -> Dict[str, Any]:
        return {
            "pitch_id": booking_data.pitch_id,
            "booking_date": booking_data.booking_date.isoformat(),
            "start_time": booking_data.start_time,
            "end_time": booking_data.end_time,
        }

    @staticmethod
    def _is_overlap_violation(exc: IntegrityError) -> bool:
        orig = getattr(exc, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint_name = getattr(diag, "constraint_name", "") if diag is not None else ""
        if constraint_name == EXCLUSION_CONSTRAINT_NAME:
            return True
        return EXCLUSION_CONSTRAINT_NAME in str(orig)

    @staticmethod
    def _clamp_limit(limit: Optional[int]) -> int:
        if limit is None:
            limit = settings.default_page_size
        return max(1, min(limit, settings.max_page_size))

    @staticmethod
    def _filters(search: BookingSearch) -> Dict[str, Any]:
        return {
            "status": status_value(search.status) if search.status else None,
            "payment_status": (
                status_value(search.payment_status) if search.payment_status else None
            ),
            "from_date": search.from_date,
            "to_date": search.to_date,
            "pitch_id": search.pitch_id,
        }

    def _page(self, rows: List[Booking], total: int, search: BookingSearch) -> Dict[str, Any]:
        limit = self._clamp_limit(search.limit)
        return {
            "data": list(rows),
            "total": total,
            "page": search.page,
            "limit": limit,
            "has_next": search.page * limit < total,
            "has_prev": search.page > 1,
        }
