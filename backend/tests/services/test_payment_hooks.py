"""Payment-status bookkeeping driven by the payment collaborator."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from pitchbook.core.exceptions import InvalidStateError, NotFoundException, ValidationException
from pitchbook.models.booking import BookingStatus, PaymentStatus
from pitchbook.services.booking_service import BookingService


@pytest.fixture
def service(db):
    return BookingService(db)


@pytest.fixture
def day():
    return date.today() + timedelta(days=7)


@pytest.fixture
def pending_booking(pitch, make_booking, day):
    return make_booking(pitch, booking_date=day, start_time="18:00", end_time="20:00")


@pytest.fixture
def paid_booking(pitch, make_booking, day):
    return make_booking(
        pitch,
        booking_date=day,
        start_time="10:00",
        end_time="12:00",
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
    )


class TestPaymentSucceeded:
    def test_confirms_pending_booking(self, service, pending_booking):
        service.attach_payment_intent(pending_booking.id, "pi_123")

        booking = service.record_payment_succeeded(pending_booking.id)

        assert booking.payment_status == "paid"
        assert booking.status == "confirmed"
        assert booking.confirmed_at is not None
        assert booking.payment_intent_id == "pi_123"

    def test_is_idempotent(self, service, paid_booking):
        booking = service.record_payment_succeeded(paid_booking.id)

        assert booking.payment_status == "paid"
        assert booking.status == "confirmed"

    def test_cancelled_booking_only_gets_bookkeeping(self, service, pitch, make_booking, day):
        booking = make_booking(
            pitch,
            booking_date=day,
            start_time="14:00",
            end_time="16:00",
            status=BookingStatus.CANCELLED,
        )

        service.record_payment_succeeded(booking.id)

        assert booking.payment_status == "paid"
        assert booking.status == "cancelled"

    def test_unknown_booking(self, service, db):
        with pytest.raises(NotFoundException):
            service.record_payment_succeeded("01HNOTAREALBOOKING00000000")


class TestPaymentFailed:
    def test_pending_payment_fails(self, service, pending_booking):
        booking = service.record_payment_failed(pending_booking.id)

        assert booking.payment_status == "failed"
        assert booking.status == "pending"

    def test_paid_payment_cannot_fail(self, service, paid_booking):
        with pytest.raises(InvalidStateError) as exc_info:
            service.record_payment_failed(paid_booking.id)

        assert exc_info.value.details["current_status"] == "paid"


class TestRefunds:
    def test_full_refund_by_default(self, service, paid_booking):
        booking = service.record_refund(paid_booking.id, "re_1")

        assert booking.payment_status == "refunded"
        assert booking.refund_amount == Decimal("80.00")
        assert booking.refund_id == "re_1"

    def test_partial_refund_stays_paid(self, service, paid_booking):
        booking = service.record_refund(paid_booking.id, "re_1", Decimal("30.00"))

        assert booking.payment_status == "paid"
        assert booking.refund_amount == Decimal("30.00")

        booking = service.record_refund(paid_booking.id, "re_2")

        assert booking.payment_status == "refunded"
        assert booking.refund_amount == Decimal("80.00")
        assert booking.refund_id == "re_2"

    def test_refund_cannot_exceed_remaining(self, service, paid_booking):
        service.record_refund(paid_booking.id, "re_1", Decimal("50.00"))

        with pytest.raises(ValidationException) as exc_info:
            service.record_refund(paid_booking.id, "re_2", Decimal("40.00"))

        assert exc_info.value.details["refundable"] == "30.00"

    def test_refund_requires_paid(self, service, pending_booking):
        with pytest.raises(InvalidStateError):
            service.record_refund(pending_booking.id, "re_1")

    def test_refunded_booking_cannot_be_paid_again(self, service, paid_booking):
        service.record_refund(paid_booking.id, "re_1")

        with pytest.raises(InvalidStateError):
            service.record_payment_succeeded(paid_booking.id)

    def test_cancel_leaves_payment_status_alone(self, service, paid_booking, player_id):
        booking = service.cancel_booking(paid_booking.id, player_id, "injury")

        assert booking.status == "cancelled"
        assert booking.payment_status == "paid"
