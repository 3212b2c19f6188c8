"""
BookingService rules checked against mocked collaborators.

No database: repositories and the conflict checker are mocks, bookings are
transient model instances.
"""

from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchbook.core.exceptions import (
    AlreadyCancelledError,
    CancellationWindowError,
    InvalidIntervalError,
    InvalidStateError,
    NotFoundException,
    PermissionDeniedError,
    ServiceException,
    SlotConflictError,
    TerminalStateError,
)
from pitchbook.models.booking import Booking, BookingStatus, PaymentStatus
from pitchbook.models.pitch import Pitch
from pitchbook.schemas.booking import BookingCreate, BookingUpdate
from pitchbook.services.booking_service import BookingService

OWNER = "owner-1"
PLAYER = "player-1"
BOOKING_DAY = date(2025, 12, 2)


def make_pitch(**overrides) -> Pitch:
    values = dict(
        id="pitch-1",
        owner_id=OWNER,
        name="Centre Court",
        hourly_rate=Decimal("40.00"),
        currency="EUR",
        min_cancellation_hours=24,
        total_bookings=0,
        is_active=True,
    )
    values.update(overrides)
    return Pitch(**values)


def make_booking(status: BookingStatus = BookingStatus.PENDING, **overrides) -> Booking:
    values = dict(
        id="booking-1",
        user_id=PLAYER,
        pitch_id="pitch-1",
        booking_date=BOOKING_DAY,
        start_time="18:00",
        end_time="20:00",
        duration_minutes=120,
        hourly_rate=Decimal("40.00"),
        total_amount=Decimal("80.00"),
        currency="EUR",
        status=status.value,
        payment_status=PaymentStatus.PENDING.value,
    )
    values.update(overrides)
    return Booking(**values)


class TestBookingServiceLogic:
    @pytest.fixture
    def mock_db(self):
        return Mock(spec=Session)

    @pytest.fixture
    def pitch(self):
        return make_pitch()

    @pytest.fixture
    def repository(self):
        return Mock()

    @pytest.fixture
    def pitch_repository(self, pitch):
        repo = Mock()
        repo.get_active_pitch.return_value = pitch
        repo.get_by_id.return_value = pitch
        return repo

    @pytest.fixture
    def conflict_checker(self):
        checker = Mock()
        checker.get_conflicting_bookings.return_value = []
        return checker

    @pytest.fixture
    def service(self, mock_db, repository, pitch_repository, conflict_checker):
        return BookingService(
            mock_db,
            repository=repository,
            pitch_repository=pitch_repository,
            conflict_checker=conflict_checker,
        )

    def _request(self, start: str = "18:00", end: str = "20:00") -> BookingCreate:
        return BookingCreate(
            pitch_id="pitch-1", booking_date=BOOKING_DAY, start_time=start, end_time=end
        )

    # create_booking

    def test_create_booking_snapshots_price_and_currency(self, service, repository, mock_db):
        repository.create.side_effect = lambda **kwargs: Booking(id="new", **kwargs)

        booking = service.create_booking(PLAYER, self._request())

        kwargs = repository.create.call_args.kwargs
        assert kwargs["total_amount"] == Decimal("80.00")
        assert kwargs["duration_minutes"] == 120
        assert kwargs["currency"] == "EUR"
        assert kwargs["status"] == "pending"
        assert kwargs["payment_status"] == "pending"
        assert booking.duration_hours == 2
        mock_db.commit.assert_called_once()

    @pytest.mark.parametrize("start,end", [("16:00", "14:00"), ("14:00", "14:00")])
    def test_create_booking_rejects_non_positive_interval(
        self, service, repository, conflict_checker, start, end
    ):
        with pytest.raises(InvalidIntervalError):
            service.create_booking(PLAYER, self._request(start, end))

        conflict_checker.get_conflicting_bookings.assert_not_called()
        repository.create.assert_not_called()

    def test_create_booking_unknown_pitch(self, service, pitch_repository):
        pitch_repository.get_active_pitch.return_value = None

        with pytest.raises(NotFoundException):
            service.create_booking(PLAYER, self._request())

    def test_create_booking_conflict_rolls_back(
        self, service, repository, conflict_checker, mock_db
    ):
        conflict_checker.get_conflicting_bookings.return_value = [make_booking()]
        conflict_checker.describe_conflicts.return_value = [
            {"start_time": "18:00", "end_time": "20:00"}
        ]

        with pytest.raises(SlotConflictError) as exc_info:
            service.create_booking(PLAYER, self._request("19:00", "21:00"))

        details = exc_info.value.details
        assert details["pitch_id"] == "pitch-1"
        assert details["start_time"] == "19:00"
        assert details["conflicts"] == [{"start_time": "18:00", "end_time": "20:00"}]
        repository.create.assert_not_called()
        mock_db.rollback.assert_called_once()

    def test_create_booking_when_slot_lock_is_held_elsewhere(self, service, conflict_checker):
        @contextmanager
        def busy_lock(*args, **kwargs):
            yield False

        with patch("pitchbook.services.booking_service.slot_lock", busy_lock):
            with pytest.raises(SlotConflictError) as exc_info:
                service.create_booking(PLAYER, self._request())

        assert "being booked" in exc_info.value.message
        conflict_checker.get_conflicting_bookings.assert_not_called()

    # update_booking

    def test_update_by_pitch_owner_is_denied(self, service, repository):
        repository.get_by_id.return_value = make_booking()

        with pytest.raises(PermissionDeniedError):
            service.update_booking("booking-1", OWNER, BookingUpdate(notes="hi"))

    def test_update_confirmed_booking_is_invalid(self, service, repository):
        repository.get_by_id.return_value = make_booking(BookingStatus.CONFIRMED)

        with pytest.raises(InvalidStateError) as exc_info:
            service.update_booking("booking-1", PLAYER, BookingUpdate(notes="hi"))

        assert exc_info.value.details["current_status"] == "confirmed"

    def test_update_only_touches_supplied_fields(self, service, repository):
        booking = make_booking(notes="bring bibs", number_of_players=10)
        repository.get_by_id.return_value = booking

        service.update_booking("booking-1", PLAYER, BookingUpdate(number_of_players=8))

        assert booking.number_of_players == 8
        assert booking.notes == "bring bibs"

    # cancel_booking

    @pytest.mark.parametrize(
        "status,error",
        [
            (BookingStatus.CANCELLED, AlreadyCancelledError),
            (BookingStatus.COMPLETED, TerminalStateError),
            (BookingStatus.NO_SHOW, TerminalStateError),
        ],
    )
    def test_cancel_from_final_states(self, service, repository, status, error):
        repository.get_by_id.return_value = make_booking(status)

        with pytest.raises(error):
            service.cancel_booking("booking-1", PLAYER, "changed plans")

    def test_cancel_exactly_at_notice_boundary_succeeds(self, service, repository):
        booking = make_booking(BookingStatus.CONFIRMED)
        repository.get_by_id.return_value = booking
        now = datetime(2025, 12, 1, 18, 0, tzinfo=timezone.utc)

        with patch("pitchbook.services.booking_service.utc_now", return_value=now):
            service.cancel_booking("booking-1", PLAYER, "changed plans")

        assert booking.status == "cancelled"
        assert booking.cancelled_by == PLAYER
        assert booking.cancelled_at == now
        assert booking.cancellation_reason == "changed plans"
        assert booking.payment_status == "pending"

    def test_cancel_one_minute_inside_window_fails(self, service, repository):
        booking = make_booking(BookingStatus.CONFIRMED)
        repository.get_by_id.return_value = booking
        now = datetime(2025, 12, 1, 18, 1, tzinfo=timezone.utc)

        with patch("pitchbook.services.booking_service.utc_now", return_value=now):
            with pytest.raises(CancellationWindowError) as exc_info:
                service.cancel_booking("booking-1", PLAYER, "too late")

        assert exc_info.value.details["required_hours"] == 24
        assert exc_info.value.details["hours_until_booking"] == pytest.approx(23.98, abs=0.01)
        assert booking.status == "confirmed"

    def test_cancel_by_stranger_is_denied(self, service, repository):
        repository.get_by_id.return_value = make_booking()

        with pytest.raises(PermissionDeniedError):
            service.cancel_booking("booking-1", "someone-else", "nope")

    # owner transitions

    def test_confirm_requires_pitch_owner(self, service, repository):
        repository.get_by_id.return_value = make_booking()

        with pytest.raises(PermissionDeniedError):
            service.confirm_booking("booking-1", PLAYER)

    def test_complete_from_pending_is_invalid(self, service, repository, pitch_repository):
        repository.get_by_id.return_value = make_booking(BookingStatus.PENDING)

        with pytest.raises(InvalidStateError) as exc_info:
            service.complete_booking("booking-1", OWNER)

        assert exc_info.value.code == "INVALID_STATE"
        pitch_repository.increment_total_bookings.assert_not_called()

    def test_complete_increments_pitch_counter(self, service, repository, pitch_repository):
        booking = make_booking(BookingStatus.CONFIRMED)
        repository.get_by_id.return_value = booking

        service.complete_booking("booking-1", OWNER)

        assert booking.status == "completed"
        assert booking.completed_at is not None
        pitch_repository.increment_total_bookings.assert_called_once_with("pitch-1")

    @pytest.mark.parametrize(
        "status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW]
    )
    def test_confirm_from_final_state_is_terminal(self, service, repository, status):
        repository.get_by_id.return_value = make_booking(status)

        with pytest.raises(TerminalStateError):
            service.confirm_booking("booking-1", OWNER)

    def test_mark_no_show_requires_confirmed(self, service, repository):
        repository.get_by_id.return_value = make_booking(BookingStatus.PENDING)

        with pytest.raises(InvalidStateError):
            service.mark_no_show("booking-1", OWNER)

    def test_get_booking_unknown_id(self, service, repository):
        repository.get_by_id.return_value = None

        with pytest.raises(NotFoundException):
            service.get_booking("missing", PLAYER)

    def test_get_booking_visible_to_owner_and_player(self, service, repository):
        booking = make_booking()
        repository.get_by_id.return_value = booking

        assert service.get_booking("booking-1", PLAYER) is booking
        assert service.get_booking("booking-1", OWNER) is booking


def test_cancellation_window_uses_venue_timezone():
    """18:00 in Berlin is 17:00 UTC in December, one hour less notice."""
    db = Mock(spec=Session)
    repository = Mock()
    pitch_repository = Mock()
    pitch_repository.get_by_id.return_value = make_pitch()
    repository.get_by_id.return_value = make_booking(BookingStatus.CONFIRMED)
    service = BookingService(db, repository=repository, pitch_repository=pitch_repository)
    now = datetime(2025, 12, 1, 17, 30, tzinfo=timezone.utc)

    with patch("pitchbook.services.booking_service.settings") as mock_settings:
        mock_settings.booking_timezone = "Europe/Berlin"
        with patch("pitchbook.services.booking_service.utc_now", return_value=now):
            with pytest.raises(CancellationWindowError) as exc_info:
                service.cancel_booking("booking-1", PLAYER, "late")

    assert exc_info.value.details["hours_until_booking"] == pytest.approx(23.5)
    assert now + timedelta(hours=23.5) == datetime(2025, 12, 2, 17, 0, tzinfo=timezone.utc)


class TestExclusionConstraintTranslation:
    def _service(self, repository):
        pitch_repository = Mock()
        pitch_repository.get_active_pitch.return_value = make_pitch()
        checker = Mock()
        checker.get_conflicting_bookings.return_value = []
        return BookingService(
            Mock(spec=Session),
            repository=repository,
            pitch_repository=pitch_repository,
            conflict_checker=checker,
        )

    def _request(self) -> BookingCreate:
        return BookingCreate(
            pitch_id="pitch-1", booking_date=BOOKING_DAY, start_time="18:00", end_time="20:00"
        )

    def test_overlap_constraint_becomes_slot_conflict(self):
        repository = Mock()
        repository.create.side_effect = IntegrityError(
            "INSERT INTO bookings ...",
            {},
            Exception('conflicting key value violates exclusion constraint "bookings_no_overlap_per_pitch"'),
        )

        with pytest.raises(SlotConflictError) as exc_info:
            self._service(repository).create_booking(PLAYER, self._request())

        assert exc_info.value.details["booking_date"] == "2025-12-02"

    def test_other_integrity_errors_are_not_conflicts(self):
        repository = Mock()
        repository.create.side_effect = IntegrityError(
            "INSERT INTO bookings ...", {}, Exception("FOREIGN KEY constraint failed")
        )

        with pytest.raises(ServiceException):
            self._service(repository).create_booking(PLAYER, self._request())


def test_measure_operation_records_outcomes():
    db = Mock(spec=Session)
    repository = Mock()
    repository.get_by_id.return_value = None
    service = BookingService(db, repository=repository, pitch_repository=Mock())
    service.reset_metrics()

    with pytest.raises(NotFoundException):
        service.confirm_booking("missing", OWNER)

    metrics = service.get_metrics()["confirm_booking"]
    assert metrics["count"] == 1
    assert metrics["failure_count"] == 1
    assert metrics["success_rate"] == 0
