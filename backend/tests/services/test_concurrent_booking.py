"""
Concurrency tests for slot booking.

Each worker gets its own session on a shared file-backed SQLite database so
that the only thing serializing check-then-insert is the slot lock.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
import threading
from typing import List, Tuple, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import ulid

from pitchbook.core.exceptions import SlotConflictError
from pitchbook.database import Base
from pitchbook.models import Booking, Pitch
from pitchbook.schemas.booking import BookingCreate
from pitchbook.services.booking_service import SLOT_CONFLICT_MESSAGE, BookingService

DAY = date(2025, 12, 1)
WORKERS = 8


@pytest.fixture
def SessionMaker(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookings.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture
def pitch_id(SessionMaker, owner_id) -> str:
    with SessionMaker() as session:
        pitch = Pitch(
            id=str(ulid.ULID()),
            owner_id=owner_id,
            name="Shared pitch",
            hourly_rate=Decimal("40.00"),
            currency="EUR",
            min_cancellation_hours=24,
            total_bookings=0,
            is_active=True,
        )
        session.add(pitch)
        session.commit()
        return pitch.id


def _book_concurrently(
    SessionMaker, pitch_id: str, intervals: List[Tuple[str, str]]
) -> List[Union[str, SlotConflictError]]:
    barrier = threading.Barrier(len(intervals))

    def _worker(interval: Tuple[str, str]) -> Union[str, SlotConflictError]:
        start_time, end_time = interval
        session = SessionMaker()
        try:
            service = BookingService(session)
            data = BookingCreate(
                pitch_id=pitch_id,
                booking_date=DAY,
                start_time=start_time,
                end_time=end_time,
            )
            barrier.wait(timeout=5)
            try:
                return service.create_booking(f"player-{start_time}-{end_time}", data).id
            except SlotConflictError as exc:
                return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(intervals)) as executor:
        return list(executor.map(_worker, intervals))


def _active_bookings(SessionMaker, pitch_id: str) -> List[Booking]:
    with SessionMaker() as session:
        return session.query(Booking).filter(Booking.pitch_id == pitch_id).all()


def test_same_slot_is_booked_exactly_once(SessionMaker, pitch_id) -> None:
    results = _book_concurrently(SessionMaker, pitch_id, [("10:00", "12:00")] * WORKERS)

    created = [r for r in results if isinstance(r, str)]
    rejected = [r for r in results if isinstance(r, SlotConflictError)]
    assert len(created) == 1
    assert len(rejected) == WORKERS - 1
    assert all(exc.message == SLOT_CONFLICT_MESSAGE for exc in rejected)

    stored = _active_bookings(SessionMaker, pitch_id)
    assert [b.id for b in stored] == created


def test_pairwise_overlapping_slots_admit_one_winner(SessionMaker, pitch_id) -> None:
    # Every interval covers 11:00-11:15, so any two of them overlap.
    intervals = [
        ("10:00", "12:00"),
        ("10:30", "11:30"),
        ("11:00", "12:30"),
        ("09:00", "11:15"),
        ("10:45", "11:15"),
        ("11:00", "11:15"),
    ]

    results = _book_concurrently(SessionMaker, pitch_id, intervals)

    assert sum(isinstance(r, str) for r in results) == 1
    assert sum(isinstance(r, SlotConflictError) for r in results) == len(intervals) - 1
    assert len(_active_bookings(SessionMaker, pitch_id)) == 1


def test_back_to_back_slots_all_succeed(SessionMaker, pitch_id) -> None:
    intervals = [(f"{hour:02d}:00", f"{hour + 1:02d}:00") for hour in range(8, 8 + WORKERS)]

    results = _book_concurrently(SessionMaker, pitch_id, intervals)

    assert all(isinstance(r, str) for r in results)
    stored = _active_bookings(SessionMaker, pitch_id)
    assert sorted(b.start_time for b in stored) == [start for start, _ in intervals]
