# backend/tests/conftest.py
"""
Shared fixtures for the booking core tests.

Every test gets a fresh in-memory SQLite schema. The slot lock runs with the
in-process lock only; Redis is never contacted under test.
"""

from datetime import date
from decimal import Decimal
import os
from pathlib import Path
import sys
from typing import Any, Callable, Dict, Generator

# Must be set before pitchbook.core.config is imported
os.environ["IS_TESTING"] = "true"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")

backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session
import ulid

from pitchbook.api.dependencies.database import get_db
from pitchbook.core.config import settings
from pitchbook.core.slot_lock import set_redis_client
from pitchbook.database import Base, SessionLocal, engine
from pitchbook.main import app
from pitchbook.models import Booking, BookingStatus, PaymentStatus, Pitch

settings.is_testing = True

OWNER_ID = "01HOWNER000000000000000000"
PLAYER_ID = "01HPLAYER00000000000000000"
OTHER_PLAYER_ID = "01HPLAYER00000000000000001"
STRANGER_ID = "01HSTRANGER000000000000000"


@pytest.fixture(autouse=True)
def _no_redis() -> Generator[None, None, None]:
    set_redis_client(None)
    yield
    set_redis_client(None)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def player_id() -> str:
    return PLAYER_ID


@pytest.fixture
def other_player_id() -> str:
    return OTHER_PLAYER_ID


@pytest.fixture
def stranger_id() -> str:
    return STRANGER_ID


def _create_pitch(
    db: Session,
    *,
    owner_id: str = OWNER_ID,
    hourly_rate: Decimal = Decimal("40.00"),
    currency: str = "EUR",
    min_cancellation_hours: int = 24,
    is_active: bool = True,
    name: str = "Riverside 5-a-side",
) -> Pitch:
    pitch = Pitch(
        id=str(ulid.ULID()),
        owner_id=owner_id,
        name=name,
        hourly_rate=hourly_rate,
        currency=currency,
        min_cancellation_hours=min_cancellation_hours,
        total_bookings=0,
        is_active=is_active,
    )
    db.add(pitch)
    db.commit()
    return pitch


def _create_booking_row(
    db: Session,
    pitch: Pitch,
    *,
    user_id: str = PLAYER_ID,
    booking_date: date,
    start_time: str,
    end_time: str,
    status: BookingStatus = BookingStatus.PENDING,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    total_amount: Decimal = Decimal("80.00"),
) -> Booking:
    """Insert a booking directly, bypassing the service checks."""
    booking = Booking(
        id=str(ulid.ULID()),
        user_id=user_id,
        pitch_id=pitch.id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=120,
        hourly_rate=pitch.hourly_rate,
        total_amount=total_amount,
        currency=pitch.currency,
        status=status.value,
        payment_status=payment_status.value,
    )
    db.add(booking)
    db.commit()
    return booking


@pytest.fixture
def pitch(db: Session) -> Pitch:
    """EUR 40/h pitch with a 24 hour cancellation notice."""
    return _create_pitch(db)


@pytest.fixture
def make_pitch(db: Session) -> Callable[..., Pitch]:
    def factory(**kwargs: Any) -> Pitch:
        return _create_pitch(db, **kwargs)

    return factory


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    def factory(pitch: Pitch, **kwargs: Any) -> Booking:
        return _create_booking_row(db, pitch, **kwargs)

    return factory


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def build(user_id: str) -> Dict[str, str]:
        return {"X-User-Sub": user_id}

    return build
