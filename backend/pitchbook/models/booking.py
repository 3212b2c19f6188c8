# backend/pitchbook/models/booking.py
"""
Booking model for the PitchBook platform.

A booking reserves one pitch on one date for a same-day ``[start, end)``
wall-clock interval. Price and currency are snapshotted from the pitch at
creation, so later pitch changes never rewrite existing bookings.

Lifecycle:
    pending -> confirmed -> completed
    pending | confirmed -> cancelled
    confirmed -> no_show

Payment status is tracked on an independent axis
(pending -> paid -> refunded, or -> failed).
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"  # Set externally; never produced by create/confirm/cancel


class PaymentStatus(str, Enum):
    """Payment statuses, driven by the payment collaborator."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


# Bookings in these statuses no longer occupy their slot
NON_BLOCKING_STATUSES = (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW)


def status_value(value: Any) -> str:
    """Plain string for a status column that may hold an enum member or a raw string."""
    return value.value if isinstance(value, Enum) else str(value)


class Booking(Base):
    """
    Self-contained booking record for a pitch.

    Times are zero-padded ``HH:mm`` strings so that string comparison in SQL
    orders them chronologically.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    user_id = Column(String(26), nullable=False, index=True)
    pitch_id = Column(String(26), ForeignKey("pitches.id", ondelete="CASCADE"), nullable=False)

    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    # Pricing snapshot
    duration_minutes = Column(Integer, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    notes = Column(Text, nullable=True)
    number_of_players = Column(Integer, nullable=True)

    # Cancellation tracking
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(26), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Payment tracking
    payment_intent_id = Column(String(255), nullable=True)
    refund_id = Column(String(255), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    pitch = relationship("Pitch")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded', 'failed')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("start_time < end_time", name="check_time_order"),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("total_amount >= 0", name="check_amount_non_negative"),
        CheckConstraint(
            "number_of_players IS NULL OR number_of_players >= 1",
            name="check_players_positive",
        ),
        Index("ix_bookings_pitch_date", "pitch_id", "booking_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, pitch={self.pitch_id}, "
            f"date={self.booking_date}, time={self.start_time}-{self.end_time}, "
            f"status={status_value(self.status)}>"
        )

    @property
    def duration_hours(self) -> float:
        return (self.duration_minutes or 0) / 60

    def cancel(
        self,
        cancelled_by_user_id: str,
        reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = at or datetime.now(timezone.utc)
        self.cancelled_by = cancelled_by_user_id
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled by user {cancelled_by_user_id}")

    def confirm(self, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.CONFIRMED.value
        self.confirmed_at = at or datetime.now(timezone.utc)
        logger.info(f"Booking {self.id} confirmed")

    def complete(self, at: Optional[datetime] = None) -> None:
        """Mark booking as completed."""
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = at or datetime.now(timezone.utc)
        logger.info(f"Booking {self.id} marked as completed")

    def mark_no_show(self) -> None:
        """Mark booking as no-show."""
        self.status = BookingStatus.NO_SHOW.value
        logger.info(f"Booking {self.id} marked as no-show")
