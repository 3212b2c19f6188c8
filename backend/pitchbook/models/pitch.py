# backend/pitchbook/models/pitch.py
"""
Pitch model.

The booking core reads a pitch's pricing, currency, owner and cancellation
notice period. The only value it writes is the aggregate ``total_bookings``
counter, through ``PitchRepository.increment_total_bookings``.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Pitch(Base):
    __tablename__ = "pitches"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    owner_id = Column(String(26), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    hourly_rate = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    min_cancellation_hours = Column(Integer, nullable=False, default=24)

    # Aggregate owned by the pitch side; bumped when a booking completes
    total_bookings = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="check_pitch_rate_non_negative"),
        CheckConstraint("min_cancellation_hours >= 0", name="check_pitch_notice_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Pitch {self.id}: owner={self.owner_id}, rate={self.hourly_rate} {self.currency}>"
