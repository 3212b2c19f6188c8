# backend/pitchbook/services/conflict_checker.py
"""
ConflictChecker Service for PitchBook

Answers "is this slot free?" for a pitch/date. Two intervals
``[s1, e1)`` and ``[s2, e2)`` overlap iff ``s1 < e2 and e1 > s2``, so a
booking ending at 12:00 never blocks one starting at 12:00. Cancelled and
no-show bookings never block.

No isolation is provided here; callers that insert after checking must hold
``slot_lock`` for the (pitch, date).
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.time_utils import parse_time
from ..models.booking import Booking
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap test."""
    return start_a < end_b and end_a > start_b


class ConflictChecker(BaseService):
    def __init__(self, db: Session, repository: Optional[BookingRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)

    def get_conflicting_bookings(
        self,
        pitch_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """Existing bookings on the pitch/date that overlap ``[start_time, end_time)``."""
        start = parse_time(start_time, "start_time")
        end = parse_time(end_time, "end_time")
        existing = self.repository.get_bookings_for_conflict_check(
            pitch_id, booking_date, exclude_booking_id=exclude_booking_id
        )
        return [
            booking
            for booking in existing
            if intervals_overlap(
                start, end, parse_time(booking.start_time), parse_time(booking.end_time)
            )
        ]

    @BaseService.measure_operation("has_conflict")
    def has_conflict(
        self,
        pitch_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether the candidate interval is already occupied.

        Args:
            pitch_id: The pitch to check
            booking_date: The date to check
            start_time: Candidate start, ``HH:mm``
            end_time: Candidate end, ``HH:mm``
            exclude_booking_id: Booking to ignore (kept for a future reschedule flow)

        Returns:
            True if any blocking booking overlaps
        """
        conflicts = self.get_conflicting_bookings(
            pitch_id, booking_date, start_time, end_time, exclude_booking_id
        )
        if conflicts:
            logger.debug(
                "slot_conflict_detected",
                extra={
                    "pitch_id": pitch_id,
                    "booking_date": booking_date.isoformat(),
                    "conflicting_ids": [b.id for b in conflicts],
                },
            )
        return bool(conflicts)

    def describe_conflicts(self, conflicts: List[Booking]) -> List[Dict[str, Any]]:
        """Minimal, non-identifying view of conflicting slots for error payloads."""
        return [
            {"start_time": booking.start_time, "end_time": booking.end_time}
            for booking in conflicts
        ]
