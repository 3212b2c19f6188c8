# backend/pitchbook/repositories/booking_repository.py
"""
Booking Repository for the PitchBook platform.

This repository handles:
- Booking CRUD operations
- Slot conflict queries per (pitch, date)
- Paginated listings for players and pitch owners
"""

from datetime import date
import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..models.booking import NON_BLOCKING_STATUSES, Booking
from ..models.pitch import Pitch
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Data access for bookings."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> Booking:
        """Create a booking, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    # Conflict queries

    def _blocking_bookings_query(
        self,
        pitch_id: str,
        booking_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> Query:
        query = self.db.query(Booking).filter(
            Booking.pitch_id == pitch_id,
            Booking.booking_date == booking_date,
            Booking.status.notin_([status.value for status in NON_BLOCKING_STATUSES]),
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query

    def get_bookings_for_conflict_check(
        self,
        pitch_id: str,
        booking_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        All bookings that still occupy their slot on a pitch/date.

        Args:
            pitch_id: The pitch to check
            booking_date: The date to check
            exclude_booking_id: Optional booking ID to leave out

        Returns:
            Bookings ordered by start time
        """
        try:
            query = self._blocking_bookings_query(pitch_id, booking_date, exclude_booking_id)
            return query.order_by(Booking.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    # Listings

    def _apply_search_filters(
        self,
        query: Query,
        *,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        pitch_id: Optional[str] = None,
    ) -> Query:
        if status:
            query = query.filter(Booking.status == status)
        if payment_status:
            query = query.filter(Booking.payment_status == payment_status)
        if from_date:
            query = query.filter(Booking.booking_date >= from_date)
        if to_date:
            query = query.filter(Booking.booking_date <= to_date)
        if pitch_id:
            query = query.filter(Booking.pitch_id == pitch_id)
        return query

    def _paginate(self, query: Query, page: int, limit: int) -> Tuple[List[Booking], int]:
        try:
            total = query.order_by(None).count()
            rows = (
                query.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return rows, total
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def list_for_user(
        self, user_id: str, *, page: int = 1, limit: int = 10, **filters: Any
    ) -> Tuple[List[Booking], int]:
        """Bookings made by a player, newest slot first, with total count."""
        query = self.db.query(Booking).filter(Booking.user_id == user_id)
        query = self._apply_search_filters(query, **filters)
        return self._paginate(query, page, limit)

    def list_for_pitch_owner(
        self, owner_id: str, *, page: int = 1, limit: int = 10, **filters: Any
    ) -> Tuple[List[Booking], int]:
        """Bookings on any pitch owned by ``owner_id``."""
        query = (
            self.db.query(Booking)
            .join(Pitch, Pitch.id == Booking.pitch_id)
            .filter(Pitch.owner_id == owner_id)
        )
        query = self._apply_search_filters(query, **filters)
        return self._paginate(query, page, limit)
