# backend/pitchbook/repositories/factory.py
"""
Repository Factory for PitchBook.

Central place for creating repository instances so services never
construct them ad hoc.
"""

from sqlalchemy.orm import Session

from .booking_repository import BookingRepository
from .pitch_repository import PitchRepository


class RepositoryFactory:
    """Factory for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_pitch_repository(db: Session) -> PitchRepository:
        return PitchRepository(db)
