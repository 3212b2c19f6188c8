"""
Repository layer for PitchBook.

Repositories encapsulate all SQLAlchemy queries; services call them and own
the transaction boundaries.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .pitch_repository import PitchRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "PitchRepository",
    "RepositoryFactory",
]
