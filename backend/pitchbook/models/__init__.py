"""
Database models for the PitchBook booking core.
"""

from .booking import Booking, BookingStatus, PaymentStatus
from .pitch import Pitch

__all__ = [
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "Pitch",
]
