# backend/pitchbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from .database import get_db


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session

    Returns:
        BookingService instance
    """
    return BookingService(db)
