# backend/pitchbook/repositories/pitch_repository.py
"""
Pitch repository.

Read access for the booking core plus the single write it is allowed to
issue against the pitch aggregate: bumping ``total_bookings``.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.pitch import Pitch
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PitchRepository(BaseRepository[Pitch]):
    def __init__(self, db: Session):
        super().__init__(db, Pitch)
        self.logger = logging.getLogger(__name__)

    def get_active_pitch(self, pitch_id: str) -> Optional[Pitch]:
        try:
            return (
                self.db.query(Pitch)
                .filter(Pitch.id == pitch_id, Pitch.is_active.is_(True))
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active pitch {pitch_id}: {str(e)}")
            raise RepositoryException(f"Failed to get pitch: {str(e)}")

    def increment_total_bookings(self, pitch_id: str, by: int = 1) -> int:
        """
        Atomically add ``by`` to the pitch's booking counter.

        Issued as a single UPDATE so concurrent completions never lose an
        increment. Returns the number of rows touched.
        """
        try:
            updated = (
                self.db.query(Pitch)
                .filter(Pitch.id == pitch_id)
                .update(
                    {Pitch.total_bookings: Pitch.total_bookings + by},
                    synchronize_session="fetch",
                )
            )
            self.db.flush()
            return int(updated)
        except SQLAlchemyError as e:
            self.logger.error(f"Error incrementing bookings for pitch {pitch_id}: {str(e)}")
            raise RepositoryException(f"Failed to update pitch counter: {str(e)}")
