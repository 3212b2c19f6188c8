# backend/pitchbook/routes/health.py
"""
Health check endpoint.

Reports whether the service is up and whether the booking store answers.
"""

import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from .. import __version__
from ..api.dependencies import get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    database: bool


@router.get("/health", response_model=HealthCheckResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Basic health check; ``degraded`` when the database is unreachable."""
    response.headers["Cache-Control"] = "no-store"
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_ok = False

    return HealthCheckResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        database=db_ok,
    )
