# backend/pitchbook/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from . import __version__
from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .routes import health, prometheus
from .routes.v1 import bookings as bookings_v1

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"Starting PitchBook booking API v{__version__} ({settings.environment})")
    # Migrations own server databases; local SQLite files are created on demand
    if settings.is_sqlite:
        init_db()
    yield
    logger.info("PitchBook booking API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="PitchBook Booking API",
        description="Pitch time-slot booking with conflict detection and cancellation policy",
        version=__version__,
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    app.include_router(api_v1)

    # Infrastructure routes (unversioned)
    app.include_router(health.router)
    app.include_router(prometheus.router)
    return app


app = create_app()
