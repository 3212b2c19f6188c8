# backend/pitchbook/schemas/booking.py
"""
Booking schemas for the PitchBook platform.

Request models validate the ``HH:mm`` format up front so the service layer
only ever sees well-formed, zero-padded times.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ..core.exceptions import MalformedTimeError
from ..core.time_utils import normalize_time
from ..models.booking import BookingStatus, PaymentStatus
from ._strict_base import StrictRequestModel
from .base import Money, PaginatedResponse, StandardizedModel


def _normalize_time_field(value: object, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string in format HH:mm")
    try:
        return normalize_time(value, field_name)
    except MalformedTimeError as exc:
        raise ValueError(f"{field_name} must be in format HH:mm") from exc


class BookingCreate(StrictRequestModel):
    """Reserve ``[start_time, end_time)`` on a pitch for one date."""

    pitch_id: str = Field(..., min_length=1, max_length=26, description="Pitch to book")
    booking_date: date = Field(..., description="Booking date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start time (HH:mm)", examples=["14:00"])
    end_time: str = Field(..., description="End time (HH:mm)", examples=["16:00"])
    notes: Optional[str] = Field(None, max_length=1000)
    number_of_players: Optional[int] = Field(None, ge=1)

    @field_validator("start_time", mode="before")
    @classmethod
    def _validate_start(cls, value: object) -> str:
        return _normalize_time_field(value, "start_time")

    @field_validator("end_time", mode="before")
    @classmethod
    def _validate_end(cls, value: object) -> str:
        return _normalize_time_field(value, "end_time")


class BookingUpdate(StrictRequestModel):
    """Only non-structural fields can change; date, time and pitch are fixed."""

    notes: Optional[str] = Field(None, max_length=1000)
    number_of_players: Optional[int] = Field(None, ge=1)


class BookingCancel(StrictRequestModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class BookingSearch(StrictRequestModel):
    """Filters and pagination for booking listings."""

    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    pitch_id: Optional[str] = None
    page: int = Field(1, ge=1)
    # None falls back to settings.default_page_size
    limit: Optional[int] = Field(None, ge=1, le=100)

    @model_validator(mode="after")
    def _check_range(self) -> "BookingSearch":
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self


class BookingResponse(StandardizedModel):
    id: str
    user_id: str
    pitch_id: str
    booking_date: date
    start_time: str
    end_time: str
    duration_hours: float
    hourly_rate: Money
    total_amount: Money
    currency: str
    status: BookingStatus
    payment_status: PaymentStatus
    notes: Optional[str] = None
    number_of_players: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_amount: Optional[Money] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


BookingListResponse = PaginatedResponse[BookingResponse]
