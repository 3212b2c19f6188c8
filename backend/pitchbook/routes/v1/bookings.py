# backend/pitchbook/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST / - Create a booking for a time slot
    GET / - List the caller's bookings with filters and pagination
    GET /owner - List bookings on pitches the caller owns
    GET /{booking_id} - Booking details (player or pitch owner)
    PATCH /{booking_id} - Update notes / player count (pending only)
    POST /{booking_id}/cancel - Cancel within the notice policy
    POST /{booking_id}/confirm - Confirm a pending booking (pitch owner)
    POST /{booking_id}/complete - Complete a confirmed booking (pitch owner)
    POST /{booking_id}/no-show - Mark a confirmed booking as no-show (pitch owner)
"""

import asyncio
from datetime import date
import logging
from typing import Any, Dict, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from ...api.dependencies import get_booking_service, get_current_user_id
from ...core.exceptions import DomainException, ValidationException
from ...models.booking import BookingStatus, PaymentStatus
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingSearch,
    BookingUpdate,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def get_booking_search(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pitch_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
) -> BookingSearch:
    try:
        return BookingSearch(
            status=status_filter,
            payment_status=payment_status,
            from_date=from_date,
            to_date=to_date,
            pitch_id=pitch_id,
            page=page,
            limit=limit,
        )
    except ValidationError as exc:
        handle_domain_exception(
            ValidationException(
                "Invalid search parameters",
                code="INVALID_SEARCH",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            )
        )


def _to_list_response(result: Dict[str, Any]) -> BookingListResponse:
    return BookingListResponse(
        data=[BookingResponse.model_validate(booking) for booking in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Book a pitch for ``[start_time, end_time)`` on one date."""
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking, current_user_id, booking_data
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/", response_model=BookingListResponse)
async def get_my_bookings(
    search: BookingSearch = Depends(get_booking_search),
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """Bookings the caller made, newest slot first."""
    try:
        result = await asyncio.to_thread(
            booking_service.list_bookings_for_user, current_user_id, search
        )
        return _to_list_response(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/owner", response_model=BookingListResponse)
async def get_owner_bookings(
    search: BookingSearch = Depends(get_booking_search),
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """Bookings on every pitch the caller owns."""
    try:
        result = await asyncio.to_thread(
            booking_service.list_bookings_for_pitch_owner, current_user_id, search
        )
        return _to_list_response(result)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Routes with booking_id
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_details(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id, current_user_id)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    update_data: BookingUpdate,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Update notes or player count while the booking is pending."""
    try:
        booking = await asyncio.to_thread(
            booking_service.update_booking, booking_id, current_user_id, update_data
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    cancel_data: BookingCancel,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a booking; rejected inside the pitch's notice window."""
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, booking_id, current_user_id, cancel_data.reason
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.confirm_booking, booking_id, current_user_id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.complete_booking, booking_id, current_user_id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_booking_no_show(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.mark_no_show, booking_id, current_user_id)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)
