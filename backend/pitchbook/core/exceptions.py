# backend/pitchbook/core/exceptions.py
"""
Domain-specific exceptions for the PitchBook booking core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller identity is missing."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific booking exceptions


class MalformedTimeError(ValidationException):
    """Raised when a wall-clock value is not a valid HH:mm string."""

    def __init__(self, value: object, field: Optional[str] = None):
        details: Dict[str, Any] = {"value": str(value)}
        if field:
            details["field"] = field
        super().__init__(
            message=f"Invalid time {value!r}; expected HH:mm",
            code="MALFORMED_TIME",
            details=details,
        )


class InvalidIntervalError(ValidationException):
    """Raised when a booking interval does not end after it starts."""

    def __init__(self, start_time: str, end_time: str):
        super().__init__(
            message="End time must be after start time",
            code="INVALID_INTERVAL",
            details={"field": "end_time", "start_time": start_time, "end_time": end_time},
        )


class SlotConflictError(ConflictException):
    """Raised when a booking overlaps an existing booking on the same pitch."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is already booked",
            code="SLOT_CONFLICT",
            details=details or {},
        )


class PermissionDeniedError(ForbiddenException):
    """Raised when the actor may not read or change a booking."""

    def __init__(self, message: str = "You are not permitted to perform this action"):
        super().__init__(message=message, code="PERMISSION_DENIED")


class InvalidStateError(BusinessRuleException):
    """Raised when a transition is not allowed from the booking's current status."""

    def __init__(self, message: str, current_status: str, code: str = "INVALID_STATE"):
        super().__init__(
            message=message,
            code=code,
            details={"current_status": current_status},
        )


class AlreadyCancelledError(InvalidStateError):
    """Raised when cancelling a booking that is already cancelled."""

    def __init__(self, current_status: str = "cancelled"):
        super().__init__(
            "Booking is already cancelled",
            current_status=current_status,
            code="ALREADY_CANCELLED",
        )


class TerminalStateError(InvalidStateError):
    """Raised when acting on a completed or no-show booking."""

    def __init__(self, current_status: str):
        super().__init__(
            f"Bookings in status '{current_status}' cannot be changed",
            current_status=current_status,
            code="TERMINAL_STATE",
        )


class CancellationWindowError(BusinessRuleException):
    """Raised when cancellation comes later than the pitch's notice period allows."""

    def __init__(self, required_hours: int, hours_until_booking: float):
        super().__init__(
            message=f"Cancellation must be made at least {required_hours} hours before booking",
            code="CANCELLATION_WINDOW",
            details={
                "required_hours": required_hours,
                "hours_until_booking": round(hours_until_booking, 2),
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
