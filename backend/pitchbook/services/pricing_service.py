# backend/pitchbook/services/pricing_service.py
"""
Booking price calculation.

amount = round_half_up(hourly_rate * duration_hours, 2). Pure and stateless;
everything is carried in ``Decimal`` so currency rounding is exact.
Durations measured in minutes are passed as ``Fraction`` hours so that
20-minute slots never pick up a float error before rounding.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction
from typing import Union

from ..core.exceptions import ValidationException

Number = Union[Decimal, int, float, str]
Hours = Union[Number, Fraction]

CENT = Decimal("0.01")
MINUTES_PER_HOUR = 60


def _to_decimal(value: Number, field: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            f"{field} must be numeric", details={"field": field, "value": str(value)}
        ) from exc
    if not result.is_finite() or result < 0:
        raise ValidationException(
            f"{field} must be a finite non-negative number",
            details={"field": field, "value": str(value)},
        )
    return result


def round2(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def hours_from_minutes(duration_minutes: int) -> Fraction:
    return Fraction(duration_minutes, MINUTES_PER_HOUR)


class PricingService:
    """Derives booking totals from a pitch's hourly rate."""

    @staticmethod
    def calculate_booking_amount(hourly_rate: Number, duration_hours: Hours) -> Decimal:
        rate = _to_decimal(hourly_rate, "hourly_rate")
        if isinstance(duration_hours, Fraction):
            if duration_hours < 0:
                raise ValidationException(
                    "duration_hours must be a finite non-negative number",
                    details={"field": "duration_hours", "value": str(duration_hours)},
                )
            # Single division last: the quotient is exact at any half-cent boundary.
            return round2(rate * duration_hours.numerator / duration_hours.denominator)
        hours = _to_decimal(duration_hours, "duration_hours")
        return round2(rate * hours)
