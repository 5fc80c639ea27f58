"""
Billable time and base price for a rental checkout.

  billable = 0                               if used - tolerance <= 0
           = ceil((used - tolerance) / 15) * 15   otherwise

Rounding is always up to the next 15-minute block. Examples with tolerance 5:
used 4 -> 0, used 19 -> 15, used 21 -> 30, used 68 -> 75.

Money is Decimal end to end; base value is quantized to cents with ROUND_HALF_UP.
"""
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from jetski.services.exceptions import ValidationError
from jetski.utils.logs import get_logger

log = get_logger("billing")

ROUNDING_BLOCK_MINUTES = 15
CENTS = Decimal("0.01")


def used_minutes(check_in_at: datetime, check_out_at: datetime) -> int:
    """Whole minutes between check-in and check-out, truncated."""
    if check_in_at is None or check_out_at is None:
        raise ValidationError("Check-in and check-out timestamps are required")
    if check_out_at < check_in_at:
        raise ValidationError(
            f"Check-out ({check_out_at.isoformat()}) cannot be before check-in ({check_in_at.isoformat()})"
        )
    return int((check_out_at - check_in_at).total_seconds() // 60)


def billable_minutes(used: int, tolerance: int) -> int:
    if used is None or used < 0:
        raise ValidationError("Used minutes must be zero or positive")
    if tolerance is None or tolerance < 0:
        raise ValidationError("Tolerance minutes must be zero or positive")

    after_tolerance = used - tolerance
    if after_tolerance <= 0:
        log.debug("Usage within tolerance: used=%s tolerance=%s billable=0", used, tolerance)
        return 0

    blocks = -(-after_tolerance // ROUNDING_BLOCK_MINUTES)  # ceiling division
    billable = blocks * ROUNDING_BLOCK_MINUTES
    log.debug(
        "Billable minutes: used=%s tolerance=%s after_tolerance=%s billable=%s",
        used, tolerance, after_tolerance, billable,
    )
    return billable


def base_value(billable: int, hourly_price) -> Decimal:
    if billable is None or billable < 0:
        raise ValidationError("Billable minutes must be zero or positive")
    if hourly_price is None:
        raise ValidationError("Hourly price is required")
    price = Decimal(str(hourly_price))
    if price <= 0:
        raise ValidationError("Hourly price must be greater than zero")

    if billable == 0:
        return Decimal("0.00")

    value = (Decimal(billable) * price / Decimal(60)).quantize(CENTS, rounding=ROUND_HALF_UP)
    log.debug("Base value: billable=%s hourly_price=%s value=%s", billable, price, value)
    return value
