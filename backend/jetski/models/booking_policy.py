from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from jetski.db import Base
from jetski.services.exceptions import ValidationError


class BookingPolicy(Base):
    """
    Per-tenant reservation policy. One row per tenant, created with defaults on first read.

    overbooking_factor scales the number of reservations accepted without a deposit:
    1.0 = no overbooking, 1.5 = 3 units accept 4, 2.0 = 3 units accept 6.
    max_without_deposit caps that number regardless of the factor.
    """

    __tablename__ = "booking_policies"

    tenant_id = Column(String(64), primary_key=True)
    grace_period_minutes = Column(Integer, nullable=False, default=30)
    deposit_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal("30.00"))
    overbooking_factor = Column(Numeric(5, 2), nullable=False, default=Decimal("1.5"))
    max_without_deposit = Column(Integer, nullable=False, default=8)
    notify_before_expiration = Column(Boolean, nullable=False, default=True)
    notify_lead_minutes = Column(Integer, nullable=False, default=15)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def validate(self):
        if self.grace_period_minutes is None or self.grace_period_minutes <= 0:
            raise ValidationError("Grace period must be greater than zero")
        if self.deposit_percentage is None or not (
            Decimal("0") <= Decimal(self.deposit_percentage) <= Decimal("100")
        ):
            raise ValidationError("Deposit percentage must be between 0 and 100")
        if self.overbooking_factor is None or Decimal(self.overbooking_factor) < Decimal("1.0"):
            raise ValidationError("Overbooking factor must be >= 1.0")
        if self.max_without_deposit is None or self.max_without_deposit <= 0:
            raise ValidationError("Max reservations without deposit must be greater than zero")
        if self.notify_before_expiration and (
            self.notify_lead_minutes is None or self.notify_lead_minutes <= 0
        ):
            raise ValidationError("Notification lead time must be greater than zero")

    def overbooking_enabled(self) -> bool:
        return Decimal(self.overbooking_factor) > Decimal("1.0")

    def max_reservations(self, unit_count: int) -> int:
        """floor(unit_count * overbooking_factor), capped by max_without_deposit."""
        if unit_count <= 0:
            return 0
        scaled = (Decimal(unit_count) * Decimal(self.overbooking_factor)).to_integral_value(
            rounding=ROUND_FLOOR
        )
        return min(int(scaled), int(self.max_without_deposit))

    def __repr__(self):
        return (
            f"<BookingPolicy tenant={self.tenant_id} grace={self.grace_period_minutes} "
            f"factor={self.overbooking_factor}>"
        )
