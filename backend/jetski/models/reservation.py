import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text

from jetski.db import Base
from jetski.utils.timeutils import utcnow


class ReservationStatus(enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    FINALIZED = "FINALIZED"
    EXPIRED = "EXPIRED"


class ReservationPriority(enum.Enum):
    GUARANTEED = "GUARANTEED"  # deposit paid, counted against physical units
    OVERBOOKED = "OVERBOOKED"  # no deposit, counted against the overbooking cap


OPEN_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class Reservation(Base):
    """
    A booking of one jetski model for [start_at, end_at).
    The physical unit (jetski_id) is optional until allocation.
    """

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    model_id = Column(Integer, ForeignKey("jetski_models.id"), nullable=False, index=True)
    jetski_id = Column(Integer, ForeignKey("jetskis.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    seller_id = Column(Integer, nullable=True)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    status = Column(Enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING)
    priority = Column(
        Enum(ReservationPriority), nullable=False, default=ReservationPriority.OVERBOOKED
    )
    deposit_paid = Column(Boolean, nullable=False, default=False)
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    deposit_paid_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    rental_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def can_confirm(self) -> bool:
        return bool(self.active) and self.status == ReservationStatus.PENDING

    def can_cancel(self) -> bool:
        return bool(self.active) and self.status in OPEN_STATUSES

    def is_active(self) -> bool:
        return bool(self.active) and self.status in OPEN_STATUSES

    def is_guaranteed(self) -> bool:
        return bool(self.deposit_paid) and self.priority == ReservationPriority.GUARANTEED

    def is_expired(self, now=None) -> bool:
        if not now:
            now = utcnow()
        return self.expires_at is not None and now > self.expires_at

    def can_be_allocated(self) -> bool:
        return (
            self.jetski_id is None
            and self.status == ReservationStatus.CONFIRMED
            and bool(self.active)
        )

    def can_confirm_deposit(self) -> bool:
        return not self.deposit_paid and bool(self.active) and self.status in OPEN_STATUSES

    def should_expire(self, now=None) -> bool:
        # deposit-backed reservations are never auto-expired
        return (
            self.is_expired(now)
            and not self.deposit_paid
            and self.status in OPEN_STATUSES
            and bool(self.active)
        )

    def window(self) -> str:
        return f"{self.start_at.isoformat()} to {self.end_at.isoformat()}"

    def __repr__(self):
        return (
            f"<Reservation id={self.id} model={self.model_id} jetski={self.jetski_id} "
            f"status={self.status} priority={self.priority}>"
        )
