import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String

from jetski.db import Base


class RentalStatus(enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Rental(Base):
    __tablename__ = "rentals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=True, index=True)
    jetski_id = Column(Integer, ForeignKey("jetskis.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    seller_id = Column(Integer, nullable=True)
    check_in_at = Column(DateTime, nullable=False)
    check_out_at = Column(DateTime, nullable=True)
    status = Column(Enum(RentalStatus), nullable=False, default=RentalStatus.IN_PROGRESS)
    used_minutes = Column(Integer, nullable=True)
    billable_minutes = Column(Integer, nullable=True)
    base_value = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
