import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String

from jetski.db import Base


class JetskiStatus(enum.Enum):
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"
    UNAVAILABLE = "UNAVAILABLE"  # administrative block


class JetskiModel(Base):
    __tablename__ = "jetski_models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    hourly_price = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tolerance_minutes = Column(Integer, nullable=False, default=5)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<JetskiModel id={self.id} name={self.name}>"


class Jetski(Base):
    __tablename__ = "jetskis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    model_id = Column(Integer, ForeignKey("jetski_models.id"), nullable=False, index=True)
    serial = Column(String(64), nullable=False)
    status = Column(Enum(JetskiStatus), nullable=False, default=JetskiStatus.AVAILABLE)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def is_bookable(self) -> bool:
        return bool(self.active) and self.status == JetskiStatus.AVAILABLE

    def __repr__(self):
        return f"<Jetski id={self.id} serial={self.serial} status={self.status}>"
