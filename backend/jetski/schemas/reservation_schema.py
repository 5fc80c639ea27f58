from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from jetski.models.reservation import ReservationPriority, ReservationStatus


class ReservationCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())
    model_id: int
    customer_id: int
    start_at: datetime
    end_at: datetime
    jetski_id: Optional[int] = None
    seller_id: Optional[int] = None
    deposit_paid: bool = False
    deposit_amount: Optional[Decimal] = None
    notes: Optional[str] = None


class ReservationUpdate(BaseModel):
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    notes: Optional[str] = None


class ConfirmDepositRequest(BaseModel):
    amount: Decimal = Field(gt=0)


class AllocateJetskiRequest(BaseModel):
    jetski_id: int


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
    id: int
    model_id: int
    jetski_id: Optional[int] = None
    customer_id: int
    seller_id: Optional[int] = None
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    priority: ReservationPriority
    deposit_paid: bool
    deposit_amount: Optional[Decimal] = None
    deposit_paid_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    rental_id: Optional[int] = None


class AvailabilityOut(BaseModel):
    model_config = ConfigDict(protected_namespaces=())
    model_id: int
    start_at: datetime
    end_at: datetime
    with_deposit: bool
    available: bool


class AvailabilityDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
    model_id: int
    model_name: str
    start_at: datetime
    end_at: datetime
    total_units: int
    guaranteed_count: int
    total_count: int
    max_allowed: int
    accepts_with_deposit: bool
    accepts_without_deposit: bool
    guaranteed_slots: int
    regular_slots: int
