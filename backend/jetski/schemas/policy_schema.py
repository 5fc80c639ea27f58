from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class BookingPolicyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    tenant_id: str
    grace_period_minutes: int
    deposit_percentage: Decimal
    overbooking_factor: Decimal
    max_without_deposit: int
    notify_before_expiration: bool
    notify_lead_minutes: int


class BookingPolicyUpdate(BaseModel):
    grace_period_minutes: Optional[int] = None
    deposit_percentage: Optional[Decimal] = None
    overbooking_factor: Optional[Decimal] = None
    max_without_deposit: Optional[int] = None
    notify_before_expiration: Optional[bool] = None
    notify_lead_minutes: Optional[int] = None
