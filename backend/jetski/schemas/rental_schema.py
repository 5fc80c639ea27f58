from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from jetski.models.rental import RentalStatus


class CheckInRequest(BaseModel):
    reservation_id: int


class CheckOutRequest(BaseModel):
    check_out_at: Optional[datetime] = None


class RentalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    reservation_id: Optional[int] = None
    jetski_id: int
    customer_id: int
    check_in_at: datetime
    check_out_at: Optional[datetime] = None
    status: RentalStatus
    used_minutes: Optional[int] = None
    billable_minutes: Optional[int] = None
    base_value: Optional[Decimal] = None
