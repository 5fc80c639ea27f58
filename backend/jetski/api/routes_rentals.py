from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jetski.api.deps import get_tenant, to_http
from jetski.db import get_db
from jetski.schemas.rental_schema import CheckInRequest, CheckOutRequest, RentalOut
from jetski.services.exceptions import BookingException
from jetski.services.rental_service import RentalService

router = APIRouter(prefix="/api/rentals", tags=["rentals"])


@router.post("/check-in", response_model=RentalOut)
def check_in(
    payload: CheckInRequest,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return RentalService(db, tenant_id).check_in_from_reservation(payload.reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.post("/{rental_id}/check-out", response_model=RentalOut)
def check_out(
    rental_id: int,
    payload: CheckOutRequest,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    """
    payload: { "check_out_at": "2026-02-15T12:08:00" }  (optional, defaults to now)
    """
    try:
        return RentalService(db, tenant_id).check_out(rental_id, payload.check_out_at)
    except BookingException as e:
        raise to_http(e)
