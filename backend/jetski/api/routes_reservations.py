from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jetski.api.deps import get_tenant, to_http
from jetski.db import get_db
from jetski.models.reservation import ReservationStatus
from jetski.schemas.reservation_schema import (
    AllocateJetskiRequest,
    AvailabilityDetailOut,
    AvailabilityOut,
    ConfirmDepositRequest,
    ReservationCreate,
    ReservationOut,
    ReservationUpdate,
)
from jetski.services.exceptions import BookingException
from jetski.services.reservation_service import ReservationService

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


@router.get("/availability", response_model=AvailabilityOut)
def availability(
    model_id: int,
    start: datetime,
    end: datetime,
    with_deposit: bool = False,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    svc = ReservationService(db, tenant_id)
    try:
        ok = svc.check_model_availability(model_id, start, end, with_deposit)
    except BookingException as e:
        raise to_http(e)
    return AvailabilityOut(
        model_id=model_id, start_at=start, end_at=end, with_deposit=with_deposit, available=ok
    )


@router.get("/availability/detail", response_model=AvailabilityDetailOut)
def availability_detail(
    model_id: int,
    start: datetime,
    end: datetime,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return ReservationService(db, tenant_id).availability_detail(model_id, start, end)
    except BookingException as e:
        raise to_http(e)


@router.post("", response_model=ReservationOut)
def create_reservation(
    payload: ReservationCreate,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    svc = ReservationService(db, tenant_id)
    try:
        return svc.create(**payload.model_dump())
    except BookingException as e:
        raise to_http(e)


@router.get("", response_model=List[ReservationOut])
def list_reservations(
    status: Optional[ReservationStatus] = None,
    active_only: bool = True,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    svc = ReservationService(db, tenant_id)
    if status is not None:
        return svc.list_by_status(status)
    return svc.list_active() if active_only else svc.list_all()


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_reservation(
    reservation_id: int,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return ReservationService(db, tenant_id).get(reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.patch("/{reservation_id}", response_model=ReservationOut)
def update_reservation(
    reservation_id: int,
    payload: ReservationUpdate,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return ReservationService(db, tenant_id).update(
            reservation_id, payload.model_dump(exclude_unset=True)
        )
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/confirm", response_model=ReservationOut)
def confirm(reservation_id: int, tenant_id: str = Depends(get_tenant), db: Session = Depends(get_db)):
    try:
        return ReservationService(db, tenant_id).confirm(reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/cancel", response_model=ReservationOut)
def cancel(reservation_id: int, tenant_id: str = Depends(get_tenant), db: Session = Depends(get_db)):
    try:
        return ReservationService(db, tenant_id).cancel(reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/finalize", response_model=ReservationOut)
def finalize(reservation_id: int, tenant_id: str = Depends(get_tenant), db: Session = Depends(get_db)):
    try:
        return ReservationService(db, tenant_id).finalize(reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/expire", response_model=ReservationOut)
def expire(reservation_id: int, tenant_id: str = Depends(get_tenant), db: Session = Depends(get_db)):
    try:
        return ReservationService(db, tenant_id).expire(reservation_id)
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/deposit", response_model=ReservationOut)
def confirm_deposit(
    reservation_id: int,
    payload: ConfirmDepositRequest,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return ReservationService(db, tenant_id).confirm_deposit(reservation_id, payload.amount)
    except BookingException as e:
        raise to_http(e)


@router.post("/{reservation_id}/allocate", response_model=ReservationOut)
def allocate(
    reservation_id: int,
    payload: AllocateJetskiRequest,
    tenant_id: str = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    try:
        return ReservationService(db, tenant_id).allocate_unit(reservation_id, payload.jetski_id)
    except BookingException as e:
        raise to_http(e)
