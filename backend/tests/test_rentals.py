from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from conftest import TENANT, seed_fleet
from jetski.models.fleet import JetskiStatus
from jetski.models.rental import RentalStatus
from jetski.models.reservation import ReservationStatus
from jetski.services.exceptions import BusinessRuleViolation, NotFoundError, ValidationError
from jetski.services.rental_service import RentalService
from jetski.services.reservation_service import ReservationService

NOW = datetime(2030, 6, 1, 9, 0)
START = NOW + timedelta(hours=1)
END = NOW + timedelta(hours=3)


@pytest.fixture
def booked(db):
    model, units, customer = seed_fleet(db, units=1, hourly_price="150.00", tolerance=5)
    reservations = ReservationService(db, TENANT)
    r = reservations.create(model.id, customer.id, START, END, jetski_id=units[0].id, now=NOW)
    reservations.confirm(r.id)
    return r, units[0], reservations, RentalService(db, TENANT)


def test_check_in_and_check_out(booked):
    reservation, jetski, reservations, rentals = booked

    rental = rentals.check_in_from_reservation(reservation.id, now=START)
    assert rental.status == RentalStatus.IN_PROGRESS
    assert rental.check_in_at == START
    assert rental.jetski_id == jetski.id
    assert jetski.status == JetskiStatus.RENTED
    done = reservations.get(reservation.id)
    assert done.status == ReservationStatus.FINALIZED
    assert done.rental_id == rental.id

    closed = rentals.check_out(rental.id, check_out_at=START + timedelta(minutes=68, seconds=40))
    assert closed.status == RentalStatus.COMPLETED
    assert closed.used_minutes == 68
    assert closed.billable_minutes == 75
    assert closed.base_value == Decimal("187.50")
    assert jetski.status == JetskiStatus.AVAILABLE

    with pytest.raises(BusinessRuleViolation):
        rentals.check_out(rental.id, check_out_at=START + timedelta(hours=2))


def test_check_out_within_tolerance_is_free(booked):
    reservation, _, _, rentals = booked
    rental = rentals.check_in_from_reservation(reservation.id, now=START)
    closed = rentals.check_out(rental.id, check_out_at=START + timedelta(minutes=4))
    assert closed.billable_minutes == 0
    assert closed.base_value == Decimal("0.00")


def test_check_out_before_check_in_is_rejected(booked):
    reservation, _, _, rentals = booked
    rental = rentals.check_in_from_reservation(reservation.id, now=START)
    with pytest.raises(ValidationError):
        rentals.check_out(rental.id, check_out_at=START - timedelta(minutes=1))
    assert rentals.get(rental.id).status == RentalStatus.IN_PROGRESS


def test_check_in_requires_confirmed_reservation_with_unit(db):
    model, _, customer = seed_fleet(db, units=1)
    reservations = ReservationService(db, TENANT)
    rentals = RentalService(db, TENANT)

    pending = reservations.create(model.id, customer.id, START, END, now=NOW)
    with pytest.raises(BusinessRuleViolation, match="CONFIRMED"):
        rentals.check_in_from_reservation(pending.id, now=START)

    reservations.confirm(pending.id)
    with pytest.raises(BusinessRuleViolation, match="no jetski allocated"):
        rentals.check_in_from_reservation(pending.id, now=START)
    assert reservations.get(pending.id).status == ReservationStatus.CONFIRMED


def test_unknown_rental(db):
    with pytest.raises(NotFoundError):
        RentalService(db, TENANT).check_out(12345)
