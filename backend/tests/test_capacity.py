from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from conftest import make_policy
from jetski.models.fleet import JetskiStatus
from jetski.models.reservation import Reservation, ReservationPriority, ReservationStatus
from jetski.services.capacity import CapacitySnapshot, overlaps, snapshot_from

T0 = datetime(2030, 6, 1, 10, 0)


def hours(n):
    return timedelta(hours=n)


def reservation(start, end, guaranteed=False, status=ReservationStatus.PENDING, model_id=1, active=True):
    return Reservation(
        model_id=model_id,
        start_at=start,
        end_at=end,
        status=status,
        priority=ReservationPriority.GUARANTEED if guaranteed else ReservationPriority.OVERBOOKED,
        deposit_paid=guaranteed,
        active=active,
    )


def unit(model_id=1, status=JetskiStatus.AVAILABLE, active=True):
    return SimpleNamespace(model_id=model_id, status=status, active=active)


def test_overlap_is_half_open():
    assert overlaps(T0, T0 + hours(2), T0 + hours(1), T0 + hours(3))
    assert overlaps(T0, T0 + hours(3), T0 + hours(1), T0 + hours(2))
    assert not overlaps(T0, T0 + hours(1), T0 + hours(1), T0 + hours(2))
    assert not overlaps(T0 + hours(1), T0 + hours(2), T0, T0 + hours(1))


@pytest.mark.parametrize(
    "units,factor,cap,expected",
    [
        (0, "1.5", 8, 0),
        (2, "1.5", 8, 3),
        (3, "1.5", 8, 4),
        (3, "2.0", 8, 6),
        (3, "1.0", 8, 3),
        (10, "1.5", 8, 8),
    ],
)
def test_max_allowed_floors_and_caps(units, factor, cap, expected):
    policy = make_policy(overbooking_factor=Decimal(factor), max_without_deposit=cap)
    snap = CapacitySnapshot(total_units=units, guaranteed_count=0, total_active_count=0)
    assert snap.max_allowed(policy) == expected


def test_admits_guaranteed_only_while_units_remain():
    policy = make_policy()
    assert CapacitySnapshot(2, 1, 1).admits(ReservationPriority.GUARANTEED, policy)
    assert not CapacitySnapshot(2, 2, 2).admits(ReservationPriority.GUARANTEED, policy)
    # guaranteed capacity ignores overbooked reservations in the window
    assert CapacitySnapshot(2, 1, 3).admits(ReservationPriority.GUARANTEED, policy)


def test_admits_overbooked_until_cap():
    policy = make_policy()
    assert CapacitySnapshot(2, 2, 2).admits(ReservationPriority.OVERBOOKED, policy)
    assert not CapacitySnapshot(2, 2, 3).admits(ReservationPriority.OVERBOOKED, policy)
    assert not CapacitySnapshot(0, 0, 0).admits(ReservationPriority.OVERBOOKED, policy)


def test_snapshot_counts_only_active_overlapping_reservations_of_the_model():
    reservations = [
        reservation(T0, T0 + hours(2), guaranteed=True),
        reservation(T0 + hours(1), T0 + hours(3)),
        reservation(T0 + hours(2), T0 + hours(4), guaranteed=True),  # touches the end
        reservation(T0, T0 + hours(2), status=ReservationStatus.CANCELLED),
        reservation(T0, T0 + hours(2), status=ReservationStatus.EXPIRED),
        reservation(T0, T0 + hours(2), model_id=2),
        reservation(T0, T0 + hours(2), active=False),
    ]
    units = [
        unit(),
        unit(),
        unit(status=JetskiStatus.MAINTENANCE),
        unit(active=False),
        unit(model_id=2),
    ]
    snap = snapshot_from(reservations, units, 1, T0, T0 + hours(2))
    assert snap == CapacitySnapshot(total_units=2, guaranteed_count=1, total_active_count=2)
