from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from jetski.models.booking_policy import BookingPolicy
from jetski.models.fleet import Jetski, JetskiStatus
from jetski.models.reservation import Reservation, ReservationPriority
from jetski.repositories.fleet_repo import FleetRepository
from jetski.repositories.reservation_repo import ReservationRepository
from jetski.utils.logs import get_logger

log = get_logger("capacity")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open windows: touching endpoints don't overlap."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class CapacitySnapshot:
    total_units: int
    guaranteed_count: int
    total_active_count: int

    @property
    def can_accept_guaranteed(self) -> bool:
        return self.guaranteed_count < self.total_units

    def max_allowed(self, policy: BookingPolicy) -> int:
        return policy.max_reservations(self.total_units)

    def can_accept_overbooked(self, policy: BookingPolicy) -> bool:
        return self.total_active_count < self.max_allowed(policy)

    def admits(self, priority: ReservationPriority, policy: BookingPolicy) -> bool:
        if priority == ReservationPriority.GUARANTEED:
            return self.can_accept_guaranteed
        elif priority == ReservationPriority.OVERBOOKED:
            return self.can_accept_overbooked(policy)
        raise ValueError(f"Unhandled reservation priority: {priority}")


def snapshot_from(
    reservations: Iterable[Reservation],
    units: Iterable[Jetski],
    model_id: int,
    start: datetime,
    end: datetime,
) -> CapacitySnapshot:
    """Same counts as CapacityOracle.capacity, computed over in-memory records."""
    total_units = sum(
        1
        for u in units
        if u.model_id == model_id and u.active and u.status == JetskiStatus.AVAILABLE
    )
    in_window = [
        r
        for r in reservations
        if r.model_id == model_id and r.is_active() and overlaps(r.start_at, r.end_at, start, end)
    ]
    guaranteed = sum(
        1 for r in in_window if r.deposit_paid and r.priority == ReservationPriority.GUARANTEED
    )
    return CapacitySnapshot(
        total_units=total_units,
        guaranteed_count=guaranteed,
        total_active_count=len(in_window),
    )


class CapacityOracle:
    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.fleet = FleetRepository(db, tenant_id)
        self.reservations = ReservationRepository(db, tenant_id)

    def total_units(self, model_id: int) -> int:
        return self.fleet.count_available_units(model_id)

    def capacity(
        self, model_id: int, start: datetime, end: datetime, excluding_id: Optional[int] = None
    ) -> CapacitySnapshot:
        """Counts for the window; excluding_id leaves out a reservation being moved."""
        snap = CapacitySnapshot(
            total_units=self.fleet.count_available_units(model_id),
            guaranteed_count=self.reservations.count_guaranteed_for_model(
                model_id, start, end, excluding_id=excluding_id
            ),
            total_active_count=self.reservations.count_active_for_model(
                model_id, start, end, excluding_id=excluding_id
            ),
        )
        log.debug(
            "model=%s window=%s..%s units=%s guaranteed=%s total=%s",
            model_id, start, end, snap.total_units, snap.guaranteed_count, snap.total_active_count,
        )
        return snap
