from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from jetski.models.reservation import Reservation
from jetski.repositories.reservation_repo import ReservationRepository
from jetski.services.capacity import overlaps


def find_conflicts(
    reservations: Iterable[Reservation],
    jetski_id: int,
    start: datetime,
    end: datetime,
    excluding_id: Optional[int] = None,
) -> List[Reservation]:
    """Active reservations bound to jetski_id whose window overlaps [start, end)."""
    hits = [
        r
        for r in reservations
        if r.jetski_id == jetski_id
        and r.id != excluding_id
        and r.is_active()
        and overlaps(r.start_at, r.end_at, start, end)
    ]
    return sorted(hits, key=lambda r: r.start_at)


class ConflictDetector:
    def __init__(self, db: Session, tenant_id: str):
        self.reservations = ReservationRepository(db, tenant_id)

    def conflicts(
        self,
        jetski_id: int,
        start: datetime,
        end: datetime,
        excluding_id: Optional[int] = None,
    ) -> List[Reservation]:
        return self.reservations.find_conflicts(jetski_id, start, end, excluding_id=excluding_id)
