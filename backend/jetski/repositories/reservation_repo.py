from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session

from jetski.models.reservation import (
    OPEN_STATUSES,
    Reservation,
    ReservationPriority,
    ReservationStatus,
)


class ReservationRepository:
    """
    Reservation queries. All window filters use half-open overlap:
    [start, end) overlaps [a, b) iff start < b and a < end.

    tenant_id=None disables tenant scoping (used by the expiration sweeper).
    """

    def __init__(self, db: Session, tenant_id: Optional[str] = None):
        self.db = db
        self.tenant_id = tenant_id

    def _query(self) -> Query:
        q = self.db.query(Reservation)
        if self.tenant_id is not None:
            q = q.filter(Reservation.tenant_id == self.tenant_id)
        return q

    def _open(self, q: Query) -> Query:
        return q.filter(Reservation.active == True, Reservation.status.in_(OPEN_STATUSES))  # noqa: E712

    def _overlapping(self, q: Query, start: datetime, end: datetime) -> Query:
        return q.filter(Reservation.start_at < end, Reservation.end_at > start)

    def get(self, reservation_id: int) -> Optional[Reservation]:
        return self._query().filter(Reservation.id == reservation_id).first()

    def add(self, reservation: Reservation) -> Reservation:
        self.db.add(reservation)
        self.db.flush()
        return reservation

    def list_all(self) -> List[Reservation]:
        return self._query().order_by(Reservation.start_at).all()

    def list_active(self) -> List[Reservation]:
        return self._open(self._query()).order_by(Reservation.start_at).all()

    def list_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return (
            self._query()
            .filter(Reservation.status == status, Reservation.active == True)  # noqa: E712
            .order_by(Reservation.start_at)
            .all()
        )

    def list_pending(self) -> List[Reservation]:
        return (
            self._query()
            .filter(
                Reservation.status == ReservationStatus.PENDING,
                Reservation.active == True,  # noqa: E712
            )
            .order_by(Reservation.created_at.desc())
            .all()
        )

    def list_by_jetski(self, jetski_id: int) -> List[Reservation]:
        return (
            self._query()
            .filter(Reservation.jetski_id == jetski_id, Reservation.active == True)  # noqa: E712
            .order_by(Reservation.start_at.desc())
            .all()
        )

    def list_by_customer(self, customer_id: int) -> List[Reservation]:
        return (
            self._query()
            .filter(Reservation.customer_id == customer_id, Reservation.active == True)  # noqa: E712
            .order_by(Reservation.start_at.desc())
            .all()
        )

    def list_confirmed_starting_between(self, start: datetime, end: datetime) -> List[Reservation]:
        return (
            self._query()
            .filter(
                Reservation.status == ReservationStatus.CONFIRMED,
                Reservation.active == True,  # noqa: E712
                Reservation.start_at >= start,
                Reservation.start_at < end,
            )
            .order_by(Reservation.start_at)
            .all()
        )

    def find_conflicts(
        self,
        jetski_id: int,
        start: datetime,
        end: datetime,
        excluding_id: Optional[int] = None,
    ) -> List[Reservation]:
        q = self._overlapping(
            self._open(self._query().filter(Reservation.jetski_id == jetski_id)), start, end
        )
        if excluding_id is not None:
            q = q.filter(Reservation.id != excluding_id)
        return q.order_by(Reservation.start_at).all()

    def list_by_jetski_in_period(self, jetski_id: int, start: datetime, end: datetime) -> List[Reservation]:
        return self.find_conflicts(jetski_id, start, end)

    def list_by_model_in_period(self, model_id: int, start: datetime, end: datetime) -> List[Reservation]:
        guaranteed_first = case(
            (Reservation.priority == ReservationPriority.GUARANTEED, 0), else_=1
        )
        return (
            self._overlapping(
                self._open(self._query().filter(Reservation.model_id == model_id)), start, end
            )
            .order_by(guaranteed_first, Reservation.start_at)
            .all()
        )

    def count_active_for_model(
        self, model_id: int, start: datetime, end: datetime, excluding_id: Optional[int] = None
    ) -> int:
        q = self._overlapping(
            self._open(self._query().filter(Reservation.model_id == model_id)), start, end
        )
        if excluding_id is not None:
            q = q.filter(Reservation.id != excluding_id)
        return q.with_entities(func.count(Reservation.id)).scalar() or 0

    def count_guaranteed_for_model(
        self, model_id: int, start: datetime, end: datetime, excluding_id: Optional[int] = None
    ) -> int:
        q = self._overlapping(
            self._open(
                self._query().filter(
                    Reservation.model_id == model_id,
                    Reservation.deposit_paid == True,  # noqa: E712
                    Reservation.priority == ReservationPriority.GUARANTEED,
                )
            ),
            start,
            end,
        )
        if excluding_id is not None:
            q = q.filter(Reservation.id != excluding_id)
        return q.with_entities(func.count(Reservation.id)).scalar() or 0

    def find_to_expire(self, now: datetime) -> List[Reservation]:
        return (
            self._open(self._query())
            .filter(
                Reservation.expires_at.isnot(None),
                Reservation.expires_at < now,
                Reservation.deposit_paid == False,  # noqa: E712
            )
            .order_by(Reservation.expires_at)
            .all()
        )

    def find_to_allocate(self, start_until: datetime) -> List[Reservation]:
        guaranteed_first = case(
            (Reservation.priority == ReservationPriority.GUARANTEED, 0), else_=1
        )
        return (
            self._query()
            .filter(
                Reservation.jetski_id.is_(None),
                Reservation.status == ReservationStatus.CONFIRMED,
                Reservation.active == True,  # noqa: E712
                Reservation.start_at <= start_until,
            )
            .order_by(guaranteed_first, Reservation.start_at)
            .all()
        )

    def find_guaranteed_near_expiration(self, now: datetime, notify_before: datetime) -> List[Reservation]:
        return (
            self._open(self._query())
            .filter(
                Reservation.expires_at.isnot(None),
                Reservation.expires_at > now,
                Reservation.expires_at <= notify_before,
                Reservation.deposit_paid == True,  # noqa: E712
            )
            .order_by(Reservation.expires_at)
            .all()
        )
