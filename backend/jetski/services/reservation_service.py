from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from jetski.models.booking_policy import BookingPolicy
from jetski.models.fleet import Jetski, JetskiModel, JetskiStatus
from jetski.models.reservation import (
    Reservation,
    ReservationPriority,
    ReservationStatus,
)
from jetski.repositories.fleet_repo import FleetRepository
from jetski.repositories.reservation_repo import ReservationRepository
from jetski.services.capacity import CapacityOracle, CapacitySnapshot
from jetski.services.conflicts import ConflictDetector
from jetski.services.exceptions import BusinessRuleViolation, NotFoundError, ValidationError
from jetski.services.policy_service import BookingPolicyService
from jetski.utils.logs import get_logger
from jetski.utils.timeutils import to_naive_utc, utcnow
from jetski.utils.transactions import LockUnavailable, model_lock, smart_transaction

log = get_logger("reservations")


@dataclass(frozen=True)
class AvailabilityDetail:
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


class ReservationService:
    """
    Reservation lifecycle for one tenant.

    Reservations are made per model; a physical jetski is bound either at creation
    or later through allocate_unit. Deposit-backed reservations are GUARANTEED and
    limited by physical units; the rest are OVERBOOKED and limited by the tenant's
    overbooking cap. Every capacity-sensitive transition re-validates under a
    per-model lock inside one transaction.
    """

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = ReservationRepository(db, tenant_id)
        self.fleet = FleetRepository(db, tenant_id)
        self.capacity = CapacityOracle(db, tenant_id)
        self.conflicts = ConflictDetector(db, tenant_id)
        self.policies = BookingPolicyService(db)

    def _now(self) -> datetime:
        return utcnow()

    @contextmanager
    def _locked(self, model_id: int) -> Iterator:
        try:
            with model_lock(model_id):
                with smart_transaction(self.db):
                    yield
        except LockUnavailable as e:
            raise BusinessRuleViolation(f"{e}; try again")

    def model_id_for(self, reservation_id: int) -> int:
        # Lock key must be known before the transaction starts; read it on a side
        # connection so the session isn't auto-begun outside the lock.
        if self.db.in_transaction():
            return self._get(reservation_id).model_id
        stmt = select(Reservation.model_id).where(
            Reservation.id == reservation_id, Reservation.tenant_id == self.tenant_id
        )
        with self.db.get_bind().connect() as conn:
            model_id = conn.execute(stmt).scalar()
        if model_id is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return model_id

    def _get(self, reservation_id: int) -> Reservation:
        r = self.repo.get(reservation_id)
        if not r:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return r

    def _get_model(self, model_id: int) -> JetskiModel:
        m = self.fleet.get_model(model_id)
        if not m:
            raise NotFoundError(f"Model {model_id} not found")
        return m

    def _get_jetski(self, jetski_id: int) -> Jetski:
        j = self.fleet.get_jetski(jetski_id)
        if not j:
            raise NotFoundError(f"Jetski {jetski_id} not found")
        return j

    def _policy(self) -> BookingPolicy:
        return self.policies.get_or_create(self.tenant_id)

    def _raise_on_conflict(
        self,
        jetski: Jetski,
        start: datetime,
        end: datetime,
        excluding_id: Optional[int] = None,
    ):
        found = self.conflicts.conflicts(jetski.id, start, end, excluding_id=excluding_id)
        if found:
            c = found[0]
            raise BusinessRuleViolation(
                f"Schedule conflict: jetski {jetski.serial} already booked for an overlapping "
                f"window ({c.window()}, reservation #{c.id})"
            )

    def _validate_unit_for_model(self, jetski: Jetski, model: JetskiModel):
        if jetski.model_id != model.id:
            raise BusinessRuleViolation(
                f"Jetski {jetski.serial} does not belong to model {model.name}"
            )
        if not jetski.active:
            raise BusinessRuleViolation(f"Jetski {jetski.serial} is not active")
        if jetski.status != JetskiStatus.AVAILABLE:
            raise BusinessRuleViolation(
                f"Jetski {jetski.serial} is not available (status: {jetski.status.value})"
            )

    # ------------------------------------------------------------------ queries

    def get(self, reservation_id: int) -> Reservation:
        return self._get(reservation_id)

    def list_all(self) -> List[Reservation]:
        return self.repo.list_all()

    def list_active(self) -> List[Reservation]:
        return self.repo.list_active()

    def list_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return self.repo.list_by_status(status)

    def list_pending(self) -> List[Reservation]:
        return self.repo.list_pending()

    def list_by_jetski(self, jetski_id: int) -> List[Reservation]:
        return self.repo.list_by_jetski(jetski_id)

    def list_by_customer(self, customer_id: int) -> List[Reservation]:
        return self.repo.list_by_customer(customer_id)

    def list_today(self, now: Optional[datetime] = None) -> List[Reservation]:
        now = to_naive_utc(now) or self._now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return self.repo.list_confirmed_starting_between(
            start_of_day, start_of_day + timedelta(days=1)
        )

    def reservations_in_period(self, jetski_id: int, start: datetime, end: datetime) -> List[Reservation]:
        return self.repo.list_by_jetski_in_period(jetski_id, to_naive_utc(start), to_naive_utc(end))

    def reservations_by_model_in_period(self, model_id: int, start: datetime, end: datetime) -> List[Reservation]:
        return self.repo.list_by_model_in_period(model_id, to_naive_utc(start), to_naive_utc(end))

    def reservations_to_allocate(self, until: Optional[datetime] = None) -> List[Reservation]:
        return self.repo.find_to_allocate(to_naive_utc(until) or self._now())

    def guaranteed_near_expiration(self, now: Optional[datetime] = None) -> List[Reservation]:
        """Deposit-backed reservations about to pass their grace period; left for an operator."""
        now = to_naive_utc(now) or self._now()
        lead = timedelta(minutes=self._policy().notify_lead_minutes)
        return self.repo.find_guaranteed_near_expiration(now, now + lead)

    def is_unit_available(self, jetski_id: int, start: datetime, end: datetime) -> bool:
        jetski = self._get_jetski(jetski_id)
        if not jetski.is_bookable():
            return False
        return not self.conflicts.conflicts(jetski_id, to_naive_utc(start), to_naive_utc(end))

    def check_model_availability(
        self, model_id: int, start: datetime, end: datetime, with_deposit: bool
    ) -> bool:
        start, end = to_naive_utc(start), to_naive_utc(end)
        snap = self.capacity.capacity(model_id, start, end)
        if snap.total_units == 0:
            return False
        priority = ReservationPriority.GUARANTEED if with_deposit else ReservationPriority.OVERBOOKED
        return snap.admits(priority, self._policy())

    def availability_detail(self, model_id: int, start: datetime, end: datetime) -> AvailabilityDetail:
        start, end = to_naive_utc(start), to_naive_utc(end)
        model = self._get_model(model_id)
        policy = self._policy()
        snap: CapacitySnapshot = self.capacity.capacity(model_id, start, end)
        max_allowed = snap.max_allowed(policy)
        guaranteed_slots = snap.total_units - snap.guaranteed_count
        regular_slots = max_allowed - snap.total_active_count
        return AvailabilityDetail(
            model_id=model.id,
            model_name=model.name,
            start_at=start,
            end_at=end,
            total_units=snap.total_units,
            guaranteed_count=snap.guaranteed_count,
            total_count=snap.total_active_count,
            max_allowed=max_allowed,
            accepts_with_deposit=guaranteed_slots > 0,
            accepts_without_deposit=regular_slots > 0,
            guaranteed_slots=max(0, guaranteed_slots),
            regular_slots=max(0, regular_slots),
        )

    # -------------------------------------------------------------- transitions

    def create(
        self,
        model_id: int,
        customer_id: int,
        start_at: datetime,
        end_at: datetime,
        jetski_id: Optional[int] = None,
        seller_id: Optional[int] = None,
        deposit_paid: bool = False,
        deposit_amount: Optional[Decimal] = None,
        deposit_paid_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Create a PENDING reservation for a model.

        With a deposit the reservation is GUARANTEED and must fit within the model's
        available units for the window. Without one it is OVERBOOKED and is not
        capacity-checked here; the overbooking cap is enforced by
        check_model_availability and on upgrade.
        """
        log.info(
            "Creating reservation: tenant=%s model=%s jetski=%s customer=%s window=%s..%s deposit=%s",
            self.tenant_id, model_id, jetski_id, customer_id, start_at, end_at, deposit_paid,
        )
        if start_at is None or end_at is None:
            raise ValidationError("Start and end are required")
        if model_id is None:
            raise ValidationError("Model is required to create a reservation")
        if customer_id is None:
            raise ValidationError("Customer is required to create a reservation")
        start_at, end_at = to_naive_utc(start_at), to_naive_utc(end_at)
        now = to_naive_utc(now) or self._now()
        if start_at >= end_at:
            raise ValidationError("Start must be before end")
        if start_at < now:
            raise ValidationError("Cannot create a reservation in the past")
        if deposit_paid and (deposit_amount is None or Decimal(deposit_amount) <= 0):
            raise ValidationError("Deposit amount must be greater than zero for a guaranteed reservation")

        with self._locked(model_id):
            model = self._get_model(model_id)
            if not model.active:
                raise BusinessRuleViolation(f"Model {model.name} is not active")
            if not self.fleet.get_customer(customer_id):
                raise NotFoundError(f"Customer {customer_id} not found")

            policy = self._policy()
            snap = self.capacity.capacity(model_id, start_at, end_at)
            if snap.total_units == 0:
                raise BusinessRuleViolation(f"No units available for model {model.name}")

            if deposit_paid:
                priority = ReservationPriority.GUARANTEED
                if not snap.admits(priority, policy):
                    raise BusinessRuleViolation(
                        f"Capacity exhausted: {snap.total_units} units available, "
                        f"{snap.guaranteed_count} guaranteed reservations already exist"
                    )
                deposit_paid_at = to_naive_utc(deposit_paid_at) or now
            else:
                priority = ReservationPriority.OVERBOOKED
                deposit_amount = None
                deposit_paid_at = None
                log.info(
                    "Overbooked reservation (no deposit): model=%s existing_total=%s existing_guaranteed=%s",
                    model_id, snap.total_active_count, snap.guaranteed_count,
                )

            if jetski_id is not None:
                jetski = self._get_jetski(jetski_id)
                self._validate_unit_for_model(jetski, model)
                self._raise_on_conflict(jetski, start_at, end_at)

            r = Reservation(
                tenant_id=self.tenant_id,
                model_id=model_id,
                jetski_id=jetski_id,
                customer_id=customer_id,
                seller_id=seller_id,
                start_at=start_at,
                end_at=end_at,
                status=ReservationStatus.PENDING,
                priority=priority,
                deposit_paid=bool(deposit_paid),
                deposit_amount=deposit_amount,
                deposit_paid_at=deposit_paid_at,
                expires_at=start_at + timedelta(minutes=policy.grace_period_minutes),
                active=True,
                notes=notes,
            )
            self.repo.add(r)

        log.info(
            "Reservation created: id=%s model=%s jetski=%s priority=%s expires_at=%s",
            r.id, r.model_id, r.jetski_id, r.priority.value, r.expires_at,
        )
        return r

    def update(self, reservation_id: int, changes: Dict) -> Reservation:
        """
        Amend window and/or notes. Moving the window re-runs the conflict check for a
        bound jetski and the guaranteed capacity check for a deposit-backed reservation;
        expires_at stays as set at creation.
        """
        log.info("Updating reservation: id=%s", reservation_id)
        with self._locked(self.model_id_for(reservation_id)):
            r = self._get(reservation_id)
            if r.status in (ReservationStatus.CANCELLED, ReservationStatus.FINALIZED):
                raise BusinessRuleViolation(
                    f"Cannot update reservation with status {r.status.value}"
                )

            new_start = to_naive_utc(changes.get("start_at")) or r.start_at
            new_end = to_naive_utc(changes.get("end_at")) or r.end_at
            dates_changed = new_start != r.start_at or new_end != r.end_at
            if new_start >= new_end:
                raise ValidationError("Start must be before end")

            if dates_changed:
                if r.is_guaranteed() and r.is_active():
                    snap = self.capacity.capacity(r.model_id, new_start, new_end, excluding_id=r.id)
                    if not snap.admits(ReservationPriority.GUARANTEED, self._policy()):
                        raise BusinessRuleViolation(
                            f"Capacity exhausted for guaranteed reservations: {snap.total_units} units "
                            f"available, {snap.guaranteed_count} guaranteed reservations already exist"
                        )
                if r.jetski_id is not None:
                    jetski = self._get_jetski(r.jetski_id)
                    self._raise_on_conflict(jetski, new_start, new_end, excluding_id=r.id)
                r.start_at = new_start
                r.end_at = new_end

            if changes.get("notes") is not None:
                r.notes = changes["notes"]
            self.db.flush()

        log.info("Reservation updated: id=%s", reservation_id)
        return r

    def confirm(self, reservation_id: int) -> Reservation:
        """PENDING -> CONFIRMED. A bound jetski is re-validated (status + conflicts)."""
        log.info("Confirming reservation: id=%s", reservation_id)
        with self._locked(self.model_id_for(reservation_id)):
            r = self._get(reservation_id)
            if not r.can_confirm():
                raise BusinessRuleViolation(
                    f"Cannot confirm reservation (status: {r.status.value}, active: {r.active})"
                )
            if r.jetski_id is not None:
                jetski = self._get_jetski(r.jetski_id)
                if jetski.status != JetskiStatus.AVAILABLE:
                    raise BusinessRuleViolation(
                        f"Jetski {jetski.serial} is no longer available (status: {jetski.status.value})"
                    )
                self._raise_on_conflict(jetski, r.start_at, r.end_at, excluding_id=r.id)
            # no jetski bound: allocation is deferred to check-in

            r.status = ReservationStatus.CONFIRMED
            self.db.flush()

        log.info("Reservation confirmed: id=%s", reservation_id)
        return r

    def cancel(self, reservation_id: int) -> Reservation:
        log.info("Cancelling reservation: id=%s", reservation_id)
        with smart_transaction(self.db):
            r = self._get(reservation_id)
            if not r.can_cancel():
                raise BusinessRuleViolation(
                    f"Cannot cancel reservation (status: {r.status.value}, active: {r.active})"
                )
            r.status = ReservationStatus.CANCELLED
            self.db.flush()
        log.info("Reservation cancelled: id=%s", reservation_id)
        return r

    def finalize(self, reservation_id: int, rental_id: Optional[int] = None) -> Reservation:
        """Any status -> FINALIZED (converted to a rental, or closed by an operator)."""
        log.info("Finalizing reservation: id=%s rental=%s", reservation_id, rental_id)
        with smart_transaction(self.db):
            r = self._get(reservation_id)
            r.status = ReservationStatus.FINALIZED
            if rental_id is not None:
                r.rental_id = rental_id
            self.db.flush()
        log.info("Reservation finalized: id=%s", reservation_id)
        return r

    def confirm_deposit(
        self, reservation_id: int, amount: Decimal, now: Optional[datetime] = None
    ) -> Reservation:
        """
        OVERBOOKED -> GUARANTEED. Guaranteed capacity for the reservation's window is
        checked again right before the write.
        """
        log.info("Confirming deposit: id=%s amount=%s", reservation_id, amount)
        if amount is None or Decimal(amount) <= 0:
            raise ValidationError("Deposit amount must be greater than zero")
        now = to_naive_utc(now) or self._now()

        with self._locked(self.model_id_for(reservation_id)):
            r = self._get(reservation_id)
            if not r.can_confirm_deposit():
                raise BusinessRuleViolation(
                    f"Cannot confirm deposit (deposit_paid={r.deposit_paid}, "
                    f"status={r.status.value}, active={r.active})"
                )
            snap = self.capacity.capacity(r.model_id, r.start_at, r.end_at)
            if not snap.admits(ReservationPriority.GUARANTEED, self._policy()):
                raise BusinessRuleViolation(
                    f"Capacity exhausted for guaranteed reservations: {snap.total_units} units "
                    f"available, {snap.guaranteed_count} guaranteed reservations already exist"
                )
            r.deposit_paid = True
            r.deposit_amount = Decimal(amount)
            r.deposit_paid_at = now
            r.priority = ReservationPriority.GUARANTEED
            self.db.flush()

        log.info("Deposit confirmed: id=%s priority=%s", reservation_id, r.priority.value)
        return r

    def allocate_unit(self, reservation_id: int, jetski_id: int) -> Reservation:
        """Bind a physical jetski to a CONFIRMED reservation that has none yet."""
        log.info("Allocating jetski: reservation=%s jetski=%s", reservation_id, jetski_id)
        with self._locked(self.model_id_for(reservation_id)):
            r = self._get(reservation_id)
            if not r.can_be_allocated():
                raise BusinessRuleViolation(
                    f"Cannot allocate jetski (jetski_id={r.jetski_id}, "
                    f"status={r.status.value}, active={r.active})"
                )
            jetski = self._get_jetski(jetski_id)
            self._validate_unit_for_model(jetski, self._get_model(r.model_id))
            self._raise_on_conflict(jetski, r.start_at, r.end_at, excluding_id=r.id)

            r.jetski_id = jetski.id
            self.db.flush()

        log.info("Jetski allocated: reservation=%s jetski=%s", reservation_id, jetski_id)
        return r

    def expire(self, reservation_id: int, now: Optional[datetime] = None) -> Reservation:
        """
        PENDING|CONFIRMED -> EXPIRED for a no-show past its grace period.
        Reservations with a deposit are never expired here.
        """
        now = to_naive_utc(now) or self._now()
        log.info("Expiring reservation: id=%s now=%s", reservation_id, now)
        with self._locked(self.model_id_for(reservation_id)):
            r = self._get(reservation_id)
            if not r.should_expire(now):
                raise BusinessRuleViolation(
                    f"Cannot expire reservation (expired={r.is_expired(now)}, "
                    f"deposit_paid={r.deposit_paid}, status={r.status.value})"
                )
            r.status = ReservationStatus.EXPIRED
            self.db.flush()

        log.info("Reservation expired: id=%s expires_at=%s", reservation_id, r.expires_at)
        return r
