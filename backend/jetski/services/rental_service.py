from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from jetski.models.fleet import JetskiStatus
from jetski.models.rental import Rental, RentalStatus
from jetski.models.reservation import ReservationStatus
from jetski.repositories.fleet_repo import FleetRepository
from jetski.services import billing
from jetski.services.exceptions import BusinessRuleViolation, NotFoundError
from jetski.services.reservation_service import ReservationService
from jetski.utils.logs import get_logger
from jetski.utils.timeutils import to_naive_utc, utcnow
from jetski.utils.transactions import LockUnavailable, model_lock, smart_transaction

log = get_logger("rentals")


class RentalService:
    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.fleet = FleetRepository(db, tenant_id)
        self.reservations = ReservationService(db, tenant_id)

    def _get(self, rental_id: int) -> Rental:
        r = (
            self.db.query(Rental)
            .filter(Rental.id == rental_id, Rental.tenant_id == self.tenant_id)
            .first()
        )
        if not r:
            raise NotFoundError(f"Rental {rental_id} not found")
        return r

    def get(self, rental_id: int) -> Rental:
        return self._get(rental_id)

    def check_in_from_reservation(self, reservation_id: int, now: Optional[datetime] = None) -> Rental:
        """
        Turn a CONFIRMED reservation with an allocated jetski into an in-progress rental.
        The jetski becomes RENTED and the reservation FINALIZED with a link to the rental.
        """
        now = to_naive_utc(now) or utcnow()
        log.info("Check-in from reservation: tenant=%s reservation=%s", self.tenant_id, reservation_id)
        model_id = self.reservations.model_id_for(reservation_id)
        try:
            with model_lock(model_id):
                with smart_transaction(self.db):
                    reservation = self.reservations.get(reservation_id)
                    if reservation.status != ReservationStatus.CONFIRMED:
                        raise BusinessRuleViolation(
                            f"Reservation must be CONFIRMED for check-in (status: {reservation.status.value})"
                        )
                    if reservation.jetski_id is None:
                        raise BusinessRuleViolation(
                            "Reservation has no jetski allocated; allocate one before check-in"
                        )
                    jetski = self.fleet.get_jetski(reservation.jetski_id)
                    if not jetski:
                        raise NotFoundError(f"Jetski {reservation.jetski_id} not found")
                    if jetski.status != JetskiStatus.AVAILABLE:
                        raise BusinessRuleViolation(
                            f"Jetski {jetski.serial} is not available (status: {jetski.status.value})"
                        )

                    rental = Rental(
                        tenant_id=self.tenant_id,
                        reservation_id=reservation.id,
                        jetski_id=jetski.id,
                        customer_id=reservation.customer_id,
                        seller_id=reservation.seller_id,
                        check_in_at=now,
                        status=RentalStatus.IN_PROGRESS,
                    )
                    self.db.add(rental)
                    self.db.flush()

                    jetski.status = JetskiStatus.RENTED
                    self.reservations.finalize(reservation.id, rental_id=rental.id)
        except LockUnavailable as e:
            raise BusinessRuleViolation(f"{e}; try again")

        log.info("Check-in completed: rental=%s reservation=%s", rental.id, reservation_id)
        return rental

    def check_out(self, rental_id: int, check_out_at: Optional[datetime] = None) -> Rental:
        """Close the rental and price it from the model's tolerance and hourly price."""
        check_out_at = to_naive_utc(check_out_at) or utcnow()
        log.info("Check-out: tenant=%s rental=%s at=%s", self.tenant_id, rental_id, check_out_at)
        with smart_transaction(self.db):
            rental = self._get(rental_id)
            if rental.status != RentalStatus.IN_PROGRESS:
                raise BusinessRuleViolation(
                    f"Rental {rental_id} is not in progress (status: {rental.status.value})"
                )
            jetski = self.fleet.get_jetski(rental.jetski_id)
            model = self.fleet.get_model(jetski.model_id)

            used = billing.used_minutes(rental.check_in_at, check_out_at)
            billable = billing.billable_minutes(used, model.tolerance_minutes)
            value = billing.base_value(billable, model.hourly_price)

            rental.check_out_at = check_out_at
            rental.used_minutes = used
            rental.billable_minutes = billable
            rental.base_value = value
            rental.status = RentalStatus.COMPLETED
            jetski.status = JetskiStatus.AVAILABLE
            self.db.flush()

        log.info(
            "Check-out completed: rental=%s used=%s billable=%s base_value=%s",
            rental_id, used, billable, value,
        )
        return rental
