from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from jetski.repositories.reservation_repo import ReservationRepository
from jetski.services.exceptions import BookingException
from jetski.services.reservation_service import ReservationService
from jetski.utils.logs import get_logger
from jetski.utils.timeutils import to_naive_utc, utcnow

log = get_logger("expiration")


class ExpirationSweeper:
    """
    Expires no-show reservations (no deposit, past expires_at) across all tenants.
    Each reservation is expired in its own transaction; a failure on one is logged
    and the sweep moves on.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReservationRepository(db)

    def process_expirations(self, now: Optional[datetime] = None) -> int:
        now = to_naive_utc(now) or utcnow()
        log.debug("Processing reservation expirations: now=%s", now)

        started_here = not self.db.in_transaction()
        candidates = [(r.id, r.tenant_id) for r in self.repo.find_to_expire(now)]
        if started_here:
            # end the read so every expiry below commits under its own model lock
            self.db.commit()

        count = 0
        for reservation_id, tenant_id in candidates:
            try:
                ReservationService(self.db, tenant_id).expire(reservation_id, now=now)
                count += 1
            except BookingException as e:
                log.error("Failed to expire reservation id=%s: %s", reservation_id, e)
            except Exception:
                # db errors (e.g. a locked sqlite file) only roll back this item
                log.exception("Unexpected error expiring reservation id=%s", reservation_id)

        if count:
            log.info("Expired %s reservations", count)
        return count
