from typing import Optional

from sqlalchemy.orm import Session

from jetski.models.booking_policy import BookingPolicy


class BookingPolicyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, tenant_id: str) -> Optional[BookingPolicy]:
        return (
            self.db.query(BookingPolicy)
            .filter(BookingPolicy.tenant_id == tenant_id)
            .first()
        )

    def save(self, policy: BookingPolicy) -> BookingPolicy:
        self.db.add(policy)
        self.db.flush()
        return policy
