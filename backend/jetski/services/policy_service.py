from decimal import Decimal
from typing import Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jetski.config import settings
from jetski.models.booking_policy import BookingPolicy
from jetski.repositories.policy_repo import BookingPolicyRepository
from jetski.services.exceptions import ValidationError
from jetski.utils.logs import get_logger
from jetski.utils.transactions import smart_transaction

log = get_logger("policy")

UPDATABLE_FIELDS = (
    "grace_period_minutes",
    "deposit_percentage",
    "overbooking_factor",
    "max_without_deposit",
    "notify_before_expiration",
    "notify_lead_minutes",
)


def default_policy(tenant_id: str) -> BookingPolicy:
    return BookingPolicy(
        tenant_id=tenant_id,
        grace_period_minutes=settings.DEFAULT_GRACE_PERIOD_MINUTES,
        deposit_percentage=Decimal(settings.DEFAULT_DEPOSIT_PERCENTAGE),
        overbooking_factor=Decimal(settings.DEFAULT_OVERBOOKING_FACTOR),
        max_without_deposit=settings.DEFAULT_MAX_WITHOUT_DEPOSIT,
        notify_before_expiration=True,
        notify_lead_minutes=settings.DEFAULT_NOTIFY_LEAD_MINUTES,
    )


class BookingPolicyService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingPolicyRepository(db)

    def get_or_create(self, tenant_id: str) -> BookingPolicy:
        """Return the tenant's policy, persisting a default one on first read."""
        with smart_transaction(self.db):
            policy = self.repo.get(tenant_id)
            if not policy:
                log.info("Creating default booking policy for tenant=%s", tenant_id)
                try:
                    with self.db.begin_nested():
                        policy = self.repo.save(default_policy(tenant_id))
                except IntegrityError:
                    # another request created it first; use that row
                    log.debug("Default policy insert collided for tenant=%s", tenant_id)
                    policy = self.repo.get(tenant_id)
        return policy

    def update(self, tenant_id: str, changes: Dict) -> BookingPolicy:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown policy fields: {', '.join(sorted(unknown))}")

        with smart_transaction(self.db):
            policy = self.repo.get(tenant_id) or default_policy(tenant_id)
            # validate the merged values before touching the persistent row
            merged = {f: getattr(policy, f) for f in UPDATABLE_FIELDS}
            merged.update({f: v for f, v in changes.items() if v is not None})
            BookingPolicy(tenant_id=tenant_id, **merged).validate()
            for field, value in merged.items():
                setattr(policy, field, value)
            self.repo.save(policy)
        log.info(
            "Booking policy updated: tenant=%s grace=%s factor=%s max_without_deposit=%s",
            tenant_id, policy.grace_period_minutes, policy.overbooking_factor,
            policy.max_without_deposit,
        )
        return policy
