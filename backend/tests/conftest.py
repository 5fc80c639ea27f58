import os
import tempfile

# must be set before jetski.config is imported
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.gettempdir(), "jetski_test.db")
os.environ["BOOKING_LOCK_DIR"] = tempfile.mkdtemp(prefix="jetski_locks_")

from decimal import Decimal

import pytest

from jetski.db import SessionLocal, init_db
from jetski.models.booking_policy import BookingPolicy
from jetski.repositories.fleet_repo import FleetRepository

TENANT = "tenant-a"


@pytest.fixture
def db():
    init_db(reset=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def seed_fleet(session, tenant_id=TENANT, units=2, hourly_price="150.00", tolerance=5):
    """
    One model with `units` available jetskis plus a customer, committed.
    Returns (model, jetskis, customer).
    """
    fleet = FleetRepository(session, tenant_id)
    model = fleet.add_model("Sea-Doo Spark", Decimal(hourly_price), tolerance_minutes=tolerance)
    jetskis = [fleet.add_jetski(model.id, f"SN-{model.id}-{i + 1}") for i in range(units)]
    customer = fleet.add_customer("Maria Souza")
    session.commit()
    return model, jetskis, customer


def make_policy(**overrides):
    values = dict(
        tenant_id=TENANT,
        grace_period_minutes=30,
        deposit_percentage=Decimal("30.00"),
        overbooking_factor=Decimal("1.5"),
        max_without_deposit=8,
        notify_before_expiration=True,
        notify_lead_minutes=15,
    )
    values.update(overrides)
    return BookingPolicy(**values)
