from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from jetski.models.customer import Customer
from jetski.models.fleet import Jetski, JetskiModel, JetskiStatus


class FleetRepository:
    """Tenant-scoped lookups over models, units and customers."""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def get_model(self, model_id: int) -> Optional[JetskiModel]:
        return (
            self.db.query(JetskiModel)
            .filter(JetskiModel.id == model_id, JetskiModel.tenant_id == self.tenant_id)
            .first()
        )

    def get_jetski(self, jetski_id: int) -> Optional[Jetski]:
        return (
            self.db.query(Jetski)
            .filter(Jetski.id == jetski_id, Jetski.tenant_id == self.tenant_id)
            .first()
        )

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.id == customer_id, Customer.tenant_id == self.tenant_id)
            .first()
        )

    def count_available_units(self, model_id: int) -> int:
        """Active units of the model in AVAILABLE status; rented or in maintenance don't count."""
        return (
            self.db.query(func.count(Jetski.id))
            .filter(
                Jetski.model_id == model_id,
                Jetski.tenant_id == self.tenant_id,
                Jetski.active == True,  # noqa: E712
                Jetski.status == JetskiStatus.AVAILABLE,
            )
            .scalar()
            or 0
        )

    def list_units(self, model_id: int) -> List[Jetski]:
        return (
            self.db.query(Jetski)
            .filter(Jetski.model_id == model_id, Jetski.tenant_id == self.tenant_id)
            .order_by(Jetski.serial)
            .all()
        )

    def add_model(self, name: str, hourly_price, tolerance_minutes: int = 5, active: bool = True):
        m = JetskiModel(
            tenant_id=self.tenant_id,
            name=name,
            hourly_price=hourly_price,
            tolerance_minutes=tolerance_minutes,
            active=active,
        )
        self.db.add(m)
        self.db.flush()
        return m

    def add_jetski(
        self,
        model_id: int,
        serial: str,
        status: JetskiStatus = JetskiStatus.AVAILABLE,
        active: bool = True,
    ):
        j = Jetski(
            tenant_id=self.tenant_id,
            model_id=model_id,
            serial=serial,
            status=status,
            active=active,
        )
        self.db.add(j)
        self.db.flush()
        return j

    def add_customer(self, name: str, active: bool = True):
        c = Customer(tenant_id=self.tenant_id, name=name, active=active)
        self.db.add(c)
        self.db.flush()
        return c
