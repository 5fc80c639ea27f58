from sqlalchemy import Boolean, Column, Integer, String

from jetski.db import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
