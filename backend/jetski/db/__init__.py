import importlib
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from jetski.config import settings
from jetski.utils.logs import get_logger

log = get_logger("db")

DATABASE_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=_connect_args)

if DATABASE_URL.startswith("sqlite"):
    # pysqlite defers BEGIN until the first DML statement, which breaks SAVEPOINTs;
    # take over transaction control so smart_transaction's begin_nested works.
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module that declares tables; imported before create_all so metadata is complete
MODEL_MODULES = [
    "jetski.models.fleet",
    "jetski.models.customer",
    "jetski.models.booking_policy",
    "jetski.models.reservation",
    "jetski.models.rental",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    Behavior:
      - If reset is True or RESET_DB env var is set to 1/true/yes, drop & recreate tables.
      - Otherwise create missing tables and leave existing ones in place.
    """
    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or env_reset:
        log.info("Resetting database (dropping all tables)")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized: %s", DATABASE_URL)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
