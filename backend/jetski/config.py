import tempfile
from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./jetski.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # scheduler / locking
    EXPIRATION_SWEEP_SECONDS: int = 300
    BOOKING_LOCK_TIMEOUT_SECONDS: int = 10
    BOOKING_LOCK_DIR: str = tempfile.gettempdir()

    # defaults for a tenant's booking policy, applied on first read
    DEFAULT_GRACE_PERIOD_MINUTES: int = 30
    DEFAULT_DEPOSIT_PERCENTAGE: Decimal = Decimal("30.00")
    DEFAULT_OVERBOOKING_FACTOR: Decimal = Decimal("1.5")
    DEFAULT_MAX_WITHOUT_DEPOSIT: int = 8
    DEFAULT_NOTIFY_LEAD_MINUTES: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
