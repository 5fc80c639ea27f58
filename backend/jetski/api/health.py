from fastapi import APIRouter
from sqlalchemy import text

from jetski.db import engine
from jetski.utils.logs import get_logger

log = get_logger("health")

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception as e:
        log.error("Health check failed to reach database: %s", e)
        db_ok = False

    return {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
    }
