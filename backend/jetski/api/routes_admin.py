from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jetski.db import get_db
from jetski.services.expiration_service import ExpirationSweeper

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/expirations/run", summary="Expire no-show reservations now")
def run_expirations(db: Session = Depends(get_db)):
    # cross-tenant sweep, same job the scheduler runs
    expired = ExpirationSweeper(db).process_expirations()
    return {"expired": expired}
