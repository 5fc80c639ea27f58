from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jetski.api.health import router as health_router
from jetski.api.routes_admin import router as admin_router
from jetski.api.routes_policy import router as policy_router
from jetski.api.routes_rentals import router as rentals_router
from jetski.api.routes_reservations import router as reservations_router
from jetski.config import settings
from jetski.db import SessionLocal, init_db
from jetski.services.expiration_service import ExpirationSweeper
from jetski.utils.logs import get_logger

log = get_logger("main")


def expire_job():
    db = SessionLocal()
    try:
        ExpirationSweeper(db).process_expirations()
    except Exception:
        log.exception("Expiration sweep failed")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup; RESET_DB=1 drops and recreates tables
    init_db()

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        expire_job,
        "interval",
        seconds=settings.EXPIRATION_SWEEP_SECONDS,
        id="expire_reservations",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    log.info("Expiration sweeper scheduled every %ss", settings.EXPIRATION_SWEEP_SECONDS)

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Jetski Booking - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(reservations_router)

app.include_router(policy_router)

app.include_router(rentals_router)

app.include_router(admin_router)
