import os
from contextlib import contextmanager
from typing import Iterator, Optional

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session

from jetski.config import settings


class LockUnavailable(Exception):
    pass


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Context manager that begins a transaction on the given Session.
    If a transaction is already active, start a nested SAVEPOINT (begin_nested);
    the caller's outer transaction decides when to commit.
    Otherwise start a normal transaction (begin) that commits on exit.
    Any exception rolls back whatever was started here.

    Usage:
        with smart_transaction(db):
            ... checks + writes ...
    """
    if session.in_transaction():
        cm = session.begin_nested()
    else:
        cm = session.begin()
    with cm:
        yield


def _lock_path(model_id: int) -> str:
    locks_dir = os.path.join(settings.BOOKING_LOCK_DIR, "jetski_booking_locks")
    os.makedirs(locks_dir, exist_ok=True)
    return os.path.join(locks_dir, f"model_{model_id}.lock")


@contextmanager
def model_lock(model_id: int, timeout: Optional[int] = None) -> Iterator:
    """
    Serialize capacity decisions for one jetski model across threads/workers on this host.
    Raises LockUnavailable if the lock can't be acquired within the timeout.

    Not re-entrant across FileLock instances: don't nest two model_lock() calls
    for the same model.
    """
    timeout = settings.BOOKING_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    lock = FileLock(_lock_path(model_id))
    try:
        lock.acquire(timeout=timeout)
    except Timeout:
        raise LockUnavailable(f"Could not acquire booking lock for model {model_id}")
    try:
        yield
    finally:
        lock.release()
