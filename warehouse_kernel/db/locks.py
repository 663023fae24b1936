"""
Module: warehouse_kernel.db.locks
Responsibility: Per-product mutual exclusion for allocation runs.
Architecture position: Kernel > DB.  May import from db/engine.py.

Invariants enforced:
    - At most one allocation run per product at a time within a process
      (named threading.Lock keyed by product id).
    - On PostgreSQL, additionally a session-level advisory lock keyed by a
      64-bit digest of the product id, held on a dedicated connection, so
      separate processes are serialized as well.
    - Acquisition honours a timeout; the lock is released on every exit path.

Failure modes:
    - ProductLockTimeoutError if the lock is not acquired within the timeout.
"""

import hashlib
import threading
import time
from contextlib import contextmanager
from typing import Generator
from uuid import UUID

from sqlalchemy import text

from warehouse_kernel.db.engine import get_engine, is_postgres
from warehouse_kernel.exceptions import ProductLockTimeoutError
from warehouse_kernel.logging_config import get_logger

logger = get_logger("db.locks")

_ADVISORY_POLL_SECONDS = 0.05


def advisory_key(product_id: UUID | str) -> int:
    """Signed 64-bit advisory lock key for a product id."""
    digest = hashlib.sha256(f"allocation:{product_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


class ProductLockRegistry:
    """
    Named locks, one per product id.

    A product's entry exists only while some run holds or waits for it, so
    the registry does not grow with the product catalogue.

    Usage:
        with product_locks.hold(product_id, timeout=10.0):
            ...  # allocation run
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    def active_count(self) -> int:
        """Products that currently have a run holding or waiting on them."""
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(
        self,
        product_id: UUID | str,
        timeout: float,
    ) -> Generator[None, None, None]:
        key = str(product_id)
        deadline = time.monotonic() + timeout
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning(
                    "product_lock_timeout",
                    extra={"product_id": key, "timeout_seconds": timeout},
                )
                raise ProductLockTimeoutError(key, timeout)

            try:
                if is_postgres():
                    with _advisory_lock(key, deadline, timeout):
                        yield
                else:
                    yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


@contextmanager
def _advisory_lock(
    key: str,
    deadline: float,
    timeout: float,
) -> Generator[None, None, None]:
    lock_key = advisory_key(key)
    conn = get_engine().connect()
    try:
        while True:
            acquired = conn.execute(
                text("SELECT pg_try_advisory_lock(:k)"), {"k": lock_key}
            ).scalar()
            conn.commit()
            if acquired:
                break
            if time.monotonic() >= deadline:
                logger.warning(
                    "product_advisory_lock_timeout",
                    extra={"product_id": key, "timeout_seconds": timeout},
                )
                raise ProductLockTimeoutError(key, timeout)
            time.sleep(_ADVISORY_POLL_SECONDS)

        try:
            yield
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": lock_key})
            conn.commit()
    finally:
        conn.close()


# Process-wide registry used by the allocation service
product_locks = ProductLockRegistry()
