"""
LedgerStore -- one unit of work, one transaction.

Responsibility:
    Runs a callable against a fresh session, committing on success and
    rolling back (then re-raising) on any failure.  The allocation service
    runs each assignment step through it so a failing step only undoes
    itself.

Architecture position:
    Kernel > Services.  The only kernel component that commits; every other
    service is flush-only and runs inside the session handed to ``work``.
"""

from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from warehouse_kernel.db.engine import get_session_factory
from warehouse_kernel.domain.dtos import AllocationCandidate
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.selectors.pending_order_selector import PendingOrderSelector

logger = get_logger("services.ledger_store")

T = TypeVar("T")


class LedgerStore:
    """
    Transaction runner over a session factory.

    Usage:
        store = LedgerStore()
        link_total = store.run_transaction(lambda session: apply(session))
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or get_session_factory()

    def session(self) -> Session:
        """A new session for read-only work; the caller closes it."""
        return self._session_factory()

    def find_pending_orders_for_product(
        self, product_id: UUID | str
    ) -> tuple[AllocationCandidate, ...]:
        """Allocation candidates for a product, oldest order first (read-only)."""
        session = self._session_factory()
        try:
            return PendingOrderSelector(session).find_pending_orders_for_product(
                product_id
            )
        finally:
            session.close()

    def run_transaction(self, work: Callable[[Session], T]) -> T:
        """
        Run ``work(session)`` in its own transaction.

        Postconditions:
            - On return, everything ``work`` flushed is committed.
            - On exception, everything is rolled back and the exception
              propagates unchanged.
        """
        session = self._session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            logger.debug("ledger_transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()
