"""
AllocationService -- applies the oldest-first allocation plan to the ledger.

Responsibility:
    For one freshly created batch item: take the per-product lock, read the
    candidate order lines, let FifoAllocationEngine plan the distribution and
    apply each planned step in its own transaction.  Returns an
    AllocationReport and never raises to its caller.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

Per-step transaction (all or nothing):
    1. Upsert the (batch item, order line) assignment link and check its
       total against the plan.
    2. Increment the order line's completed_quantity.
    3. Reconcile the owning order's status.
    4. Point the legacy BatchItem.order_item_id at the line.
    5. Append one AUTO_ASSIGN / OVER_ASSIGN audit entry.

Failure semantics:
    A failing step rolls back only itself.  Earlier steps stay committed, the
    run stops, the failure is logged with its code and context, and the
    report carries ``error`` plus the unassigned remainder.

Invariants enforced:
    - sum(detail.assigned_quantity) == assigned_quantity.
    - assigned_quantity + remaining_quantity == total_quantity.
    - At most one run per product at a time (ProductLockRegistry).
"""

from __future__ import annotations

import functools
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_config import WarehouseConfig
from warehouse_engines.allocation import AllocationStep, FifoAllocationEngine
from warehouse_kernel.db.locks import ProductLockRegistry, product_locks
from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import (
    AllocationReport,
    AssignmentDetail,
    BatchItemRef,
)
from warehouse_kernel.domain.values import coerce_identifier
from warehouse_kernel.exceptions import (
    AssignmentLinkMismatchError,
    BatchItemNotFoundError,
    OrderNotFoundError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.assignment import BatchItemAssignment
from warehouse_kernel.models.batch import BatchItem
from warehouse_kernel.models.order import OrderItem
from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.ledger_store import LedgerStore
from warehouse_kernel.services.order_status_reconciler import OrderStatusReconciler

logger = get_logger("services.allocation")


class AllocationService:
    """
    Allocator for production output.

    Contract:
        ``allocate_batch_item`` is called exactly once per batch item, right
        after the batch item is committed, with the creating user as actor.

    Non-goals:
        - Does not re-run or undo allocations.
        - Does not create batch items; see BatchIntakeOrchestrator.
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        *,
        clock: Clock | None = None,
        engine: FifoAllocationEngine | None = None,
        allow_overflow: bool = True,
        lock_timeout_seconds: float = 30.0,
        locks: ProductLockRegistry | None = None,
    ):
        self._store = store or LedgerStore()
        self._clock = clock or SystemClock()
        self._engine = engine or FifoAllocationEngine()
        self._allow_overflow = allow_overflow
        self._lock_timeout = lock_timeout_seconds
        self._locks = locks if locks is not None else product_locks

    @classmethod
    def from_config(
        cls,
        config: WarehouseConfig,
        store: LedgerStore | None = None,
        clock: Clock | None = None,
    ) -> AllocationService:
        return cls(
            store,
            clock=clock,
            allow_overflow=config.allocation.overflow_to_last_touched,
            lock_timeout_seconds=config.allocation.lock_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def allocate_batch_item_by_id(
        self,
        batch_item_id: UUID | str,
        actor_id: UUID,
    ) -> AllocationReport:
        """
        Load the batch item and allocate it.

        Raises:
            InvalidIdentifierError: batch_item_id is malformed.
            BatchItemNotFoundError: no such batch item.  Nothing is mutated.
        """
        item_id = coerce_identifier(batch_item_id, "batch_item_id")
        session = self._store.session()
        try:
            item = session.get(BatchItem, item_id)
            if item is None:
                raise BatchItemNotFoundError(str(item_id))
            ref = BatchItemRef(
                batch_item_id=item.id,
                batch_id=item.batch_id,
                product_id=item.product_id,
                product_name=item.product.name,
                quantity=item.quantity,
            )
        finally:
            session.close()
        return self.allocate_batch_item(ref, actor_id)

    def allocate_batch_item(
        self,
        batch_item: BatchItemRef,
        actor_id: UUID,
    ) -> AllocationReport:
        """
        Distribute the batch item's quantity over pending orders.

        Never raises: any failure ends the run and is reported in
        ``AllocationReport.error``.
        """
        applied: list[AssignmentDetail] = []

        with LogContext.bind(
            actor_id=actor_id,
            product_id=batch_item.product_id,
            batch_item_id=batch_item.batch_item_id,
        ):
            logger.info(
                "allocation_started",
                extra={
                    "quantity": batch_item.quantity,
                    "product_name": batch_item.product_name,
                    "allow_overflow": self._allow_overflow,
                },
            )

            try:
                with self._locks.hold(batch_item.product_id, self._lock_timeout):
                    candidates = self._store.find_pending_orders_for_product(
                        batch_item.product_id
                    )
                    plan = self._engine.plan(
                        quantity=batch_item.quantity,
                        candidates=candidates,
                        allow_overflow=self._allow_overflow,
                    )

                    if not plan.steps:
                        logger.info(
                            "allocation_no_candidates",
                            extra={"candidate_count": len(candidates)},
                        )

                    for step in plan.steps:
                        self._store.run_transaction(
                            functools.partial(
                                self._apply_step,
                                batch_item=batch_item,
                                step=step,
                                actor_id=actor_id,
                            )
                        )
                        applied.append(
                            AssignmentDetail(
                                order_id=step.order_id,
                                order_number=step.order_number,
                                order_item_id=step.order_item_id,
                                assigned_quantity=step.quantity,
                                pending_before=step.pending_before,
                                pending_after=step.pending_after,
                                overflow=step.is_overflow,
                            )
                        )
                        logger.info(
                            "allocation_step_applied",
                            extra={
                                "step_kind": step.kind.value,
                                "order_id": str(step.order_id),
                                "order_number": step.order_number,
                                "order_item_id": str(step.order_item_id),
                                "assigned_quantity": step.quantity,
                                "pending_after": step.pending_after,
                            },
                        )
            except Exception as exc:
                error_code = getattr(exc, "code", type(exc).__name__)
                report = self._report(
                    batch_item,
                    applied,
                    error=f"Automatic allocation failed: {exc}",
                    error_code=error_code,
                )
                logger.error(
                    "allocation_failed",
                    exc_info=True,
                    extra={
                        "error_code": error_code,
                        "steps_applied": len(applied),
                        "assigned_quantity": report.assigned_quantity,
                        "remaining_quantity": report.remaining_quantity,
                    },
                )
                return report

            report = self._report(batch_item, applied)
            logger.info(
                "allocation_completed",
                extra={
                    "total_quantity": report.total_quantity,
                    "assigned_quantity": report.assigned_quantity,
                    "remaining_quantity": report.remaining_quantity,
                    "assignment_count": len(report.assignments),
                    "overflowed": report.overflowed,
                },
            )
            return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_step(
        self,
        session: Session,
        *,
        batch_item: BatchItemRef,
        step: AllocationStep,
        actor_id: UUID,
    ) -> None:
        link = session.execute(
            select(BatchItemAssignment)
            .where(
                BatchItemAssignment.batch_item_id == batch_item.batch_item_id,
                BatchItemAssignment.order_item_id == step.order_item_id,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if link is None:
            link = BatchItemAssignment(
                batch_item_id=batch_item.batch_item_id,
                order_item_id=step.order_item_id,
                quantity=step.quantity,
            )
            session.add(link)
        else:
            link.quantity += step.quantity
        session.flush()

        if link.quantity != step.link_total:
            raise AssignmentLinkMismatchError(
                str(batch_item.batch_item_id),
                str(step.order_item_id),
                step.link_total,
                link.quantity,
            )

        order_item = session.execute(
            select(OrderItem)
            .where(OrderItem.id == step.order_item_id)
            .with_for_update()
        ).scalar_one_or_none()
        if order_item is None:
            raise OrderNotFoundError(str(step.order_id))

        order_item.completed_quantity += step.quantity
        session.flush()

        OrderStatusReconciler(session).reconcile(step.order_id)

        stored_item = session.get(BatchItem, batch_item.batch_item_id)
        if stored_item is None:
            raise BatchItemNotFoundError(str(batch_item.batch_item_id))
        stored_item.order_item_id = step.order_item_id

        auditor = AuditorService(session, self._clock)
        if step.is_overflow:
            auditor.record_over_assignment(
                batch_item_id=batch_item.batch_item_id,
                batch_id=batch_item.batch_id,
                product_id=batch_item.product_id,
                order_id=step.order_id,
                order_number=step.order_number,
                quantity=step.quantity,
                link_total=link.quantity,
                actor_id=actor_id,
            )
        else:
            auditor.record_auto_assignment(
                batch_item_id=batch_item.batch_item_id,
                batch_id=batch_item.batch_id,
                product_id=batch_item.product_id,
                order_id=step.order_id,
                order_number=step.order_number,
                quantity=step.quantity,
                actor_id=actor_id,
            )

    @staticmethod
    def _report(
        batch_item: BatchItemRef,
        applied: list[AssignmentDetail],
        error: str | None = None,
        error_code: str | None = None,
    ) -> AllocationReport:
        assigned = sum(detail.assigned_quantity for detail in applied)
        return AllocationReport(
            batch_item_id=batch_item.batch_item_id,
            product_id=batch_item.product_id,
            product_name=batch_item.product_name,
            total_quantity=batch_item.quantity,
            assigned_quantity=assigned,
            remaining_quantity=batch_item.quantity - assigned,
            assignments=tuple(applied),
            error=error,
            error_code=error_code,
        )
