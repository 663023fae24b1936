"""
BatchIntakeOrchestrator -- production batch intake followed by allocation.

Responsibility:
    Commits a new batch (items, containers, CREATE_BATCH audit entry) in one
    transaction, then runs the allocator exactly once for every created
    batch item, in item order, with the creating user as actor.

Architecture position:
    Services -- composes BatchService (kernel, flush-only) with
    AllocationService.

Failure semantics:
    - Validation and not-found errors from batch creation propagate; nothing
      is committed and no allocation runs.
    - Allocation failures never undo the batch.  They are carried in the
      per-item AllocationReport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
from uuid import UUID

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import AllocationReport, BatchItemSpec
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.services.batch_service import BatchInfo, BatchService
from warehouse_kernel.services.ledger_store import LedgerStore
from warehouse_services.allocation_service import AllocationService

logger = get_logger("services.batch_intake")


@dataclass(frozen=True)
class BatchIntakeResult:
    """The created batch plus one allocation report per batch item."""

    batch: BatchInfo
    allocations: tuple[AllocationReport, ...]

    @property
    def assigned_quantity(self) -> int:
        return sum(r.assigned_quantity for r in self.allocations)

    @property
    def remaining_quantity(self) -> int:
        return sum(r.remaining_quantity for r in self.allocations)

    @property
    def has_errors(self) -> bool:
        return any(not r.succeeded for r in self.allocations)

    def as_dict(self) -> dict[str, Any]:
        return {
            "batchId": str(self.batch.id),
            "batchNumber": self.batch.batch_number,
            "name": self.batch.name,
            "containers": list(self.batch.container_codes),
            "assignmentResults": [r.as_dict() for r in self.allocations],
        }


class BatchIntakeOrchestrator:
    """Registers production batches and allocates their output."""

    def __init__(
        self,
        store: LedgerStore | None = None,
        allocator: AllocationService | None = None,
        clock: Clock | None = None,
    ):
        self._store = store or LedgerStore()
        self._clock = clock or SystemClock()
        self._allocator = allocator or AllocationService(
            self._store, clock=self._clock
        )

    def register_batch(
        self,
        batch_number: str,
        name: str,
        items: Sequence[BatchItemSpec],
        actor_id: UUID,
        description: str | None = None,
        containers: Sequence[str] = (),
    ) -> BatchIntakeResult:
        with LogContext.bind(actor_id=actor_id):
            batch = self._store.run_transaction(
                lambda session: BatchService(session, self._clock).create_batch(
                    batch_number,
                    name,
                    items,
                    actor_id,
                    description=description,
                    containers=containers,
                )
            )

            reports = tuple(
                self._allocator.allocate_batch_item(item, actor_id)
                for item in batch.items
            )
            result = BatchIntakeResult(batch=batch, allocations=reports)

            logger.info(
                "batch_intake_completed",
                extra={
                    "batch_id": str(batch.id),
                    "batch_number": batch.batch_number,
                    "item_count": len(batch.items),
                    "assigned_quantity": result.assigned_quantity,
                    "remaining_quantity": result.remaining_quantity,
                    "has_errors": result.has_errors,
                },
            )
            return result
