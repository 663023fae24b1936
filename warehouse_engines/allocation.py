"""
Module: warehouse_engines.allocation
Responsibility:
    Plan how a freshly produced quantity of one product is distributed over
    the open order lines for that product: oldest order first, each line
    up to its pending quantity, with any leftover optionally forced onto the
    last line touched.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import warehouse_kernel/domain.

Invariants enforced:
    - Conservation: allocated + unallocated == total quantity, and the step
      quantities sum to allocated.
    - Candidate order is preserved; lines with pending <= 0 are skipped.
    - An ASSIGN step never exceeds the line's pending quantity.
    - At most one OVERFLOW step, always last, always on the last ASSIGN
      step's line, and only when overflow is allowed and something was
      assigned.
    - Purity: no clock access, no I/O.

Failure modes:
    - ValueError when quantity is not a positive integer.

Usage:
    from warehouse_engines.allocation import FifoAllocationEngine

    plan = FifoAllocationEngine().plan(
        quantity=10,
        candidates=selector.find_pending_orders_for_product(product_id),
    )
    for step in plan.steps:
        ...
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from warehouse_engines.tracer import traced_engine
from warehouse_kernel.domain.dtos import AllocationCandidate
from warehouse_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


class StepKind(str, Enum):
    """What an allocation step does to its order line."""

    ASSIGN = "ASSIGN"  # Up to the line's pending quantity
    OVERFLOW = "OVERFLOW"  # Leftover beyond all pending demand


@dataclass(frozen=True)
class AllocationStep:
    """
    One planned mutation of one order line.

    Guarantees:
        - quantity > 0.
        - pending_after == pending_before - quantity.
        - link_total is the assignment link quantity for (batch item, line)
          once this step is applied, assuming the link starts empty.
    """

    kind: StepKind
    order_id: UUID
    order_number: str
    order_item_id: UUID
    product_id: UUID
    quantity: int
    pending_before: int
    pending_after: int
    link_total: int

    @property
    def is_overflow(self) -> bool:
        return self.kind == StepKind.OVERFLOW


@dataclass(frozen=True)
class AllocationPlan:
    """
    Complete allocation plan.

    Guarantees:
        - allocated + unallocated == total.
        - sum(step.quantity for step in steps) == allocated.
    """

    total: int
    steps: tuple[AllocationStep, ...]
    allocated: int
    unallocated: int
    skipped_candidates: int = 0

    @property
    def is_fully_allocated(self) -> bool:
        return self.unallocated == 0

    @property
    def has_overflow(self) -> bool:
        return any(step.is_overflow for step in self.steps)

    @property
    def overflow_quantity(self) -> int:
        return sum(step.quantity for step in self.steps if step.is_overflow)


class FifoAllocationEngine:
    """
    Oldest-first allocation planner.

    Contract:
        Pure function of (quantity, candidates, allow_overflow).  Candidates
        are consumed in the order given; the selector is responsible for
        ordering them oldest first.
    Non-goals:
        - Does not read or write the ledger store; AllocationService applies
          the plan one step per transaction.
    """

    @traced_engine(
        "fifo_allocation",
        "1.0",
        fingerprint_fields=("quantity", "allow_overflow"),
    )
    def plan(
        self,
        quantity: int,
        candidates: Sequence[AllocationCandidate],
        allow_overflow: bool = True,
    ) -> AllocationPlan:
        """
        Plan the distribution of ``quantity`` over ``candidates``.

        Args:
            quantity: Produced quantity to distribute (positive integer).
            candidates: Order lines in priority order.
            allow_overflow: Force leftover onto the last touched line.

        Returns:
            AllocationPlan with ordered steps.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"Quantity must be a positive integer, got {quantity!r}")

        remaining = quantity
        steps: list[AllocationStep] = []
        link_totals: dict[UUID, int] = {}
        skipped = 0

        for candidate in candidates:
            if remaining <= 0:
                break

            pending = candidate.pending
            if pending <= 0:
                skipped += 1
                continue

            assign = min(remaining, pending)
            link_total = link_totals.get(candidate.order_item_id, 0) + assign
            link_totals[candidate.order_item_id] = link_total

            steps.append(
                AllocationStep(
                    kind=StepKind.ASSIGN,
                    order_id=candidate.order_id,
                    order_number=candidate.order_number,
                    order_item_id=candidate.order_item_id,
                    product_id=candidate.product_id,
                    quantity=assign,
                    pending_before=pending,
                    pending_after=pending - assign,
                    link_total=link_total,
                )
            )
            remaining -= assign

        if remaining > 0 and steps and allow_overflow:
            last = steps[-1]
            link_total = link_totals[last.order_item_id] + remaining
            link_totals[last.order_item_id] = link_total
            steps.append(
                AllocationStep(
                    kind=StepKind.OVERFLOW,
                    order_id=last.order_id,
                    order_number=last.order_number,
                    order_item_id=last.order_item_id,
                    product_id=last.product_id,
                    quantity=remaining,
                    pending_before=0,
                    pending_after=-remaining,
                    link_total=link_total,
                )
            )
            logger.warning(
                "allocation_overflow_planned",
                extra={
                    "order_item_id": str(last.order_item_id),
                    "order_number": last.order_number,
                    "overflow_quantity": remaining,
                },
            )
            remaining = 0

        allocated = quantity - remaining
        return AllocationPlan(
            total=quantity,
            steps=tuple(steps),
            allocated=allocated,
            unallocated=remaining,
            skipped_candidates=skipped,
        )
