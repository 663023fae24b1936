"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable data structures that flow between selectors, the allocation
    planner and the allocation service: candidates read from the ledger
    store, per-step assignment details, the allocation report, and the input
    specs for order and batch intake.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Free of ORM dependencies; selectors
    convert ORM rows into these at the boundary.

Data flow:
    AllocationCandidate -> (planner) -> AssignmentDetail -> AllocationReport
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class AllocationCandidate:
    """
    One order line that may receive production output.

    Guarantees:
        - product_id is the product the selector was asked for.
        - Candidates arrive oldest order first; within an order, by line_no.
    """

    order_id: UUID
    order_number: str
    order_created_at: datetime
    order_status: str
    order_item_id: UUID
    product_id: UUID
    line_no: int
    quantity: int
    completed_quantity: int

    @property
    def pending(self) -> int:
        """Unfulfilled quantity; negative when over-allocated."""
        return self.quantity - self.completed_quantity


@dataclass(frozen=True)
class AssignmentDetail:
    """
    One applied allocation step, as reported to the caller.

    For overflow steps pending_before is 0 and pending_after is the negative
    overflow amount.
    """

    order_id: UUID
    order_number: str
    order_item_id: UUID
    assigned_quantity: int
    pending_before: int
    pending_after: int
    overflow: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "orderNumber": self.order_number,
            "orderItemId": str(self.order_item_id),
            "assignedQuantity": self.assigned_quantity,
            "pendingBefore": self.pending_before,
            "pendingAfter": self.pending_after,
        }


@dataclass(frozen=True)
class AllocationReport:
    """
    Outcome of one allocation run for one batch item.

    Guarantees:
        - sum(a.assigned_quantity for a in assignments) == assigned_quantity
        - assigned_quantity + remaining_quantity == total_quantity
        - error is None unless a step failed; steps before the failure remain
          committed and are listed in assignments.
    """

    batch_item_id: UUID
    product_id: UUID
    product_name: str
    total_quantity: int
    assigned_quantity: int
    remaining_quantity: int
    assignments: tuple[AssignmentDetail, ...] = ()
    error: str | None = None
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def overflowed(self) -> bool:
        return any(a.overflow for a in self.assignments)

    def as_dict(self) -> dict[str, Any]:
        """camelCase rendering for callers that display the summary."""
        data: dict[str, Any] = {
            "batchItemId": str(self.batch_item_id),
            "productName": self.product_name,
            "totalQuantity": self.total_quantity,
            "assignedQuantity": self.assigned_quantity,
            "remainingQuantity": self.remaining_quantity,
            "assignments": [a.as_dict() for a in self.assignments],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class OrderLineSpec:
    """A requested product line for order intake."""

    product_id: UUID | str
    quantity: int


@dataclass(frozen=True)
class BatchItemSpec:
    """A produced quantity for batch intake, optionally placed in a container."""

    product_id: UUID | str
    quantity: int
    container_code: str | None = None


@dataclass(frozen=True)
class BatchItemRef:
    """The facts the allocator needs about a freshly created batch item."""

    batch_item_id: UUID
    batch_id: UUID
    product_id: UUID
    product_name: str
    quantity: int


@dataclass(frozen=True)
class AuditLogEntryView:
    """Read-only projection of an audit log entry."""

    id: UUID
    seq: int
    action: str
    description: str
    quantity: int | None
    actor_id: UUID
    order_id: UUID | None
    product_id: UUID | None
    batch_id: UUID | None
    batch_item_id: UUID | None
    occurred_at: datetime
    product_code: str | None = None
    order_number: str | None = None
    batch_number: str | None = None
    note_id: UUID | None = None

    @property
    def folio(self) -> str:
        """Short display reference: first 8 hex digits of the id."""
        return self.id.hex[:8].upper()


@dataclass(frozen=True)
class AuditLogPage:
    """One page of the activity log."""

    entries: tuple[AuditLogEntryView, ...]
    page: int
    limit: int
    total: int
    filters: dict[str, Any] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class NoteView:
    """Read-only projection of a note, with its order number when linked."""

    id: UUID
    note_type: str
    content: str
    author_id: UUID
    created_at: datetime
    order_id: UUID | None = None
    order_number: str | None = None
    batch_item_id: UUID | None = None


@dataclass(frozen=True)
class NotePage:
    """One page of notes, newest first."""

    notes: tuple[NoteView, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit
