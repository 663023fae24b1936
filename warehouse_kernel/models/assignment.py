"""
Module: warehouse_kernel.models.assignment
Responsibility: ORM persistence for the many-to-many assignment ledger between
    batch items and order items, carrying the assigned quantity.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per (batch_item_id, order_item_id) pair (UNIQUE constraint).
      A second assignment to the same pair increases the existing row.
    - quantity > 0 (CHECK constraint) and never decreases (ORM listener in
      db/immutability.py).
    - Rows are created and grown only by the allocation service.

Failure modes:
    - IntegrityError on a duplicate pair insert.
    - ImmutabilityViolationError if quantity would decrease.

Audit relevance:
    This table is the source of truth for "which order got how much of which
    production".  For every batch item, the sum of its link quantities equals
    the assigned quantity reported by the allocator.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from warehouse_kernel.models.batch import BatchItem
    from warehouse_kernel.models.order import OrderItem


class BatchItemAssignment(Base):
    """Quantity of one batch item attributed to one order item."""

    __tablename__ = "batch_item_assignments"

    __table_args__ = (
        UniqueConstraint(
            "batch_item_id",
            "order_item_id",
            name="uq_assignment_pair",
        ),
        CheckConstraint("quantity > 0", name="ck_assignment_quantity_positive"),
        Index("idx_assignment_order_item", "order_item_id"),
    )

    batch_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batch_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    order_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        nullable=False,
    )

    batch_item: Mapped["BatchItem"] = relationship(back_populates="assignments")

    order_item: Mapped["OrderItem"] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"<BatchItemAssignment {self.batch_item_id}->{self.order_item_id} "
            f"qty={self.quantity}>"
        )
