"""
Module: warehouse_kernel.models.batch
Responsibility: ORM persistence for production batches, their containers and
    the batch items (one produced quantity of one product) that are allocated
    to pending orders.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - batch_number is unique.
    - BatchItem.quantity > 0 (CHECK constraint).
    - A batch item is allocated exactly once, right after creation.  The
      authoritative record of where its quantity went is the set of
      BatchItemAssignment rows (models/assignment.py).

Audit relevance:
    CREATE_BATCH and the per-step assignment entries reference ``batch_id`` so
    the activity log can be filtered per production batch.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from warehouse_kernel.models.assignment import BatchItemAssignment
    from warehouse_kernel.models.product import Product


class BatchStatus(str, Enum):
    """Lifecycle status of a production batch."""

    ACTIVE = "ACTIVE"


class Batch(TrackedBase):
    """A production run grouping the items produced together."""

    __tablename__ = "batches"

    batch_number: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(2000),
        nullable=True,
    )

    status: Mapped[BatchStatus] = mapped_column(
        SAEnum(BatchStatus, native_enum=False, length=20),
        default=BatchStatus.ACTIVE,
        nullable=False,
    )

    items: Mapped[list["BatchItem"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    containers: Mapped[list["Container"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Batch {self.batch_number}>"


class Container(Base):
    """A physical container that holds part of a batch's output."""

    __tablename__ = "containers"

    container_code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    batch_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
    )

    batch: Mapped["Batch"] = relationship(back_populates="containers")


class BatchItem(Base):
    """
    One produced quantity of one product.

    Guarantees:
        - quantity > 0.

    Non-goals:
        - ``order_item_id`` is a compatibility field from the single-assignment
          era.  It records the last order line touched by allocation and is
          never consulted to decide anything; read the assignment links.
    """

    __tablename__ = "batch_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batch_item_quantity_positive"),
        Index("idx_batch_item_product", "product_id"),
    )

    batch_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        nullable=False,
    )

    container_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("containers.id"),
        nullable=True,
    )

    # Legacy, non-authoritative; deliberately no foreign key
    order_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    batch: Mapped["Batch"] = relationship(back_populates="items")

    product: Mapped["Product"] = relationship()

    container: Mapped["Container | None"] = relationship()

    assignments: Mapped[list["BatchItemAssignment"]] = relationship(
        back_populates="batch_item",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<BatchItem {self.id} qty={self.quantity}>"

    @property
    def assigned_quantity(self) -> int:
        """Sum of all assignment link quantities for this batch item."""
        return sum(link.quantity for link in self.assignments)
