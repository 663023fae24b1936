"""
Module: warehouse_kernel.models.order
Responsibility: ORM persistence for customer orders and their product lines.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - order_number is unique.
    - OrderItem.quantity > 0 and OrderItem.completed_quantity >= 0
      (CHECK constraints).
    - completed_quantity never decreases (ORM listener in db/immutability.py).
    - Order.status is a function of its items' fulfillment; it is written only
      by OrderStatusReconciler, except for an explicit manual status update
      (e.g. cancellation) through OrderService.

Failure modes:
    - IntegrityError on duplicate order_number or CHECK violation.
    - ImmutabilityViolationError if completed_quantity would decrease.

Audit relevance:
    completed_quantity is the fulfillment ledger per order line.  Every change
    to it is accompanied, in the same transaction, by an audit log entry.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from warehouse_kernel.models.assignment import BatchItemAssignment
    from warehouse_kernel.models.product import Product


class OrderStatus(str, Enum):
    """Lifecycle status of an order.

    Contract: PENDING -> IN_PROGRESS -> COMPLETED, driven by fulfillment.
    CANCELLED is set manually and is terminal for allocation purposes.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Orders in these statuses may still receive production output.
OPEN_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.IN_PROGRESS}
)


class Order(TrackedBase):
    """
    Customer order header.

    Contract:
        Created once with status PENDING.  Served oldest-first by created_at
        when production output is allocated.

    Non-goals:
        - Does not compute its own status; see domain/order_status.py.
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_status_created", "status", "created_at"),
    )

    order_number: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, native_enum=False, length=20),
        default=OrderStatus.PENDING,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        String(2000),
        nullable=True,
    )

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_no",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status.value}>"


class OrderItem(Base):
    """
    One product line of an order.

    Guarantees:
        - quantity > 0.
        - completed_quantity only grows; it may exceed quantity when a batch's
          leftover is over-assigned to this line.
    """

    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
        CheckConstraint(
            "completed_quantity >= 0",
            name="ck_order_item_completed_non_negative",
        ),
        Index("idx_order_item_product", "product_id"),
        Index("idx_order_item_order", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Position within the order, used as the tie-break inside one order
    line_no: Mapped[int] = mapped_column(
        Integer,
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

    completed_quantity: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    order: Mapped["Order"] = relationship(back_populates="items")

    product: Mapped["Product"] = relationship()

    assignments: Mapped[list["BatchItemAssignment"]] = relationship(
        back_populates="order_item",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<OrderItem {self.id} {self.completed_quantity}/{self.quantity}>"
        )
