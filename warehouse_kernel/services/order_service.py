"""
OrderService -- order intake, manual status/notes updates and deletion.

Responsibility:
    Validates and persists customer orders with their product lines, applies
    manual updates (e.g. cancellation), and deletes orders with their lines.
    Each mutation appends one audit log entry in the same transaction.

Architecture position:
    Kernel > Services -- flush-only.  The caller owns the transaction.

Invariants enforced:
    - order_number is unique and non-blank; an order has at least one line.
    - Line quantities are positive integers; referenced products exist.
    - New orders start PENDING with created_at from the injected Clock, which
      is what the oldest-first allocation rule orders by.

Failure modes:
    - ValidationError subclasses before anything is written.
    - ProductNotFoundError / OrderNotFoundError for unknown references.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import OrderLineSpec
from warehouse_kernel.domain.values import (
    coerce_identifier,
    require_positive_quantity,
    require_product_id,
)
from warehouse_kernel.exceptions import (
    DuplicateOrderNumberError,
    EmptyOrderError,
    InvalidIdentifierError,
    InvalidOrderStatusError,
    OrderNotFoundError,
    ProductNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.order import Order, OrderItem, OrderStatus
from warehouse_kernel.models.product import Product
from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.order")


@dataclass(frozen=True)
class OrderItemInfo:
    id: UUID
    line_no: int
    product_id: UUID
    quantity: int
    completed_quantity: int


@dataclass(frozen=True)
class OrderInfo:
    """Immutable DTO for an order and its lines."""

    id: UUID
    order_number: str
    status: OrderStatus
    created_at: datetime
    notes: str | None
    items: tuple[OrderItemInfo, ...]

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderService(BaseService[Order]):
    """
    Service for order intake and maintenance.

    All public methods return OrderInfo DTOs, not ORM entities.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    def _to_dto(self, order: Order) -> OrderInfo:
        return OrderInfo(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            created_at=order.created_at,
            notes=order.notes,
            items=tuple(
                OrderItemInfo(
                    id=item.id,
                    line_no=item.line_no,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    completed_quantity=item.completed_quantity,
                )
                for item in order.items
            ),
        )

    def _get_by_id(self, order_id: UUID | str) -> Order:
        order = self.session.get(Order, coerce_identifier(order_id, "order_id"))
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def get_order(self, order_id: UUID | str) -> OrderInfo:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        return self._to_dto(self._get_by_id(order_id))

    def create_order(
        self,
        order_number: str,
        lines: Sequence[OrderLineSpec],
        actor_id: UUID,
        notes: str | None = None,
    ) -> OrderInfo:
        """
        Create a PENDING order with its lines and a CREATE_ORDER entry.

        Args:
            order_number: Unique, human-facing order number.
            lines: Requested product lines, numbered in the given order.
            actor_id: Who is creating the order.
            notes: Optional free text.

        Raises:
            InvalidIdentifierError: order_number is blank.
            EmptyOrderError: no lines.
            InvalidQuantityError: a line quantity is not a positive integer.
            DuplicateOrderNumberError: order_number already exists.
            ProductNotFoundError: a line references an unknown product.
        """
        if order_number is None or not str(order_number).strip():
            raise InvalidIdentifierError("order_number", order_number)
        order_number = str(order_number).strip()

        if not lines:
            raise EmptyOrderError(order_number)

        prepared: list[tuple[UUID, int]] = []
        for index, line in enumerate(lines, start=1):
            product_id = require_product_id(line.product_id, f"order line {index}")
            quantity = require_positive_quantity(
                line.quantity, f"order line {index}"
            )
            prepared.append((product_id, quantity))

        existing = self.session.execute(
            select(Order.id).where(Order.order_number == order_number)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateOrderNumberError(order_number)

        for product_id in {pid for pid, _ in prepared}:
            if self.session.get(Product, product_id) is None:
                raise ProductNotFoundError(str(product_id))

        order = Order(
            order_number=order_number,
            status=OrderStatus.PENDING,
            notes=notes,
            created_at=self._clock.now(),
            created_by_id=actor_id,
        )
        for line_no, (product_id, quantity) in enumerate(prepared, start=1):
            order.items.append(
                OrderItem(
                    line_no=line_no,
                    product_id=product_id,
                    quantity=quantity,
                    completed_quantity=0,
                )
            )
        self.session.add(order)
        self.session.flush()

        self._auditor.record_order_created(
            order_id=order.id,
            order_number=order_number,
            item_count=len(prepared),
            total_quantity=sum(q for _, q in prepared),
            actor_id=actor_id,
        )

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "order_number": order_number,
                "item_count": len(prepared),
            },
        )
        return self._to_dto(order)

    def update_order(
        self,
        order_id: UUID | str,
        actor_id: UUID,
        status: OrderStatus | str | None = None,
        notes: str | None = None,
    ) -> OrderInfo:
        """
        Apply a manual status and/or notes change.

        An UPDATE_ORDER entry is appended only when something changed.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            InvalidOrderStatusError: Unknown status value.
        """
        new_status: OrderStatus | None = None
        if status is not None:
            try:
                new_status = OrderStatus(status)
            except ValueError as exc:
                raise InvalidOrderStatusError(str(status)) from exc

        order = self._get_by_id(order_id)
        changes: dict[str, tuple[object, object]] = {}

        if new_status is not None and new_status != order.status:
            changes["status"] = (order.status.value, new_status.value)
            order.status = new_status
        if notes is not None and notes != order.notes:
            changes["notes"] = (order.notes, notes)
            order.notes = notes

        if not changes:
            return self._to_dto(order)

        order.updated_by_id = actor_id
        self.session.flush()

        self._auditor.record_order_updated(
            order_id=order.id,
            order_number=order.order_number,
            changes=changes,
            actor_id=actor_id,
        )
        logger.info(
            "order_updated",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "fields": sorted(changes),
            },
        )
        return self._to_dto(order)

    def delete_order(self, order_id: UUID | str, actor_id: UUID) -> None:
        """
        Delete an order with its lines and their assignment links.

        The DELETE_ORDER entry keeps the order's id; audit entries hold plain
        ids, so the order's history stays readable after deletion.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        order = self._get_by_id(order_id)
        order_number = order.order_number
        deleted_id = order.id

        self._auditor.record_order_deleted(
            order_id=deleted_id,
            order_number=order_number,
            actor_id=actor_id,
        )
        self.session.delete(order)
        self.session.flush()

        logger.info(
            "order_deleted",
            extra={"order_id": str(deleted_id), "order_number": order_number},
        )
