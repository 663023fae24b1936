"""
Module: warehouse_kernel.selectors.pending_order_selector
Responsibility: Read the order lines that may receive a product's output,
    oldest order first.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Ordering: Order.created_at ascending, ties broken by Order.id and then
      OrderItem.line_no, so one call's order is stable.
    - Every returned candidate belongs to the requested product.
    - The product id is validated before any query runs.

Two variants:
    find_pending_orders_for_product -- filters at the order level only
        (status PENDING or IN_PROGRESS, has a line for the product).  Lines
        that are already fulfilled are returned too; the allocator re-checks
        pending quantity per line.
    list_open_demand -- additionally requires completed_quantity < quantity.
"""

from uuid import UUID

from sqlalchemy import Select, select

from warehouse_kernel.domain.dtos import AllocationCandidate
from warehouse_kernel.domain.values import require_product_id
from warehouse_kernel.models.order import OPEN_ORDER_STATUSES, Order, OrderItem
from warehouse_kernel.selectors.base import BaseSelector


class PendingOrderSelector(BaseSelector[OrderItem]):
    """Selector for allocation candidates."""

    def _base_query(self, product_id: UUID) -> Select:
        return (
            select(
                Order.id,
                Order.order_number,
                Order.created_at,
                Order.status,
                OrderItem.id.label("order_item_id"),
                OrderItem.product_id,
                OrderItem.line_no,
                OrderItem.quantity,
                OrderItem.completed_quantity,
            )
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(
                Order.status.in_(list(OPEN_ORDER_STATUSES)),
                OrderItem.product_id == product_id,
            )
            .order_by(Order.created_at, Order.id, OrderItem.line_no)
        )

    def _run(self, stmt: Select) -> tuple[AllocationCandidate, ...]:
        return tuple(
            AllocationCandidate(
                order_id=row.id,
                order_number=row.order_number,
                order_created_at=row.created_at,
                order_status=row.status.value,
                order_item_id=row.order_item_id,
                product_id=row.product_id,
                line_no=row.line_no,
                quantity=row.quantity,
                completed_quantity=row.completed_quantity,
            )
            for row in self.session.execute(stmt)
        )

    def find_pending_orders_for_product(
        self,
        product_id: UUID | str | None,
    ) -> tuple[AllocationCandidate, ...]:
        """
        Lines of open orders for the product, oldest order first.

        Raises:
            MissingProductReferenceError: product_id is None or blank.
            InvalidIdentifierError: product_id is not a UUID.
        """
        pid = require_product_id(product_id, "pending order lookup")
        return self._run(self._base_query(pid))

    def list_open_demand(
        self,
        product_id: UUID | str | None,
    ) -> tuple[AllocationCandidate, ...]:
        """Like find_pending_orders_for_product, minus fulfilled lines."""
        pid = require_product_id(product_id, "open demand lookup")
        stmt = self._base_query(pid).where(
            OrderItem.completed_quantity < OrderItem.quantity
        )
        return self._run(stmt)
