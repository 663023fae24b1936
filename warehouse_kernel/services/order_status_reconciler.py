"""
OrderStatusReconciler -- re-derives an order's aggregate status.

Responsibility:
    After any completed-quantity change, loads every item of the owning order
    and applies ``derive_order_status``.  Runs inside the allocation step's
    transaction so status and fulfillment commit together.

Architecture position:
    Kernel > Services -- flush-only.

Invariants enforced:
    - Idempotent: re-running without a quantity change alters nothing.
    - CANCELLED orders are never touched.
    - The order row is written only when the derived status differs.
"""

from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.order_status import derive_order_status
from warehouse_kernel.exceptions import OrderNotFoundError
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.order import Order, OrderItem, OrderStatus
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.order_status")


class OrderStatusReconciler(BaseService[Order]):
    """Applies the order status rule to one persisted order."""

    def reconcile(self, order_id: UUID) -> OrderStatus:
        """
        Bring the order's status in line with its items.

        Returns:
            The order's status after reconciliation.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))

        items = self.session.execute(
            select(OrderItem.quantity, OrderItem.completed_quantity)
            .where(OrderItem.order_id == order_id)
        ).all()

        derived = derive_order_status(
            order.status,
            ((row.quantity, row.completed_quantity) for row in items),
        )

        if derived != order.status:
            previous = order.status
            order.status = derived
            self.session.flush()
            logger.info(
                "order_status_changed",
                extra={
                    "order_id": str(order_id),
                    "order_number": order.order_number,
                    "from_status": previous.value,
                    "to_status": derived.value,
                },
            )

        return order.status
