"""Tests for OrderStatusReconciler against persisted orders."""

from uuid import uuid4

import pytest

from warehouse_kernel.db.engine import session_scope
from warehouse_kernel.exceptions import OrderNotFoundError
from warehouse_kernel.models.order import Order, OrderItem, OrderStatus
from warehouse_kernel.services.order_status_reconciler import OrderStatusReconciler


def set_completed(order_id, completed: list[int]):
    with session_scope() as s:
        order = s.get(Order, order_id)
        for item, value in zip(order.items, completed):
            item.completed_quantity = value
        s.flush()
        return OrderStatusReconciler(s).reconcile(order_id)


class TestReconcile:

    def test_partial_fulfillment(self, create_product, create_order):
        order = create_order([(create_product(), 10)])

        assert set_completed(order.id, [4]) == OrderStatus.IN_PROGRESS

    def test_full_fulfillment(self, create_product, create_order):
        product_id = create_product()
        order = create_order([(product_id, 10), (product_id, 2)])

        assert set_completed(order.id, [10, 2]) == OrderStatus.COMPLETED

    def test_over_fulfillment_counts_as_complete(self, create_product, create_order):
        order = create_order([(create_product(), 10)])

        assert set_completed(order.id, [12]) == OrderStatus.COMPLETED

    def test_cancelled_left_alone(self, create_product, create_order, test_actor_id):
        order = create_order([(create_product(), 10)])
        with session_scope() as s:
            s.get(Order, order.id).status = OrderStatus.CANCELLED

        assert set_completed(order.id, [10]) == OrderStatus.CANCELLED

    def test_idempotent_and_quiet(self, create_product, create_order, captured_logs):
        order = create_order([(create_product(), 10)])
        set_completed(order.id, [3])

        with session_scope() as s:
            assert OrderStatusReconciler(s).reconcile(order.id) == OrderStatus.IN_PROGRESS

        changes = [r for r in captured_logs() if r["message"] == "order_status_changed"]
        assert len(changes) == 1
        assert changes[0]["to_status"] == "IN_PROGRESS"

    def test_unknown_order(self, tables):
        with session_scope() as s:
            with pytest.raises(OrderNotFoundError):
                OrderStatusReconciler(s).reconcile(uuid4())
