"""
Order status derivation.

Responsibility:
    The pure rule mapping an order's item fulfillment onto its aggregate
    status.  OrderStatusReconciler applies it inside the allocation step's
    transaction.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Rule:
    - every item completed >= quantity      -> COMPLETED
    - else any item with 0 < completed < qty -> IN_PROGRESS
    - else                                   -> unchanged
    CANCELLED is never changed by derivation.
"""

from typing import Iterable

from warehouse_kernel.models.order import OrderStatus


def derive_order_status(
    current: OrderStatus,
    items: Iterable[tuple[int, int]],
) -> OrderStatus:
    """
    Derive the status an order should have.

    Args:
        current: The order's current status.
        items: ``(quantity, completed_quantity)`` for every item of the order.

    Returns:
        The derived status; ``current`` when no rule applies.
    """
    if current == OrderStatus.CANCELLED:
        return current

    lines = list(items)
    if not lines:
        return current

    if all(completed >= quantity for quantity, completed in lines):
        return OrderStatus.COMPLETED

    if any(0 < completed < quantity for quantity, completed in lines):
        return OrderStatus.IN_PROGRESS

    return current
