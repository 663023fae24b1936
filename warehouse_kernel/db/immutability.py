"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The activity log and the fulfillment ledger are only trustworthy if they
cannot be quietly rewritten.  Corrections are made by appending, never by
editing history.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

If a check fails, ImmutabilityViolationError is raised and the enclosing
transaction is aborted.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity               | Rule                                 | Why
---------------------|--------------------------------------|------------------------------
AuditLogEntry        | No UPDATE, no DELETE                 | The log is append-only
OrderItem            | completed_quantity never decreases   | Fulfillment only accumulates
BatchItemAssignment  | quantity never decreases             | Links only accumulate

Deleting an order still removes its items and their assignment links through
the cascade; that is an explicit CRUD operation with its own DELETE_ORDER entry.

===============================================================================
USAGE
===============================================================================

    from warehouse_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect

from warehouse_kernel.exceptions import ImmutabilityViolationError
from warehouse_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, entity_id, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _decreased(target, attribute: str) -> tuple[int, int] | None:
    """Return (old, new) if the attribute's pending change lowers it."""
    history = inspect(target).attrs[attribute].history
    if not history.has_changes() or not history.deleted:
        return None
    old = history.deleted[0]
    new = history.added[0] if history.added else None
    if old is not None and new is not None and new < old:
        return old, new
    return None


# =============================================================================
# Audit log
# =============================================================================


def _check_audit_log_entry_immutability(mapper, connection, target):
    """Prevent any updates to AuditLogEntry records."""
    _block(
        "AuditLogEntry",
        target.id,
        "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _check_audit_log_entry_delete(mapper, connection, target):
    """Prevent deletion of AuditLogEntry records."""
    _block(
        "AuditLogEntry",
        target.id,
        "DELETE",
        "Audit log entries cannot be deleted",
    )


# =============================================================================
# Monotonic quantities
# =============================================================================


def _check_order_item_completed_quantity(mapper, connection, target):
    """completed_quantity may only grow."""
    change = _decreased(target, "completed_quantity")
    if change is not None:
        old, new = change
        _block(
            "OrderItem",
            target.id,
            "UPDATE",
            f"completed_quantity cannot decrease ({old} -> {new})",
        )


def _check_assignment_quantity(mapper, connection, target):
    """Assignment link quantity may only grow."""
    change = _decreased(target, "quantity")
    if change is not None:
        old, new = change
        _block(
            "BatchItemAssignment",
            target.id,
            "UPDATE",
            f"assignment quantity cannot decrease ({old} -> {new})",
        )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Registering twice is a no-op.
    """
    from warehouse_kernel.models.assignment import BatchItemAssignment
    from warehouse_kernel.models.audit_log import AuditLogEntry
    from warehouse_kernel.models.order import OrderItem

    for target, event_name, listener_fn in (
        (AuditLogEntry, "before_update", _check_audit_log_entry_immutability),
        (AuditLogEntry, "before_delete", _check_audit_log_entry_delete),
        (OrderItem, "before_update", _check_order_item_completed_quantity),
        (BatchItemAssignment, "before_update", _check_assignment_quantity),
    ):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from warehouse_kernel.models.assignment import BatchItemAssignment
    from warehouse_kernel.models.audit_log import AuditLogEntry
    from warehouse_kernel.models.order import OrderItem

    _safe_remove_listener(
        AuditLogEntry, "before_update", _check_audit_log_entry_immutability
    )
    _safe_remove_listener(
        AuditLogEntry, "before_delete", _check_audit_log_entry_delete
    )
    _safe_remove_listener(
        OrderItem, "before_update", _check_order_item_completed_quantity
    )
    _safe_remove_listener(
        BatchItemAssignment, "before_update", _check_assignment_quantity
    )
