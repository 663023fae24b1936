"""ORM models for the warehouse ledger store."""

from warehouse_kernel.models.assignment import BatchItemAssignment
from warehouse_kernel.models.audit_log import AuditAction, AuditLogEntry
from warehouse_kernel.models.batch import Batch, BatchItem, BatchStatus, Container
from warehouse_kernel.models.note import Note, NoteType
from warehouse_kernel.models.order import (
    OPEN_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
)
from warehouse_kernel.models.product import Product

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "Batch",
    "BatchItem",
    "BatchItemAssignment",
    "BatchStatus",
    "Container",
    "Note",
    "NoteType",
    "OPEN_ORDER_STATUSES",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
]
