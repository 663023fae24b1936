"""Kernel services: flush-only writers plus the transaction runner."""

from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.batch_service import BatchInfo, BatchService
from warehouse_kernel.services.ledger_store import LedgerStore
from warehouse_kernel.services.note_service import NoteService
from warehouse_kernel.services.order_service import (
    OrderInfo,
    OrderItemInfo,
    OrderService,
)
from warehouse_kernel.services.order_status_reconciler import OrderStatusReconciler
from warehouse_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuditorService",
    "BatchInfo",
    "BatchService",
    "LedgerStore",
    "NoteService",
    "OrderInfo",
    "OrderItemInfo",
    "OrderService",
    "OrderStatusReconciler",
    "SequenceService",
]
