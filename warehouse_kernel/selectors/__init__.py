"""Read-only selectors returning DTOs."""

from warehouse_kernel.selectors.audit_log_selector import AuditLogSelector
from warehouse_kernel.selectors.note_selector import NoteSelector
from warehouse_kernel.selectors.pending_order_selector import PendingOrderSelector

__all__ = ["AuditLogSelector", "NoteSelector", "PendingOrderSelector"]
