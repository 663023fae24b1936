"""
warehouse_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure allocation planner
    (warehouse_engines/) with ledger transactions from warehouse_kernel/.

Architecture position:
    Services -- outermost layer.

    Dependency direction:
        warehouse_services/ -> warehouse_engines/  (allowed)
        warehouse_services/ -> warehouse_kernel/   (allowed)
        warehouse_engines/  -> warehouse_services/ (FORBIDDEN)
        warehouse_kernel/   -> warehouse_services/ (FORBIDDEN)
"""

from warehouse_services.allocation_service import AllocationService
from warehouse_services.batch_intake import BatchIntakeOrchestrator, BatchIntakeResult
from warehouse_services.bootstrap import Runtime, bootstrap

__all__ = [
    "AllocationService",
    "BatchIntakeOrchestrator",
    "BatchIntakeResult",
    "Runtime",
    "bootstrap",
]
