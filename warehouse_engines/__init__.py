"""
Warehouse engines: pure calculation layer.

No I/O, no database access, no clock.
"""

from warehouse_engines.allocation import (
    AllocationPlan,
    AllocationStep,
    FifoAllocationEngine,
    StepKind,
)
from warehouse_engines.tracer import traced_engine

__all__ = [
    "AllocationPlan",
    "AllocationStep",
    "FifoAllocationEngine",
    "StepKind",
    "traced_engine",
]
