"""
Warehouse Kernel - production output allocation ledger

Orders and their lines, production batches, assignment links and an
append-only activity log with:
- Oldest-first allocation of produced quantity
- One transaction per assignment step
- Full auditability via hash chain
"""

__version__ = "0.1.0"
