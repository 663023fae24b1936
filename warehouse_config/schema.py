"""
WarehouseConfig schema.

Typed, frozen configuration sections parsed from YAML by the loader and
handed out by ``warehouse_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the ledger store."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging settings."""

    level: str = "INFO"


@dataclass(frozen=True)
class AllocationConfig:
    """
    Allocation policy.

    overflow_to_last_touched: when produced quantity exceeds all open demand,
        force the leftover onto the last order line that received output
        (over-fulfilling it).  When false, the leftover stays unassigned.
    lock_timeout_seconds: how long an allocation run waits for the
        per-product lock before giving up with an error report.
    """

    overflow_to_last_touched: bool = True
    lock_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class WarehouseConfig:
    """Complete runtime configuration."""

    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    allocation: AllocationConfig = field(default_factory=AllocationConfig)
    checksum: str = ""
    source: str = ""
