"""
Process bootstrap: configuration, logging, engine, schema, listeners.

Scripts and embedding applications call ``bootstrap()`` once at startup and
get back the active configuration plus an AllocationService wired to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from warehouse_config import WarehouseConfig, get_active_config
from warehouse_kernel.db.engine import create_tables, init_engine_from_url
from warehouse_kernel.db.immutability import register_immutability_listeners
from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.logging_config import configure_logging, get_logger
from warehouse_kernel.services.ledger_store import LedgerStore
from warehouse_services.allocation_service import AllocationService
from warehouse_services.batch_intake import BatchIntakeOrchestrator

logger = get_logger("services.bootstrap")


@dataclass(frozen=True)
class Runtime:
    config: WarehouseConfig
    store: LedgerStore
    allocator: AllocationService
    intake: BatchIntakeOrchestrator


def bootstrap(
    config_path: Path | str | None = None,
    *,
    create_schema: bool = True,
    clock: Clock | None = None,
) -> Runtime:
    config = get_active_config(config_path)

    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
    )
    if create_schema:
        create_tables()
    register_immutability_listeners()

    store = LedgerStore()
    allocator = AllocationService.from_config(config, store, clock)
    intake = BatchIntakeOrchestrator(store, allocator, clock)

    logger.info(
        "bootstrap_completed",
        extra={
            "config_source": config.source,
            "create_schema": create_schema,
        },
    )
    return Runtime(config=config, store=store, allocator=allocator, intake=intake)
