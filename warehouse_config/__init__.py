"""
warehouse_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or WAREHOUSE_* environment variables directly.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown keys or malformed values.

Audit relevance:
    Every successful call emits a ``CONFIG_TRACE`` log entry with the source
    file, checksum and allocation policy, so a run can be tied back to the
    overflow policy that governed it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from warehouse_config.loader import apply_env_overrides, load_yaml_file, parse_config
from warehouse_config.schema import (
    AllocationConfig,
    DatabaseConfig,
    LoggingConfig,
    WarehouseConfig,
)

_logger = logging.getLogger("warehouse_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> WarehouseConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            warehouse_config/sets/default.yaml.
        environ: Environment mapping for overrides.  Defaults to os.environ.

    Returns:
        Frozen WarehouseConfig.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    data = apply_env_overrides(load_yaml_file(path), env)
    config = parse_config(data, source=str(path))

    _logger.info(
        "CONFIG_TRACE",
        extra={
            "trace_type": "CONFIG_TRACE",
            "config_source": config.source,
            "checksum": config.checksum,
            "overflow_to_last_touched": config.allocation.overflow_to_last_touched,
            "lock_timeout_seconds": config.allocation.lock_timeout_seconds,
        },
    )
    return config


__all__ = [
    "AllocationConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "WarehouseConfig",
    "get_active_config",
]
