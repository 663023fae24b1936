"""
Configuration Loader (``warehouse_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, applies environment overrides and parses
the result into the frozen dataclasses of ``warehouse_config.schema``.
The single public entry point for runtime config is
``warehouse_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; typos never fall back to
  defaults silently.
* Malformed values raise ``ValueError`` with the offending key.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  effective configuration.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from warehouse_config.schema import (
    AllocationConfig,
    DatabaseConfig,
    LoggingConfig,
    WarehouseConfig,
)

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "WAREHOUSE_DATABASE_URL": ("database", "url"),
    "WAREHOUSE_LOG_LEVEL": ("logging", "level"),
    "WAREHOUSE_LOCK_TIMEOUT_SECONDS": ("allocation", "lock_timeout_seconds"),
    "WAREHOUSE_OVERFLOW_TO_LAST_TOUCHED": ("allocation", "overflow_to_last_touched"),
}

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "logging": LoggingConfig,
    "allocation": AllocationConfig,
}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"{key}: expected a boolean, got {value!r}")


def parse_int(key: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key}: expected an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{key}: must be >= {minimum}, got {parsed}")
    return parsed


def parse_positive_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key}: expected a number, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{key}: must be positive, got {parsed}")
    return parsed


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    merged = {section: dict(values or {}) for section, values in data.items()}
    for env_name, (section, key) in ENV_OVERRIDES.items():
        if env_name in environ:
            merged.setdefault(section, {})[key] = environ[env_name]
    return merged


def _check_keys(section: str, values: Mapping[str, Any]) -> None:
    allowed = set(_SECTIONS[section].__dataclass_fields__)
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {', '.join(unknown)}")


def parse_database(data: Mapping[str, Any]) -> DatabaseConfig:
    _check_keys("database", data)
    url = data.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ValueError("database.url is required")
    return DatabaseConfig(
        url=url.strip(),
        echo=parse_bool("database.echo", data.get("echo", False)),
        pool_size=parse_int("database.pool_size", data.get("pool_size", 20), 1),
        max_overflow=parse_int("database.max_overflow", data.get("max_overflow", 10)),
        pool_timeout=parse_int("database.pool_timeout", data.get("pool_timeout", 30), 1),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingConfig:
    _check_keys("logging", data)
    level = str(data.get("level", "INFO")).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level: unknown level {level!r}")
    return LoggingConfig(level=level)


def parse_allocation(data: Mapping[str, Any]) -> AllocationConfig:
    _check_keys("allocation", data)
    return AllocationConfig(
        overflow_to_last_touched=parse_bool(
            "allocation.overflow_to_last_touched",
            data.get("overflow_to_last_touched", True),
        ),
        lock_timeout_seconds=parse_positive_float(
            "allocation.lock_timeout_seconds",
            data.get("lock_timeout_seconds", 30.0),
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any], source: str = "") -> WarehouseConfig:
    """
    Parse a merged configuration dict.

    Raises:
        ValueError: unknown section, unknown key or malformed value.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(unknown)}")

    return WarehouseConfig(
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        allocation=parse_allocation(data.get("allocation") or {}),
        checksum=compute_checksum(data),
        source=source,
    )
