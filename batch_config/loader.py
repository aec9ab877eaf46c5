"""
Configuration Loader (``batch_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses its ``batch:`` block into the
typed ``batch_config.schema`` dataclasses.

Invariants enforced
-------------------
* Every invalid value raises ``BatchConfigurationError`` naming the key;
  no silent defaults for malformed values.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``batch.initialize_schema`` is honoured as a deprecated alias of
  ``batch.jdbc.initialize_schema``; the new key wins when both are set.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``BatchConfigurationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from batch_config.schema import (
    BatchProperties,
    DatabaseInitializationMode,
    JdbcProperties,
    JobProperties,
)
from batch_kernel.db.engine import Isolation
from batch_kernel.exceptions import BatchConfigurationError
from batch_kernel.logging_config import get_logger

logger = get_logger("config.loader")

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_bool(key: str, value: Any) -> bool:
    """Parse a YAML boolean, tolerating the usual string spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise BatchConfigurationError(key, value, "expected a boolean")


def parse_isolation(key: str, value: Any) -> Isolation | None:
    """Parse an isolation level such as ``SERIALIZABLE`` or ``read committed``."""
    if value is None:
        return None
    if isinstance(value, Isolation):
        return value
    normalized = str(value).strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return Isolation(normalized)
    except ValueError:
        raise BatchConfigurationError(
            key, value, f"expected one of {[i.value for i in Isolation]}"
        ) from None


def parse_initialization_mode(key: str, value: Any) -> DatabaseInitializationMode:
    if isinstance(value, DatabaseInitializationMode):
        return value
    try:
        return DatabaseInitializationMode(str(value).strip().lower())
    except ValueError:
        raise BatchConfigurationError(
            key, value,
            f"expected one of {[m.value for m in DatabaseInitializationMode]}",
        ) from None


def _optional_str(key: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, (str, int)):
        raise BatchConfigurationError(key, value, "expected a string")
    return str(value)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key.rsplit(".", 1)[-1]) or {}
    if not isinstance(section, dict):
        raise BatchConfigurationError(key, section, "expected a mapping")
    return section


def parse_job_properties(data: dict[str, Any]) -> JobProperties:
    """Parse ``batch.job``."""
    enabled = parse_bool("batch.job.enabled", data.get("enabled", True))
    name = _optional_str("batch.job.name", data.get("name"))
    if name is not None and not name.strip():
        name = None
    return JobProperties(enabled=enabled, name=name)


def parse_jdbc_properties(
    data: dict[str, Any],
    legacy_initialize_schema: Any = None,
) -> JdbcProperties:
    """Parse ``batch.jdbc``, honouring the legacy initialize-schema key."""
    raw_mode = data.get("initialize_schema")
    if raw_mode is None and legacy_initialize_schema is not None:
        logger.warning(
            "deprecated_config_key",
            extra={
                "key": "batch.initialize_schema",
                "replacement": "batch.jdbc.initialize_schema",
            },
        )
        raw_mode = legacy_initialize_schema

    return JdbcProperties(
        url=_optional_str("batch.jdbc.url", data.get("url")),
        table_prefix=_optional_str("batch.jdbc.table_prefix", data.get("table_prefix")),
        isolation_level_for_create=parse_isolation(
            "batch.jdbc.isolation_level_for_create",
            data.get("isolation_level_for_create"),
        ),
        initialize_schema=(
            parse_initialization_mode("batch.jdbc.initialize_schema", raw_mode)
            if raw_mode is not None
            else DatabaseInitializationMode.EMBEDDED
        ),
    )


def parse_batch_properties(document: dict[str, Any]) -> BatchProperties:
    """
    Parse ``BatchProperties`` from a configuration document.

    The document is the whole YAML file; only its ``batch:`` block is read.
    A document without a ``batch:`` block yields the defaults.
    """
    batch = _section(document, "batch")
    return BatchProperties(
        job=parse_job_properties(_section(batch, "batch.job")),
        jdbc=parse_jdbc_properties(
            _section(batch, "batch.jdbc"),
            legacy_initialize_schema=batch.get("initialize_schema"),
        ),
    )


def load_batch_properties(path: Path) -> BatchProperties:
    """Load and parse ``BatchProperties`` from a YAML file."""
    properties = parse_batch_properties(load_yaml_file(path))
    logger.info(
        "batch_properties_loaded",
        extra={
            "path": str(path),
            "job_enabled": properties.job.enabled,
            "job_names": list(properties.job.names),
            "table_prefix": properties.jdbc.effective_table_prefix,
            "initialize_schema": properties.jdbc.initialize_schema.value,
        },
    )
    return properties
