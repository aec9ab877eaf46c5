"""
batch_config -- configuration for the batch launcher.

Responsibility:
    Turns the ``batch:`` block of a YAML configuration file into frozen
    ``BatchProperties``.  No other package reads configuration files; the
    CLI and the orchestrator receive ``BatchProperties`` instances.

Architecture position:
    Sits above ``batch_kernel`` and below ``batch_launch``.  The kernel MUST
    NEVER import from ``batch_config``.
"""

from batch_config.loader import load_batch_properties, parse_batch_properties
from batch_config.schema import (
    DEFAULT_TABLE_PREFIX,
    BatchProperties,
    DatabaseInitializationMode,
    EffectiveBatchOptions,
    JdbcProperties,
    JobProperties,
)

__all__ = [
    "DEFAULT_TABLE_PREFIX",
    "BatchProperties",
    "DatabaseInitializationMode",
    "EffectiveBatchOptions",
    "JdbcProperties",
    "JobProperties",
    "load_batch_properties",
    "parse_batch_properties",
]
