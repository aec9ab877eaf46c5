"""
BatchProperties schema.

Typed, frozen view of the ``batch:`` configuration block.  YAML documents
are parsed into these types by the loader; the orchestrator consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from batch_kernel.db.engine import Isolation

DEFAULT_TABLE_PREFIX = "BATCH_"


class DatabaseInitializationMode(str, Enum):
    """When the metadata-store schema should be created."""

    ALWAYS = "always"
    EMBEDDED = "embedded"  # Only for embedded databases (SQLite)
    NEVER = "never"


@dataclass(frozen=True)
class JobProperties:
    """Startup runner settings."""

    enabled: bool = True
    name: str | None = None  # Comma-separated job names

    @property
    def names(self) -> tuple[str, ...]:
        """Configured job names in listed order, blanks dropped."""
        if not self.name:
            return ()
        return tuple(part.strip() for part in self.name.split(",") if part.strip())


@dataclass(frozen=True)
class JdbcProperties:
    """Metadata-store settings."""

    url: str | None = None  # Dedicated metadata-store database
    table_prefix: str | None = None
    isolation_level_for_create: Isolation | None = None
    initialize_schema: DatabaseInitializationMode = DatabaseInitializationMode.EMBEDDED

    @property
    def effective_table_prefix(self) -> str:
        return self.table_prefix if self.table_prefix is not None else DEFAULT_TABLE_PREFIX

    @property
    def effective_isolation_level_for_create(self) -> Isolation:
        if self.isolation_level_for_create is not None:
            return self.isolation_level_for_create
        return Isolation.SERIALIZABLE


@dataclass(frozen=True)
class EffectiveBatchOptions:
    """Flat view of the options that actually drive the launcher."""

    enabled: bool
    job_names: str | None
    table_prefix: str | None
    isolation_level: Isolation | None


@dataclass(frozen=True)
class BatchProperties:
    """Root of the ``batch:`` configuration block."""

    job: JobProperties = field(default_factory=JobProperties)
    jdbc: JdbcProperties = field(default_factory=JdbcProperties)

    def effective(self) -> EffectiveBatchOptions:
        return EffectiveBatchOptions(
            enabled=self.job.enabled,
            job_names=self.job.name,
            table_prefix=self.jdbc.table_prefix,
            isolation_level=self.jdbc.isolation_level_for_create,
        )
