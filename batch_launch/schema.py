"""
BatchSchemaInitializer -- creates the metadata-store tables on startup.

Contract:
    ``initialize()`` creates the tables (``checkfirst``) according to the
    configured ``DatabaseInitializationMode`` and returns whether it did:

    - ALWAYS:   always.
    - EMBEDDED: only when the engine is an embedded database (SQLite).
    - NEVER:    never.

Non-goals:
    - No migrations.  Existing tables are left as they are.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from batch_config.schema import DatabaseInitializationMode
from batch_kernel.db.engine import is_embedded
from batch_kernel.logging_config import get_logger

from batch_launch.repository.tables import BatchTables

logger = get_logger("launch.schema")


class BatchSchemaInitializer:
    """Creates the tables of one ``BatchTables`` bundle."""

    def __init__(
        self,
        engine: Engine,
        tables: BatchTables,
        mode: DatabaseInitializationMode = DatabaseInitializationMode.EMBEDDED,
    ):
        self._engine = engine
        self._tables = tables
        self._mode = mode

    @property
    def mode(self) -> DatabaseInitializationMode:
        return self._mode

    def should_initialize(self) -> bool:
        if self._mode is DatabaseInitializationMode.ALWAYS:
            return True
        if self._mode is DatabaseInitializationMode.EMBEDDED:
            return is_embedded(self._engine)
        return False

    def initialize(self) -> bool:
        if not self.should_initialize():
            logger.info(
                "batch_schema_initialization_skipped",
                extra={"mode": self._mode.value, "dialect": self._engine.dialect.name},
            )
            return False

        self._tables.metadata.create_all(self._engine, checkfirst=True)
        logger.info(
            "batch_schema_initialized",
            extra={
                "mode": self._mode.value,
                "table_prefix": self._tables.prefix,
                "tables": sorted(self._tables.metadata.tables),
            },
        )
        return True
