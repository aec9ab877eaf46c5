"""
Metadata-store tables (job instances, executions, execution parameters).

Contract:
    ``build_batch_tables(prefix)`` returns a ``BatchTables`` bundle whose
    tables are named ``{prefix}JOB_INSTANCE``, ``{prefix}JOB_EXECUTION`` and
    ``{prefix}JOB_EXECUTION_PARAMS`` on a MetaData of their own, so several
    prefixes can coexist in one process.

Invariants enforced:
    - (job_name, job_key) is UNIQUE: one instance per identifying parameter set.
    - Execution parameters cascade-delete with their execution.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

from batch_config.schema import DEFAULT_TABLE_PREFIX


@dataclass(frozen=True)
class BatchTables:
    """The metadata-store tables for one table prefix."""

    prefix: str
    metadata: MetaData
    job_instance: Table
    job_execution: Table
    job_execution_params: Table


def build_batch_tables(prefix: str | None = None) -> BatchTables:
    """Build the metadata-store tables for ``prefix`` (default ``BATCH_``)."""
    prefix = DEFAULT_TABLE_PREFIX if prefix is None else prefix
    metadata = MetaData()

    job_instance = Table(
        f"{prefix}JOB_INSTANCE",
        metadata,
        Column("job_instance_id", Integer, primary_key=True, autoincrement=True),
        Column("job_name", String(100), nullable=False),
        Column("job_key", String(64), nullable=False),
        UniqueConstraint("job_name", "job_key", name=f"{prefix}JOB_INST_UN"),
    )

    job_execution = Table(
        f"{prefix}JOB_EXECUTION",
        metadata,
        Column("job_execution_id", Integer, primary_key=True, autoincrement=True),
        Column(
            "job_instance_id",
            Integer,
            ForeignKey(job_instance.c.job_instance_id),
            nullable=False,
        ),
        Column("create_time", DateTime(timezone=True), nullable=False),
        Column("start_time", DateTime(timezone=True), nullable=True),
        Column("end_time", DateTime(timezone=True), nullable=True),
        Column("status", String(10), nullable=False),
        Column("exit_code", String(2500), nullable=True),
        Column("exit_message", Text, nullable=True),
        Column("last_updated", DateTime(timezone=True), nullable=True),
        Index(f"ix_{prefix}job_execution_instance".lower(), "job_instance_id"),
    )

    job_execution_params = Table(
        f"{prefix}JOB_EXECUTION_PARAMS",
        metadata,
        Column(
            "job_execution_id",
            Integer,
            ForeignKey(job_execution.c.job_execution_id, ondelete="CASCADE"),
            primary_key=True,
        ),
        Column("parameter_name", String(100), primary_key=True),
        Column("parameter_type", String(100), nullable=False),
        Column("parameter_value", String(2500), nullable=True),
        Column("identifying", String(1), nullable=False),
    )

    return BatchTables(
        prefix=prefix,
        metadata=metadata,
        job_instance=job_instance,
        job_execution=job_execution,
        job_execution_params=job_execution_params,
    )
