"""
batch_launch.repository -- the job execution store.

Architecture: SQLAlchemy Core tables built per table prefix, a read-only
explorer, and a repository used by the launcher for writes.
"""

from batch_launch.repository.explorer import JobExplorer
from batch_launch.repository.job_repository import JobRepository
from batch_launch.repository.tables import BatchTables, build_batch_tables

__all__ = [
    "BatchTables",
    "JobExplorer",
    "JobRepository",
    "build_batch_tables",
]
