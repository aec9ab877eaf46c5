"""
batch_launch.domain -- Value objects for launching batch jobs.

ZERO I/O.
"""

from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobInstance,
    JobParameter,
    JobParameters,
)

__all__ = [
    "BatchStatus",
    "ExitStatus",
    "JobExecution",
    "JobInstance",
    "JobParameter",
    "JobParameters",
]
