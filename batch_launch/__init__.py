"""
batch_launch -- runs batch jobs once at process startup.

Responsibility:
    Resolves the startup job set, launches each job through a
    ``SimpleJobLauncher`` backed by the metadata store, and maps the
    outcomes to a process exit code.

Architecture position:
    Top-level package.  Depends on ``batch_kernel`` (logging, exceptions,
    clock, engine helpers) and ``batch_config`` (properties).  Neither of
    those may import from ``batch_launch``.

Usage:
    catalog = JobCatalog([SimpleJob("import_rates", import_rates)])
    orchestrator = BatchOrchestrator.from_properties(properties, engine, catalog)
    sys.exit(orchestrator.run(sys.argv[1:]))
"""

from batch_launch.catalog import DEFAULT_DISCOVERY_ORDER, JobCatalog, JobSource
from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobInstance,
    JobParameter,
    JobParameters,
)
from batch_launch.exit_codes import (
    JOB_FAILED,
    SUCCESS,
    JobExecutionExitCodeGenerator,
    aggregate_exit_code,
    map_exit_code,
)
from batch_launch.job import (
    DefaultJobParametersValidator,
    Job,
    JobParametersIncrementer,
    RunIdIncrementer,
    SimpleJob,
)
from batch_launch.launcher import SimpleJobLauncher
from batch_launch.orchestrator import BatchOrchestrator
from batch_launch.parameters import (
    DefaultJobParametersConverter,
    ParameterConverterCustomizer,
    ParameterConverters,
)
from batch_launch.repository import (
    BatchTables,
    JobExplorer,
    JobRepository,
    build_batch_tables,
)
from batch_launch.runner import JobExecutionListener, StartupJobRunner
from batch_launch.schema import BatchSchemaInitializer

__all__ = [
    "DEFAULT_DISCOVERY_ORDER",
    "JOB_FAILED",
    "SUCCESS",
    "BatchOrchestrator",
    "BatchSchemaInitializer",
    "BatchStatus",
    "BatchTables",
    "DefaultJobParametersConverter",
    "DefaultJobParametersValidator",
    "ExitStatus",
    "Job",
    "JobCatalog",
    "JobExecution",
    "JobExecutionExitCodeGenerator",
    "JobExecutionListener",
    "JobExplorer",
    "JobInstance",
    "JobParameter",
    "JobParameters",
    "JobParametersIncrementer",
    "JobRepository",
    "JobSource",
    "ParameterConverterCustomizer",
    "ParameterConverters",
    "RunIdIncrementer",
    "SimpleJob",
    "SimpleJobLauncher",
    "StartupJobRunner",
    "aggregate_exit_code",
    "build_batch_tables",
    "map_exit_code",
]
