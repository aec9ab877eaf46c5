"""
StartupJobRunner -- launches the configured (or the single known) job at
process startup.

Contract:
    ``run(*args)`` converts startup arguments into job parameters, resolves
    the full job set, then launches each job in order through the launcher
    and records one ``JobExecution`` per job in ``executions``.

Selection rules (``resolve_jobs()``):
    1. Configured names (comma-separated) are resolved in listed order, each
       against the discovery sources in ``discovery_order``; the first
       source holding the name wins.  An unknown name raises
       ``JobNotFoundError`` before anything is launched.
    2. With no configured names, the first non-empty source supplies the
       candidates.  One candidate is launched.  Several candidates are
       narrowed to those whose last recorded execution is restartable
       (the execution store must be available); exactly one match is
       launched, otherwise ``NoJobSpecifiedError``.
    3. No known jobs at all: nothing is launched.

Propagation:
    - Selection errors (``JobSelectionError``, bad startup arguments) are
      published to listeners and re-raised.  Nothing is launched.
    - Per-job launch errors (``LaunchRejectedError``, or any other error
      raised while starting one job) are captured as a FAILED outcome and the
      remaining jobs are still attempted.

Non-goals:
    - Does NOT wait for asynchronous executions -- it records whatever the
      launcher hands back.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.exceptions import (
    JobNotFoundError,
    LaunchRejectedError,
    NoJobSpecifiedError,
)
from batch_kernel.logging_config import get_logger

from batch_launch.catalog import DEFAULT_DISCOVERY_ORDER, JobCatalog, JobSource
from batch_launch.domain.types import JobExecution, JobParameters
from batch_launch.job import Job
from batch_launch.launcher import SimpleJobLauncher
from batch_launch.parameters import DefaultJobParametersConverter
from batch_launch.repository.explorer import JobExplorer

logger = get_logger("launch.runner")


class JobExecutionListener(Protocol):
    """Receives the outcomes of a startup run."""

    def on_job_execution(self, execution: JobExecution) -> None: ...

    def on_startup_failure(self, error: BaseException) -> None: ...


def split_job_names(job_names: str | None) -> tuple[str, ...]:
    """Split a comma-separated job-name string, dropping blanks."""
    if not job_names:
        return ()
    return tuple(name.strip() for name in job_names.split(",") if name.strip())


class StartupJobRunner:
    """Runs the selected jobs once at process startup."""

    def __init__(
        self,
        launcher: SimpleJobLauncher,
        catalog: JobCatalog,
        registry: JobCatalog | None = None,
        explorer: JobExplorer | None = None,
        job_names: str | None = None,
        discovery_order: Sequence[JobSource] = DEFAULT_DISCOVERY_ORDER,
        converter: DefaultJobParametersConverter | None = None,
        listeners: Iterable[JobExecutionListener] = (),
        clock: Clock | None = None,
    ):
        if not discovery_order:
            raise ValueError("discovery_order must name at least one source")
        self._launcher = launcher
        self._sources: dict[JobSource, JobCatalog] = {JobSource.CATALOG: catalog}
        if registry is not None:
            self._sources[JobSource.REGISTRY] = registry
        self._explorer = explorer
        self._job_names = split_job_names(job_names)
        self._discovery_order = tuple(discovery_order)
        self._converter = converter or DefaultJobParametersConverter()
        self._listeners: list[JobExecutionListener] = list(listeners)
        self._clock = clock or SystemClock()
        self._executions: list[JobExecution] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def job_names(self) -> tuple[str, ...]:
        return self._job_names

    @property
    def executions(self) -> tuple[JobExecution, ...]:
        """Outcomes recorded so far, in launch order."""
        return tuple(self._executions)

    def add_listener(self, listener: JobExecutionListener) -> None:
        self._listeners.append(listener)

    def run(self, *args: str) -> list[JobExecution]:
        """Resolve and launch the startup jobs.

        Returns the outcomes of this run, in launch order.

        Raises:
            JobParametersInvalidError: If a startup argument cannot be parsed.
            JobNotFoundError: If a configured job name is unknown.
            NoJobSpecifiedError: If several jobs are eligible and none is chosen.
        """
        try:
            parameters = self._converter.from_args(args)
            jobs = self.resolve_jobs()
        except Exception as exc:
            logger.error(
                "startup_job_selection_failed",
                exc_info=True,
                extra={"configured_job_names": list(self._job_names)},
            )
            for listener in self._listeners:
                listener.on_startup_failure(exc)
            raise

        if not jobs:
            logger.info("no_startup_jobs_found")
            return []

        return [self._launch(job, parameters) for job in jobs]

    def resolve_jobs(self) -> list[Job]:
        """Resolve the jobs to launch, in order, without launching any."""
        if self._job_names:
            return [self._resolve_named(name) for name in self._job_names]

        for source in self._discovery_order:
            catalog = self._sources.get(source)
            if catalog is None or len(catalog) == 0:
                continue
            candidates = catalog.jobs()
            if len(candidates) == 1:
                return [candidates[0]]
            return [self._disambiguate(candidates)]
        return []

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _resolve_named(self, name: str) -> Job:
        for source in self._discovery_order:
            catalog = self._sources.get(source)
            if catalog is not None and name in catalog:
                return catalog.get(name)
        raise JobNotFoundError(name, self._known_names())

    def _disambiguate(self, candidates: Sequence[Job]) -> Job:
        names = [job.name for job in candidates]
        if self._explorer is not None:
            restartable = []
            for job in candidates:
                last = self._explorer.get_last_execution_for_job(job.name)
                if last is not None and last.status.is_restartable:
                    restartable.append(job)
            if len(restartable) == 1:
                logger.info(
                    "startup_job_resumed_from_previous_execution",
                    extra={"job_name": restartable[0].name, "candidates": names},
                )
                return restartable[0]
        raise NoJobSpecifiedError(names)

    def _known_names(self) -> list[str]:
        known: list[str] = []
        for source in self._discovery_order:
            catalog = self._sources.get(source)
            if catalog is not None:
                known.extend(n for n in catalog.names() if n not in known)
        return known

    def _launch(self, job: Job, startup_parameters: JobParameters) -> JobExecution:
        parameters = startup_parameters
        try:
            parameters = self._next_parameters(job, startup_parameters)
            execution = self._launcher.run(job, parameters)
        except LaunchRejectedError as exc:
            logger.error(
                "job_launch_rejected",
                exc_info=True,
                extra={"job_name": job.name},
            )
            execution = JobExecution.rejected(job.name, parameters, exc, at=self._clock.now())
        except Exception as exc:
            logger.error(
                "job_launch_failed",
                exc_info=True,
                extra={"job_name": job.name},
            )
            execution = JobExecution.rejected(job.name, parameters, exc, at=self._clock.now())

        self._executions.append(execution)
        for listener in self._listeners:
            listener.on_job_execution(execution)
        return execution

    def _next_parameters(self, job: Job, parameters: JobParameters) -> JobParameters:
        """Apply the job's incrementer, or restart the last failed run."""
        incrementer = job.incrementer
        if incrementer is None or self._explorer is None:
            return parameters

        instance = self._explorer.get_last_job_instance(job.name)
        if instance is None:
            next_parameters = incrementer.next(JobParameters())
        else:
            previous = self._explorer.get_last_job_execution(instance)
            if previous is None:
                next_parameters = incrementer.next(JobParameters())
            elif previous.status.is_restartable:
                next_parameters = previous.parameters
            else:
                next_parameters = incrementer.next(previous.parameters)
        return next_parameters.merge(parameters)
