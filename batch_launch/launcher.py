"""
SimpleJobLauncher -- starts job executions synchronously or on a thread pool.

Contract:
    ``run(job, parameters)`` validates the parameters, refuses launches that
    would duplicate or re-run a finished instance, creates a STARTING
    execution in the repository, and hands the job body either to the
    calling thread or to a ``concurrent.futures.Executor``.

Invariants enforced:
    - A launch is refused (``LaunchRejectedError`` family) before anything is
      persisted.
    - Job body failures never escape the worker: they are recorded on the
      execution (FAILED) and in the repository.
    - Every execution handed out reaches a terminal state exactly once.

Non-goals:
    - No cancellation or timeouts -- those belong to the job body.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor

from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.exceptions import (
    JobExecutionAlreadyRunningError,
    JobInstanceAlreadyCompleteError,
    JobRestartError,
)
from batch_kernel.logging_config import LogContext, get_logger

from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobParameters,
)
from batch_launch.job import Job
from batch_launch.repository.job_repository import JobRepository

logger = get_logger("launch.launcher")


class SimpleJobLauncher:
    """Launches jobs against a ``JobRepository``.

    With ``task_executor=None`` jobs run on the calling thread and ``run()``
    returns a terminal execution.  With an executor, ``run()`` returns the
    STARTING execution immediately; call ``execution.wait()`` to block.
    """

    def __init__(
        self,
        job_repository: JobRepository,
        task_executor: Executor | None = None,
        clock: Clock | None = None,
    ):
        self._repository = job_repository
        self._task_executor = task_executor
        self._clock = clock or SystemClock()

    @classmethod
    def with_thread_pool(
        cls,
        job_repository: JobRepository,
        max_workers: int | None = None,
        clock: Clock | None = None,
    ) -> SimpleJobLauncher:
        """Asynchronous launcher backed by its own thread pool."""
        return cls(
            job_repository,
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="batch-launch"),
            clock,
        )

    @property
    def is_asynchronous(self) -> bool:
        return self._task_executor is not None

    def run(self, job: Job, parameters: JobParameters) -> JobExecution:
        """Launch ``job`` with ``parameters``.

        Raises:
            JobParametersInvalidError: If the job rejects the parameters.
            JobExecutionAlreadyRunningError: If the instance is running.
            JobInstanceAlreadyCompleteError: If the instance already completed.
            JobRestartError: If the instance ran before and the job is not
                restartable.
        """
        job.validate(parameters)
        self._check_previous_execution(job, parameters)

        execution = self._repository.create_job_execution(job.name, parameters)

        logger.info(
            "job_launched",
            extra={
                "job_name": job.name,
                "job_execution_id": execution.execution_id,
                "parameters": parameters.values_dict(),
                "asynchronous": self.is_asynchronous,
            },
        )

        if self._task_executor is None:
            self._execute(job, execution)
        else:
            self._task_executor.submit(self._execute, job, execution)
        return execution

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the task executor, if any."""
        if self._task_executor is not None:
            self._task_executor.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _check_previous_execution(self, job: Job, parameters: JobParameters) -> None:
        last = self._repository.get_last_job_execution(job.name, parameters)
        if last is None:
            return

        if last.status.is_running:
            raise JobExecutionAlreadyRunningError(job.name, last.execution_id)

        if not job.restartable:
            raise JobRestartError(job.name)

        if last.status in (BatchStatus.COMPLETED, BatchStatus.ABANDONED) and len(
            parameters.identifying()
        ) > 0:
            raise JobInstanceAlreadyCompleteError(job.name, parameters.job_key())

    def _execute(self, job: Job, execution: JobExecution) -> None:
        with LogContext.bind(
            job_name=job.name,
            job_execution_id=str(execution.execution_id),
        ):
            try:
                execution.status = BatchStatus.STARTED
                execution.exit_status = ExitStatus.EXECUTING
                execution.start_time = self._clock.now()
                self._repository.update(execution)

                exit_status = job.execute(execution)

                execution.status = BatchStatus.COMPLETED
                execution.exit_status = exit_status or ExitStatus.COMPLETED
            except Exception as exc:
                execution.status = BatchStatus.FAILED
                execution.exit_status = ExitStatus.FAILED
                execution.exit_description = f"{type(exc).__name__}: {exc}"
                execution.failures.append(exc)
                logger.exception(
                    "job_execution_failed",
                    extra={"job_name": job.name, "job_execution_id": execution.execution_id},
                )
            finally:
                execution.end_time = self._clock.now()
                try:
                    self._repository.update(execution)
                except Exception as exc:
                    execution.status = BatchStatus.UNKNOWN
                    execution.failures.append(exc)
                    logger.exception(
                        "job_execution_update_failed",
                        extra={"job_execution_id": execution.execution_id},
                    )
                execution.mark_finished()

        logger.info(
            "job_execution_finished",
            extra={
                "job_name": job.name,
                "job_execution_id": execution.execution_id,
                "status": execution.status.value,
                "exit_status": execution.exit_status.value,
            },
        )
