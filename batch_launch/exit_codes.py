"""Deterministic mapping from job execution outcomes to a process exit code."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from batch_launch.domain.types import JobExecution

SUCCESS = 0
JOB_FAILED = 1


class ExitCodeGenerator(Protocol):
    def get_exit_code(self) -> int: ...


def map_exit_code(
    executions: Sequence[JobExecution],
    startup_error: BaseException | None = None,
) -> int:
    """Exit code for a startup run.

    ``SUCCESS`` when every execution completed (no executions counts as
    success), ``JOB_FAILED`` when any did not or the runner itself failed.
    """
    if startup_error is not None:
        return JOB_FAILED
    if all(execution.is_successful for execution in executions):
        return SUCCESS
    return JOB_FAILED


class JobExecutionExitCodeGenerator:
    """Runner listener that remembers outcomes and derives the exit code."""

    def __init__(self) -> None:
        self._executions: list[JobExecution] = []
        self._startup_error: BaseException | None = None

    @property
    def executions(self) -> tuple[JobExecution, ...]:
        return tuple(self._executions)

    @property
    def startup_error(self) -> BaseException | None:
        return self._startup_error

    def on_job_execution(self, execution: JobExecution) -> None:
        self._executions.append(execution)

    def on_startup_failure(self, error: BaseException) -> None:
        self._startup_error = error

    def get_exit_code(self) -> int:
        return map_exit_code(self._executions, self._startup_error)


def aggregate_exit_code(generators: Iterable[ExitCodeGenerator]) -> int:
    """First non-zero exit code among ``generators``, else ``SUCCESS``."""
    for generator in generators:
        code = generator.get_exit_code()
        if code != SUCCESS:
            return code
    return SUCCESS
