"""
Job protocol, SimpleJob, parameter incrementers and validators.

Contract:
    ``Job`` defines what the launcher needs from a job definition: a name,
    restartability, an optional incrementer, parameter validation, and an
    ``execute()`` body.  The launcher owns the execution lifecycle (status
    transitions, persistence); the job only does the work.

Non-goals:
    - No step/flow DSL.  A job body is a plain callable.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from batch_kernel.exceptions import JobParametersInvalidError

from batch_launch.domain.types import (
    ExitStatus,
    JobExecution,
    JobParameter,
    JobParameters,
)


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class JobParametersIncrementer(Protocol):
    """Produces the parameters for the next instance of a job."""

    def next(self, parameters: JobParameters) -> JobParameters: ...


@runtime_checkable
class Job(Protocol):
    """Protocol defining a launchable job.

    Contract:
        - ``name``: unique job identifier within a catalog.
        - ``restartable``: whether a FAILED/STOPPED instance may run again.
        - ``incrementer``: optional, used by the startup runner to derive the
          next parameters.
        - ``validate()``: raises ``JobParametersInvalidError``.
        - ``execute()``: does the work; raising marks the execution FAILED.
          Returning an ``ExitStatus`` overrides the default COMPLETED.
    """

    @property
    def name(self) -> str: ...

    @property
    def restartable(self) -> bool: ...

    @property
    def incrementer(self) -> JobParametersIncrementer | None: ...

    def validate(self, parameters: JobParameters) -> None: ...

    def execute(self, execution: JobExecution) -> ExitStatus | None: ...


# =============================================================================
# Incrementers and validators
# =============================================================================


class RunIdIncrementer:
    """Increments a numeric ``run.id`` parameter (starting at 1)."""

    def __init__(self, key: str = "run.id"):
        self.key = key

    def next(self, parameters: JobParameters) -> JobParameters:
        current = parameters.get(self.key)
        run_id = int(current.value) + 1 if current is not None else 1
        return parameters.merge({self.key: JobParameter(run_id, "int", True)})


class DefaultJobParametersValidator:
    """Checks required keys are present and, if set, no unknown keys are."""

    def __init__(
        self,
        required_keys: Iterable[str] = (),
        optional_keys: Iterable[str] = (),
    ):
        self.required_keys = frozenset(required_keys)
        self.optional_keys = frozenset(optional_keys)
        overlap = self.required_keys & self.optional_keys
        if overlap:
            raise ValueError(
                f"Keys cannot be both required and optional: {sorted(overlap)}"
            )

    def validate(self, parameters: JobParameters, job_name: str | None = None) -> None:
        missing = sorted(self.required_keys - set(parameters))
        if missing:
            raise JobParametersInvalidError(
                f"missing required keys {missing}", job_name,
            )
        if self.optional_keys:
            allowed = self.required_keys | self.optional_keys
            unexpected = sorted(set(parameters) - allowed)
            if unexpected:
                raise JobParametersInvalidError(
                    f"unexpected keys {unexpected}", job_name,
                )


# =============================================================================
# SimpleJob
# =============================================================================


class SimpleJob:
    """A job whose body is a single callable.

    Example:
        >>> def load_rates(execution):
        ...     print(execution.parameters.get_value("date"))
        >>> job = SimpleJob("load_rates", load_rates, incrementer=RunIdIncrementer())
    """

    def __init__(
        self,
        name: str,
        work: Callable[[JobExecution], ExitStatus | None],
        *,
        restartable: bool = True,
        incrementer: JobParametersIncrementer | None = None,
        validator: DefaultJobParametersValidator | None = None,
    ):
        if not name or not name.strip():
            raise ValueError("Job name must not be blank")
        self._name = name
        self._work = work
        self._restartable = restartable
        self._incrementer = incrementer
        self._validator = validator

    @property
    def name(self) -> str:
        return self._name

    @property
    def restartable(self) -> bool:
        return self._restartable

    @property
    def incrementer(self) -> JobParametersIncrementer | None:
        return self._incrementer

    def validate(self, parameters: JobParameters) -> None:
        if self._validator is not None:
            self._validator.validate(parameters, self._name)

    def execute(self, execution: JobExecution) -> ExitStatus | None:
        return self._work(execution)

    def __repr__(self) -> str:
        return f"SimpleJob(name={self._name!r})"
