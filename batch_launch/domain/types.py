"""
batch_launch.domain.types -- Value objects for launching batch jobs.

Enum status fields and frozen dataclasses, except ``JobExecution``: an
execution handed back by an asynchronous launcher is still in flight, and
the worker thread moves it to its terminal state in place.

Invariants enforced:
    - JobParameters is immutable; ``merge()`` returns a new instance.
    - ``job_key()`` depends only on identifying parameters, sorted by name.
    - A JobExecution reaches a terminal state exactly once
      (``mark_finished()`` sets the completion event).
"""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from batch_kernel.exceptions import JobExecutionFailedError


# =============================================================================
# Status enums
# =============================================================================


class BatchStatus(str, Enum):
    """Lifecycle status of a job execution.

    Declaration order is severity order: COMPLETED is the only successful
    terminal state, everything after it is in flight or unsuccessful.
    """

    COMPLETED = "COMPLETED"
    STARTING = "STARTING"
    STARTED = "STARTED"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_running(self) -> bool:
        return self in (BatchStatus.STARTING, BatchStatus.STARTED, BatchStatus.STOPPING)

    @property
    def is_unsuccessful(self) -> bool:
        return self in (BatchStatus.FAILED, BatchStatus.ABANDONED, BatchStatus.UNKNOWN)

    @property
    def is_restartable(self) -> bool:
        return self in (BatchStatus.FAILED, BatchStatus.STOPPED, BatchStatus.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return not self.is_running


class ExitStatus(str, Enum):
    """Exit status recorded on a job execution (not the process exit code)."""

    UNKNOWN = "UNKNOWN"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    NOOP = "NOOP"
    FAILED = "FAILED"
    STOPPED = "STOPPED"


# =============================================================================
# Parameters
# =============================================================================


def _format_value(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class JobParameter:
    """One typed job parameter."""

    value: Any
    type_name: str = "str"
    identifying: bool = True

    def as_string(self) -> str:
        return _format_value(self.value)


_PYTHON_TYPE_NAMES: tuple[tuple[type, str], ...] = (
    (bool, "bool"),  # before int: bool is an int subclass
    (int, "int"),
    (float, "float"),
    (Decimal, "decimal"),
    (datetime, "datetime"),  # before date: datetime is a date subclass
    (date, "date"),
    (str, "str"),
)


class JobParameters(Mapping[str, JobParameter]):
    """Immutable, ordered mapping of parameter name to ``JobParameter``."""

    __slots__ = ("_parameters",)

    def __init__(self, parameters: Mapping[str, JobParameter] | None = None):
        self._parameters = MappingProxyType(dict(parameters or {}))

    @classmethod
    def of(cls, identifying: bool = True, **values: Any) -> JobParameters:
        """Build parameters from plain Python values, inferring type names."""
        return cls({
            name: JobParameter(value, _type_name_for(value), identifying)
            for name, value in values.items()
        })

    def __getitem__(self, name: str) -> JobParameter:
        return self._parameters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JobParameters):
            return dict(self._parameters) == dict(other._parameters)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={p.as_string()}" for k, p in self._parameters.items())
        return f"JobParameters({inner})"

    def get_value(self, name: str, default: Any = None) -> Any:
        parameter = self._parameters.get(name)
        return parameter.value if parameter is not None else default

    def values_dict(self) -> dict[str, Any]:
        return {name: p.value for name, p in self._parameters.items()}

    def identifying(self) -> JobParameters:
        return JobParameters({k: p for k, p in self._parameters.items() if p.identifying})

    def merge(self, other: Mapping[str, JobParameter]) -> JobParameters:
        """Return new parameters with ``other`` layered on top of these."""
        merged = dict(self._parameters)
        merged.update(other)
        return JobParameters(merged)

    def job_key(self) -> str:
        """Deterministic job-instance key over the identifying parameters."""
        tokens = [
            f"{name}={p.as_string()}:{p.type_name};"
            for name, p in sorted(self._parameters.items())
            if p.identifying
        ]
        return hashlib.sha256("".join(tokens).encode("utf-8")).hexdigest()


def _type_name_for(value: Any) -> str:
    for py_type, name in _PYTHON_TYPE_NAMES:
        if isinstance(value, py_type):
            return name
    return "str"


# =============================================================================
# Instances and executions
# =============================================================================


@dataclass(frozen=True)
class JobInstance:
    """A job name bound to one set of identifying parameters."""

    instance_id: int
    job_name: str
    job_key: str


@dataclass(eq=False)
class JobExecution:
    """One run attempt of a job; may still be in flight.

    ``execution_id`` is None for outcomes of launches that were rejected
    before anything was persisted.
    """

    job_name: str
    parameters: JobParameters = field(default_factory=JobParameters)
    execution_id: int | None = None
    instance_id: int | None = None
    status: BatchStatus = BatchStatus.STARTING
    exit_status: ExitStatus = ExitStatus.UNKNOWN
    exit_description: str = ""
    failures: list[BaseException] = field(default_factory=list)
    create_time: datetime | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    _finished: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        if self.status.is_terminal:
            self._finished.set()

    @classmethod
    def rejected(
        cls,
        job_name: str,
        parameters: JobParameters,
        error: BaseException,
        at: datetime | None = None,
    ) -> JobExecution:
        """Terminal FAILED outcome for a launch that never started."""
        now = at or datetime.now(timezone.utc)
        return cls(
            job_name=job_name,
            parameters=parameters,
            status=BatchStatus.FAILED,
            exit_status=ExitStatus.FAILED,
            exit_description=f"{type(error).__name__}: {error}",
            failures=[error],
            create_time=now,
            end_time=now,
        )

    @property
    def is_running(self) -> bool:
        return self.status.is_running

    @property
    def is_successful(self) -> bool:
        return self.status is BatchStatus.COMPLETED

    def mark_finished(self) -> None:
        self._finished.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the execution is terminal; return whether it is."""
        return self._finished.wait(timeout)

    def raise_for_status(self) -> None:
        """Raise ``JobExecutionFailedError`` unless the execution completed."""
        if not self.is_successful:
            raise JobExecutionFailedError(
                self.job_name, self.status.value, self.exit_description,
            )
