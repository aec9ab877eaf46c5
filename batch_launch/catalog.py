"""
JobCatalog -- name-keyed collection of job definitions.

Contract:
    ``register()`` adds a job; raises DuplicateJobError on a repeated name.
    ``get()`` retrieves by name; raises KeyError if missing.
    ``names()`` returns names in registration order.

The same class serves both discovery tiers: the catalog of explicitly
registered jobs and the secondary job registry.  ``JobSource`` names the
tiers so callers can configure their precedence.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from batch_kernel.exceptions import DuplicateJobError

from batch_launch.job import Job


class JobSource(str, Enum):
    """Where a startup job definition is discovered."""

    CATALOG = "catalog"  # Explicitly registered jobs
    REGISTRY = "registry"  # Secondary job registry


DEFAULT_DISCOVERY_ORDER: tuple[JobSource, ...] = (JobSource.CATALOG, JobSource.REGISTRY)


class JobCatalog:
    """Registry mapping job names to job definitions."""

    def __init__(self, jobs: Iterable[Job] = ()) -> None:
        self._jobs: dict[str, Job] = {}
        for job in jobs:
            self.register(job)

    def register(self, job: Job) -> None:
        """Register a job definition.

        Raises:
            DuplicateJobError: If a job with the same name is already registered.
        """
        if job.name in self._jobs:
            raise DuplicateJobError(job.name)
        self._jobs[job.name] = job

    def unregister(self, name: str) -> None:
        self._jobs.pop(name, None)

    def get(self, name: str) -> Job:
        """Retrieve a registered job by name.

        Raises:
            KeyError: If no job is registered under the given name.
        """
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(
                f"No job registered with name '{name}'. "
                f"Available: {list(self._jobs)}"
            ) from None

    def names(self) -> tuple[str, ...]:
        """Return all registered job names in registration order."""
        return tuple(self._jobs)

    def jobs(self) -> tuple[Job, ...]:
        return tuple(self._jobs.values())

    def __iter__(self) -> Iterator[Job]:
        return iter(tuple(self._jobs.values()))

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs
