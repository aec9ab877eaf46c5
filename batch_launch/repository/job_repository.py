"""
JobRepository -- write side of the job execution store.

Contract:
    - ``get_last_job_execution(job_name, parameters)``: latest execution of
      the instance identified by the parameters' job key, or None.
    - ``create_job_execution(job_name, parameters)``: find-or-create the job
      instance and insert a STARTING execution plus its parameters, in one
      transaction run at the configured create isolation level.
    - ``update(execution)``: persist status, exit status and timestamps.

Non-goals:
    - Does NOT decide whether a launch is allowed -- that is the launcher's job.
    - Does NOT create tables -- see ``batch_launch.schema``.
"""

from __future__ import annotations

from sqlalchemy import insert, update
from sqlalchemy.orm import Session, sessionmaker

from batch_kernel.db.engine import Isolation, session_scope
from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.logging_config import get_logger

from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobParameters,
)
from batch_launch.parameters import DefaultJobParametersConverter
from batch_launch.repository.explorer import ExecutionReader
from batch_launch.repository.tables import BatchTables

logger = get_logger("launch.repository")


class JobRepository(ExecutionReader):
    """Persists job instances and executions in the metadata tables."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        tables: BatchTables,
        clock: Clock | None = None,
        isolation_level_for_create: Isolation = Isolation.SERIALIZABLE,
        converter: DefaultJobParametersConverter | None = None,
    ):
        super().__init__(session_factory, tables, converter)
        self._clock = clock or SystemClock()
        self._isolation_level_for_create = isolation_level_for_create

    @property
    def isolation_level_for_create(self) -> Isolation:
        return self._isolation_level_for_create

    def get_last_job_execution(
        self, job_name: str, parameters: JobParameters,
    ) -> JobExecution | None:
        with self._session_factory() as session:
            instance = self._find_instance(session, job_name, parameters.job_key())
            if instance is None:
                return None
            return self._last_execution_of(session, instance)

    def create_job_execution(
        self, job_name: str, parameters: JobParameters,
    ) -> JobExecution:
        """Insert a STARTING execution for the instance keyed by ``parameters``."""
        now = self._clock.now()
        job_key = parameters.job_key()
        t = self._tables

        with session_scope(self._session_factory) as session:
            level = self._isolation_level_for_create.sqlalchemy_level
            if level is not None:
                # Must be the first use of the session's connection.
                session.connection(execution_options={"isolation_level": level})

            instance = self._find_instance(session, job_name, job_key)
            if instance is None:
                result = session.execute(
                    insert(t.job_instance).values(job_name=job_name, job_key=job_key)
                )
                instance_id = result.inserted_primary_key[0]
            else:
                instance_id = instance.instance_id

            result = session.execute(
                insert(t.job_execution).values(
                    job_instance_id=instance_id,
                    create_time=now,
                    status=BatchStatus.STARTING.value,
                    exit_code=ExitStatus.UNKNOWN.value,
                    exit_message="",
                    last_updated=now,
                )
            )
            execution_id = result.inserted_primary_key[0]

            if parameters:
                session.execute(
                    insert(t.job_execution_params),
                    [
                        {
                            "job_execution_id": execution_id,
                            "parameter_name": name,
                            "parameter_type": p.type_name,
                            "parameter_value": p.as_string(),
                            "identifying": "Y" if p.identifying else "N",
                        }
                        for name, p in parameters.items()
                    ],
                )

        logger.info(
            "job_execution_created",
            extra={
                "job_name": job_name,
                "job_instance_id": instance_id,
                "job_execution_id": execution_id,
                "job_key": job_key,
            },
        )

        return JobExecution(
            job_name=job_name,
            parameters=parameters,
            execution_id=execution_id,
            instance_id=instance_id,
            status=BatchStatus.STARTING,
            create_time=now,
        )

    def update(self, execution: JobExecution) -> None:
        """Persist the mutable fields of ``execution``."""
        if execution.execution_id is None:
            raise ValueError("Cannot update a job execution that was never persisted")

        ex = self._tables.job_execution
        with session_scope(self._session_factory) as session:
            session.execute(
                update(ex)
                .where(ex.c.job_execution_id == execution.execution_id)
                .values(
                    status=execution.status.value,
                    exit_code=execution.exit_status.value,
                    exit_message=execution.exit_description,
                    start_time=execution.start_time,
                    end_time=execution.end_time,
                    last_updated=self._clock.now(),
                )
            )
