"""
JobExplorer -- read side of the job execution store.

Contract:
    - ``get_job_names()``: names of all jobs with at least one instance.
    - ``get_last_job_instance()`` / ``get_last_job_execution()``: latest by id.
    - ``get_job_executions(job_name)``: every execution, newest first.
    - ``find_running_executions(job_name)``: executions still in flight.

Non-goals:
    - Never writes.  The launcher writes through ``JobRepository``.
"""

from __future__ import annotations

from sqlalchemy import Row, select
from sqlalchemy.orm import Session, sessionmaker

from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobInstance,
    JobParameters,
)
from batch_launch.parameters import DefaultJobParametersConverter
from batch_launch.repository.tables import BatchTables


class ExecutionReader:
    """Row-to-DTO mapping shared by the explorer and the repository."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        tables: BatchTables,
        converter: DefaultJobParametersConverter | None = None,
    ):
        self._session_factory = session_factory
        self._tables = tables
        self._converter = converter or DefaultJobParametersConverter()

    @property
    def tables(self) -> BatchTables:
        return self._tables

    def _load_parameters(self, session: Session, execution_id: int) -> JobParameters:
        params = self._tables.job_execution_params
        rows = session.execute(
            select(params)
            .where(params.c.job_execution_id == execution_id)
            .order_by(params.c.parameter_name)
        ).all()
        return JobParameters({
            row.parameter_name: self._converter.decode(
                row.parameter_name,
                row.parameter_value or "",
                row.parameter_type,
                row.identifying == "Y",
            )
            for row in rows
        })

    def _to_execution(self, session: Session, row: Row, job_name: str) -> JobExecution:
        exit_code = row.exit_code or ExitStatus.UNKNOWN.value
        return JobExecution(
            job_name=job_name,
            parameters=self._load_parameters(session, row.job_execution_id),
            execution_id=row.job_execution_id,
            instance_id=row.job_instance_id,
            status=BatchStatus(row.status),
            exit_status=(
                ExitStatus(exit_code)
                if exit_code in ExitStatus._value2member_map_
                else ExitStatus.UNKNOWN
            ),
            exit_description=row.exit_message or "",
            create_time=row.create_time,
            start_time=row.start_time,
            end_time=row.end_time,
        )

    def _find_instance(
        self, session: Session, job_name: str, job_key: str,
    ) -> JobInstance | None:
        inst = self._tables.job_instance
        row = session.execute(
            select(inst).where(inst.c.job_name == job_name, inst.c.job_key == job_key)
        ).one_or_none()
        if row is None:
            return None
        return JobInstance(row.job_instance_id, row.job_name, row.job_key)

    def _last_execution_of(
        self, session: Session, instance: JobInstance,
    ) -> JobExecution | None:
        ex = self._tables.job_execution
        row = session.execute(
            select(ex)
            .where(ex.c.job_instance_id == instance.instance_id)
            .order_by(ex.c.job_execution_id.desc())
            .limit(1)
        ).one_or_none()
        if row is None:
            return None
        return self._to_execution(session, row, instance.job_name)


class JobExplorer(ExecutionReader):
    """Read-only queries over the job execution store."""

    def get_job_names(self) -> list[str]:
        inst = self._tables.job_instance
        with self._session_factory() as session:
            return list(
                session.execute(
                    select(inst.c.job_name).distinct().order_by(inst.c.job_name)
                ).scalars()
            )

    def get_last_job_instance(self, job_name: str) -> JobInstance | None:
        inst = self._tables.job_instance
        with self._session_factory() as session:
            row = session.execute(
                select(inst)
                .where(inst.c.job_name == job_name)
                .order_by(inst.c.job_instance_id.desc())
                .limit(1)
            ).one_or_none()
        if row is None:
            return None
        return JobInstance(row.job_instance_id, row.job_name, row.job_key)

    def get_job_instance(self, job_name: str, parameters: JobParameters) -> JobInstance | None:
        with self._session_factory() as session:
            return self._find_instance(session, job_name, parameters.job_key())

    def get_last_job_execution(self, instance: JobInstance) -> JobExecution | None:
        with self._session_factory() as session:
            return self._last_execution_of(session, instance)

    def get_last_execution_for_job(self, job_name: str) -> JobExecution | None:
        """Latest execution across every instance of ``job_name``."""
        executions = self.get_job_executions(job_name, limit=1)
        return executions[0] if executions else None

    def get_job_executions(self, job_name: str, limit: int | None = None) -> list[JobExecution]:
        """Every execution of ``job_name``, newest first."""
        inst = self._tables.job_instance
        ex = self._tables.job_execution
        query = (
            select(ex)
            .join(inst, inst.c.job_instance_id == ex.c.job_instance_id)
            .where(inst.c.job_name == job_name)
            .order_by(ex.c.job_execution_id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        with self._session_factory() as session:
            rows = session.execute(query).all()
            return [self._to_execution(session, row, job_name) for row in rows]

    def find_running_executions(self, job_name: str) -> list[JobExecution]:
        return [e for e in self.get_job_executions(job_name) if e.is_running]
