"""
Tests for batch_launch.repository -- the job execution store.

Uses in-memory SQLite for fast unit tests.
"""

from datetime import date

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.orm import sessionmaker

from batch_kernel.db.engine import Isolation
from batch_launch.domain.types import (
    BatchStatus,
    ExitStatus,
    JobExecution,
    JobInstance,
    JobParameter,
    JobParameters,
)
from batch_launch.repository import JobExplorer, JobRepository, build_batch_tables


# =============================================================================
# Tables
# =============================================================================


class TestBatchTables:
    def test_default_prefix(self):
        tables = build_batch_tables()
        assert tables.prefix == "BATCH_"
        assert set(tables.metadata.tables) == {
            "BATCH_JOB_INSTANCE",
            "BATCH_JOB_EXECUTION",
            "BATCH_JOB_EXECUTION_PARAMS",
        }

    def test_custom_prefix(self):
        tables = build_batch_tables("APP_")
        assert tables.job_execution.name == "APP_JOB_EXECUTION"

    def test_prefixes_coexist(self, engine):
        build_batch_tables().metadata.create_all(engine)
        build_batch_tables("OTHER_").metadata.create_all(engine)
        names = set(inspect(engine).get_table_names())
        assert {"BATCH_JOB_INSTANCE", "OTHER_JOB_INSTANCE"} <= names


# =============================================================================
# JobRepository
# =============================================================================


class TestCreateJobExecution:
    def test_creates_instance_and_execution(self, repository, explorer, clock):
        params = JobParameters.of(day=date(2024, 1, 31))
        execution = repository.create_job_execution("import_rates", params)

        assert execution.execution_id is not None
        assert execution.instance_id is not None
        assert execution.status is BatchStatus.STARTING
        assert execution.create_time == clock.now()

        instance = explorer.get_job_instance("import_rates", params)
        assert instance == JobInstance(execution.instance_id, "import_rates", params.job_key())

    def test_same_key_reuses_instance(self, repository):
        params = JobParameters.of(a=1)
        first = repository.create_job_execution("job", params)
        second = repository.create_job_execution("job", params)
        assert first.instance_id == second.instance_id
        assert first.execution_id != second.execution_id

    def test_non_identifying_change_reuses_instance(self, repository):
        base = JobParameters({"a": JobParameter(1, "int"), "n": JobParameter("x", identifying=False)})
        other = base.merge({"n": JobParameter("y", identifying=False)})
        first = repository.create_job_execution("job", base)
        second = repository.create_job_execution("job", other)
        assert first.instance_id == second.instance_id

    def test_parameters_persisted(self, repository, explorer):
        params = JobParameters({
            "day": JobParameter(date(2024, 1, 31), "date"),
            "chunk": JobParameter(50, "int", identifying=False),
            "region": JobParameter("eu,us"),
        })
        execution = repository.create_job_execution("job", params)
        (stored,) = explorer.get_job_executions("job")
        assert stored.execution_id == execution.execution_id
        assert stored.parameters == params

    def test_no_parameters(self, repository, tables, session_factory):
        execution = repository.create_job_execution("job", JobParameters())
        with session_factory() as session:
            rows = session.execute(select(tables.job_execution_params)).all()
        assert rows == []
        assert execution.parameters == JobParameters()

    @pytest.mark.parametrize(
        "isolation",
        [Isolation.SERIALIZABLE, Isolation.READ_UNCOMMITTED, Isolation.DEFAULT],
    )
    def test_create_isolation_levels(self, session_factory, tables, clock, isolation):
        repo = JobRepository(
            session_factory, tables, clock=clock, isolation_level_for_create=isolation,
        )
        assert repo.isolation_level_for_create is isolation
        assert repo.create_job_execution("job", JobParameters()).execution_id is not None

    def test_logs_creation(self, repository, captured_logs):
        execution = repository.create_job_execution("job", JobParameters())
        created = [r for r in captured_logs() if r["message"] == "job_execution_created"]
        assert created[0]["job_execution_id"] == execution.execution_id
        assert created[0]["job_name"] == "job"


class TestUpdate:
    def test_update_persists_status(self, repository, explorer, clock):
        execution = repository.create_job_execution("job", JobParameters())
        execution.status = BatchStatus.FAILED
        execution.exit_status = ExitStatus.FAILED
        execution.exit_description = "RuntimeError: boom"
        execution.start_time = clock.now()
        execution.end_time = clock.tick()
        repository.update(execution)

        stored = explorer.get_last_execution_for_job("job")
        assert stored.status is BatchStatus.FAILED
        assert stored.exit_status is ExitStatus.FAILED
        assert stored.exit_description == "RuntimeError: boom"
        assert stored.start_time is not None
        assert stored.end_time is not None

    def test_update_requires_persisted_execution(self, repository):
        with pytest.raises(ValueError):
            repository.update(JobExecution("job"))


class TestGetLastJobExecution:
    def test_none_for_unknown_instance(self, repository):
        assert repository.get_last_job_execution("job", JobParameters.of(a=1)) is None

    def test_latest_of_instance(self, repository):
        params = JobParameters.of(a=1)
        repository.create_job_execution("job", params)
        second = repository.create_job_execution("job", params)
        repository.create_job_execution("job", JobParameters.of(a=2))

        last = repository.get_last_job_execution("job", params)
        assert last.execution_id == second.execution_id
        assert last.parameters == params


# =============================================================================
# JobExplorer
# =============================================================================


class TestJobExplorer:
    def test_job_names(self, repository, explorer):
        repository.create_job_execution("b", JobParameters())
        repository.create_job_execution("a", JobParameters())
        repository.create_job_execution("a", JobParameters.of(x=1))
        assert explorer.get_job_names() == ["a", "b"]

    def test_last_job_instance(self, repository, explorer):
        repository.create_job_execution("job", JobParameters.of(a=1))
        latest = repository.create_job_execution("job", JobParameters.of(a=2))
        instance = explorer.get_last_job_instance("job")
        assert instance.instance_id == latest.instance_id
        assert explorer.get_last_job_execution(instance).execution_id == latest.execution_id

    def test_unknown_job(self, explorer):
        assert explorer.get_last_job_instance("missing") is None
        assert explorer.get_last_execution_for_job("missing") is None
        assert explorer.get_job_executions("missing") == []

    def test_executions_newest_first(self, repository, explorer):
        ids = [
            repository.create_job_execution("job", JobParameters.of(a=i)).execution_id
            for i in range(3)
        ]
        executions = explorer.get_job_executions("job")
        assert [e.execution_id for e in executions] == list(reversed(ids))
        assert len(explorer.get_job_executions("job", limit=2)) == 2

    def test_running_executions(self, repository, explorer):
        running = repository.create_job_execution("job", JobParameters.of(a=1))
        done = repository.create_job_execution("job", JobParameters.of(a=2))
        done.status = BatchStatus.COMPLETED
        repository.update(done)

        found = explorer.find_running_executions("job")
        assert [e.execution_id for e in found] == [running.execution_id]

    def test_explorer_with_separate_prefix_sees_nothing(self, engine, repository):
        repository.create_job_execution("job", JobParameters())
        other = build_batch_tables("OTHER_")
        other.metadata.create_all(engine)
        other_explorer = JobExplorer(sessionmaker(bind=engine), other)
        assert other_explorer.get_job_names() == []
