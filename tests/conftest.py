"""
Pytest fixtures for the batch launcher test suite.

Provides:
- Structured logging configuration and log capture
- In-memory SQLite metadata store (tables, session factory, repository, explorer)
- A deterministic clock shared by every component under test

File-backed SQLite (``file_store``) is available for tests that run jobs on
worker threads.
"""

import json
import logging
from io import StringIO
from pathlib import Path
from typing import Callable

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from batch_kernel.db.engine import create_engine_from_url
from batch_kernel.domain.clock import DeterministicClock
from batch_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

from batch_launch.launcher import SimpleJobLauncher
from batch_launch.repository import (
    BatchTables,
    JobExplorer,
    JobRepository,
    build_batch_tables,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture batch_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, launcher):
            launcher.run(job, params)
            logs = captured_logs()
            assert any(r["message"] == "job_launched" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("batch_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Metadata store fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine (single shared connection)."""
    eng = create_engine_from_url("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def tables(engine) -> BatchTables:
    batch_tables = build_batch_tables()
    batch_tables.metadata.create_all(engine)
    return batch_tables


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory, tables, clock) -> JobRepository:
    return JobRepository(session_factory, tables, clock=clock)


@pytest.fixture
def explorer(session_factory, tables) -> JobExplorer:
    return JobExplorer(session_factory, tables)


@pytest.fixture
def launcher(repository, clock) -> SimpleJobLauncher:
    """Synchronous launcher: ``run()`` returns a terminal execution."""
    return SimpleJobLauncher(repository, clock=clock)


@pytest.fixture
def file_store(tmp_path: Path, clock) -> Callable[[], tuple[JobRepository, JobExplorer]]:
    """
    File-backed SQLite store for tests that run jobs on worker threads.

    Returns a factory so the test controls when tables are created.
    """
    engines: list[Engine] = []

    def _make() -> tuple[JobRepository, JobExplorer]:
        eng = create_engine_from_url(f"sqlite:///{tmp_path / 'batch.db'}")
        engines.append(eng)
        batch_tables = build_batch_tables()
        batch_tables.metadata.create_all(eng)
        factory = sessionmaker(bind=eng, expire_on_commit=False)
        return (
            JobRepository(factory, batch_tables, clock=clock),
            JobExplorer(factory, batch_tables),
        )

    yield _make

    for eng in engines:
        eng.dispose()
