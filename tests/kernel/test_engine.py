"""Tests for batch_kernel.db.engine and batch_kernel.domain.clock."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, insert, select
from sqlalchemy.orm import sessionmaker

from batch_kernel.db.engine import (
    Isolation,
    create_engine_from_url,
    is_embedded,
    session_scope,
    supports_isolation,
)
from batch_kernel.domain.clock import DeterministicClock, SystemClock


class TestIsolation:
    @pytest.mark.parametrize(
        "isolation,expected",
        [
            (Isolation.SERIALIZABLE, "SERIALIZABLE"),
            (Isolation.READ_COMMITTED, "READ COMMITTED"),
            (Isolation.READ_UNCOMMITTED, "READ UNCOMMITTED"),
            (Isolation.REPEATABLE_READ, "REPEATABLE READ"),
        ],
    )
    def test_sqlalchemy_level(self, isolation, expected):
        assert isolation.sqlalchemy_level == expected

    def test_default_leaves_connection_alone(self):
        assert Isolation.DEFAULT.sqlalchemy_level is None

    @pytest.mark.parametrize(
        "isolation,supported",
        [
            (Isolation.DEFAULT, True),
            (Isolation.READ_UNCOMMITTED, True),
            (Isolation.SERIALIZABLE, True),
            (Isolation.READ_COMMITTED, False),
            (Isolation.REPEATABLE_READ, False),
        ],
    )
    def test_sqlite_supported_levels(self, engine, isolation, supported):
        assert supports_isolation(engine, isolation) is supported

    @pytest.mark.parametrize("isolation", list(Isolation))
    def test_server_database_accepts_every_level(self, isolation):
        server_engine = MagicMock()
        server_engine.dialect.name = "postgresql"
        assert supports_isolation(server_engine, isolation) is True


class TestEngine:
    def test_sqlite_is_embedded(self, engine):
        assert is_embedded(engine)

    def test_in_memory_engine_shares_data_across_sessions(self):
        eng = create_engine_from_url("sqlite:///:memory:")
        metadata = MetaData()
        counter = Table("counter", metadata, Column("id", Integer, primary_key=True))
        metadata.create_all(eng)
        factory = sessionmaker(bind=eng)

        with session_scope(factory) as session:
            session.execute(insert(counter).values(id=1))
        with factory() as session:
            assert session.execute(select(counter.c.id)).scalar_one() == 1
        eng.dispose()

    def test_session_scope_rolls_back_on_error(self):
        eng = create_engine_from_url("sqlite:///:memory:")
        metadata = MetaData()
        counter = Table("counter", metadata, Column("id", Integer, primary_key=True))
        metadata.create_all(eng)
        factory = sessionmaker(bind=eng)

        with pytest.raises(RuntimeError):
            with session_scope(factory) as session:
                session.execute(insert(counter).values(id=1))
                raise RuntimeError("abort")

        with factory() as session:
            assert session.execute(select(counter.c.id)).all() == []
        eng.dispose()


class TestClock:
    def test_system_clock_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_deterministic_clock_is_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_deterministic_clock_advances(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.tick() == start + timedelta(seconds=1)
        clock.advance(59)
        assert clock.now() == start + timedelta(minutes=1)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(10)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target
