"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from entity_query.core.connection import ConnectionConfig, ConnectionManager
from entity_query.core.engine import Engine


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config.

    Every connection to ``:memory:`` is its own database, so the pool holds
    exactly one connection.
    """
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def engine(sqlite_config: ConnectionConfig) -> Iterator[Engine]:
    eng = Engine(ConnectionManager(sqlite_config))
    yield eng
    eng.connection_manager.close_pool()


@pytest.fixture
def run_script(engine: Engine):
    """Helper to run DDL/seed SQL on the engine's database.

    Usage:
        run_script("CREATE TABLE t (id INTEGER PRIMARY KEY); INSERT INTO t VALUES (1);")
    """

    def _run(script: str) -> None:
        with engine.connection_manager.get_connection() as conn:
            conn.executescript(script)
            conn.commit()

    return _run
