"""Unit tests for Engine and DBAPICursor."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from entity_query.core.connection import ConnectionConfig
from entity_query.core.cursor import Cursor, DBAPICursor, RowCursor
from entity_query.core.engine import Engine
from entity_query.core.exceptions import (
    AdapterError,
    ColumnMismatchError,
    CursorError,
    ExecutionError,
    PoolError,
)
from entity_query.core.options import QueryOptions
from entity_query.mapping.result import ResultStream


@pytest.fixture
def seeded(engine: Engine, run_script) -> Engine:
    run_script(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT);
        INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com');
        INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com');
        """
    )
    return engine


class TestEngine:
    def test_fetch_one_returns_dict(self, seeded: Engine) -> None:
        result = seeded.fetch_one("SELECT id, name, email FROM users WHERE id = :user_id", {"user_id": 1})
        assert result == {"id": 1, "name": "Alice", "email": "alice@example.com"}

    def test_fetch_one_returns_none_on_zero_rows(self, seeded: Engine) -> None:
        assert seeded.fetch_one("SELECT id FROM users WHERE id = :user_id", {"user_id": 999}) is None

    def test_fetch_all_returns_list_of_dicts(self, seeded: Engine) -> None:
        results = seeded.fetch_all("SELECT id, name FROM users ORDER BY name")
        assert [r["name"] for r in results] == ["Alice", "Bob"]

    def test_fetch_scalar(self, seeded: Engine) -> None:
        assert seeded.fetch_scalar("SELECT COUNT(*) AS cnt FROM users") == 2

    def test_fetch_scalar_no_rows(self, seeded: Engine) -> None:
        assert seeded.fetch_scalar("SELECT id FROM users WHERE id = 0") is None

    def test_execute_returns_row_count(self, seeded: Engine) -> None:
        affected = seeded.execute("UPDATE users SET email = :email", {"email": "x@example.com"})
        assert affected == 2

    def test_insert_returns_new_id(self, seeded: Engine) -> None:
        new_id = seeded.insert("INSERT INTO users (name, email) VALUES (:name, :email)", {"name": "C", "email": "c"})
        assert new_id == 3

    def test_driver_errors_are_wrapped(self, seeded: Engine) -> None:
        with pytest.raises(ExecutionError, match="Query failed") as exc_info:
            seeded.fetch_all("SELECT nope FROM users")
        assert exc_info.value.sql == "SELECT nope FROM users"
        assert exc_info.value.__cause__ is not None

    def test_connection_released_after_error(self, seeded: Engine) -> None:
        with pytest.raises(ExecutionError):
            seeded.fetch_one("SELECT nope FROM users")
        assert seeded.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_stream_holds_connection_until_closed(self, seeded: Engine) -> None:
        stream = seeded.stream("SELECT id FROM users ORDER BY id")
        assert isinstance(stream, ResultStream)
        assert next(stream) == {"id": 1}
        with pytest.raises(PoolError):
            seeded.fetch_scalar("SELECT 1")
        stream.close()
        assert seeded.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_exhausted_stream_releases_connection(self, seeded: Engine) -> None:
        assert [row["id"] for row in seeded.stream("SELECT id FROM users ORDER BY id")] == [1, 2]
        assert seeded.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_default_options(self, engine: Engine) -> None:
        assert engine.options == QueryOptions()
        assert engine.options.max_join_depth == 16
        assert engine.options.strict_cycles is False

    def test_from_config(self, sqlite_config: ConnectionConfig) -> None:
        eng = Engine.from_config(sqlite_config, QueryOptions(strict_cycles=True))
        assert eng.options.strict_cycles is True
        assert eng.connection_manager.config is sqlite_config

    def test_unknown_driver(self) -> None:
        with pytest.raises(AdapterError, match="Unsupported database driver"):
            Engine.from_config(ConnectionConfig(driver="oracle", database="x"))


class TestQueryOptions:
    def test_depth_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            QueryOptions(max_join_depth=0)

    def test_frozen(self) -> None:
        with pytest.raises(ValueError):
            QueryOptions().strict_cycles = True  # type: ignore[misc]


class TestDBAPICursor:
    def test_implements_protocol(self) -> None:
        assert isinstance(DBAPICursor(MagicMock(description=[])), Cursor)
        assert isinstance(RowCursor([]), Cursor)

    def test_tuple_rows(self) -> None:
        raw = MagicMock(description=[("a_id",), ("a_name",)])
        raw.fetchone.side_effect = [(1, "x"), None]
        cursor = DBAPICursor(raw)
        assert cursor.labels == ["a_id", "a_name"]
        assert cursor.advance() is True
        assert cursor.read("a_name") == "x"
        assert cursor.has("a_id")
        assert cursor.advance() is False

    def test_mapping_rows(self) -> None:
        raw = MagicMock(description=[("a_id",)])
        raw.fetchone.side_effect = [{"a_id": 5}]
        cursor = DBAPICursor(raw)
        cursor.advance()
        assert cursor.read("a_id") == 5

    def test_unknown_label(self) -> None:
        raw = MagicMock(description=[("a_id",)])
        raw.fetchone.return_value = (1,)
        cursor = DBAPICursor(raw)
        cursor.advance()
        with pytest.raises(ColumnMismatchError):
            cursor.read("b_id")

    def test_read_before_advance(self) -> None:
        with pytest.raises(CursorError, match="not positioned"):
            DBAPICursor(MagicMock(description=[("a_id",)])).read("a_id")

    def test_advance_errors_are_wrapped(self) -> None:
        raw = MagicMock(description=[("a_id",)])
        raw.fetchone.side_effect = RuntimeError("connection lost")
        with pytest.raises(CursorError, match="connection lost"):
            DBAPICursor(raw, "SELECT 1").advance()

    def test_close_is_idempotent(self) -> None:
        raw = MagicMock(description=[])
        cursor = DBAPICursor(raw)
        cursor.close()
        cursor.close()
        raw.close.assert_called_once()
        assert cursor.advance() is False
