"""Query execution engine.

The Engine binds parameters, executes through the adapter, wraps the
driver cursor and hands it to a mapper. Connections go back to the pool as
soon as the result is consumed or the stream is closed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any, TypeVar

from entity_query.core.connection import ConnectionConfig, ConnectionManager
from entity_query.core.cursor import DBAPICursor
from entity_query.core.exceptions import ExecutionError
from entity_query.core.options import QueryOptions
from entity_query.core.params import normalize_params
from entity_query.mapping.result import ResultStream

if TYPE_CHECKING:
    from entity_query.mapping.protocol import Mapper
    from entity_query.query.query import EntityQuery

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _row_dicts(cursor: DBAPICursor) -> Iterator[dict[str, Any]]:
    labels = cursor.labels
    while cursor.advance():
        yield {label: cursor.read(label) for label in labels}


class Engine:
    """Synchronous query execution engine."""

    def __init__(
        self,
        connection_manager: ConnectionManager,
        options: QueryOptions | None = None,
    ) -> None:
        self._connection_manager = connection_manager
        self._paramstyle = connection_manager.adapter.paramstyle
        self.options = options or QueryOptions()

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        options: QueryOptions | None = None,
    ) -> Engine:
        """Create an Engine from a ConnectionConfig.

        Args:
            config: ConnectionConfig instance
            options: Join depth and cycle handling for entity queries

        Returns:
            Engine instance
        """
        return cls(ConnectionManager(config), options)

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connection_manager

    def query(self, entity_type: type[T], alias: str | None = None) -> EntityQuery[T]:
        """Start an entity query."""
        from entity_query.query.query import EntityQuery

        return EntityQuery(entity_type, self, alias=alias)

    def _execute(self, connection: Any, sql: str, params: dict[str, Any] | None) -> Any:
        logger.debug("Executing: %s %s", sql, params or {})
        try:
            return self._connection_manager.adapter.execute(
                connection, normalize_params(sql, self._paramstyle), params
            )
        except Exception as e:
            raise ExecutionError(f"Query failed: {e}", sql) from e

    def fetch_one(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        mapper: Mapper[T] | None = None,
    ) -> Any:
        """Fetch the first row.

        Returns None if zero rows match.
        """
        with self._connection_manager.get_connection() as conn:
            cursor = DBAPICursor(self._execute(conn, sql, params), sql)
            if mapper is not None:
                return mapper.map_one(cursor)
            try:
                return next(_row_dicts(cursor), None)
            finally:
                cursor.close()

    def fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        mapper: Mapper[T] | None = None,
    ) -> list[Any]:
        """Fetch all matching rows."""
        with self.stream(sql, params, mapper=mapper) as rows:
            return list(rows)

    def stream(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        mapper: Mapper[T] | None = None,
    ) -> ResultStream[Any]:
        """Lazily fetch rows.

        The pooled connection stays checked out until the stream is exhausted
        or closed.
        """
        resources = ExitStack()
        try:
            conn = resources.enter_context(self._connection_manager.get_connection())
            cursor = DBAPICursor(self._execute(conn, sql, params), sql)
        except BaseException:
            resources.close()
            raise

        if mapper is None:
            rows: ResultStream[Any] = ResultStream(_row_dicts(cursor), cursor.close)
        else:
            mapped = mapper.map_all(cursor)
            rows = mapped if isinstance(mapped, ResultStream) else ResultStream(mapped, cursor.close)
        rows.on_close(resources.close)
        return rows

    def fetch_scalar(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Fetch a single scalar value (first column of first row)."""
        with self._connection_manager.get_connection() as conn:
            cursor = DBAPICursor(self._execute(conn, sql, params), sql)
            try:
                if not cursor.advance():
                    return None
                return cursor.read(cursor.labels[0])
            finally:
                cursor.close()

    def execute(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> int:
        """Execute a write statement. Returns affected row count."""
        with self._connection_manager.get_connection() as conn:
            cursor = self._execute(conn, sql, params)
            conn.commit()
            return int(cursor.rowcount)

    def insert(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> int | None:
        """Execute an INSERT. Returns the id generated for the new row."""
        with self._connection_manager.get_connection() as conn:
            cursor = self._execute(conn, sql, params)
            conn.commit()
            return cursor.lastrowid  # type: ignore[no-any-return]
