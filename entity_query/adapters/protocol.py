"""What the engine needs from a database backend.

EntityQuery writes every statement with backtick-quoted identifiers and
``:name`` placeholders. An adapter owns the driver: it pools connections,
declares which placeholder style the driver expects (the engine rewrites
statements through ``normalize_params`` accordingly) and hands back raw
DB-API cursors, which the engine wraps in ``DBAPICursor`` so rows can be
read by projection label.

ConnectionManager rejects a backend class that does not satisfy
:class:`DatabaseAdapter`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from entity_query.core.connection import ConnectionConfig


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Driver binding for one database backend."""

    @property
    def paramstyle(self) -> str:
        """``"named"`` when the driver takes ``:name`` as written, ``"pyformat"`` for ``%(name)s``."""
        ...

    def create_pool(self, config: ConnectionConfig) -> Any:
        """Open up to ``config.pool_size`` connections."""
        ...

    def acquire_connection(self, pool: Any) -> Any:
        """Take a connection; raises PoolError when none is free."""
        ...

    def release_connection(self, connection: Any, pool: Any) -> None:
        """Return a connection taken with ``acquire_connection``."""
        ...

    def close_pool(self, pool: Any) -> None:
        ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Run one statement and return the driver cursor.

        Rows may be tuples (``sqlite3.Row`` included) or dicts; tuple
        positions are matched to labels through ``cursor.description``.
        """
        ...
