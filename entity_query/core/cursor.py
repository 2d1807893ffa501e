"""Tabular cursors consumed by the result mapper.

A cursor is positioned before the first row; ``advance`` moves to the next
row and reports whether one exists, ``read`` looks a value up by its column
label on the current row. Mappers never touch DB-API cursors directly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from entity_query.core.exceptions import ColumnMismatchError, CursorError


@runtime_checkable
class Cursor(Protocol):
    """Label-addressed, forward-only cursor protocol."""

    def advance(self) -> bool:
        """Move to the next row. Returns False once the rows are exhausted."""
        ...

    def has(self, label: str) -> bool:
        """Check whether the result carries a column with this label."""
        ...

    def read(self, label: str) -> Any:
        """Read the value labelled ``label`` on the current row, or None."""
        ...

    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""
        ...


class DBAPICursor:
    """Adapts a DB-API 2.0 cursor to the Cursor protocol.

    Handles tuple-like rows (sqlite3.Row included) and dict-like rows from
    different adapters. Driver errors are wrapped in CursorError.
    """

    def __init__(self, cursor: Any, sql: str | None = None) -> None:
        self._cursor = cursor
        self._sql = sql
        self._row: Any = None
        self._closed = False
        description = cursor.description or ()
        self._index = {desc[0]: position for position, desc in enumerate(description)}

    @property
    def labels(self) -> list[str]:
        return list(self._index)

    def advance(self) -> bool:
        if self._closed:
            return False
        try:
            self._row = self._cursor.fetchone()
        except Exception as e:
            raise CursorError(f"Failed to advance cursor: {e}", self._sql) from e
        return self._row is not None

    def has(self, label: str) -> bool:
        return label in self._index

    def read(self, label: str) -> Any:
        if self._row is None:
            raise CursorError("Cursor is not positioned on a row", self._sql)
        if label not in self._index:
            raise ColumnMismatchError("<result>", [label])
        try:
            if isinstance(self._row, Mapping):
                return self._row[label]
            return self._row[self._index[label]]
        except Exception as e:
            raise CursorError(f"Failed to read column '{label}': {e}", self._sql) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._row = None
        try:
            self._cursor.close()
        except Exception as e:
            raise CursorError(f"Failed to close cursor: {e}", self._sql) from e


class RowCursor:
    """Cursor over already-fetched row dicts."""

    def __init__(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self._rows = iter(rows)
        self._row: Mapping[str, Any] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def advance(self) -> bool:
        if self._closed:
            return False
        self._row = next(self._rows, None)
        return self._row is not None

    def has(self, label: str) -> bool:
        return self._row is not None and label in self._row

    def read(self, label: str) -> Any:
        if self._row is None:
            raise CursorError("Cursor is not positioned on a row")
        try:
            return self._row[label]
        except KeyError:
            raise ColumnMismatchError("<result>", [label]) from None

    def close(self) -> None:
        self._closed = True
        self._row = None
