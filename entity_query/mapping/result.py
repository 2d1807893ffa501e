"""Result mapping - rebuild nested entities from alias-labelled rows.

Every column is looked up by its ``<alias>_<column>`` label, so projection
order does not matter. The join tree is rebuilt from the entity type alone
when none is supplied; it is identical to the one the query was built from.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from enum import Enum
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from entity_query.core.cursor import Cursor
from entity_query.core.exceptions import ColumnMismatchError, ValueCoercionError
from entity_query.core.options import QueryOptions
from entity_query.metadata.descriptor import (
    ColumnDescriptor,
    ColumnType,
    ForeignKeyDescriptor,
    ForeignKeyKind,
)
from entity_query.query.join_graph import JoinGraph, JoinGraphBuilder
from entity_query.query.references import JoinNode

T = TypeVar("T")

_ISO_PARSERS: dict[ColumnType, Callable[[str], Any]] = {
    ColumnType.DATE: datetime.date.fromisoformat,
    ColumnType.TIME: datetime.time.fromisoformat,
    ColumnType.DATETIME: datetime.datetime.fromisoformat,
}


class ResultStream(Generic[T]):
    """Single-pass iterator over mapped entities.

    Owns the cursor it reads from (and anything else registered with
    ``on_close``): they are released exactly once, when the rows run out,
    when mapping fails, on ``close()``, on leaving a ``with`` block, or when
    the stream is garbage collected.
    """

    def __init__(self, rows: Iterator[T], *closers: Callable[[], Any]) -> None:
        self._rows = rows
        self._closers = list(closers)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, closer: Callable[[], Any]) -> None:
        """Run ``closer`` after the resources already registered are released."""
        if self._closed:
            closer()
            return
        self._closers.append(closer)

    def __iter__(self) -> ResultStream[T]:
        return self

    def __next__(self) -> T:
        if self._closed:
            raise StopIteration
        try:
            return next(self._rows)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with ExitStack() as stack:
            # ExitStack unwinds last-in first-out.
            for closer in reversed(self._closers):
                stack.callback(closer)
            close_rows = getattr(self._rows, "close", None)
            if close_rows is not None:
                close_rows()

    def __enter__(self) -> ResultStream[T]:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            self.close()


@lru_cache(maxsize=512)
def _adapter(python_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(python_type)


def _coerce_temporal(column_type: ColumnType, value: Any) -> Any:
    if isinstance(value, str) and column_type in _ISO_PARSERS:
        try:
            return _ISO_PARSERS[column_type](value)
        except ValueError:
            return value
    if column_type is ColumnType.DATE and isinstance(value, datetime.datetime):
        return value.date()
    if column_type is ColumnType.TIME:
        if isinstance(value, datetime.datetime):
            return value.time()
        if isinstance(value, datetime.timedelta):
            # MySQL returns TIME columns as timedelta.
            return (datetime.datetime.min + value).time()
    return value


def _find_enum(enum_type: type[Enum], raw: Any) -> Enum | None:
    identifier = int(raw)
    for member in enum_type:
        if getattr(member, "id") == identifier:  # noqa: B009
            return member
    return None


@lru_cache(maxsize=256)
def _stored_by_id(enum_type: type[Enum]) -> bool:
    """True when every member exposes an integer ``id``, which is what gets written."""
    return all(isinstance(getattr(member, "id", None), int) for member in enum_type)


class ResultMapper(Generic[T]):
    """Maps label-addressed rows onto ``entity_type`` and its references.

    Args:
        entity_type: The queried entity.
        graph: Join graph the query was built from; rebuilt from the type
            when omitted.
        root_alias: Alias of the root entity when rebuilding the graph.
        options: Join depth and cycle handling when rebuilding the graph.
    """

    def __init__(
        self,
        entity_type: type[T],
        graph: JoinGraph | None = None,
        *,
        root_alias: str | None = None,
        options: QueryOptions | None = None,
    ) -> None:
        self._entity_type = entity_type
        if graph is None:
            options = options or QueryOptions()
            builder = JoinGraphBuilder(options.max_join_depth, options.strict_cycles)
            graph = builder.build(entity_type, root_alias)
        self._root = graph.root

    @property
    def root(self) -> JoinNode:
        return self._root

    def map_one(self, cursor: Cursor) -> T | None:
        """Map the first row, or return None when there is none. Closes the cursor."""
        try:
            if not cursor.advance():
                return None
            return self.map_row(cursor)
        finally:
            cursor.close()

    def map_all(self, cursor: Cursor) -> ResultStream[T]:
        """Lazily map every row. The stream closes the cursor."""
        return ResultStream(self._iterate(cursor), cursor.close)

    def map_list(self, cursor: Cursor) -> list[T]:
        with self.map_all(cursor) as stream:
            return list(stream)

    def map_row(self, cursor: Cursor) -> T:
        """Map the row the cursor is positioned on."""
        return self._materialize(cursor, self._root)  # type: ignore[no-any-return]

    def _iterate(self, cursor: Cursor) -> Iterator[T]:
        while cursor.advance():
            yield self.map_row(cursor)

    def _materialize(self, cursor: Cursor, node: JoinNode) -> Any:
        descriptor = node.descriptor
        values: dict[str, Any] = {}

        for member in descriptor.members:
            if isinstance(member, ColumnDescriptor):
                value = self._read(cursor, node, member.column_name)
                if value is not None:
                    values[member.field_name] = self._convert(descriptor.name, member, value)
                continue

            reference = self._reference(cursor, node, member)
            if reference is not None:
                values[member.field_name] = reference

        try:
            return descriptor.entity_type(**values)
        except TypeError as e:
            raise ValueCoercionError(descriptor.name, "<init>", str(e)) from e

    def _reference(self, cursor: Cursor, node: JoinNode, member: ForeignKeyDescriptor) -> Any:
        raw = self._read(cursor, node, member.column_name)
        if raw is None:
            return None

        if member.kind is ForeignKeyKind.ENUMERATION:
            try:
                return _find_enum(member.target, raw)
            except (TypeError, ValueError) as e:
                raise ValueCoercionError(node.descriptor.name, member.field_name, str(e)) from e

        child = node.children.get(member.field_name)
        if child is None:
            # Reference not joined (cycle truncation).
            return None
        id_column = child.descriptor.column_for("id")
        if id_column is not None and self._read(cursor, child, id_column.column_name) is None:
            # Outer join found no referenced row.
            return None
        return self._materialize(cursor, child)

    @staticmethod
    def _read(cursor: Cursor, node: JoinNode, column_name: str) -> Any:
        try:
            return cursor.read(node.label_for(column_name))
        except ColumnMismatchError as e:
            raise ColumnMismatchError(node.descriptor.name, e.missing_fields) from e

    @staticmethod
    def _convert(entity: str, column: ColumnDescriptor, value: Any) -> Any:
        if column.column_type is ColumnType.ANY:
            return value
        value = _coerce_temporal(column.column_type, value)
        python_type = column.python_type
        if isinstance(python_type, type) and type(value) is python_type:
            return value
        if column.column_type is ColumnType.ENUM and _stored_by_id(python_type):
            try:
                member = _find_enum(python_type, value)
            except (TypeError, ValueError) as e:
                raise ValueCoercionError(entity, column.field_name, str(e)) from e
            if member is None:
                raise ValueCoercionError(
                    entity, column.field_name, f"no {python_type.__name__} member with id {value!r}"
                )
            return member
        try:
            return _adapter(python_type).validate_python(value)
        except ValidationError as e:
            raise ValueCoercionError(entity, column.field_name, str(e)) from e
