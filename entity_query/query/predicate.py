"""Predicate expressions and their SQL translation.

``col("author.name") == "Ada"`` builds a predicate tree; ``to_sql`` renders
it against a join tree, qualifying every column with the alias of the
entity it belongs to and binding values as named parameters::

    predicate = (col("title").like("A%") & (col("pages") > 100)) | col("author").is_null()
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from entity_query.core.exceptions import UnknownColumnError
from entity_query.core.params import to_db_value
from entity_query.query.references import ColumnReference, JoinNode


class OrderDirection(Enum):
    ASC = "ASC"
    DESC = "DESC"


class ParamBinder:
    """Collects bound values and hands out ``:pN`` placeholders."""

    def __init__(self, prefix: str = "p") -> None:
        self._prefix = prefix
        self.params: dict[str, Any] = {}

    def bind(self, value: Any) -> str:
        name = f"{self._prefix}{len(self.params)}"
        self.params[name] = to_db_value(value)
        return f":{name}"


def resolve_column(context: JoinNode, path: str) -> ColumnReference:
    """Resolve a dotted field path (``author.country.name``) to a column.

    A path ending on a reference field resolves to its local id column.
    """
    node = context
    *hops, last = path.split(".")
    for hop in hops:
        child = node.children.get(hop)
        if child is None:
            raise UnknownColumnError(context.descriptor.name, path)
        node = child

    reference = node.reference_for(last)
    if reference is not None:
        return reference
    foreign_key = node.descriptor.foreign_key_for(last)
    if foreign_key is not None:
        reference = node.reference_for(foreign_key.id_field_name)
        if reference is not None:
            return reference
    raise UnknownColumnError(context.descriptor.name, path)


class Expression:
    """Anything that renders to SQL against a join tree."""

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        raise NotImplementedError


class Predicate(Expression):
    """Boolean expression; combine with ``&``, ``|`` and ``~``."""

    def __and__(self, other: Predicate) -> Predicate:
        if isinstance(other, _True):
            return self
        return And(self, other)

    def __or__(self, other: Predicate) -> Predicate:
        return Or(self, other)

    def __invert__(self) -> Predicate:
        return Not(self)


class _True(Predicate):
    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return "1 = 1"

    def __and__(self, other: Predicate) -> Predicate:
        return other

    def __repr__(self) -> str:
        return "TRUE"


TRUE: Predicate = _True()


class Column(Expression):
    """Reference to an entity field by dotted path."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, path: str) -> None:
        self.path = path

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return resolve_column(context, self.path).sql_notation

    def __eq__(self, other: Any) -> Predicate:  # type: ignore[override]
        if other is None:
            return IsNull(self)
        return Comparison(self, "=", other)

    def __ne__(self, other: Any) -> Predicate:  # type: ignore[override]
        if other is None:
            return Not(IsNull(self))
        return Comparison(self, "<>", other)

    def __lt__(self, other: Any) -> Predicate:
        return Comparison(self, "<", other)

    def __le__(self, other: Any) -> Predicate:
        return Comparison(self, "<=", other)

    def __gt__(self, other: Any) -> Predicate:
        return Comparison(self, ">", other)

    def __ge__(self, other: Any) -> Predicate:
        return Comparison(self, ">=", other)

    def is_null(self) -> Predicate:
        return IsNull(self)

    def is_not_null(self) -> Predicate:
        return Not(IsNull(self))

    def in_(self, values: Iterable[Any]) -> Predicate:
        return In(self, list(values))

    def like(self, pattern: str) -> Predicate:
        return Comparison(self, "LIKE", pattern)

    def asc(self) -> OrderTerm:
        return OrderTerm(self, OrderDirection.ASC)

    def desc(self) -> OrderTerm:
        return OrderTerm(self, OrderDirection.DESC)

    def __repr__(self) -> str:
        return f"col({self.path!r})"


def col(path: str) -> Column:
    """Column expression for a field path of the queried entity."""
    return Column(path)


def _operand(value: Any, context: JoinNode, binder: ParamBinder) -> str:
    if isinstance(value, Expression):
        return value.to_sql(context, binder)
    return binder.bind(value)


class Comparison(Predicate):
    def __init__(self, left: Expression, operator: str, right: Any) -> None:
        self.left = left
        self.operator = operator
        self.right = right

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        left = self.left.to_sql(context, binder)
        return f"{left} {self.operator} {_operand(self.right, context, binder)}"


class IsNull(Predicate):
    def __init__(self, operand: Expression) -> None:
        self.operand = operand

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return f"{self.operand.to_sql(context, binder)} IS NULL"


class In(Predicate):
    def __init__(self, operand: Expression, values: list[Any]) -> None:
        self.operand = operand
        self.values = values

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        if not self.values:
            return "1 = 0"
        placeholders = ", ".join(_operand(v, context, binder) for v in self.values)
        return f"{self.operand.to_sql(context, binder)} IN ({placeholders})"


class And(Predicate):
    def __init__(self, left: Predicate, right: Predicate) -> None:
        self.left = left
        self.right = right

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return f"({self.left.to_sql(context, binder)} AND {self.right.to_sql(context, binder)})"


class Or(Predicate):
    def __init__(self, left: Predicate, right: Predicate) -> None:
        self.left = left
        self.right = right

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return f"({self.left.to_sql(context, binder)} OR {self.right.to_sql(context, binder)})"


class Not(Predicate):
    def __init__(self, operand: Predicate) -> None:
        self.operand = operand

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return f"NOT ({self.operand.to_sql(context, binder)})"


class OrderTerm:
    """A column and the direction to sort it in."""

    def __init__(self, column: Column, direction: OrderDirection = OrderDirection.ASC) -> None:
        self.column = column
        self.direction = direction

    def to_sql(self, context: JoinNode, binder: ParamBinder) -> str:
        return f"{self.column.to_sql(context, binder)} {self.direction.value}"

    def __repr__(self) -> str:
        return f"OrderTerm({self.column!r}, {self.direction.name})"


def to_sql(predicate: Predicate, context: JoinNode, binder: ParamBinder | None = None) -> str:
    """Translate a predicate into a SQL boolean fragment.

    Args:
        predicate: The predicate tree.
        context: Join tree supplying the alias of every referenced entity.
        binder: Collects parameter values; a throwaway one is used if omitted.
    """
    return predicate.to_sql(context, binder if binder is not None else ParamBinder())
