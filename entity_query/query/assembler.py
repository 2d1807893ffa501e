"""SELECT statement assembly.

Pure string construction from a JoinGraph and already translated fragments::

    SELECT <col AS label, ...> FROM <table> [AS <alias>] [<kind> JOIN ...]*
    WHERE <where> [ORDER BY <term> <ASC|DESC>, ...] [LIMIT <n> [OFFSET <m>]]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from entity_query.core.exceptions import PlanCompilationError
from entity_query.query.join_graph import JoinGraph
from entity_query.query.references import quote

ALWAYS_TRUE = "1 = 1"


@dataclass(frozen=True)
class CompiledQuery:
    """SQL text with `:name` placeholders and the values bound to them."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.sql


def _validate(graph: JoinGraph, limit: int | None, offset: int | None) -> None:
    seen: dict[str, str] = {}
    for reference in graph.columns:
        previous = seen.setdefault(reference.alias_notation, reference.sql_notation)
        if previous != reference.sql_notation:
            raise PlanCompilationError(
                f"Projection label '{reference.alias_notation}' is produced by both "
                f"{previous} and {reference.sql_notation}"
            )
    if limit is not None and limit < 0:
        raise PlanCompilationError(f"LIMIT must not be negative, got {limit}")
    if offset is not None:
        if offset < 0:
            raise PlanCompilationError(f"OFFSET must not be negative, got {offset}")
        if limit is None:
            raise PlanCompilationError("OFFSET requires a LIMIT")


def assemble(
    graph: JoinGraph,
    where_sql: str | None = None,
    order_by: Sequence[str] = (),
    limit: int | None = None,
    offset: int | None = None,
    *,
    projection: str | None = None,
) -> str:
    """Assemble the SELECT statement.

    Args:
        graph: Projected columns and joins.
        where_sql: Translated WHERE fragment; an always-true condition if empty.
        order_by: Rendered ORDER BY terms (``<column> ASC|DESC``), most
            significant first.
        limit: Maximum number of rows.
        offset: Rows to skip; only valid together with ``limit``.
        projection: Replaces the column list (e.g. ``COUNT(*)``).

    Raises:
        PlanCompilationError: On clashing projection labels or an invalid
            limit/offset combination.
    """
    _validate(graph, limit, offset)

    columns = projection or ", ".join(c.select_notation for c in graph.columns)
    parts = [f"SELECT {columns}", f"FROM {quote(graph.table_name)}"]
    if graph.root.alias != graph.table_name:
        parts[-1] += f" AS {quote(graph.root.alias)}"
    parts.extend(join.to_sql() for join in graph.joins)
    parts.append(f"WHERE {where_sql or ALWAYS_TRUE}")
    if order_by:
        parts.append("ORDER BY " + ", ".join(order_by))
    if limit is not None:
        parts.append(f"LIMIT {int(limit)}")
        if offset is not None:
            parts.append(f"OFFSET {int(offset)}")
    return " ".join(parts)
