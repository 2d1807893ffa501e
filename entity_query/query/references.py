"""Column references, join clauses and the join tree.

The ``<identifier>_<column>`` projection label produced here is the only
contract between the SQL builder and the result mapper.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from entity_query.metadata.descriptor import (
    ColumnDescriptor,
    EntityDescriptor,
    ForeignKeyDescriptor,
)


def quote(identifier: str) -> str:
    """Backtick-quote an identifier."""
    return "`" + identifier.replace("`", "``") + "`"


def label(identifier: str, column_name: str) -> str:
    """Projection label of a column read through ``identifier``."""
    return f"{identifier}_{column_name}"


@dataclass(frozen=True)
class ColumnReference:
    """A column paired with the table or alias it is read through."""

    column: ColumnDescriptor
    table_name: str
    alias: str | None = None

    @property
    def identifier(self) -> str:
        # An alias always wins over the table name.
        return self.alias or self.table_name

    @property
    def sql_notation(self) -> str:
        return f"{quote(self.identifier)}.{quote(self.column.column_name)}"

    @property
    def alias_notation(self) -> str:
        return label(self.identifier, self.column.column_name)

    @property
    def select_notation(self) -> str:
        return f"{self.sql_notation} AS {quote(self.alias_notation)}"

    def __str__(self) -> str:
        return self.sql_notation


class JoinKind(Enum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"


@dataclass(frozen=True)
class JoinClause:
    """``<kind> <table> AS <alias> ON <parent>.<fk> = <alias>.id``."""

    table_name: str
    alias: str
    parent_alias: str
    foreign_key_column: str
    kind: JoinKind = JoinKind.INNER

    def to_sql(self) -> str:
        return (
            f"{self.kind.value} {quote(self.table_name)} AS {quote(self.alias)} "
            f"ON {quote(self.parent_alias)}.{quote(self.foreign_key_column)} "
            f"= {quote(self.alias)}.{quote('id')}"
        )

    def __str__(self) -> str:
        return self.to_sql()


@dataclass
class JoinNode:
    """One entity occurrence in the foreign-key traversal tree."""

    descriptor: EntityDescriptor
    alias: str
    depth: int = 0
    via: ForeignKeyDescriptor | None = None
    columns: list[ColumnReference] = field(default_factory=list)
    children: dict[str, JoinNode] = field(default_factory=dict)

    def walk(self) -> Iterator[JoinNode]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children.values():
            yield from child.walk()

    def reference_for(self, field_name: str) -> ColumnReference | None:
        for reference in self.columns:
            if reference.column.field_name == field_name:
                return reference
        return None

    def label_for(self, column_name: str) -> str:
        return label(self.alias, column_name)
