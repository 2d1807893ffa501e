"""Entity queries.

A fluent SELECT builder that joins in every referenced entity and maps the
result back onto the entity graph::

    books = (
        engine.query(Book)
        .where(col("author.name") == "Ada")
        .order_by(col("published").desc(), "title")
        .limit(10, offset=20)
        .to_list()
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from entity_query.mapping.result import ResultMapper, ResultStream
from entity_query.query.assembler import CompiledQuery, assemble
from entity_query.query.constraints import constraints_for
from entity_query.query.join_graph import JoinGraph, JoinGraphBuilder
from entity_query.query.predicate import (
    TRUE,
    Column,
    OrderDirection,
    OrderTerm,
    ParamBinder,
    Predicate,
)

if TYPE_CHECKING:
    from entity_query.core.engine import Engine

T = TypeVar("T")


class EntityQuery(Generic[T]):
    """SELECT over an entity and everything it references.

    Usually created through ``Engine.query`` or a repository. The join graph
    is built fresh every time the query is compiled.
    """

    def __init__(self, entity_type: type[T], engine: Engine, *, alias: str | None = None) -> None:
        self._entity_type = entity_type
        self._engine = engine
        self._alias = alias
        self._where: Predicate = TRUE
        self._order: list[OrderTerm] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    def where(self, predicate: Predicate) -> EntityQuery[T]:
        """Add a filter. Repeated calls are combined with AND."""
        self._where = self._where & predicate
        return self

    def order_by(
        self,
        *terms: OrderTerm | Column | str,
        direction: OrderDirection = OrderDirection.ASC,
    ) -> EntityQuery[T]:
        """Append ORDER BY terms.

        Ties on a term are broken by the next one. Plain columns and strings
        use ``direction``; OrderTerms keep their own.
        """
        for term in terms:
            if isinstance(term, str):
                term = Column(term)
            if isinstance(term, Column):
                term = OrderTerm(term, direction)
            self._order.append(term)
        return self

    def limit(self, limit: int, offset: int | None = None) -> EntityQuery[T]:
        """Return at most ``limit`` rows, optionally skipping ``offset`` rows."""
        self._limit = limit
        self._offset = offset
        return self

    def _graph(self) -> JoinGraph:
        options = self._engine.options
        builder = JoinGraphBuilder(options.max_join_depth, options.strict_cycles)
        return builder.build(self._entity_type, self._alias)

    def _compile(self, graph: JoinGraph, *, projection: str | None = None) -> CompiledQuery:
        binder = ParamBinder()
        predicate = self._where & constraints_for(self._entity_type)
        where_sql = predicate.to_sql(graph.root, binder)
        if projection is not None:
            sql = assemble(graph, where_sql, projection=projection)
        else:
            order_sql = [term.to_sql(graph.root, binder) for term in self._order]
            sql = assemble(graph, where_sql, order_sql, self._limit, self._offset)
        return CompiledQuery(sql, binder.params)

    def compile(self) -> CompiledQuery:
        """Build the SQL text and its parameters."""
        return self._compile(self._graph())

    @property
    def sql(self) -> str:
        return self.compile().sql

    def first(self) -> T | None:
        """The first matching entity, or None."""
        graph = self._graph()
        compiled = self._compile(graph)
        return self._engine.fetch_one(  # type: ignore[no-any-return]
            compiled.sql, compiled.params, mapper=ResultMapper(self._entity_type, graph)
        )

    def stream(self) -> ResultStream[T]:
        """Lazily map the matching entities.

        Close the stream (or use it as a context manager) when abandoning it
        early.
        """
        graph = self._graph()
        compiled = self._compile(graph)
        return self._engine.stream(
            compiled.sql, compiled.params, mapper=ResultMapper(self._entity_type, graph)
        )

    def to_list(self) -> list[T]:
        """All matching entities."""
        with self.stream() as entities:
            return list(entities)

    def count(self) -> int:
        """Number of matching rows, ignoring ORDER BY and LIMIT."""
        compiled = self._compile(self._graph(), projection="COUNT(*)")
        return int(self._engine.fetch_scalar(compiled.sql, compiled.params) or 0)

    def exists(self) -> bool:
        return self.count() > 0

    def __str__(self) -> str:
        return self.sql
