"""Repository base classes.

Thin services over Engine + EntityQuery for one entity type, including the
plain INSERT/UPDATE/DELETE statements built from the same entity metadata.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from entity_query.core.engine import Engine
from entity_query.core.exceptions import UnknownColumnError
from entity_query.metadata.descriptor import resolve_entity
from entity_query.metadata.entity import BaseEntity, DefaultIfNull, DeletableEntity
from entity_query.query.join_graph import JoinGraphBuilder
from entity_query.query.predicate import (
    TRUE,
    Column,
    OrderTerm,
    ParamBinder,
    Predicate,
    col,
)
from entity_query.query.query import EntityQuery
from entity_query.query.references import quote

E = TypeVar("E", bound=BaseEntity)
D = TypeVar("D", bound=DeletableEntity)

logger = logging.getLogger(__name__)


class Repository(Generic[E]):
    """Data access for one entity type.

    Subclasses add domain-specific finders on top of ``query()``.
    """

    def __init__(self, engine: Engine, entity_type: type[E]) -> None:
        self.engine = engine
        self.entity_type = entity_type
        self.descriptor = resolve_entity(entity_type)

    @property
    def table_name(self) -> str:
        return self.descriptor.table_name

    # --- Read ---

    def query(self) -> EntityQuery[E]:
        return self.engine.query(self.entity_type)

    def get_single(self, predicate: Predicate) -> E | None:
        return self.query().where(predicate).first()

    def get_multiple(self, predicate: Predicate) -> EntityQuery[E]:
        return self.query().where(predicate)

    def get_by_id(self, entity_id: int) -> E | None:
        return self.get_single(col("id") == entity_id)

    def get_all(self, *order_by: OrderTerm | Column | str) -> list[E]:
        return self.query().order_by(*order_by).to_list()

    def count(self, predicate: Predicate | None = None) -> int:
        return self.query().where(predicate or TRUE).count()

    def any(self, predicate: Predicate | None = None) -> bool:
        return self.count(predicate) > 0

    def paginate(self, per_page: int, predicate: Predicate | None = None) -> list[EntityQuery[E]]:
        """One query per page, ordered by id."""
        if per_page < 1:
            raise ValueError(f"per_page must be positive, got {per_page}")
        pages = math.ceil(self.count(predicate) / per_page)
        return [
            self.query()
            .where(predicate or TRUE)
            .order_by("id")
            .limit(per_page, offset=page * per_page)
            for page in range(pages)
        ]

    def has_duplicates(self, field_name: str, predicate: Predicate | None = None) -> bool:
        """True when a non-null value occurs in more than one row of the column.

        ``field_name`` may name a scalar field or a reference, which checks
        its id column. Soft-delete constraints do not apply.
        """
        column = self.descriptor.column_for(field_name) or self.descriptor.foreign_key_for(field_name)
        if column is None:
            raise UnknownColumnError(self.descriptor.name, field_name)
        binder = ParamBinder()
        where_sql = self._where_sql(predicate or TRUE, binder)
        target = quote(column.column_name)
        sql = (
            f"SELECT COUNT({target}) FROM {quote(self.table_name)} WHERE {where_sql} "
            f"GROUP BY {target} HAVING COUNT({target}) > 1 LIMIT 1"
        )
        return self.engine.fetch_scalar(sql, binder.params) is not None

    # --- Write ---

    def _column_values(self, entity: E) -> dict[str, Any]:
        """Column name -> value for every scalar column of ``entity``.

        A reference that is set while its id field is empty fills the id.
        """
        values = {c.column_name: getattr(entity, c.field_name) for c in self.descriptor.columns}
        for foreign_key in self.descriptor.foreign_keys:
            target = getattr(entity, foreign_key.field_name)
            if target is None or values.get(foreign_key.column_name) is not None:
                continue
            # Entities and identifiable enums both expose `id`.
            values[foreign_key.column_name] = target.id
            setattr(entity, foreign_key.id_field_name, values[foreign_key.column_name])
        return values

    def _write_values(self, entity: E, statement: DefaultIfNull) -> dict[str, Any]:
        """Column values for an INSERT or UPDATE of ``entity``.

        Drops a None id and every None column whose ``default_if_null``
        covers ``statement``, leaving those to the database.
        """
        values = self._column_values(entity)
        if values.get("id") is None:
            values.pop("id", None)
        for c in self.descriptor.columns:
            if c.default_if_null is not None and c.default_if_null.covers(statement):
                if values.get(c.column_name) is None:
                    values.pop(c.column_name, None)
        return values

    def _where_sql(self, predicate: Predicate, binder: ParamBinder) -> str:
        graph = JoinGraphBuilder().build(self.entity_type, follow_foreign_keys=False)
        return predicate.to_sql(graph.root, binder)

    def _insert_sql(self, rows: Sequence[dict[str, Any]], binder: ParamBinder) -> str:
        # With nothing else to write, a NULL id lets the database generate one.
        columns = list(rows[0]) or ["id"]
        values_sql = ", ".join(
            "(" + ", ".join(binder.bind(row.get(c)) for c in columns) + ")" for row in rows
        )
        return (
            f"INSERT INTO {quote(self.table_name)} "
            f"({', '.join(quote(c) for c in columns)}) VALUES {values_sql}"
        )

    def create(self, entity: E) -> int | None:
        """Insert ``entity`` and assign the generated id to it."""
        binder = ParamBinder()
        sql = self._insert_sql([self._write_values(entity, DefaultIfNull.CREATE)], binder)
        new_id = self.engine.insert(sql, binder.params)
        if entity.id is None:
            entity.id = new_id
        logger.info("%s with id %s successfully created", self.descriptor.name, entity.id)
        return entity.id

    def create_many(self, entities: Sequence[E]) -> int:
        """Insert several entities. Returns the row count.

        Entities writing the same set of columns share one statement.
        """
        groups: dict[tuple[str, ...], list[dict[str, Any]]] = {}
        for entity in entities:
            values = self._write_values(entity, DefaultIfNull.CREATE)
            groups.setdefault(tuple(values), []).append(values)
        count = 0
        for rows in groups.values():
            binder = ParamBinder()
            count += self.engine.execute(self._insert_sql(rows, binder), binder.params)
        if count:
            logger.info("%d %s entities successfully created", count, self.descriptor.name)
        return count

    def update(self, entity: E) -> int:
        """Write every column of ``entity`` back to its row."""
        if entity.id is None:
            raise ValueError(f"Cannot update a {self.descriptor.name} without an id")
        values = self._write_values(entity, DefaultIfNull.UPDATE)
        values.pop("id", None)
        if not values:
            logger.debug("Nothing to update on %s with id %s", self.descriptor.name, entity.id)
            return 0
        binder = ParamBinder()
        assignments = ", ".join(f"{quote(c)} = {binder.bind(v)}" for c, v in values.items())
        where_sql = self._where_sql(col("id") == entity.id, binder)
        count = self.engine.execute(
            f"UPDATE {quote(self.table_name)} SET {assignments} WHERE {where_sql}", binder.params
        )
        logger.info("%s with id %s successfully updated", self.descriptor.name, entity.id)
        return count

    def update_column(self, predicate: Predicate, field_name: str, value: Any) -> int:
        """Set one column on every row matching ``predicate``."""
        column = self.descriptor.column_for(field_name)
        if column is None:
            raise UnknownColumnError(self.descriptor.name, field_name)
        binder = ParamBinder()
        assignment = f"{quote(column.column_name)} = {binder.bind(value)}"
        where_sql = self._where_sql(predicate, binder)
        count = self.engine.execute(
            f"UPDATE {quote(self.table_name)} SET {assignment} WHERE {where_sql}", binder.params
        )
        logger.info("Column '%s' updated on %d %s rows", column.column_name, count, self.table_name)
        return count

    def delete(self, target: E | int) -> int:
        """Delete an entity (or the row with the given id)."""
        entity_id = target.id if isinstance(target, BaseEntity) else target
        return self.delete_where(col("id") == entity_id)

    def delete_where(self, predicate: Predicate) -> int:
        binder = ParamBinder()
        where_sql = self._where_sql(predicate, binder)
        count = self.engine.execute(
            f"DELETE FROM {quote(self.table_name)} WHERE {where_sql}", binder.params
        )
        logger.info("%d %s rows successfully deleted", count, self.table_name)
        return count

    def truncate(self) -> int:
        """Physically delete every row of the table."""
        count = self.engine.execute(f"DELETE FROM {quote(self.table_name)}")
        logger.info("Table %s was successfully truncated", self.table_name)
        return count


class DeletableRepository(Repository[D]):
    """Repository whose deletes only set ``is_deleted``.

    Queries never see soft-deleted rows: the entity-level constraint hides
    them regardless of the filter passed in.
    """

    def delete_where(self, predicate: Predicate) -> int:
        count = self.update_column(predicate, "is_deleted", True)
        logger.info("%d %s rows successfully soft deleted", count, self.table_name)
        return count
