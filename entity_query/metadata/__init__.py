"""Entity metadata - declarations and resolved table layout."""

from __future__ import annotations

from entity_query.metadata.descriptor import (
    ColumnDescriptor,
    ColumnType,
    EntityDescriptor,
    ForeignKeyDescriptor,
    ForeignKeyKind,
    resolve_entity,
    table_name_of,
)
from entity_query.metadata.entity import (
    BaseEntity,
    DeletableEntity,
    DefaultIfNull,
    IdentifiableEnum,
    column,
    foreign_key,
)

__all__ = [
    "BaseEntity",
    "DeletableEntity",
    "DefaultIfNull",
    "IdentifiableEnum",
    "column",
    "foreign_key",
    "resolve_entity",
    "table_name_of",
    "EntityDescriptor",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "ColumnType",
    "ForeignKeyKind",
]
