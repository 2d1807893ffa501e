"""Entity metadata resolution.

Derives table name, column names and foreign-key layout from an entity
class. Descriptors are immutable and cached for the process lifetime.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import re
import threading
import types
import typing
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from entity_query.core.exceptions import ConfigurationError, InvalidForeignKeyError
from entity_query.metadata.entity import (
    COLUMN_NAME,
    DEFAULT_IF_NULL,
    FOREIGN_KEY,
    NULLABLE,
    BaseEntity,
    DefaultIfNull,
)

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class ColumnType(Enum):
    """Semantic scalar type of a column."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    BYTES = "bytes"
    ENUM = "enum"
    ANY = "any"


class ForeignKeyKind(Enum):
    ENTITY = "entity"
    ENUMERATION = "enumeration"


@dataclass(frozen=True)
class ColumnDescriptor:
    """A scalar field and the column it is stored in."""

    field_name: str
    column_name: str
    column_type: ColumnType
    python_type: Any
    default_if_null: DefaultIfNull | None = None


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A reference field and the local column holding the referenced id."""

    field_name: str
    column_name: str
    id_field_name: str
    target: type
    kind: ForeignKeyKind
    nullable: bool = False


Member = Union[ColumnDescriptor, ForeignKeyDescriptor]


@dataclass(frozen=True)
class EntityDescriptor:
    """Table layout of one entity type, fields in declaration order."""

    entity_type: type
    table_name: str
    members: tuple[Member, ...]

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return tuple(m for m in self.members if isinstance(m, ColumnDescriptor))

    @property
    def foreign_keys(self) -> tuple[ForeignKeyDescriptor, ...]:
        return tuple(m for m in self.members if isinstance(m, ForeignKeyDescriptor))

    def column_for(self, field_name: str) -> ColumnDescriptor | None:
        """Look up a scalar column by its field name."""
        for member in self.members:
            if isinstance(member, ColumnDescriptor) and member.field_name == field_name:
                return member
        return None

    def foreign_key_for(self, field_name: str) -> ForeignKeyDescriptor | None:
        """Look up a reference field by name."""
        for member in self.members:
            if isinstance(member, ForeignKeyDescriptor) and member.field_name == field_name:
                return member
        return None


_cache: dict[type, EntityDescriptor] = {}
_cache_lock = threading.Lock()


def resolve_entity(entity_type: type) -> EntityDescriptor:
    """Return the descriptor of ``entity_type``, computing it on first use.

    Raises:
        ConfigurationError: If the class is not a dataclass entity or one of
            its fields cannot be mapped.
    """
    descriptor = _cache.get(entity_type)
    if descriptor is not None:
        return descriptor
    with _cache_lock:
        descriptor = _cache.get(entity_type)
        if descriptor is None:
            descriptor = _build_descriptor(entity_type)
            _cache[entity_type] = descriptor
            logger.debug(
                "Resolved %s -> table '%s' (%d columns, %d foreign keys)",
                descriptor.name,
                descriptor.table_name,
                len(descriptor.columns),
                len(descriptor.foreign_keys),
            )
    return descriptor


def table_name_of(entity_type: type) -> str:
    """Table name of an entity: explicit override or snake_cased class name."""
    override = entity_type.__dict__.get("__table_name__")
    if override:
        return str(override)
    return _CAMEL_BOUNDARY.sub("_", entity_type.__name__).lower()


def _build_descriptor(entity_type: type) -> EntityDescriptor:
    name = getattr(entity_type, "__name__", repr(entity_type))
    if not (isinstance(entity_type, type) and issubclass(entity_type, BaseEntity)):
        raise ConfigurationError(name, "entities must derive from BaseEntity")
    # A subclass inherits __dataclass_fields__ without being decorated itself.
    if "__dataclass_fields__" not in entity_type.__dict__:
        raise ConfigurationError(name, "entities must be dataclasses")

    try:
        hints = typing.get_type_hints(entity_type, localns={name: entity_type})
    except NameError as e:
        raise ConfigurationError(name, f"cannot resolve type annotations: {e}") from e

    fields = [f for f in dataclasses.fields(entity_type) if f.init]
    column_names = {f.name: f.metadata.get(COLUMN_NAME, f.name) for f in fields}

    members: list[Member] = []
    for f in fields:
        annotation = _unwrap_optional(hints.get(f.name, Any))
        if FOREIGN_KEY in f.metadata:
            members.append(_foreign_key(name, f, annotation, column_names))
        else:
            members.append(
                ColumnDescriptor(
                    field_name=f.name,
                    column_name=column_names[f.name],
                    column_type=_column_type(annotation),
                    python_type=annotation,
                    default_if_null=f.metadata.get(DEFAULT_IF_NULL),
                )
            )

    return EntityDescriptor(
        entity_type=entity_type,
        table_name=table_name_of(entity_type),
        members=tuple(members),
    )


def _foreign_key(
    entity: str,
    f: dataclasses.Field[Any],
    annotation: Any,
    column_names: dict[str, str],
) -> ForeignKeyDescriptor:
    reference = f.metadata[FOREIGN_KEY]

    # The reference may name the id field or its overridden column.
    id_field = None
    if reference in column_names and reference != f.name:
        id_field = reference
    else:
        for field_name, column_name in column_names.items():
            if column_name == reference and field_name != f.name:
                id_field = field_name
                break
    if id_field is None:
        raise InvalidForeignKeyError(
            entity, f"foreign key column '{reference}' is not a field of the entity", f.name
        )

    if not isinstance(annotation, type):
        raise InvalidForeignKeyError(
            entity, f"foreign key type {annotation!r} is not a class", f.name
        )

    if issubclass(annotation, BaseEntity):
        kind = ForeignKeyKind.ENTITY
    elif issubclass(annotation, Enum):
        missing = [m.name for m in annotation if not isinstance(getattr(m, "id", None), int)]
        if missing:
            raise InvalidForeignKeyError(
                entity,
                f"enum {annotation.__name__} has no integer 'id' for {', '.join(missing)}",
                f.name,
            )
        kind = ForeignKeyKind.ENUMERATION
    else:
        raise InvalidForeignKeyError(
            entity,
            f"type {annotation.__name__} is annotated as a foreign key but is neither "
            "an entity nor an identifiable enum",
            f.name,
        )

    return ForeignKeyDescriptor(
        field_name=f.name,
        column_name=column_names[id_field],
        id_field_name=id_field,
        target=annotation,
        kind=kind,
        nullable=bool(f.metadata.get(NULLABLE, False)),
    )


def _unwrap_optional(annotation: Any) -> Any:
    """Turn ``X | None`` / ``Optional[X]`` into ``X``."""
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _column_type(annotation: Any) -> ColumnType:
    if not isinstance(annotation, type):
        return ColumnType.ANY
    # Order matters: bool is an int, datetime is a date.
    if issubclass(annotation, bool):
        return ColumnType.BOOLEAN
    if issubclass(annotation, Enum):
        return ColumnType.ENUM
    if issubclass(annotation, int):
        return ColumnType.INTEGER
    if issubclass(annotation, float):
        return ColumnType.FLOAT
    if issubclass(annotation, Decimal):
        return ColumnType.DECIMAL
    if issubclass(annotation, str):
        return ColumnType.STRING
    if issubclass(annotation, datetime.datetime):
        return ColumnType.DATETIME
    if issubclass(annotation, datetime.date):
        return ColumnType.DATE
    if issubclass(annotation, datetime.time):
        return ColumnType.TIME
    if issubclass(annotation, bytes):
        return ColumnType.BYTES
    return ColumnType.ANY
