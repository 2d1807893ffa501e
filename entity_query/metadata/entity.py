"""Entity declaration helpers.

Entities are dataclasses deriving from :class:`BaseEntity`::

    @dataclass
    class Book(BaseEntity, table="books"):
        title: str | None = None
        author_id: int | None = None
        author: Author | None = foreign_key("author_id")

Field metadata carries the column overrides and foreign-key markers that the
metadata resolver reads.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

COLUMN_NAME = "entity_query.column"
FOREIGN_KEY = "entity_query.foreign_key"
NULLABLE = "entity_query.nullable"
DEFAULT_IF_NULL = "entity_query.default_if_null"


@dataclass
class BaseEntity:
    """Base class of every mapped entity.

    Pass ``table="..."`` in the class statement to override the table name.
    """

    __table_name__: ClassVar[str | None] = None

    id: int | None = None

    def __init_subclass__(cls, table: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Only an explicit override on this very class counts; see resolve_entity.
        cls.__table_name__ = table


@dataclass
class DeletableEntity(BaseEntity):
    """Entity that is soft deleted through an ``is_deleted`` flag."""

    is_deleted: bool = False


class IdentifiableEnum(Enum):
    """Enumeration stored in the database by a stable integer id.

    The id defaults to the member value; override ``id`` when the value is
    not the identifier.
    """

    @property
    def id(self) -> int:
        return self.value  # type: ignore[no-any-return]


class DefaultIfNull(Enum):
    """Writes on which a None value is left to the column's database default."""

    CREATE = "create"
    UPDATE = "update"
    BOTH = "both"

    def covers(self, statement: DefaultIfNull) -> bool:
        return self is DefaultIfNull.BOTH or self is statement


def column(
    name: str | None = None,
    *,
    default: Any = None,
    default_if_null: DefaultIfNull | str | None = None,
) -> Any:
    """Declare column options for a field.

    Args:
        name: Column name, when it differs from the field name.
        default: Field default on the Python side.
        default_if_null: ``"create"``, ``"update"`` or ``"both"``. On those
            writes a None value leaves the column out of the statement
            instead of writing NULL: an insert gets the database default
            and an update keeps the stored value.
    """
    metadata: dict[str, Any] = {}
    if name is not None:
        metadata[COLUMN_NAME] = name
    if default_if_null is not None:
        metadata[DEFAULT_IF_NULL] = DefaultIfNull(default_if_null)
    return dataclasses.field(default=default, metadata=metadata)


def foreign_key(id_field: str, *, nullable: bool = False) -> Any:
    """Declare a reference field.

    Args:
        id_field: Name of the local field (or overridden column) holding the
            referenced id.
        nullable: Join with LEFT JOIN so rows with a null reference survive.
    """
    return dataclasses.field(
        default=None,
        metadata={FOREIGN_KEY: id_field, NULLABLE: nullable},
    )
