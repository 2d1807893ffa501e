"""EntityQuery - entity-to-SQL projection and result graph mapping."""

from __future__ import annotations

from entity_query.core.connection import ConnectionConfig, ConnectionManager
from entity_query.core.cursor import Cursor, DBAPICursor, RowCursor
from entity_query.core.engine import Engine
from entity_query.core.enums import DatabaseBackend
from entity_query.core.exceptions import (
    AdapterError,
    ColumnMismatchError,
    ConfigurationError,
    ConnectionError,  # noqa: A004
    CursorError,
    EntityQueryError,
    ExecutionError,
    InvalidForeignKeyError,
    JoinDepthError,
    MappingError,
    PlanCompilationError,
    PoolError,
    QueryBuildError,
    ReferenceCycleError,
    UnknownColumnError,
    ValueCoercionError,
)
from entity_query.core.options import QueryOptions
from entity_query.mapping.result import ResultMapper, ResultStream
from entity_query.metadata.descriptor import resolve_entity
from entity_query.metadata.entity import (
    BaseEntity,
    DeletableEntity,
    DefaultIfNull,
    IdentifiableEnum,
    column,
    foreign_key,
)
from entity_query.query.constraints import register_constraint
from entity_query.query.join_graph import JoinGraphBuilder
from entity_query.query.predicate import TRUE, OrderDirection, col
from entity_query.query.query import EntityQuery
from entity_query.repository.base import DeletableRepository, Repository

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    "DatabaseBackend",
    "QueryOptions",
    # Engine
    "Engine",
    "Cursor",
    "DBAPICursor",
    "RowCursor",
    # Entities
    "BaseEntity",
    "DeletableEntity",
    "DefaultIfNull",
    "IdentifiableEnum",
    "column",
    "foreign_key",
    "resolve_entity",
    # Queries
    "EntityQuery",
    "JoinGraphBuilder",
    "register_constraint",
    "col",
    "TRUE",
    "OrderDirection",
    # Mapping
    "ResultMapper",
    "ResultStream",
    # Repository
    "Repository",
    "DeletableRepository",
    # Exceptions
    "EntityQueryError",
    "ConfigurationError",
    "InvalidForeignKeyError",
    "QueryBuildError",
    "ReferenceCycleError",
    "JoinDepthError",
    "PlanCompilationError",
    "UnknownColumnError",
    "MappingError",
    "ColumnMismatchError",
    "ValueCoercionError",
    "ExecutionError",
    "CursorError",
    "AdapterError",
    "ConnectionError",
    "PoolError",
]
