"""EntityQuery exception hierarchy.

All exceptions are EntityQuery-specific. Raw driver exceptions are never
exposed to callers; they are chained as ``__cause__``.
"""

from __future__ import annotations


class EntityQueryError(Exception):
    """Base exception for all EntityQuery errors."""


# --- Configuration ---


class ConfigurationError(EntityQueryError):
    """Raised when an entity declaration cannot be turned into metadata."""

    def __init__(self, entity: str, detail: str, field: str | None = None) -> None:
        self.entity = entity
        self.field = field
        location = f"{entity}.{field}" if field else entity
        super().__init__(f"Invalid entity declaration {location}: {detail}")


class InvalidForeignKeyError(ConfigurationError):
    """Raised when a foreign-key field targets neither an entity nor an identifiable enum."""


# --- Query building ---


class QueryBuildError(EntityQueryError):
    """Base for errors raised while building SQL."""


class ReferenceCycleError(QueryBuildError):
    """Raised in strict mode when a foreign-key chain revisits itself."""

    def __init__(self, entity: str, field: str, path: list[str]) -> None:
        self.entity = entity
        self.field = field
        self.path = path
        super().__init__(
            f"Reference cycle through {entity}.{field}: {' -> '.join(path)}"
        )


class JoinDepthError(QueryBuildError):
    """Raised when a foreign-key chain is deeper than the configured maximum."""

    def __init__(self, entity: str, field: str, max_depth: int) -> None:
        self.entity = entity
        self.field = field
        self.max_depth = max_depth
        super().__init__(
            f"Joining {entity}.{field} exceeds the maximum join depth of {max_depth}"
        )


class PlanCompilationError(QueryBuildError):
    """Raised when a query plan fails validation during assembly."""


class UnknownColumnError(QueryBuildError):
    """Raised when a predicate or order term references an unknown column path."""

    def __init__(self, entity: str, path: str) -> None:
        self.entity = entity
        self.path = path
        super().__init__(f"Unknown column '{path}' for {entity}")


# --- Mapping ---


class MappingError(EntityQueryError):
    """Base for mapping errors."""


class ColumnMismatchError(MappingError):
    """Raised when a projected label is missing from the result row."""

    def __init__(self, target_class: str, missing_fields: list[str]) -> None:
        self.target_class = target_class
        self.missing_fields = missing_fields
        super().__init__(f"Cannot map to {target_class}: missing fields {missing_fields}")


class ValueCoercionError(MappingError):
    """Raised when a read value cannot be assigned to its field."""

    def __init__(self, entity: str, field: str, detail: str) -> None:
        self.entity = entity
        self.field = field
        super().__init__(f"Cannot assign value to {entity}.{field}: {detail}")


# --- Execution ---


class ExecutionError(EntityQueryError):
    """Base for query execution errors."""

    def __init__(self, detail: str, sql: str | None = None) -> None:
        self.sql = sql
        super().__init__(detail)


class CursorError(ExecutionError):
    """Raised when advancing or reading a result cursor fails."""


# --- Adapter ---


class AdapterError(EntityQueryError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""
