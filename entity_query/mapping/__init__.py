"""Mapping layer - rebuild entity graphs from result cursors."""

from __future__ import annotations

from entity_query.mapping.protocol import Mapper
from entity_query.mapping.result import ResultMapper, ResultStream

__all__ = [
    "Mapper",
    "ResultMapper",
    "ResultStream",
]
