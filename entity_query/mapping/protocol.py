"""Mapper protocol.

All mappers implement this interface. The Engine hands every executed
cursor to ``map_one`` for single results and to ``map_all`` for streams.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, TypeVar

from entity_query.core.cursor import Cursor

T = TypeVar("T", covariant=True)


class Mapper(Protocol[T]):
    """Base mapper protocol."""

    def map_one(self, cursor: Cursor) -> T | None:
        """Map the first row of the cursor, closing it afterwards."""
        ...

    def map_all(self, cursor: Cursor) -> Iterator[T]:
        """Lazily map all rows; the returned iterator owns the cursor."""
        ...
