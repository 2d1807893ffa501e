"""Repository layer - per-entity data access services."""

from __future__ import annotations

from entity_query.repository.base import DeletableRepository, Repository

__all__ = [
    "Repository",
    "DeletableRepository",
]
