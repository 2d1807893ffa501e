"""Entity-level constraints.

A constraint is a predicate that applies to every query of an entity type
and of its subclasses, whatever filter the caller supplies. Soft-deletable
entities register ``is_deleted = false`` here.
"""

from __future__ import annotations

import threading

from entity_query.metadata.entity import DeletableEntity
from entity_query.query.predicate import TRUE, Predicate, col

_constraints: dict[type, list[Predicate]] = {}
_lock = threading.Lock()


def register_constraint(entity_type: type, predicate: Predicate) -> None:
    """Always conjoin ``predicate`` into queries of ``entity_type``."""
    with _lock:
        _constraints.setdefault(entity_type, []).append(predicate)


def constraints_for(entity_type: type) -> Predicate:
    """Conjunction of the constraints registered on the type and its bases."""
    with _lock:
        registered = [p for base in reversed(entity_type.__mro__) for p in _constraints.get(base, ())]
    combined = TRUE
    for predicate in registered:
        combined = combined & predicate
    return combined


register_constraint(DeletableEntity, col("is_deleted") == False)  # noqa: E712
