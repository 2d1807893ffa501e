"""Per-query alias allocation."""

from __future__ import annotations

from collections.abc import Callable, Iterable


class AliasAllocator:
    """Hands out aliases that are unique within one query build.

    The first request for a name returns the name itself; later requests (or
    requests colliding with a reserved alias) get an increasing numeric
    suffix: ``owner``, ``owner2``, ``owner3``. Suffixes are never reused.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._used: set[str] = set(reserved)
        self._counters: dict[str, int] = {}

    def reserve(self, alias: str) -> None:
        self._used.add(alias)

    def allocate(self, name: str, accept: Callable[[str], bool] | None = None) -> str:
        """Next free alias for ``name``.

        Args:
            name: Base name, usually the reference field.
            accept: Extra test a candidate must pass; rejected candidates
                are skipped like used ones.
        """
        count = self._counters.get(name, 0)
        while True:
            count += 1
            candidate = name if count == 1 else f"{name}{count}"
            if candidate not in self._used and (accept is None or accept(candidate)):
                break
        self._counters[name] = count
        self._used.add(candidate)
        return candidate

    def __contains__(self, alias: object) -> bool:
        return alias in self._used
