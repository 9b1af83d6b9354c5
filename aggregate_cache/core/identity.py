"""Identity map - one in-memory instance per (aggregate type, id).

Scoped to a single unit of work (a Session). Unbounded on purpose: entries
live until the session clears it. Not safe to share across concurrent units
of work.
"""

from __future__ import annotations

from typing import Any


class IdentityMap:
    """Registry of aggregates already loaded in this unit of work."""

    def __init__(self) -> None:
        self._instances: dict[tuple[str, Any], Any] = {}

    def get(self, type_name: str, aggregate_id: Any) -> Any | None:
        """Return the registered instance, or None on a miss."""
        return self._instances.get((type_name, aggregate_id))

    def put(self, type_name: str, aggregate_id: Any, instance: Any) -> None:
        self._instances[(type_name, aggregate_id)] = instance

    def remove(self, type_name: str, aggregate_id: Any) -> None:
        self._instances.pop((type_name, aggregate_id), None)

    def clear(self) -> None:
        self._instances.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)
