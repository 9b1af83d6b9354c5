"""Cache dependencies for relation id caching.

A dependency is declared once on a relation. When the relation caches its
ids, the declared dependency is *captured*: a copy is made holding the data
observed at that moment. The captured copy later answers ``has_changed()``
by comparing fresh data against what it saw. Captured data travels with the
owning aggregate's snapshot, so it must be picklable.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class CacheDependency(Protocol):
    """Anything that can report whether cached data went stale."""

    def has_changed(self) -> bool:
        """Return True once previously cached data should be discarded."""
        ...


class DataDependency:
    """Base class for dependencies that compare a captured value.

    Subclasses implement :meth:`generate_data`. ``capture()`` and
    ``restore()`` return bound copies; the declared instance itself is
    never mutated, so it can be shared by every aggregate of a type.
    """

    def __init__(self) -> None:
        self.data: Any = None
        self._captured = False

    def generate_data(self) -> Any:
        raise NotImplementedError

    def capture(self) -> DataDependency:
        """Return a copy bound to the data observed right now."""
        return self.restore(self.generate_data())

    def restore(self, data: Any) -> DataDependency:
        """Return a copy bound to previously captured data."""
        bound = copy.copy(self)
        bound.data = data
        bound._captured = True
        return bound

    def has_changed(self) -> bool:
        if not self._captured:
            return False
        return bool(self.generate_data() != self.data)


class CallbackDependency(DataDependency):
    """Stale once ``callback()`` returns something other than the captured value.

    Example::

        CallbackDependency(lambda: store.count_rows("addresses"))
    """

    def __init__(self, callback: Callable[[], Any]) -> None:
        super().__init__()
        self.callback = callback

    def generate_data(self) -> Any:
        return self.callback()


class CacheKeyDependency(DataDependency):
    """Stale once the value stored under ``key`` in a cache store changes.

    Typical use is a tag/version key bumped by whoever invalidates a group
    of cached relations.
    """

    def __init__(self, cache: Any, key: str) -> None:
        super().__init__()
        self.cache = cache
        self.key = key

    def generate_data(self) -> Any:
        value = self.cache.get(self.key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value


def capture_dependency(dependency: Any) -> Any:
    """Bind a declared dependency at cache time, if it supports binding."""
    if dependency is None:
        return None
    if isinstance(dependency, DataDependency):
        return dependency.capture()
    return dependency


def dependency_data(dependency: Any) -> Any:
    """Extract the serializable captured data from a bound dependency."""
    if isinstance(dependency, DataDependency):
        return dependency.data
    return None


def restore_dependency(declared: Any, data: Any) -> Any:
    """Rebind the declared dependency to data restored from a snapshot."""
    if declared is None:
        return None
    if isinstance(declared, DataDependency):
        return declared.restore(data)
    return declared
