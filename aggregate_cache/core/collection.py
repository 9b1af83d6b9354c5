"""Lazy list of aggregates.

Holds only ids. Every element access is an independent Session.load, so it
benefits from the identity map and the cache store; nothing is loaded until
an element is asked for.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, MutableSequence
from typing import TYPE_CHECKING, Any, overload

from aggregate_cache.core.aggregate import Aggregate

if TYPE_CHECKING:
    from aggregate_cache.core.engine import Session


def _to_id(value: Any) -> Any:
    if isinstance(value, Aggregate):
        return value.id
    return value


class AggregateList(MutableSequence[Any]):
    """Index-addressable, restartable, lazily loaded view over aggregate ids.

    Args:
        session: The unit of work used to load elements.
        type_name: Aggregate type of every element.
        ids: Ids or aggregate instances, in order.
    """

    def __init__(self, session: Session, type_name: str, ids: Iterable[Any] = ()) -> None:
        self.session = session
        self.type_name = type_name
        self._ids: list[Any] = [_to_id(value) for value in ids]

    @property
    def ids(self) -> list[Any]:
        return list(self._ids)

    def _load(self, aggregate_id: Any) -> Any:
        if aggregate_id is None:
            return None
        return self.session.load(self.type_name, aggregate_id)

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> AggregateList: ...

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            return AggregateList(self.session, self.type_name, self._ids[index])
        return self._load(self._ids[index])

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._ids[index] = [_to_id(v) for v in value]
        else:
            self._ids[index] = _to_id(value)

    def __delitem__(self, index: Any) -> None:
        del self._ids[index]

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Any]:
        # A fresh generator per call, so iteration restarts from index 0
        for aggregate_id in list(self._ids):
            yield self._load(aggregate_id)

    def __contains__(self, value: object) -> bool:
        return _to_id(value) in self._ids

    def insert(self, index: int, value: Any) -> None:
        self._ids.insert(index, _to_id(value))

    def first(self) -> Any:
        """First aggregate, or None when the list is empty."""
        if not self._ids:
            return None
        return self._load(self._ids[0])

    def last(self) -> Any:
        """Last aggregate, or None when the list is empty."""
        if not self._ids:
            return None
        return self._load(self._ids[-1])

    def to_list(self) -> list[Any]:
        return list(self)

    def __repr__(self) -> str:
        return f"<AggregateList {self.type_name} ids={self._ids!r}>"
