"""Repository base class.

Thin wrapper over a Session for one aggregate type, for DDD-oriented usage.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from aggregate_cache.core.engine import SaveResult, Session
from aggregate_cache.mapping.plan import AggregateDefinition

T = TypeVar("T")


class AggregateRepository(Generic[T]):
    """Base repository bound to one aggregate type.

    Subclasses set ``aggregate_type`` (or pass it in) and add domain
    specific lookups that delegate to the session.
    """

    aggregate_type: str | None = None

    def __init__(
        self,
        session: Session,
        aggregate_type: str | AggregateDefinition | None = None,
    ) -> None:
        self.session = session
        type_ref = aggregate_type or self.aggregate_type
        if type_ref is None:
            raise TypeError(f"{type(self).__name__} needs an aggregate_type")
        self.definition = session.definition(type_ref)

    def load(self, id_or_ids: Any, **options: Any) -> Any:
        return self.session.load(self.definition, id_or_ids, **options)

    def get(self, aggregate_id: Any, **options: Any) -> T:
        return self.session.get(self.definition, aggregate_id, **options)  # type: ignore[return-value]

    def create(self, **attributes: Any) -> T:
        return self.session.create(self.definition, **attributes)  # type: ignore[return-value]

    def save(self, aggregate: Any, run_validation: bool = True) -> SaveResult:
        return self.session.save(aggregate, run_validation=run_validation)

    def evict(self, aggregate_id: Any) -> None:
        self.session.evict(self.definition, aggregate_id)
