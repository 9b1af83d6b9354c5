"""Cache snapshot codec.

An aggregate is cached as a pickled Pydantic model dump holding its id,
version, attributes and the cache entries of its relations. Pickle keeps
attribute values at their loaded types (datetimes, decimals, sets, tuples),
so an aggregate read from the cache equals one assembled from its child
records. Live relation objects are never serialized; they are rebuilt from
the definition and get their cache entries back from the snapshot.

Only point the codec at a cache store written by trusted processes:
unpickling runs code chosen by whoever wrote the payload.
"""

from __future__ import annotations

import pickle
from typing import Any

from pydantic import BaseModel, ValidationError

from aggregate_cache.core.exceptions import SnapshotError

# Raised by pickle.loads on payloads it cannot rebuild
_UNPICKLE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    TypeError,
    ValueError,
    AttributeError,
    ImportError,
    IndexError,
)


class RelationCacheSnapshot(BaseModel):
    """Serialized RelationCacheEntry."""

    ids: Any = None
    captured_at: float
    dependency: Any = None


class AggregateSnapshot(BaseModel):
    """Everything needed to rebuild an aggregate from the cache."""

    type: str
    id: Any = None
    version: int = 1
    attributes: dict[str, Any] = {}
    relations: dict[str, RelationCacheSnapshot] = {}


def build_cache_key(prefix: str, type_name: str, aggregate_id: Any) -> str:
    """Build the cache key, e.g. ``AggregateModel:User:1``."""
    return f"{prefix}:{type_name}:{aggregate_id}"


def encode(key: str, snapshot: AggregateSnapshot) -> bytes:
    """Encode a snapshot for the cache store.

    Raises:
        SnapshotError: If an attribute value cannot be pickled.
    """
    try:
        return pickle.dumps(snapshot.model_dump(), protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, AttributeError, TypeError) as e:
        raise SnapshotError(key, f"cannot encode: {e}") from e


def decode(key: str, raw: bytes) -> AggregateSnapshot:
    """Decode a cached value.

    Raises:
        SnapshotError: If the payload is not a valid snapshot.
    """
    try:
        return AggregateSnapshot.model_validate(pickle.loads(raw))
    except ValidationError as e:
        raise SnapshotError(key, str(e)) from e
    except _UNPICKLE_ERRORS as e:
        raise SnapshotError(key, f"cannot decode: {e}") from e
