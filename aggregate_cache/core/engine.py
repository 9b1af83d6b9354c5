"""Aggregate engine.

The Engine owns the long-lived collaborators: the registry, the child model
store, the cache store and the clock. Each unit of work opens a Session,
which owns an identity map and runs the load/save pipeline:

    load:  identity map -> cache store -> child records (then write through)
    save:  validate -> child records -> version bump -> cache store
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from aggregate_cache.adapters.protocol import CacheStore, ChildModelStore
from aggregate_cache.core.aggregate import Aggregate
from aggregate_cache.core.collection import AggregateList
from aggregate_cache.core.config import CacheConfig, create_cache_store
from aggregate_cache.core.enums import SaveStatus
from aggregate_cache.core.exceptions import AggregateNotFoundError, SnapshotError
from aggregate_cache.core.identity import IdentityMap
from aggregate_cache.core.registry import AggregateRegistry
from aggregate_cache.core.snapshot import build_cache_key, decode, encode
from aggregate_cache.mapping.plan import AggregateDefinition
from aggregate_cache.mapping.resolver import get_field, is_record, resolve, set_field

logger = logging.getLogger(__name__)

_ID_COLLECTIONS = (list, tuple, set, frozenset, AggregateList, Iterator)


@dataclass
class SaveResult:
    """Outcome of a save or update. Truthy only on success."""

    status: SaveStatus
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is SaveStatus.OK

    def __bool__(self) -> bool:
        return self.ok


def _is_id_collection(value: Any) -> bool:
    return isinstance(value, _ID_COLLECTIONS)


class Engine:
    """Long-lived aggregate engine.

    Args:
        registry: Registered aggregate definitions.
        store: The child model store.
        cache: The cache store holding aggregate snapshots.
        config: Cache configuration (key prefix, default TTL).
        clock: Returns the current time in seconds.
    """

    def __init__(
        self,
        registry: AggregateRegistry,
        store: ChildModelStore,
        cache: CacheStore,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.store = store
        self.cache = cache
        self.config = config or CacheConfig()
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        registry: AggregateRegistry,
        store: ChildModelStore,
        clock: Callable[[], float] = time.time,
    ) -> Engine:
        """Create an Engine whose cache store is built from ``config``."""
        return cls(registry, store, create_cache_store(config), config, clock)

    def cache_key(self, type_name: str, aggregate_id: Any) -> str:
        return build_cache_key(self.config.key_prefix, type_name, aggregate_id)

    def cache_ttl(self, definition: AggregateDefinition) -> int:
        if definition.cache_duration is not None:
            return definition.cache_duration
        return self.config.default_ttl

    def session(self) -> Session:
        """Open a new unit of work with its own identity map."""
        return Session(self)


class Session:
    """One unit of work: an identity map plus the load/save pipeline.

    Usable as a context manager; the identity map is cleared on exit.
    Never share a session between concurrent units of work.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.identity_map = IdentityMap()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.identity_map.clear()

    def now(self) -> float:
        return self.engine.clock()

    def definition(self, type_ref: str | AggregateDefinition) -> AggregateDefinition:
        if isinstance(type_ref, AggregateDefinition):
            return type_ref
        return self.engine.registry.get(type_ref)

    def _new(self, definition: AggregateDefinition) -> Aggregate:
        cls = definition.aggregate_class or Aggregate
        return cls(definition, self)  # type: ignore[no-any-return]

    # --- load ---

    def load(
        self,
        type_ref: str | AggregateDefinition,
        id_or_ids: Any,
        skip_identity_map: bool = False,
        force_refresh: bool = False,
    ) -> Any:
        """Load one aggregate, or a lazy AggregateList for a collection of ids.

        Returns None when a required child record is missing.
        """
        definition = self.definition(type_ref)
        if _is_id_collection(id_or_ids):
            return AggregateList(self, definition.name, id_or_ids)

        if not force_refresh:
            if not skip_identity_map:
                loaded = self.identity_map.get(definition.name, id_or_ids)
                if loaded is not None:
                    return loaded
            loaded = self._load_from_cache(definition, id_or_ids, skip_identity_map)
            if loaded is not None:
                return loaded

        loaded = self._load_from_store(definition, id_or_ids)
        if loaded is None:
            return None
        if force_refresh:
            # Keep the version observed so far; the store does not track it
            known = self._known_version(definition, id_or_ids, skip_identity_map)
            if known is not None and known > loaded.version:
                loaded.set_attribute("version", known)
        loaded.skip_identity_map = skip_identity_map
        self._write_cache(loaded)
        return loaded

    def get(
        self,
        type_ref: str | AggregateDefinition,
        aggregate_id: Any,
        skip_identity_map: bool = False,
        force_refresh: bool = False,
    ) -> Aggregate:
        """Like load() for a single id, but raise when nothing is found.

        Raises:
            AggregateNotFoundError: If the aggregate cannot be assembled.
        """
        loaded = self.load(type_ref, aggregate_id, skip_identity_map, force_refresh)
        if loaded is None:
            raise AggregateNotFoundError(self.definition(type_ref).name, aggregate_id)
        return loaded  # type: ignore[no-any-return]

    def _load_from_cache(
        self,
        definition: AggregateDefinition,
        aggregate_id: Any,
        skip_identity_map: bool,
    ) -> Aggregate | None:
        key = self.engine.cache_key(definition.name, aggregate_id)
        raw = self.engine.cache.get(key)
        if raw is None:
            logger.debug("Cache miss for %s", key)
            return None
        try:
            snapshot = decode(key, raw)
        except SnapshotError as e:
            logger.warning("Discarding cached snapshot: %s", e)
            return None
        if snapshot.type != definition.name:
            logger.warning("Discarding cached snapshot at %s of type '%s'", key, snapshot.type)
            return None

        loaded = self._new(definition)
        loaded.restore_snapshot(snapshot)
        loaded.is_new = False
        loaded.skip_identity_map = skip_identity_map
        if not skip_identity_map:
            self.identity_map.put(definition.name, aggregate_id, loaded)
        logger.debug("Cache hit for %s (version %d)", key, snapshot.version)
        return loaded

    def _known_version(
        self,
        definition: AggregateDefinition,
        aggregate_id: Any,
        skip_identity_map: bool,
    ) -> int | None:
        if not skip_identity_map:
            current = self.identity_map.get(definition.name, aggregate_id)
            if current is not None:
                return current.version  # type: ignore[no-any-return]
        key = self.engine.cache_key(definition.name, aggregate_id)
        raw = self.engine.cache.get(key)
        if raw is None:
            return None
        try:
            return decode(key, raw).version
        except SnapshotError:
            return None

    def _load_from_store(self, definition: AggregateDefinition, aggregate_id: Any) -> Aggregate | None:
        records = self.find_records(definition, aggregate_id)
        if records is None:
            return None
        loaded = self._new(definition)
        loaded.set_attribute("id", aggregate_id)
        self.engine.registry.mapper(definition.name).populate_aggregate(loaded, records)
        loaded.is_new = False
        return loaded

    def find_records(
        self,
        definition: AggregateDefinition,
        aggregate_id: Any,
        enforce_required: bool = True,
    ) -> dict[str, Any] | None:
        """Find every declared child record for an aggregate id.

        Returns None if ``enforce_required`` and a required record is missing;
        otherwise missing records map to None.
        """
        store = self.engine.store
        records: dict[str, Any] = {}
        for dep in definition.models:
            field_name = dep.field or store.primary_key(dep.model_key)
            record = store.find_by_field(dep.model_key, field_name, aggregate_id)
            if record is None and dep.required and enforce_required:
                logger.info(
                    "%s(%r) not found: missing required %s record",
                    definition.name,
                    aggregate_id,
                    dep.model_key,
                )
                return None
            records[dep.model_key] = record
        return records

    # --- create / save ---

    def create(self, type_ref: str | AggregateDefinition, **attributes: Any) -> Aggregate:
        """Build a new, unsaved aggregate with defaults and ``attributes`` applied."""
        created = self._new(self.definition(type_ref))
        created.set_attributes(attributes)
        return created

    def assemble(self, definition: AggregateDefinition) -> dict[str, Any]:
        """Fresh child records for a new aggregate."""
        store = self.engine.store
        if definition.assemble is not None:
            return dict(definition.assemble(store))
        return {dep.model_key: store.create(dep.model_key) for dep in definition.models}

    def validate(self, aggregate: Aggregate) -> list[str]:
        """Run the schema and the validation hook, returning error messages."""
        definition = aggregate.definition
        errors: list[str] = []
        if definition.schema is not None:
            try:
                definition.schema.model_validate(aggregate.get_attributes())
            except ValidationError as e:
                for err in e.errors():
                    loc = ".".join(str(part) for part in err["loc"])
                    errors.append(f"{loc}: {err['msg']}")
        if definition.validator is not None:
            result = definition.validator(aggregate)
            if result is False:
                errors.append("validation failed")
            elif isinstance(result, str):
                errors.append(result)
            elif result not in (None, True):
                errors.extend(str(message) for message in result)
        return errors

    def save(self, aggregate: Aggregate, run_validation: bool = True) -> SaveResult:
        """Validate, then persist child records, bump the version and cache."""
        if run_validation:
            errors = self.validate(aggregate)
            if errors:
                logger.debug("Validation failed for %r: %s", aggregate, errors)
                return SaveResult(SaveStatus.VALIDATION_FAILED, errors)
        return self.update(aggregate, increment_version=True, persist=True)

    def update(
        self,
        aggregate: Aggregate,
        increment_version: bool = True,
        persist: bool = True,
    ) -> SaveResult:
        """Write an aggregate through to the child store and the cache.

        With ``persist=False`` only the cache entry is refreshed. The version
        is bumped whenever ``increment_version`` is set, whether or not any
        child field changed.
        """
        previous = aggregate.version
        if increment_version:
            aggregate.set_attribute("version", previous + 1)
        if persist:
            failure = self._check_cacheable(aggregate) or self._persist(aggregate)
            if failure is not None:
                aggregate.set_attribute("version", previous)
                return SaveResult(SaveStatus.PERSIST_FAILED, [failure])
            aggregate.is_new = False
        self._write_cache(aggregate)
        return SaveResult(SaveStatus.OK)

    def _persist(self, aggregate: Aggregate) -> str | None:
        """Write the aggregate onto its child records, in declared order.

        Returns an error message on the first failure. Earlier writes in the
        same call are not rolled back.
        """
        definition = aggregate.definition
        store = self.engine.store
        mapper = self.engine.registry.mapper(definition.name)

        if aggregate.is_new:
            records = self.assemble(definition)
        else:
            found = self.find_records(definition, aggregate.id, enforce_required=False)
            records = dict(found or {})
            assembled: dict[str, Any] | None = None
            for key, record in records.items():
                if record is None:
                    if assembled is None:
                        assembled = self.assemble(definition)
                    records[key] = assembled.get(key)

        mapper.populate_child_records(aggregate, records)
        for dep in definition.models:
            record = records.get(dep.model_key)
            if not is_record(record):
                message = f"No {dep.model_key} record available for {aggregate!r}"
                logger.warning("%s", message)
                return message
            if aggregate.id is not None and dep.field is not None:
                target = resolve(record, dep.field)
                if target is not None:
                    set_field(target[0], target[1], aggregate.id)
            if not store.persist(dep.model_key, record):
                message = f"Failed to persist {dep.model_key} record for {aggregate!r}"
                logger.warning("%s", message)
                return message
            # Pick up store-side changes such as generated keys
            mapper.populate_aggregate(aggregate, records, model_key=dep.model_key)
        return None

    def _check_cacheable(self, aggregate: Aggregate) -> str | None:
        """Return an error message if the aggregate's snapshot cannot be encoded.

        Runs before any child record is written, so a value the cache cannot
        hold fails the save without touching the store.
        """
        key = self.engine.cache_key(aggregate.type_name, aggregate.id)
        try:
            encode(key, aggregate.to_snapshot())
        except SnapshotError as e:
            logger.warning("Refusing to save %r: %s", aggregate, e)
            return str(e)
        return None

    def _write_cache(self, aggregate: Aggregate) -> None:
        """Write the snapshot through and register the identity map entry.

        Aggregates loaded with ``skip_identity_map`` are never registered.
        """
        if aggregate.id is None:
            logger.debug("Not caching %r without an id", aggregate)
            return
        engine = self.engine
        key = engine.cache_key(aggregate.type_name, aggregate.id)
        try:
            payload = encode(key, aggregate.to_snapshot())
        except SnapshotError as e:
            # Readers must not see an older snapshot than this instance
            engine.cache.delete(key)
            logger.warning("Not caching %r: %s", aggregate, e)
        else:
            engine.cache.set(key, payload, engine.cache_ttl(aggregate.definition))
            logger.debug("Cached %s (version %d)", key, aggregate.version)
        if not aggregate.skip_identity_map:
            self.identity_map.put(aggregate.type_name, aggregate.id, aggregate)

    # --- invalidation ---

    def evict(self, type_ref: str | AggregateDefinition, aggregate_id: Any) -> None:
        """Drop an aggregate from the cache store and the identity map."""
        definition = self.definition(type_ref)
        key = self.engine.cache_key(definition.name, aggregate_id)
        self.engine.cache.delete(key)
        self.identity_map.remove(definition.name, aggregate_id)
        logger.info("Evicted %s", key)

    def sync_child(self, model_key: str, record: Any) -> list[Aggregate]:
        """Propagate a child record saved elsewhere into its aggregates.

        Every aggregate type assembled from ``model_key`` is checked; mapped
        values that differ are copied onto the aggregate, which is then
        re-cached with a version bump but without writing child records.

        Returns:
            The aggregates that changed.
        """
        changed: list[Aggregate] = []
        registry = self.engine.registry
        for definition in registry.declaring(model_key):
            dep = definition.dependency(model_key)
            if dep is None:
                continue
            id_field = dep.field or self.engine.store.primary_key(model_key)
            target = resolve(record, id_field)
            if target is None:
                continue
            aggregate_id = get_field(*target)
            if aggregate_id is None:
                continue
            loaded = self.load(definition.name, aggregate_id)
            if loaded is None:
                continue

            mapper = registry.mapper(definition.name)
            updates: dict[str, Any] = {}
            for entry in definition.entries_for(model_key):
                ok, value = mapper.read(entry, record)
                if ok and value != loaded.get_attribute(entry.name):
                    updates[entry.name] = value
            if not updates:
                continue
            loaded.set_attributes(updates)
            self.update(loaded, increment_version=True, persist=False)
            changed.append(loaded)
        return changed
