"""Canonical in-memory entity store.

This is the only component allowed to decide which instance is canonical
for a ``(type, key)`` pair. Upserting a known key mutates the existing
instance in place, so every holder of that instance observes the update.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from pyrelcache.config import MergeStrategy, parse_merge_strategy
from pyrelcache.exceptions import InvalidKeyError
from pyrelcache.models.entity import Entity
from pyrelcache.models.types import EntityType
from pyrelcache.registry import EntityRegistry
from pyrelcache.resolver import is_valid_key
from pyrelcache.state.events import StoreAction, StoreEvent

_logger = logging.getLogger(__name__)

Subscriber = Callable[[StoreEvent], None]

_MISSING = object()


class TypeStore:
    """Primary key to canonical instance mapping for one entity type.

    Entries keep the order in which their key was first upserted.
    """

    def __init__(
        self,
        entity_type: EntityType,
        *,
        merge_strategy: MergeStrategy = MergeStrategy.MERGE,
        notify: Subscriber | None = None,
    ) -> None:
        self._entity_type = entity_type
        self._merge_strategy = merge_strategy
        self._notify = notify
        self._entities: dict[Any, Entity] = {}
        self._lock = threading.RLock()

    @property
    def entity_type(self) -> EntityType:
        return self._entity_type

    @property
    def type_name(self) -> str:
        return self._entity_type.name

    def _coerce(self, fields: Entity | Mapping[str, Any]) -> Entity:
        if isinstance(fields, Entity):
            if fields.entity_type is self._entity_type:
                return fields
            return Entity(self._entity_type, fields.to_dict())
        if isinstance(fields, Mapping):
            return Entity(self._entity_type, fields)
        raise TypeError(f"Cannot store {type(fields).__name__} as a {self.type_name} entity")

    def upsert(self, key: Any, fields: Entity | Mapping[str, Any]) -> Entity:
        """Store *fields* under *key* and return the canonical instance.

        An unseen key makes the given entity canonical (a mapping is wrapped
        into a new entity). A known key merges the fields onto the existing
        instance without replacing it.

        This is raw store access: mappings are not run through defaults,
        setup hooks or relation normalization. ``RelationalCache.upsert``
        does that.
        """
        if not is_valid_key(key):
            raise InvalidKeyError(self.type_name, key)

        id_field = self._entity_type.id_field
        with self._lock:
            existing = self._entities.get(key)
            if existing is None:
                entity = self._coerce(fields)
                entity[id_field] = key
                self._entities[key] = entity
                action = StoreAction.CREATED
            else:
                entity = existing
                if fields is not existing:
                    incoming = fields.to_dict() if isinstance(fields, Entity) else dict(fields)
                    incoming[id_field] = key
                    existing._merge_from(incoming, replace=self._merge_strategy is MergeStrategy.REPLACE)
                    if isinstance(fields, Entity):
                        existing._adopt_computed(fields)
                action = StoreAction.UPDATED

        self._emit(action, key, entity)
        return entity

    def get(self, key: Any) -> Entity | None:
        if not is_valid_key(key):
            return None
        return self._entities.get(key)

    def remove(self, key: Any) -> None:
        """Detach *key*. References already handed out stay valid."""
        if not is_valid_key(key):
            return
        with self._lock:
            entity = self._entities.pop(key, None)
        if entity is not None:
            self._emit(StoreAction.REMOVED, key, entity)

    def all(self) -> list[Entity]:
        return list(self._entities.values())

    def keys(self) -> list[Any]:
        return list(self._entities)

    def find_where(self, predicate: Callable[[Entity], bool]) -> list[Entity]:
        return [entity for entity in self.all() if predicate(entity)]

    def find(self, **query: Any) -> list[Entity]:
        """Entities whose fields equal every ``field=value`` in *query*."""
        return self.find_where(
            lambda entity: all(entity.get(name, _MISSING) == value for name, value in query.items())
        )

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()

    def _emit(self, action: StoreAction, key: Any, entity: Entity) -> None:
        if self._notify is None:
            return
        self._notify(StoreEvent(type_name=self.type_name, key=key, action=action, entity=entity))

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entities)


class CanonicalStore:
    """Per-type canonical stores for the types of one registry."""

    def __init__(
        self,
        registry: EntityRegistry,
        *,
        merge_strategy: MergeStrategy | str = MergeStrategy.MERGE,
    ) -> None:
        self._registry = registry
        self._merge_strategy = parse_merge_strategy(merge_strategy)
        self._stores: dict[str, TypeStore] = {}
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def merge_strategy(self) -> MergeStrategy:
        return self._merge_strategy

    def of(self, type_name: str) -> TypeStore:
        """Return the store for a registered type.

        Raises
        ------
        UnknownTypeError
            If *type_name* is not registered.
        """
        entity_type = self._registry.require(type_name)
        with self._lock:
            store = self._stores.get(entity_type.name)
            if store is None or store.entity_type is not entity_type:
                if store is not None:
                    _logger.debug("Entity type %s was re-registered; dropping its stored entities", type_name)
                store = TypeStore(entity_type, merge_strategy=self._merge_strategy, notify=self._publish)
                self._stores[entity_type.name] = store
            return store

    def upsert(self, type_name: str, key: Any, fields: Entity | Mapping[str, Any]) -> Entity:
        return self.of(type_name).upsert(key, fields)

    def get(self, type_name: str, key: Any) -> Entity | None:
        return self.of(type_name).get(key)

    def remove(self, type_name: str, key: Any) -> None:
        self.of(type_name).remove(key)

    def all(self, type_name: str) -> list[Entity]:
        return self.of(type_name).all()

    def find_where(self, type_name: str, predicate: Callable[[Entity], bool]) -> list[Entity]:
        return self.of(type_name).find_where(predicate)

    def find(self, type_name: str, **query: Any) -> list[Entity]:
        return self.of(type_name).find(**query)

    def clear(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.clear()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call *callback* with every :class:`StoreEvent`. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def _publish(self, event: StoreEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                _logger.debug(
                    "Store subscriber failed for %s %s/%r", event.action, event.type_name, event.key, exc_info=True
                )
