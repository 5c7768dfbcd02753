"""High-level relational cache."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pyrelcache.config import CacheConfig
from pyrelcache.models.entity import Entity, ModelContext
from pyrelcache.models.types import EntityType, Relation
from pyrelcache.normalizer import Normalizer
from pyrelcache.registry import EntityRegistry, get_registry
from pyrelcache.state.events import StoreEvent
from pyrelcache.state.store import CanonicalStore

_logger = logging.getLogger(__name__)


class RelationalCache:
    """Normalized client-side cache for entities received from a data service.

    Usage::

        cache = RelationalCache(CacheConfig(namespace="myApi"))
        cache.register("Todo")
        cache.register("Item")
        todo = cache.normalize({"id": 1, "item": {"id": 2}}, "Todo")
        assert cache.get("Item", 2) is todo.item
    """

    def __init__(self, config: CacheConfig | None = None, *, registry: EntityRegistry | None = None) -> None:
        self._config = config if config is not None else CacheConfig()
        if registry is None:
            registry = get_registry(self._config.namespace, infer_relations=self._config.infer_relations)
        self._registry = registry
        self._store = CanonicalStore(registry, merge_strategy=self._config.merge_strategy)
        self._normalizer = Normalizer(registry, self._store, log_payloads=self._config.log_payloads)
        _logger.debug(
            "Relational cache ready (namespace=%s, merge_strategy=%s)",
            registry.namespace,
            self._config.merge_strategy,
        )

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def store(self) -> CanonicalStore:
        return self._store

    @property
    def context(self) -> ModelContext:
        return self._normalizer.context()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        *,
        id_field: str = "id",
        defaults: Mapping[str, Any] | Callable[..., Any] | None = None,
        relations: Mapping[str, Relation | str] | None = None,
        setup: Callable[..., Any] | None = None,
    ) -> EntityType:
        return self._registry.register(name, id_field=id_field, defaults=defaults, relations=relations, setup=setup)

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, raw: Any, type_name: str) -> Any:
        """Normalize a raw payload; see :meth:`pyrelcache.normalizer.Normalizer.normalize`."""
        return self._normalizer.normalize(raw, type_name)

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    def get(self, type_name: str, key: Any) -> Entity | None:
        return self._store.get(type_name, key)

    def all(self, type_name: str) -> list[Entity]:
        return self._store.all(type_name)

    def find(self, type_name: str, **query: Any) -> list[Entity]:
        return self._store.find(type_name, **query)

    def find_where(self, type_name: str, predicate: Callable[[Entity], bool]) -> list[Entity]:
        return self._store.find_where(type_name, predicate)

    def upsert(self, type_name: str, key: Any, fields: Entity | Mapping[str, Any]) -> Entity:
        """Upsert through the normalizer so new records get defaults and relations."""
        return self._normalizer.upsert(type_name, key, fields)

    def remove(self, type_name: str, key: Any) -> None:
        self._store.remove(type_name, key)

    def subscribe(self, callback: Callable[[StoreEvent], None]) -> Callable[[], None]:
        return self._store.subscribe(callback)

    def clear(self) -> None:
        self._store.clear()
