"""Normalization of raw service payloads into canonical entity graphs.

The normalizer walks a raw nested value against an expected entity type:

- lists normalize element-wise (order and duplicates preserved)
- records become :class:`Entity` instances (defaults, then raw fields)
- relation fields are normalized recursively against their related type
- keyed instances are upserted and replaced by their canonical instance

A parent field is only ever assigned the value returned by the recursive
call for that field, so it always ends up holding the canonical instance.
Children are therefore resolved and canonicalized before their parent.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pyrelcache._redact import redact_for_log
from pyrelcache.config import MergeStrategy
from pyrelcache.exceptions import EntityDefinitionError, InvalidKeyError, UnknownTypeError
from pyrelcache.models.entity import Entity, ModelContext
from pyrelcache.models.types import Cardinality, Computed, EntityType, Relation
from pyrelcache.registry import EntityRegistry
from pyrelcache.resolver import Identity, classify, is_record, is_valid_key, relation_fields
from pyrelcache.state.store import CanonicalStore

_logger = logging.getLogger(__name__)


@dataclass
class _WalkState:
    """Per-call cycle guard.

    ``visiting`` holds the identities of keyed records on the current call
    stack. ``in_progress`` maps ``id()`` of raw objects currently being
    normalized to the instance built for them.
    """

    visiting: set[Identity] = field(default_factory=set)
    in_progress: dict[int, Entity] = field(default_factory=dict)


class Normalizer:
    """Convert raw payloads into canonical, cycle-safe entity graphs."""

    def __init__(self, registry: EntityRegistry, store: CanonicalStore, *, log_payloads: bool = False) -> None:
        self._registry = registry
        self._store = store
        self._log_payloads = log_payloads

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def store(self) -> CanonicalStore:
        return self._store

    def normalize(self, raw: Any, type_name: str) -> Any:
        """Normalize *raw* as an instance (or list of instances) of *type_name*.

        Raises
        ------
        UnknownTypeError
            If *type_name* is not registered.
        InvalidKeyError
            If a record carries a primary key the store cannot use. Entities
            committed earlier in the same call stay committed.
        """
        entity_type = self._registry.require(type_name)
        if self._log_payloads:
            _logger.debug("Normalizing %s payload: %s", entity_type.name, redact_for_log(raw))
        else:
            _logger.debug("Normalizing %s payload (%s)", entity_type.name, type(raw).__name__)
        return self._normalize(raw, entity_type, _WalkState())

    def upsert(self, type_name: str, key: Any, fields: Entity | Mapping[str, Any]) -> Entity:
        """Store *fields* under *key*, building new records like :meth:`normalize` does.

        Mappings get defaults, computed fields, setup hooks and relation
        normalization. Entities go to the store as they are.
        """
        entity_type = self._registry.require(type_name)
        if not is_valid_key(key):
            raise InvalidKeyError(entity_type.name, key)
        if isinstance(fields, Entity):
            return self._store.upsert(entity_type.name, key, fields)
        if not isinstance(fields, Mapping):
            raise TypeError(f"Cannot store {type(fields).__name__} as a {entity_type.name} entity")
        record = {**fields, entity_type.id_field: key}
        return self._normalize_record(record, record, entity_type, _WalkState())

    def context(self) -> ModelContext:
        """A context bound to this normalizer, starting a fresh walk on each call."""
        return ModelContext(registry=self._registry, store=self._store, normalize=self.normalize)

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _normalize(self, raw: Any, entity_type: EntityType, state: _WalkState) -> Any:
        if isinstance(raw, (list, tuple)):
            return [self._normalize(item, entity_type, state) for item in raw]

        if isinstance(raw, Entity):
            return self._normalize_entity(raw, entity_type, state)

        if isinstance(raw, Mapping):
            return self._normalize_record(raw, raw, entity_type, state)

        # Scalars (including bare foreign keys) and None are not entities.
        return raw

    def _normalize_entity(self, entity: Entity, entity_type: EntityType, state: _WalkState) -> Any:
        if entity.entity_type is not entity_type:
            _logger.debug("Keeping %r in a %s relation as is", entity, entity_type.name)
            return entity

        key = entity.primary_key
        if key is not None and self._store.get(entity_type.name, key) is entity:
            return entity

        return self._normalize_record(entity, entity.to_dict(), entity_type, state, instance=entity)

    def _normalize_record(
        self,
        source: Mapping[str, Any] | Entity,
        data: Mapping[str, Any],
        entity_type: EntityType,
        state: _WalkState,
        *,
        instance: Entity | None = None,
    ) -> Entity:
        identity = classify(source, self._registry, entity_type.name)
        if identity is None:
            raise UnknownTypeError(entity_type.name, namespace=self._registry.namespace)
        key = identity.key
        if key is not None and not is_valid_key(key):
            raise InvalidKeyError(entity_type.name, key)

        if key is not None and identity in state.visiting:
            return self._placeholder(entity_type, key, data)

        in_progress = state.in_progress.get(id(source))
        if in_progress is not None:
            return in_progress

        defaulted: dict[str, Any] = {}
        if instance is None:
            instance, defaulted = self._instantiate(entity_type, data, self.context())

        # The setup hook shares this walk's cycle guard.
        hook_context = ModelContext(
            registry=self._registry,
            store=self._store,
            normalize=lambda value, type_name: self._normalize(value, self._registry.require(type_name), state),
        )

        if key is not None:
            state.visiting.add(identity)
        state.in_progress[id(source)] = instance
        try:
            for field_name, relation in relation_fields(entity_type, instance.to_dict(), self._registry):
                instance[field_name] = self._normalize_relation(instance[field_name], relation, state)

            if entity_type.setup is not None:
                replacement = entity_type.setup(instance, hook_context)
                if isinstance(replacement, Entity):
                    instance = replacement
        finally:
            state.in_progress.pop(id(source), None)
            state.visiting.discard(identity)

        key = instance.primary_key
        if key is None:
            return instance
        self._drop_stale_defaults(instance, defaulted)
        return self._store.upsert(entity_type.name, key, instance)

    def _drop_stale_defaults(self, instance: Entity, defaulted: Mapping[str, Any]) -> None:
        # Defaults only fill gaps: they must not overwrite what the canonical
        # instance already holds when merging.
        if not defaulted or self._store.merge_strategy is MergeStrategy.REPLACE:
            return
        existing = self._store.get(instance.type_name, instance.primary_key)
        if existing is None or existing is instance:
            return
        for name, value in defaulted.items():
            if name in existing.keys() and instance.get(name) is value:
                del instance[name]

    def _normalize_relation(self, value: Any, relation: Relation, state: _WalkState) -> Any:
        related = self._registry.lookup(relation.target)
        if related is None:
            _logger.debug("Relation target %s is not registered; leaving value as is", relation.target)
            return value
        if relation.cardinality is Cardinality.MANY and is_record(value):
            value = [value]
        return self._normalize(value, related, state)

    def _placeholder(self, entity_type: EntityType, key: Any, data: Mapping[str, Any]) -> Entity:
        """Resolve a record whose key is already on the walk stack.

        Its plain fields are merged into the stored entry (created if
        needed) without descending into its relations. The outer record
        merges over them once it is canonicalized.
        """
        skipped = {name for name, _ in relation_fields(entity_type, data, self._registry)}
        fields = {name: value for name, value in data.items() if name not in skipped}
        fields[entity_type.id_field] = key
        _logger.debug("Cycle on %s %r; merging %d plain fields", entity_type.name, key, len(fields))
        return self._store.upsert(entity_type.name, key, fields)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _instantiate(
        self,
        entity_type: EntityType,
        data: Mapping[str, Any],
        context: ModelContext,
    ) -> tuple[Entity, dict[str, Any]]:
        """Build an instance from defaults overlaid with *data*.

        Also returns the fields whose value came from the defaults alone.
        """
        defaults = _resolve_defaults(entity_type, data, context)
        fields: dict[str, Any] = {}
        computed: dict[str, Computed] = {}
        for name, value in defaults.items():
            if isinstance(value, Computed):
                computed[name] = value
            else:
                fields[name] = value
        defaulted = {name: value for name, value in fields.items() if name not in data}
        fields.update(data)
        return Entity(entity_type, fields, computed=computed, context=context), defaulted


def _resolve_defaults(entity_type: EntityType, data: Mapping[str, Any], context: ModelContext) -> dict[str, Any]:
    policy = entity_type.defaults
    if policy is None:
        return {}

    produced = policy(data, context) if callable(policy) else policy
    if produced is None:
        return {}
    if not isinstance(produced, Mapping):
        raise EntityDefinitionError(
            f"Defaults for {entity_type.name} must be a mapping, got {type(produced).__name__}"
        )

    # Static defaults are shared between instances; copy mutable values.
    # Entities nested anywhere inside are kept by reference (Entity.__deepcopy__).
    return {
        name: value if isinstance(value, Computed) else copy.deepcopy(value)
        for name, value in produced.items()
    }
