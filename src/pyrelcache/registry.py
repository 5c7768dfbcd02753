"""Entity type registry.

Registrations are scoped to a named namespace (an alias such as the name of
the remote API the types come from). :func:`get_registry` hands out the one
registry for an alias; independently configured namespaces never see each
other's types.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pyrelcache.exceptions import DuplicateTypeError, UnknownTypeError
from pyrelcache.models.types import EntityType, Relation

_logger = logging.getLogger(__name__)

_NAMESPACES: dict[str, EntityRegistry] = {}
_NAMESPACES_LOCK = threading.Lock()


class EntityRegistry:
    """Maps entity type names to their immutable :class:`EntityType`."""

    def __init__(self, namespace: str = "default", *, infer_relations: bool = True) -> None:
        self._namespace = namespace
        self._infer_relations = infer_relations
        self._types: dict[str, EntityType] = {}
        self._by_lower_name: dict[str, str] = {}

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def infer_relations(self) -> bool:
        return self._infer_relations

    def register(
        self,
        name: str,
        *,
        id_field: str = "id",
        defaults: Mapping[str, Any] | Callable[..., Any] | None = None,
        relations: Mapping[str, Relation | str] | None = None,
        setup: Callable[..., Any] | None = None,
    ) -> EntityType:
        """Register an entity type and return its descriptor.

        Raises
        ------
        DuplicateTypeError
            If *name* is already registered in this namespace.
        """
        entity_type = EntityType(
            name=name,
            id_field=id_field,
            defaults=defaults,
            relations=relations or {},
            setup=setup,
        )
        if entity_type.name in self._types:
            raise DuplicateTypeError(entity_type.name, namespace=self._namespace)

        self._types[entity_type.name] = entity_type
        self._by_lower_name.setdefault(entity_type.name.lower(), entity_type.name)
        _logger.debug("Registered entity type %s in namespace %s", entity_type.name, self._namespace)
        return entity_type

    def lookup(self, name: str) -> EntityType | None:
        return self._types.get(name)

    def require(self, name: str) -> EntityType:
        entity_type = self._types.get(name)
        if entity_type is None:
            raise UnknownTypeError(name, namespace=self._namespace)
        return entity_type

    def type_for_field(self, field_name: str) -> EntityType | None:
        """Return the type a field name refers to by naming convention.

        An exact name match wins over a case-insensitive one, so ``task``
        finds ``Task`` unless a type literally named ``task`` exists.
        """
        if not self._infer_relations:
            return None
        entity_type = self._types.get(field_name)
        if entity_type is not None:
            return entity_type
        name = self._by_lower_name.get(field_name.lower())
        return self._types.get(name) if name is not None else None

    def names(self) -> list[str]:
        return list(self._types)

    def reset(self) -> None:
        """Drop every registration in this namespace."""
        self._types.clear()
        self._by_lower_name.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[EntityType]:
        return iter(list(self._types.values()))

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"EntityRegistry(namespace={self._namespace!r}, types={self.names()!r})"


def get_registry(namespace: str = "default", *, infer_relations: bool = True) -> EntityRegistry:
    """Return the process-wide registry for *namespace*, creating it on first use.

    ``infer_relations`` only applies when the registry is created.
    """
    with _NAMESPACES_LOCK:
        registry = _NAMESPACES.get(namespace)
        if registry is None:
            registry = EntityRegistry(namespace, infer_relations=infer_relations)
            _NAMESPACES[namespace] = registry
        return registry


def reset_all() -> None:
    """Clear every registration in every namespace."""
    with _NAMESPACES_LOCK:
        for registry in _NAMESPACES.values():
            registry.reset()
        _NAMESPACES.clear()
