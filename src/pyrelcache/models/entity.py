"""Entity instances.

An :class:`Entity` is a mutable record of a registered type. Fields are
reachable both as attributes (``todo.item``) and by key (``todo["item"]``).
Fields whose names clash with the class API (``get``, ``keys`` ...) are only
reachable by key.

Entities compare by identity. Two references to the same ``(type, key)``
pair are the same object once they have passed through the store.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from pyrelcache.models.types import Computed, EntityType

if TYPE_CHECKING:
    from pyrelcache.registry import EntityRegistry
    from pyrelcache.state.store import CanonicalStore


@dataclasses.dataclass(frozen=True)
class ModelContext:
    """Handles passed to defaults policies, setup hooks and computed fields."""

    registry: EntityRegistry
    store: CanonicalStore
    normalize: Callable[[Any, str], Any] | None = None

    def get(self, type_name: str, key: Any) -> Entity | None:
        return self.store.get(type_name, key)

    def all(self, type_name: str) -> list[Entity]:
        return self.store.all(type_name)

    def find(self, type_name: str, **query: Any) -> list[Entity]:
        return self.store.find(type_name, **query)

    def find_where(self, type_name: str, predicate: Callable[[Entity], bool]) -> list[Entity]:
        return self.store.find_where(type_name, predicate)


class Entity:
    """A mutable record of an entity type."""

    __slots__ = ("_entity_type", "_data", "_computed", "_context", "__weakref__")

    def __init__(
        self,
        entity_type: EntityType,
        data: Mapping[str, Any] | None = None,
        *,
        computed: Mapping[str, Computed] | None = None,
        context: ModelContext | None = None,
    ) -> None:
        object.__setattr__(self, "_entity_type", entity_type)
        object.__setattr__(self, "_data", dict(data or {}))
        object.__setattr__(self, "_computed", dict(computed or {}))
        object.__setattr__(self, "_context", context)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def entity_type(self) -> EntityType:
        return self._entity_type

    @property
    def type_name(self) -> str:
        return self._entity_type.name

    @property
    def primary_key(self) -> Any:
        """Primary key value, or ``None`` for a transient instance."""
        return self._data.get(self._entity_type.id_field)

    @property
    def is_transient(self) -> bool:
        return self.primary_key is None

    @property
    def computed_fields(self) -> frozenset[str]:
        return frozenset(name for name in self._computed if name not in self._data)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        data = object.__getattribute__(self, "_data")
        if name in data:
            return data[name]
        comp = object.__getattribute__(self, "_computed").get(name)
        if comp is not None:
            return self._evaluate(comp)
        raise AttributeError(f"{self.type_name} entity has no field {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in Entity.__slots__:
            object.__setattr__(self, name, value)
            return
        self._data[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, name: str) -> Any:
        if name in self._data:
            return self._data[name]
        comp = self._computed.get(name)
        if comp is not None:
            return self._evaluate(comp)
        raise KeyError(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __delitem__(self, name: str) -> None:
        del self._data[name]

    def __contains__(self, name: object) -> bool:
        return name in self._data or name in self._computed

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return True

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def keys(self) -> list[str]:
        return list(self._data)

    def items(self) -> list[tuple[str, Any]]:
        return list(self._data.items())

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy of the stored fields (computed fields excluded)."""
        return dict(self._data)

    def _evaluate(self, comp: Computed) -> Any:
        return comp.func(self, self._context)

    # ------------------------------------------------------------------
    # Store internals
    # ------------------------------------------------------------------

    def _merge_from(self, fields: Mapping[str, Any], *, replace: bool = False) -> None:
        if replace:
            id_field = self._entity_type.id_field
            for name in [name for name in self._data if name != id_field and name not in fields]:
                del self._data[name]
        self._data.update(fields)

    def _adopt_computed(self, other: Entity) -> None:
        for name, comp in other._computed.items():
            self._computed.setdefault(name, comp)
        if self._context is None and other._context is not None:
            object.__setattr__(self, "_context", other._context)

    def __deepcopy__(self, memo: dict[int, Any]) -> Entity:
        # Entities are references into the store; copying containers that
        # hold them keeps the same instance.
        return self

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._data) | set(self._computed))

    def __repr__(self) -> str:
        key = self.primary_key
        if key is None:
            return f"<{self.type_name} (transient) at {id(self):#x}>"
        return f"<{self.type_name} {self._entity_type.id_field}={key!r}>"
