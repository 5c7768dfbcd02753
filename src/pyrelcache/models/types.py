"""Entity type descriptors.

An :class:`EntityType` is the immutable registration record for one kind of
normalizable record: its name, the field holding its primary key, how new
instances get their default values, which fields relate to other types,
and an optional setup hook.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Cardinality(StrEnum):
    ONE = "one"
    MANY = "many"
    AUTO = "auto"
    """Follow the payload: a record stays single, a list stays a list."""


class Relation(BaseModel):
    """A declared relation from a field to another entity type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str = Field(..., description="Related entity type name")
    cardinality: Cardinality = Cardinality.AUTO

    @field_validator("target")
    @classmethod
    def _normalize_target(cls, value: str) -> str:
        target = value.strip()
        if not target:
            raise ValueError("relation target must be non-empty")
        return target


@dataclass(frozen=True, slots=True)
class Computed:
    """A derived field, re-evaluated on every access.

    ``func`` receives the entity and the :class:`~pyrelcache.models.entity.ModelContext`
    it was built in. Computed values are never stored.
    """

    func: Callable[..., Any]


def computed(func: Callable[..., Any]) -> Computed:
    """Mark *func* as a computed default (usable as a decorator)."""
    return Computed(func)


class EntityType(BaseModel):
    """Immutable registration of an entity type.

    ``defaults`` is either ``None``, a static mapping, or a callable
    ``(data, ctx) -> mapping`` that may choose defaults from the incoming
    raw data. Values may be :class:`Computed`.

    ``setup`` is called as ``setup(instance, ctx)`` once nested relations are
    resolved and before the instance is canonicalized. It may return a
    replacement instance or ``None`` to keep the one it was given.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    name: str
    id_field: str = "id"
    defaults: Mapping[str, Any] | Callable[..., Any] | None = None
    relations: dict[str, Relation] = Field(default_factory=dict)
    setup: Callable[..., Any] | None = None

    @field_validator("name", "id_field")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    @field_validator("relations", mode="before")
    @classmethod
    def _coerce_relations(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            return value
        coerced: dict[str, Any] = {}
        for field_name, relation in value.items():
            if isinstance(relation, str):
                coerced[field_name] = Relation(target=relation)
            else:
                coerced[field_name] = relation
        return coerced
