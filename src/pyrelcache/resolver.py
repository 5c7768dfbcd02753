"""Identity resolution.

Decides whether a nested value is an entity of a registered type, which
fields of a record point at other types, and whether a value can be used
as a store key.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterator, Mapping
from typing import Any, NamedTuple

from pyrelcache.models.entity import Entity
from pyrelcache.models.types import Cardinality, EntityType, Relation
from pyrelcache.registry import EntityRegistry


class Identity(NamedTuple):
    type_name: str
    key: Any
    """Primary key, ``None`` for a transient record."""

    @property
    def is_transient(self) -> bool:
        return self.key is None


def is_record(value: Any) -> bool:
    return isinstance(value, (Mapping, Entity))


def is_valid_key(value: Any) -> bool:
    """Return True if *value* can key a canonical store entry."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (str, int, uuid.UUID)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def classify(value: Any, registry: EntityRegistry, expected_type: str | None = None) -> Identity | None:
    """Classify *value* as an entity of a registered type.

    Returns ``None`` (NotAnEntity) for non-records and for plain records
    when no expected type is given. An expected type coerces a plain record.
    """
    if isinstance(value, Entity):
        return Identity(value.type_name, value.primary_key)

    if not isinstance(value, Mapping) or expected_type is None:
        return None

    entity_type = registry.lookup(expected_type)
    if entity_type is None:
        return None
    return Identity(entity_type.name, value.get(entity_type.id_field))


def relation_for(entity_type: EntityType, field_name: str, registry: EntityRegistry) -> Relation | None:
    """Return the relation a field of *entity_type* holds, if any.

    Declared relations win. Otherwise a field named after a registered type
    relates to that type.
    """
    if field_name == entity_type.id_field:
        return None

    declared = entity_type.relations.get(field_name)
    if declared is not None:
        return declared

    related = registry.type_for_field(field_name)
    if related is None:
        return None
    return Relation(target=related.name, cardinality=Cardinality.AUTO)


def relation_fields(
    entity_type: EntityType,
    data: Mapping[str, Any],
    registry: EntityRegistry,
) -> Iterator[tuple[str, Relation]]:
    """Yield ``(field, relation)`` for every candidate relation field in *data*.

    Candidates hold a record, an entity, or a list/tuple. Scalars (for
    example a bare foreign key) are left alone.
    """
    for field_name, value in list(data.items()):
        if not (is_record(value) or isinstance(value, (list, tuple))):
            continue
        relation = relation_for(entity_type, field_name, registry)
        if relation is not None:
            yield field_name, relation
