"""Entity type descriptors and entity instances."""

from pyrelcache.models.entity import Entity, ModelContext
from pyrelcache.models.types import Cardinality, Computed, EntityType, Relation, computed

__all__ = [
    "Cardinality",
    "Computed",
    "Entity",
    "EntityType",
    "ModelContext",
    "Relation",
    "computed",
]
