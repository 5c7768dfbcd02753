"""pyrelcache - normalized relational object cache for service payloads."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrelcache")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrelcache.cache import RelationalCache
from pyrelcache.config import CacheConfig, MergeStrategy
from pyrelcache.exceptions import (
    DuplicateTypeError,
    EntityDefinitionError,
    InvalidKeyError,
    RelCacheConfigError,
    RelCacheError,
    UnknownTypeError,
)
from pyrelcache.models import (
    Cardinality,
    Computed,
    Entity,
    EntityType,
    ModelContext,
    Relation,
    computed,
)
from pyrelcache.normalizer import Normalizer
from pyrelcache.registry import EntityRegistry, get_registry, reset_all
from pyrelcache.resolver import Identity, classify
from pyrelcache.state.events import StoreAction, StoreEvent
from pyrelcache.state.store import CanonicalStore, TypeStore

__all__ = [
    "__version__",
    "CacheConfig",
    "CanonicalStore",
    "Cardinality",
    "Computed",
    "DuplicateTypeError",
    "Entity",
    "EntityDefinitionError",
    "EntityRegistry",
    "EntityType",
    "Identity",
    "InvalidKeyError",
    "MergeStrategy",
    "ModelContext",
    "Normalizer",
    "Relation",
    "RelCacheConfigError",
    "RelCacheError",
    "RelationalCache",
    "StoreAction",
    "StoreEvent",
    "TypeStore",
    "UnknownTypeError",
    "classify",
    "computed",
    "get_registry",
    "reset_all",
]
