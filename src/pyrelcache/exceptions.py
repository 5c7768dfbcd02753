"""Custom exception hierarchy for pyrelcache."""

from __future__ import annotations

from typing import Any


class RelCacheError(Exception):
    """Base exception for all pyrelcache errors."""


class RelCacheConfigError(RelCacheError):
    """Invalid or missing configuration."""


class DuplicateTypeError(RelCacheError):
    """An entity type name is already registered in the namespace."""

    def __init__(self, type_name: str, *, namespace: str = "") -> None:
        self.type_name = type_name
        self.namespace = namespace
        super().__init__(f"Entity type {type_name!r} is already registered in namespace {namespace!r}")


class UnknownTypeError(RelCacheError):
    """An entity type name is not registered in the namespace."""

    def __init__(self, type_name: str, *, namespace: str = "") -> None:
        self.type_name = type_name
        self.namespace = namespace
        super().__init__(f"Entity type {type_name!r} is not registered in namespace {namespace!r}")


class InvalidKeyError(RelCacheError):
    """A store was asked to key an entity by an unsupported value.

    Keys must be strings, integers (not booleans), finite floats or UUIDs.
    """

    def __init__(self, type_name: str, key: Any) -> None:
        self.type_name = type_name
        self.key = key
        super().__init__(f"Unsupported primary key {key!r} ({type(key).__name__}) for entity type {type_name!r}")


class EntityDefinitionError(RelCacheError):
    """An entity type's defaults policy produced something unusable."""
