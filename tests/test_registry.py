from __future__ import annotations

import pytest
from pydantic import ValidationError

from pyrelcache.exceptions import DuplicateTypeError, UnknownTypeError
from pyrelcache.models.types import Cardinality, Relation
from pyrelcache.registry import EntityRegistry, get_registry, reset_all


def test_register_and_lookup() -> None:
    registry = EntityRegistry("myApi")
    todo = registry.register("Todo")

    assert registry.lookup("Todo") is todo
    assert todo.id_field == "id"
    assert "Todo" in registry
    assert len(registry) == 1


def test_lookup_unknown_returns_none_and_require_raises() -> None:
    registry = EntityRegistry("myApi")

    assert registry.lookup("Nope") is None
    with pytest.raises(UnknownTypeError) as excinfo:
        registry.require("Nope")
    assert excinfo.value.namespace == "myApi"


def test_duplicate_registration_keeps_existing_type() -> None:
    registry = EntityRegistry("myApi")
    first = registry.register("User", id_field="_id")

    with pytest.raises(DuplicateTypeError) as excinfo:
        registry.register("User")

    assert excinfo.value.type_name == "User"
    assert registry.lookup("User") is first
    assert registry.lookup("User").id_field == "_id"


def test_entity_type_is_immutable() -> None:
    entity_type = EntityRegistry().register("Task")

    with pytest.raises(ValidationError):
        entity_type.id_field = "_id"  # type: ignore[misc]


def test_empty_type_name_rejected() -> None:
    with pytest.raises(ValidationError):
        EntityRegistry().register("   ")


def test_string_relations_are_coerced() -> None:
    entity_type = EntityRegistry().register(
        "Todo",
        relations={"owner": "User", "tags": Relation(target="Tag", cardinality=Cardinality.MANY)},
    )

    assert entity_type.relations["owner"] == Relation(target="User")
    assert entity_type.relations["tags"].cardinality is Cardinality.MANY


def test_type_for_field_prefers_exact_then_case_insensitive() -> None:
    registry = EntityRegistry()
    task = registry.register("Task")

    assert registry.type_for_field("task") is task
    assert registry.type_for_field("TASK") is task
    assert registry.type_for_field("tasks") is None

    exact = registry.register("task")
    assert registry.type_for_field("task") is exact


def test_type_for_field_disabled_without_inference() -> None:
    registry = EntityRegistry(infer_relations=False)
    registry.register("Task")

    assert registry.type_for_field("task") is None


def test_namespaces_are_isolated() -> None:
    api = get_registry("myApi")
    other = get_registry("otherApi")
    api.register("Todo")

    assert get_registry("myApi") is api
    assert "Todo" not in other
    other.register("Todo")  # no DuplicateTypeError across namespaces


def test_reset_all_clears_every_namespace() -> None:
    api = get_registry("myApi")
    api.register("Todo")

    reset_all()

    assert len(api) == 0
    fresh = get_registry("myApi")
    assert fresh is not api
    fresh.register("Todo")
