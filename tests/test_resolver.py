from __future__ import annotations

import math
import uuid

from pyrelcache.models.entity import Entity
from pyrelcache.models.types import Relation
from pyrelcache.registry import EntityRegistry
from pyrelcache.resolver import Identity, classify, is_valid_key, relation_fields, relation_for


def _registry() -> EntityRegistry:
    registry = EntityRegistry()
    registry.register("Todo", relations={"owner": "User"})
    registry.register("User", id_field="_id")
    registry.register("Item")
    return registry


def test_classify_non_records() -> None:
    registry = _registry()

    assert classify(5, registry, "Todo") is None
    assert classify("todo-1", registry, "Todo") is None
    assert classify(None, registry, "Todo") is None
    assert classify([{"id": 1}], registry, "Todo") is None


def test_classify_plain_record_needs_expected_type() -> None:
    registry = _registry()

    assert classify({"id": 1}, registry) is None
    assert classify({"id": 1}, registry, "Todo") == Identity("Todo", 1)
    assert classify({"id": 1}, registry, "Unknown") is None


def test_classify_uses_custom_id_field() -> None:
    registry = _registry()

    identity = classify({"_id": "u1", "id": "ignored"}, registry, "User")
    assert identity == Identity("User", "u1")


def test_classify_transient_record() -> None:
    identity = classify({"description": "no key"}, _registry(), "Todo")

    assert identity is not None
    assert identity.is_transient


def test_classify_entity_uses_its_own_type() -> None:
    registry = _registry()
    item = Entity(registry.require("Item"), {"id": 3})

    assert classify(item, registry, "Todo") == Identity("Item", 3)


def test_relation_for_declared_and_inferred() -> None:
    registry = _registry()
    todo = registry.require("Todo")

    assert relation_for(todo, "owner", registry) == Relation(target="User")
    assert relation_for(todo, "item", registry).target == "Item"
    assert relation_for(todo, "description", registry) is None


def test_relation_for_never_treats_id_field_as_relation() -> None:
    registry = EntityRegistry()
    node = registry.register("Node", id_field="node")

    assert relation_for(node, "node", registry) is None


def test_relation_fields_skips_scalar_values() -> None:
    registry = _registry()
    todo = registry.require("Todo")
    data = {"id": 1, "item": 7, "owner": {"_id": "u1"}, "user": [{"_id": "u2"}], "notes": {"a": 1}}

    fields = dict(relation_fields(todo, data, registry))

    assert set(fields) == {"owner", "user"}
    assert fields["user"].target == "User"


def test_is_valid_key() -> None:
    assert is_valid_key("a")
    assert is_valid_key(0)
    assert is_valid_key(1.5)
    assert is_valid_key(uuid.uuid4())
    assert not is_valid_key(True)
    assert not is_valid_key(None)
    assert not is_valid_key(math.nan)
    assert not is_valid_key({"id": 1})
    assert not is_valid_key([1])
