from __future__ import annotations

import copy

import pytest

from pyrelcache.models.entity import Entity
from pyrelcache.models.types import EntityType, computed


def _todo(**data: object) -> Entity:
    return Entity(EntityType(name="Todo"), data)


def test_attribute_and_item_access() -> None:
    todo = _todo(id=1, description="hey")

    assert todo.description == "hey"
    assert todo["description"] == "hey"
    todo.done = True
    todo["tags"] = ["a"]

    assert todo.to_dict() == {"id": 1, "description": "hey", "done": True, "tags": ["a"]}
    assert todo.primary_key == 1
    assert not todo.is_transient


def test_missing_field_errors() -> None:
    todo = _todo()

    with pytest.raises(AttributeError):
        _ = todo.nope
    with pytest.raises(KeyError):
        _ = todo["nope"]
    assert todo.get("nope", 5) == 5


def test_delete_field() -> None:
    todo = _todo(id=1, description="hey")

    del todo.description
    del todo["id"]

    assert todo.to_dict() == {}
    assert todo.is_transient
    with pytest.raises(AttributeError):
        del todo.description


def test_identity_equality() -> None:
    assert _todo(id=1) != _todo(id=1)


def test_computed_field_evaluates_on_access() -> None:
    todo = Entity(EntityType(name="Todo"), {"id": 1}, computed={"label": computed(lambda e, ctx: f"todo-{e.id}")})

    assert todo.label == "todo-1"
    assert "label" in todo
    assert "label" not in todo.to_dict()


def test_repr_does_not_walk_relations() -> None:
    todo = _todo(id=1)
    todo.self_ref = todo

    assert repr(todo) == "<Todo id=1>"
    assert "(transient)" in repr(_todo())


def test_deepcopy_keeps_the_instance() -> None:
    todo = _todo(id=1)

    copied = copy.deepcopy({"todo": todo, "tags": ["a"]})

    assert copied["todo"] is todo
