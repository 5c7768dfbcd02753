from __future__ import annotations

from pyrelcache._redact import redact_for_log
from pyrelcache.models.entity import Entity
from pyrelcache.models.types import EntityType


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "id": 1,
        "password": "pw",
        "user": {"_id": "u1", "accessToken": "SIG", "apiKey": "KEY"},
        "items": [{"id": "a", "secret": "s"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["password"] == "<redacted>"
    assert redacted["user"]["accessToken"] == "<redacted>"
    assert redacted["user"]["apiKey"] == "<redacted>"
    assert redacted["user"]["_id"] == "u1"
    assert redacted["items"][0]["secret"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_truncates_long_lists() -> None:
    redacted = redact_for_log(list(range(10)), max_items=3)
    assert redacted == [0, 1, 2, "<7 more>"]


def test_redact_for_log_uses_entity_repr() -> None:
    entity = Entity(EntityType(name="Todo"), {"id": 1})
    entity.self_ref = entity

    assert redact_for_log({"todo": entity}) == {"todo": "<Todo id=1>"}


def test_redact_for_log_matches_key_spellings() -> None:
    redacted = redact_for_log({"api_key": "k", "Access-Token": "t", "client_secret": "s", "token_type": "Bearer"})

    assert redacted == {
        "api_key": "<redacted>",
        "Access-Token": "<redacted>",
        "client_secret": "<redacted>",
        "token_type": "Bearer",
    }
