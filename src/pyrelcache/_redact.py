"""Log-safe rendering of service payloads and entity graphs.

Raw payloads come straight from a remote data service and may carry
credentials or very large collections. Normalized graphs may be cyclic.
:func:`redact_for_log` renders either for DEBUG logs: credential-like keys
are masked, long strings and lists are cut, and entities are shown by
their type and key only, so a cyclic graph is never walked.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pyrelcache.models.entity import Entity

# Compared after lower-casing and dropping "_" / "-", so "api_key",
# "apiKey" and "API-KEY" all match "apikey".
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "clientsecret",
        "token",
        "accesstoken",
        "refreshtoken",
        "idtoken",
        "apikey",
        "authorization",
        "cookie",
        "session",
    }
)

_MAX_DEPTH = 20


def _is_sensitive(key: Any) -> bool:
    return str(key).lower().replace("_", "").replace("-", "") in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, max_items: int = 50, _depth: int = 0) -> Any:
    """Return a redacted, size-bounded copy of *value* suitable for debug logs."""
    if isinstance(value, Entity):
        return repr(value)

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if _depth >= _MAX_DEPTH:
        return "<max-depth>"

    def _nested(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, max_items=max_items, _depth=_depth + 1)

    if isinstance(value, Mapping):
        return {str(k): "<redacted>" if _is_sensitive(k) else _nested(v) for k, v in value.items()}

    if isinstance(value, Sequence):
        rendered = [_nested(item) for item in value[:max_items]]
        if len(value) > max_items:
            rendered.append(f"<{len(value) - max_items} more>")
        return rendered

    return repr(value)
