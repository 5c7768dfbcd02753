"""Cache configuration for pyrelcache."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from pyrelcache.exceptions import RelCacheConfigError


class MergeStrategy(StrEnum):
    """How an upsert onto an existing canonical instance treats its fields."""

    MERGE = "merge"
    """Shallow merge: incoming fields overwrite, missing fields are kept."""
    REPLACE = "replace"
    """Replace the record: fields absent from the incoming data are dropped."""


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def parse_merge_strategy(value: Any) -> MergeStrategy:
    """Coerce *value* to a :class:`MergeStrategy`."""
    if isinstance(value, MergeStrategy):
        return value
    try:
        return MergeStrategy(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in MergeStrategy)
        raise RelCacheConfigError(f"Invalid merge strategy {value!r} (expected one of: {allowed})") from exc


@dataclasses.dataclass(frozen=True)
class CacheConfig:
    """Cache configuration.

    Parameters
    ----------
    namespace : str
        Registry namespace (alias) the cache registers its entity types in.
        Caches sharing a namespace share entity type registrations.
    merge_strategy : MergeStrategy
        Upsert behaviour for keys that are already stored.
    infer_relations : bool
        Treat fields whose name matches a registered type name
        (case-insensitively) as relations to that type.
    log_payloads : bool
        Include redacted payload dumps in DEBUG logs.
    """

    namespace: str = "default"
    merge_strategy: MergeStrategy = MergeStrategy.MERGE
    infer_relations: bool = True
    log_payloads: bool = False

    def __post_init__(self) -> None:
        namespace = self.namespace.strip() if isinstance(self.namespace, str) else ""
        if not namespace:
            raise RelCacheConfigError("namespace must be a non-empty string")
        object.__setattr__(self, "namespace", namespace)
        object.__setattr__(self, "merge_strategy", parse_merge_strategy(self.merge_strategy))

    @classmethod
    def from_env(cls, **overrides: Any) -> CacheConfig:
        """Create configuration from environment variables.

        Reads ``RELCACHE_NAMESPACE``, ``RELCACHE_MERGE_STRATEGY``,
        ``RELCACHE_INFER_RELATIONS`` and ``RELCACHE_LOG_PAYLOADS``.
        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        namespace = env.get("RELCACHE_NAMESPACE")
        if namespace is not None:
            config_kwargs["namespace"] = namespace

        strategy = env.get("RELCACHE_MERGE_STRATEGY")
        if strategy is not None and "merge_strategy" not in overrides:
            config_kwargs["merge_strategy"] = parse_merge_strategy(strategy)

        if "infer_relations" not in overrides:
            config_kwargs["infer_relations"] = _env_bool(env.get("RELCACHE_INFER_RELATIONS"), True)

        if "log_payloads" not in overrides:
            config_kwargs["log_payloads"] = _env_bool(env.get("RELCACHE_LOG_PAYLOADS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
