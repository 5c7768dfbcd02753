"""Store change events.

Every mutation that goes through the canonical store emits one of these.
Change notification to UI/reactive layers is built on top of them by
subscribing to :class:`pyrelcache.state.store.CanonicalStore`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"


class StoreEvent(BaseModel):
    """A change to one canonical entry."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type_name: str = Field(..., description="Entity type name")
    key: Any = Field(..., description="Primary key of the changed entry")
    action: StoreAction
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    entity: Any = Field(default=None, description="The canonical instance (detached for REMOVED)")

    @field_validator("type_name")
    @classmethod
    def _normalize_type_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("type_name must be non-empty")
        return name
