"""Shared model configuration."""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current wall-clock time (UTC, timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    """
    Base model for persisted entities.

    Attributes are snake_case in Python and camelCase on the wire, so stored
    sessions keep the field names of the browser-side format.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        extra="ignore",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-compatible dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True)
