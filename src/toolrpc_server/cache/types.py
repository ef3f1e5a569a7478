"""Records stored by description cache providers."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ToolDescription:
    """A previously generated description for one (model, tool) pair.

    Attributes:
        provider_model: Model that produced the description.
        tool_name: Tool the description belongs to.
        description: The description text.
        parameters_info: Serialized JSON describing the parameters.
        tool_properties: Serialized JSON with additional tool properties.
        generation_time_ms: Time the generator needed to produce the text.
        usage_count: Number of recorded uses; only ever increases.
        created_at: When the record was first stored.
        last_used_at: When usage was last recorded.
    """

    provider_model: str
    tool_name: str
    description: str
    parameters_info: str = ""
    tool_properties: str = ""
    generation_time_ms: int = 0
    usage_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str]:
        return self.provider_model, self.tool_name


@dataclass
class CacheStatistics:
    """Counters reported by a cache provider."""

    backend: str
    hits: int = 0
    misses: int = 0
    entries: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "hits": self.hits,
            "misses": self.misses,
            "entries": self.entries,
            "errors": self.errors,
            "hit_rate": round(self.hit_rate, 4),
        }
