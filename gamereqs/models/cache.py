"""Cached resolution models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .requirements import GameRequirements, RequirementSource


@dataclass(frozen=True)
class CacheEntry:
    """Outcome of one resolution pass for a game.

    ``from_cache`` and ``failures`` describe how this particular value was
    obtained and are never persisted.
    """
    source: RequirementSource
    requirements: GameRequirements | None
    fetched_at: datetime
    from_cache: bool = field(default=False, compare=False)
    failures: tuple[str, ...] = field(default=(), compare=False)

    @property
    def effective_source(self) -> RequirementSource:
        """Source label reported to callers, ``cache`` when served from the store."""
        return RequirementSource.CACHE if self.from_cache else self.source

    @property
    def all_sources_failed(self) -> bool:
        return self.source is RequirementSource.NONE and bool(self.failures)

    def served_from_cache(self) -> "CacheEntry":
        return replace(self, from_cache=True, failures=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "requirements": self.requirements.to_dict() if self.requirements else None,
            "fetchedAt": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        source = RequirementSource(data["source"])
        return cls(
            source=source,
            requirements=GameRequirements.from_dict(data.get("requirements")),
            fetched_at=datetime.fromisoformat(str(data["fetchedAt"]).replace("Z", "+00:00")),
        )
