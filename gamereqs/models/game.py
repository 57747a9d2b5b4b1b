"""Catalog game data models."""

from dataclasses import dataclass, field

from .requirements import GameRequirements


@dataclass(frozen=True)
class GameRef:
    """A catalog entry as seen by the requirements core.

    Only ``id`` and ``name`` are required to resolve requirements. The rest
    steers source priority and batch selection.
    """
    id: str
    name: str
    category: str = ""
    declared_size_gb: float | None = None
    known_platform_id: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    requirements: GameRequirements | None = None
    flagged_unknown: bool = False  # upstream marked requirements as "unknown"


@dataclass(frozen=True)
class SearchHit:
    """Result of a name search against an external catalog."""
    platform_id: str
    display_name: str
