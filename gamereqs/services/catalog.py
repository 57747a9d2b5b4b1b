"""Read-only access to the games catalog JSON file."""

from pathlib import Path
from typing import Any

import structlog

from ..models import GameRef, GameRequirements
from .fallback import record_from_entry
from .filesystem import FileSystemService
from .parser import is_placeholder, size_to_gb

log = structlog.stdlib.get_logger()

CATALOG_SECTIONS = ("readyToPlay", "repack", "online")


def game_from_dict(data: dict[str, Any], section: str | None = None) -> GameRef:
    """Build a :class:`GameRef` from a catalog record.

    Accepts both the camelCase catalog keys (``declaredSizeGB``,
    ``knownPlatformId``) and the older ``size``/``steamAppId`` ones.
    """
    declared_size = data.get("declaredSizeGB")
    if not isinstance(declared_size, (int, float)) or isinstance(declared_size, bool):
        declared_size = size_to_gb(str(data["size"])) if data.get("size") else None

    platform_id = data.get("knownPlatformId") or data.get("steamAppId")

    tags = data.get("categories") or data.get("tags") or ()
    if isinstance(tags, str):
        tags = (tags,)

    return GameRef(
        id=str(data.get("id") or "").strip(),
        name=str(data.get("name") or data.get("title") or "").strip(),
        category=str(data.get("category") or section or ""),
        declared_size_gb=float(declared_size) if declared_size is not None else None,
        known_platform_id=str(platform_id) if platform_id else None,
        tags=tuple(str(tag) for tag in tags),
        requirements=_catalog_requirements(data.get("systemRequirements")),
        flagged_unknown=_is_flagged_unknown(data.get("requirements")),
    )


def _catalog_requirements(value: Any) -> GameRequirements | None:
    if not isinstance(value, dict):
        return None
    minimum = value.get("minimum")
    recommended = value.get("recommended")
    return GameRequirements.build(
        record_from_entry(minimum) if isinstance(minimum, dict) else None,
        record_from_entry(recommended) if isinstance(recommended, dict) else None,
    )


def _is_flagged_unknown(value: Any) -> bool:
    return isinstance(value, str) and is_placeholder(value)


class JsonCatalog:
    """Catalog entries grouped in ``readyToPlay``, ``repack`` and ``online`` arrays."""

    def __init__(self, path: Path, filesystem: FileSystemService | None = None) -> None:
        self.path = path
        self.filesystem = filesystem or FileSystemService()

    async def entries(self, category: str | None = None) -> list[GameRef]:
        """All catalog entries, optionally only those of one section or category.

        Raises:
            FileNotFoundError: If the catalog file does not exist
            ValueError: If the catalog is not a JSON object
        """
        data = await self.filesystem.load_json(self.path)
        games: list[GameRef] = []
        skipped = 0

        for section in CATALOG_SECTIONS:
            for item in data.get(section) or []:
                if not isinstance(item, dict):
                    skipped += 1
                    continue
                game = game_from_dict(item, section)
                if category and category not in (section, game.category):
                    continue
                games.append(game)

        if skipped:
            log.warning("Skipped malformed catalog entries", path=str(self.path), skipped=skipped)
        log.debug("Catalog loaded", path=str(self.path), games=len(games), category=category)
        return games

    async def find(self, game_id: str) -> GameRef | None:
        for game in await self.entries():
            if game.id == game_id:
                return game
        return None
