"""Multi-source requirement resolution."""

from enum import Enum

import structlog

from ..models import CacheEntry, GameRef, RequirementSource
from .adapters import LookupStatus, SourceAdapter
from .cache import Clock, RequirementsCache, utc_now
from .errors import CacheWriteError, InvalidGameError

log = structlog.stdlib.get_logger()

ONLINE_KEYWORDS = ("online", "multiplayer", "competitive", "shooter", "battle-royale", "battle royale", "mmo")
INDIE_SIZE_LIMIT_GB = 10.0


class GameType(Enum):
    ONLINE = "online"
    INDIE = "indie"
    OFFLINE = "offline"


SOURCE_PRIORITY: dict[GameType, tuple[RequirementSource, ...]] = {
    # live-service titles are often missing from Steam or matched to the wrong app
    GameType.ONLINE: (RequirementSource.OTHER, RequirementSource.STEAM),
    GameType.INDIE: (RequirementSource.OTHER, RequirementSource.STEAM),
    GameType.OFFLINE: (RequirementSource.STEAM, RequirementSource.OTHER),
}


def classify_game(game: GameRef) -> GameType:
    """Classify a catalog entry for source ordering."""
    labels = " ".join((game.category, *game.tags)).lower()
    if any(keyword in labels for keyword in ONLINE_KEYWORDS):
        return GameType.ONLINE
    if game.declared_size_gb is not None and 0 < game.declared_size_gb < INDIE_SIZE_LIMIT_GB:
        return GameType.INDIE
    return GameType.OFFLINE


class RequirementsResolver:
    """Resolves a game's requirements from cache or an ordered adapter chain.

    The first adapter returning meaningful data wins; the fallback adapter is
    always tried last. Whatever the outcome, including "none", it is written
    back to the cache.
    """

    def __init__(
        self,
        adapters: list[SourceAdapter],
        cache: RequirementsCache,
        fallback: SourceAdapter | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.adapters = list(adapters)
        self.cache = cache
        self.fallback = fallback
        self.clock = clock or utc_now

    def adapter_chain(self, game: GameRef) -> list[SourceAdapter]:
        """Adapters in the order they are tried for ``game``."""
        priority = SOURCE_PRIORITY[classify_game(game)]
        rank = {source: index for index, source in enumerate(priority)}
        chain = sorted(
            (adapter for adapter in self.adapters if adapter is not self.fallback),
            key=lambda adapter: rank.get(adapter.source, len(priority)),
        )
        if self.fallback is not None:
            chain.append(self.fallback)
        return chain

    async def resolve(self, game: GameRef, force_fetch: bool = False) -> CacheEntry:
        """Resolve requirements for ``game``.

        Args:
            game: Catalog entry; ``id`` and ``name`` are required
            force_fetch: Skip the cache read but still write the result.
                Callers pass this for entries flagged unknown upstream.

        Returns:
            CacheEntry with the winning source, or source ``none``

        Raises:
            InvalidGameError: If ``game.id`` or ``game.name`` is empty
        """
        if not game.id or not str(game.id).strip():
            raise InvalidGameError("id", game.id)
        if not game.name or not game.name.strip():
            raise InvalidGameError("name", game.name)

        if not force_fetch:
            cached = await self.cache.get(game.id)
            if cached is not None:
                log.debug(
                    "Cache hit",
                    game_id=game.id,
                    source=cached.source.value,
                    flagged_unknown=game.flagged_unknown,
                )
                return cached.served_from_cache()

        entry = await self._walk_chain(game)

        try:
            await self.cache.put(game.id, entry)
        except CacheWriteError as e:
            log.error("Failed to cache requirements", game_id=game.id, path=e.path, error=e.technical_details)

        return entry

    async def _walk_chain(self, game: GameRef) -> CacheEntry:
        failures: list[str] = []
        attempts = 0

        for adapter in self.adapter_chain(game):
            attempts += 1
            result = await adapter.lookup(game)
            if result.is_found and result.requirements is not None and result.requirements.has_meaningful_data():
                log.info("Requirements resolved", game_id=game.id, source=adapter.source.value)
                return CacheEntry(
                    source=adapter.source,
                    requirements=result.requirements,
                    fetched_at=self.clock(),
                )
            if result.status is LookupStatus.FAILED:
                failures.append(result.error or adapter.source.value)

        if attempts and len(failures) == attempts:
            log.error("All requirement sources failed", game_id=game.id, failures=failures)
            return CacheEntry(
                source=RequirementSource.NONE,
                requirements=None,
                fetched_at=self.clock(),
                failures=tuple(failures),
            )

        log.info("No requirements found", game_id=game.id, name=game.name, failed_sources=len(failures))
        return CacheEntry(source=RequirementSource.NONE, requirements=None, fetched_at=self.clock())
