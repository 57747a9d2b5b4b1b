"""Per-game requirement cache with a fixed time-to-live."""

import asyncio
import re
import weakref
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import structlog

from ..models import CacheEntry
from .errors import CacheWriteError
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()

DEFAULT_TTL = timedelta(hours=24)

Clock = Callable[[], datetime]

_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def safe_filename(game_id: str) -> str:
    """File name for a game id with path and reserved characters replaced."""
    return _UNSAFE_FILENAME_RE.sub("_", game_id) + ".json"


class RequirementsCache(ABC):
    """Key-value store of :class:`CacheEntry` keyed by game id.

    ``get`` only returns entries younger than the TTL; ``put`` always
    overwrites, including entries whose source is ``none``.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock | None = None) -> None:
        self.ttl = ttl
        self.clock = clock or utc_now

    @abstractmethod
    async def get(self, game_id: str) -> CacheEntry | None: ...

    @abstractmethod
    async def put(self, game_id: str, entry: CacheEntry) -> None:
        """Store ``entry``.

        Raises:
            CacheWriteError: If the entry could not be stored
        """

    @abstractmethod
    async def invalidate(self, game_id: str) -> bool: ...

    def is_fresh(self, entry: CacheEntry) -> bool:
        fetched_at = entry.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return self.clock() - fetched_at < self.ttl


class MemoryRequirementsCache(RequirementsCache):
    """Process-local cache, mainly for tests and one-off commands."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock | None = None) -> None:
        super().__init__(ttl, clock)
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, game_id: str) -> CacheEntry | None:
        entry = self._entries.get(game_id)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    async def put(self, game_id: str, entry: CacheEntry) -> None:
        self._entries[game_id] = entry

    async def invalidate(self, game_id: str) -> bool:
        return self._entries.pop(game_id, None) is not None


class FileRequirementsCache(RequirementsCache):
    """One JSON file per game under ``cache_dir``, surviving restarts."""

    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock | None = None,
        filesystem: FileSystemService | None = None,
    ) -> None:
        super().__init__(ttl, clock)
        self.cache_dir = cache_dir
        self.filesystem = filesystem or FileSystemService()
        # a lock lives only while a writer holds or awaits it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        log.debug("Requirements cache initialized", cache_dir=str(cache_dir), ttl_hours=ttl.total_seconds() / 3600)

    def path_for(self, game_id: str) -> Path:
        return self.cache_dir / safe_filename(game_id)

    async def get(self, game_id: str) -> CacheEntry | None:
        path = self.path_for(game_id)
        try:
            data = await self.filesystem.load_json(path)
            entry = CacheEntry.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.warning("Unreadable cache entry, treating as miss", game_id=game_id, error=str(e))
            return None

        if not self.is_fresh(entry):
            log.debug("Cache entry expired", game_id=game_id, fetched_at=entry.fetched_at.isoformat())
            return None
        return entry

    async def put(self, game_id: str, entry: CacheEntry) -> None:
        path = self.path_for(game_id)
        async with self._lock_for(game_id):
            try:
                await self.filesystem.save_json(entry.to_dict(), path)
            except (OSError, ValueError) as e:
                raise CacheWriteError(game_id, original_error=e, path=str(path)) from e
        log.debug("Cache entry written", game_id=game_id, source=entry.source.value)

    async def invalidate(self, game_id: str) -> bool:
        async with self._lock_for(game_id):
            return self.filesystem.delete_file(self.path_for(game_id))

    def _lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._locks.get(game_id)
        if lock is None:
            lock = self._locks[game_id] = asyncio.Lock()
        return lock
