"""Batch job filling in requirements for catalog entries that lack them."""

import asyncio
import math
from pathlib import Path
from typing import Callable

import structlog

from ..models import BackfillProgress, CacheEntry, GameRef, RequirementSource, has_meaningful_data
from .catalog import JsonCatalog
from .errors import AppError, FileSystemError
from .fallback import FallbackTable
from .filesystem import FileSystemService
from .resolver import RequirementsResolver

log = structlog.stdlib.get_logger()


class BackfillStore:
    """Results of previous runs, ``game id -> CacheEntry`` in ``backfill.json``."""

    def __init__(self, path: Path, filesystem: FileSystemService | None = None) -> None:
        self.path = path
        self.filesystem = filesystem or FileSystemService()
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> None:
        try:
            data = await self.filesystem.load_json(self.path)
        except FileNotFoundError:
            data = {}

        self._entries = {}
        for game_id, raw in data.items():
            try:
                self._entries[game_id] = CacheEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Dropping unreadable backfill result", game_id=game_id, error=str(e))
        log.debug("Backfill results loaded", path=str(self.path), entries=len(self._entries))

    def get(self, game_id: str) -> CacheEntry | None:
        return self._entries.get(game_id)

    def is_resolved(self, game_id: str) -> bool:
        entry = self._entries.get(game_id)
        return entry is not None and entry.source is not RequirementSource.NONE and has_meaningful_data(entry.requirements)

    def record(self, game_id: str, entry: CacheEntry) -> None:
        self._entries[game_id] = entry

    async def save(self) -> None:
        data = {game_id: entry.to_dict() for game_id, entry in self._entries.items()}
        try:
            await self.filesystem.save_json(data, self.path)
        except (OSError, ValueError) as e:
            raise FileSystemError(
                "Could not save batch progress",
                original_error=e,
                path=str(self.path),
                operation="save_backfill",
            ) from e


def needs_requirements(game: GameRef) -> bool:
    """True if the catalog entry has no usable requirements."""
    return game.flagged_unknown or not has_meaningful_data(game.requirements)


class RequirementsBackfillJob:
    """Resolves requirements for every catalog entry that lacks them.

    Games are processed sequentially in small batches with a pause between
    items and a longer one between batches. Results are saved after each
    batch, so an interrupted run picks up where it stopped.
    """

    def __init__(
        self,
        catalog: JsonCatalog,
        resolver: RequirementsResolver,
        store: BackfillStore,
        batch_size: int = 3,
        item_delay: float = 1.0,
        batch_delay: float = 2.0,
        fallback_table: FallbackTable | None = None,
        on_progress: Callable[[BackfillProgress], None] | None = None,
    ) -> None:
        """Initialize the job.

        Args:
            catalog: Source of catalog entries
            resolver: Resolver used for each game
            store: Persisted results of this and previous runs
            batch_size: Games per batch
            item_delay: Seconds between games (set to 0 for testing)
            batch_delay: Seconds between batches (set to 0 for testing)
            fallback_table: When given, live results are recorded into it
            on_progress: Called after every game
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.catalog = catalog
        self.resolver = resolver
        self.store = store
        self.batch_size = batch_size
        self.item_delay = item_delay
        self.batch_delay = batch_delay
        self.fallback_table = fallback_table
        self.on_progress = on_progress

        self._current_batch = 0
        self._total_batches = 0
        self._current_game = ""
        self._processed = 0
        self._total = 0
        self._updated = 0
        self._failed = 0
        self._skipped = 0
        self._errors: list[str] = []
        self._cancelled = False

    async def run(self, category: str | None = None) -> BackfillProgress:
        """Run the job to completion or until cancelled.

        Returns:
            Final progress snapshot
        """
        self._reset()
        await self.store.load()
        if self.fallback_table is not None:
            await self.fallback_table.ensure_loaded()

        candidates = [game for game in await self.catalog.entries(category) if needs_requirements(game)]
        pending = [game for game in candidates if not self.store.is_resolved(game.id)]
        self._skipped = len(candidates) - len(pending)
        self._total = len(pending)
        self._total_batches = math.ceil(len(pending) / self.batch_size)

        log.info(
            "Starting requirements backfill",
            pending=len(pending),
            already_resolved=self._skipped,
            batches=self._total_batches,
        )

        for start in range(0, len(pending), self.batch_size):
            if self._cancelled:
                break
            self._current_batch = start // self.batch_size + 1
            batch = pending[start:start + self.batch_size]
            log.info("Processing batch", batch=self._current_batch, total_batches=self._total_batches, size=len(batch))

            for index, game in enumerate(batch):
                if self._cancelled:
                    break
                await self._process(game)
                if index < len(batch) - 1 and self.item_delay > 0:
                    await asyncio.sleep(self.item_delay)

            await self._save_batch()

            if start + self.batch_size < len(pending) and not self._cancelled and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        log.info(
            "Requirements backfill finished",
            processed=self._processed,
            updated=self._updated,
            failed=self._failed,
            skipped=self._skipped,
            cancelled=self._cancelled,
        )
        return self.get_progress()

    def get_progress(self) -> BackfillProgress:
        return BackfillProgress(
            current_batch=self._current_batch,
            total_batches=self._total_batches,
            current_game=self._current_game,
            games_processed=self._processed,
            total_games=self._total,
            games_updated=self._updated,
            games_failed=self._failed,
            errors=self._errors.copy(),
            games_skipped=self._skipped,
        )

    def cancel(self) -> None:
        """Stop after the current game; progress so far is saved."""
        self._cancelled = True
        log.info("Backfill cancellation requested")

    async def _process(self, game: GameRef) -> None:
        self._current_game = game.name
        try:
            entry = await self.resolver.resolve(game, force_fetch=game.flagged_unknown)
        except AppError as e:
            self._failed += 1
            self._errors.append(f"{game.id or game.name}: {e.message}")
            log.warning("Skipping catalog entry", game_id=game.id, error=e.message)
        else:
            self.store.record(game.id, entry)
            if entry.source is RequirementSource.NONE or entry.requirements is None:
                self._failed += 1
                if entry.all_sources_failed:
                    self._errors.append(f"{game.id}: all sources failed")
            else:
                self._updated += 1
                if self.fallback_table is not None and entry.source in (RequirementSource.STEAM, RequirementSource.OTHER):
                    self.fallback_table.record(game.name, entry.requirements)

        self._processed += 1
        if self.on_progress is not None:
            self.on_progress(self.get_progress())

    async def _save_batch(self) -> None:
        await self.store.save()
        if self.fallback_table is not None and self._updated:
            await self.fallback_table.save()
        log.info("Batch progress saved", updated=self._updated, failed=self._failed)

    def _reset(self) -> None:
        self._current_batch = 0
        self._total_batches = 0
        self._current_game = ""
        self._processed = 0
        self._total = 0
        self._updated = 0
        self._failed = 0
        self._skipped = 0
        self._errors = []
        self._cancelled = False
