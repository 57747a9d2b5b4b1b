"""Tests for the multi-source requirements resolver."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from gamereqs.models import CacheEntry, GameRef, GameRequirements, RequirementRecord, RequirementSource
from gamereqs.services import (
    CacheWriteError,
    InvalidGameError,
    LookupResult,
    MemoryRequirementsCache,
    RequirementsCache,
    RequirementsResolver,
    SourceAdapter,
)
from gamereqs.services.resolver import GameType, classify_game


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

STEAM_REQUIREMENTS = GameRequirements.build(RequirementRecord(cpu="Intel Core i5-4460", ram="8 GB", ram_gb=8.0))
FALLBACK_REQUIREMENTS = GameRequirements.build(RequirementRecord(gpu="GTX 660"))


def fixed_clock() -> datetime:
    return NOW


def make_adapter(source: RequirementSource, result: LookupResult) -> Mock:
    adapter = Mock(spec=SourceAdapter)
    adapter.source = source
    adapter.lookup = AsyncMock(return_value=result)
    return adapter


def make_resolver(
    steam: LookupResult,
    other: LookupResult,
    fallback: LookupResult,
    cache: RequirementsCache | None = None,
) -> tuple[RequirementsResolver, Mock, Mock, Mock]:
    steam_adapter = make_adapter(RequirementSource.STEAM, steam)
    other_adapter = make_adapter(RequirementSource.OTHER, other)
    fallback_adapter = make_adapter(RequirementSource.FALLBACK, fallback)
    resolver = RequirementsResolver(
        adapters=[steam_adapter, other_adapter],
        cache=cache or MemoryRequirementsCache(clock=fixed_clock),
        fallback=fallback_adapter,
        clock=fixed_clock,
    )
    return resolver, steam_adapter, other_adapter, fallback_adapter


OFFLINE_GAME = GameRef(id="g1", name="The Witcher 3", category="repack", declared_size_gb=50.0)
ONLINE_GAME = GameRef(id="g2", name="Apex Legends", category="online", declared_size_gb=75.0)


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_first_adapter_with_data_wins(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS),
            LookupResult.found(FALLBACK_REQUIREMENTS),
            LookupResult.found(FALLBACK_REQUIREMENTS),
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.STEAM
        assert entry.requirements == STEAM_REQUIREMENTS
        assert entry.fetched_at == NOW
        steam.lookup.assert_awaited_once_with(OFFLINE_GAME)
        other.lookup.assert_not_awaited()
        fallback.lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_online_games_try_third_party_first(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS),
            LookupResult.found(FALLBACK_REQUIREMENTS),
            LookupResult.not_found(),
        )

        entry = await resolver.resolve(ONLINE_GAME)

        assert entry.source is RequirementSource.OTHER
        steam.lookup.assert_not_awaited()
        fallback.lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_found_without_meaningful_data_is_skipped(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.found(GameRequirements.build(None)),
            LookupResult.not_found(),
            LookupResult.found(FALLBACK_REQUIREMENTS),
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.FALLBACK
        assert entry.requirements == FALLBACK_REQUIREMENTS
        other.lookup.assert_awaited_once()

    def test_fallback_is_always_last(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.not_found(), LookupResult.not_found(), LookupResult.not_found()
        )

        assert resolver.adapter_chain(OFFLINE_GAME) == [steam, other, fallback]
        assert resolver.adapter_chain(ONLINE_GAME) == [other, steam, fallback]


class TestNoData:
    @pytest.mark.asyncio
    async def test_all_sources_empty_returns_and_caches_none(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.not_found(), LookupResult.not_found(), LookupResult.not_found()
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.NONE
        assert entry.requirements is None
        assert not entry.all_sources_failed

        second = await resolver.resolve(OFFLINE_GAME)

        assert second.source is RequirementSource.NONE
        assert second.requirements is None
        assert second.effective_source is RequirementSource.CACHE
        for adapter in (steam, other, fallback):
            assert adapter.lookup.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_failures_fall_through(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.failed("steam: timeout"),
            LookupResult.failed("other: 503"),
            LookupResult.found(FALLBACK_REQUIREMENTS),
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.FALLBACK
        assert entry.failures == ()

    @pytest.mark.asyncio
    async def test_all_transport_failures_are_distinguished(self) -> None:
        resolver, _, _, _ = make_resolver(
            LookupResult.failed("steam: timeout"),
            LookupResult.failed("other: 503"),
            LookupResult.failed("fallback: unreadable"),
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.NONE
        assert entry.all_sources_failed
        assert entry.failures == ("steam: timeout", "other: 503", "fallback: unreadable")

    @pytest.mark.asyncio
    async def test_mixed_failure_and_not_found_is_plain_no_data(self) -> None:
        resolver, _, _, _ = make_resolver(
            LookupResult.failed("steam: timeout"), LookupResult.not_found(), LookupResult.not_found()
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.NONE
        assert not entry.all_sources_failed


class TestCacheInteraction:
    @pytest.mark.asyncio
    async def test_stale_entry_triggers_fresh_lookup(self) -> None:
        cache = MemoryRequirementsCache(ttl=timedelta(hours=24), clock=fixed_clock)
        await cache.put(
            OFFLINE_GAME.id,
            CacheEntry(RequirementSource.FALLBACK, FALLBACK_REQUIREMENTS, NOW - timedelta(hours=25)),
        )
        resolver, steam, _, _ = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found(), cache=cache
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        steam.lookup.assert_awaited_once()
        assert entry.source is RequirementSource.STEAM
        assert await cache.get(OFFLINE_GAME.id) == entry

    @pytest.mark.asyncio
    async def test_fresh_entry_skips_adapters(self) -> None:
        cache = MemoryRequirementsCache(clock=fixed_clock)
        cached = CacheEntry(RequirementSource.FALLBACK, FALLBACK_REQUIREMENTS, NOW - timedelta(hours=1))
        await cache.put(OFFLINE_GAME.id, cached)
        resolver, steam, other, fallback = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found(), cache=cache
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry == cached
        assert entry.from_cache
        assert entry.effective_source is RequirementSource.CACHE
        steam.lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_force_fetch_bypasses_read_but_writes(self) -> None:
        cache = MemoryRequirementsCache(clock=fixed_clock)
        await cache.put(OFFLINE_GAME.id, CacheEntry(RequirementSource.NONE, None, NOW))
        resolver, steam, _, _ = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found(), cache=cache
        )

        entry = await resolver.resolve(OFFLINE_GAME, force_fetch=True)

        steam.lookup.assert_awaited_once()
        assert entry.source is RequirementSource.STEAM
        stored = await cache.get(OFFLINE_GAME.id)
        assert stored is not None and stored.source is RequirementSource.STEAM

    @pytest.mark.asyncio
    async def test_flagged_unknown_reads_cache_unless_forced(self) -> None:
        cache = MemoryRequirementsCache(clock=fixed_clock)
        await cache.put("g3", CacheEntry(RequirementSource.NONE, None, NOW))
        resolver, steam, _, _ = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found(), cache=cache
        )
        game = GameRef(id="g3", name="Hades", flagged_unknown=True)

        cached = await resolver.resolve(game)

        steam.lookup.assert_not_awaited()
        assert cached.effective_source is RequirementSource.CACHE

        entry = await resolver.resolve(game, force_fetch=True)

        steam.lookup.assert_awaited_once()
        assert entry.source is RequirementSource.STEAM

    @pytest.mark.asyncio
    async def test_cache_write_failure_does_not_block_result(self) -> None:
        cache = AsyncMock(spec=RequirementsCache)
        cache.get.return_value = None
        cache.put.side_effect = CacheWriteError("g1", original_error=OSError("disk full"))
        resolver, _, _, _ = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found(), cache=cache
        )

        entry = await resolver.resolve(OFFLINE_GAME)

        assert entry.source is RequirementSource.STEAM
        cache.put.assert_awaited_once()


class TestInvalidInput:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("game,field", [
        (GameRef(id="", name="Hades"), "id"),
        (GameRef(id="   ", name="Hades"), "id"),
        (GameRef(id="g1", name=""), "name"),
        (GameRef(id="g1", name="  "), "name"),
    ])
    async def test_missing_identity_raises(self, game: GameRef, field: str) -> None:
        resolver, steam, _, _ = make_resolver(
            LookupResult.found(STEAM_REQUIREMENTS), LookupResult.not_found(), LookupResult.not_found()
        )

        with pytest.raises(InvalidGameError) as exc_info:
            await resolver.resolve(game)

        assert exc_info.value.field == field
        steam.lookup.assert_not_awaited()


class TestClassification:
    @pytest.mark.parametrize("game,expected", [
        (GameRef(id="1", name="a", category="online"), GameType.ONLINE),
        (GameRef(id="1", name="a", category="repack", tags=("Multiplayer",)), GameType.ONLINE),
        (GameRef(id="1", name="a", category="readyToPlay", tags=("Battle-Royale",)), GameType.ONLINE),
        (GameRef(id="1", name="a", category="repack", declared_size_gb=2.5), GameType.INDIE),
        (GameRef(id="1", name="a", category="repack", declared_size_gb=60.0), GameType.OFFLINE),
        (GameRef(id="1", name="a", category="repack"), GameType.OFFLINE),
    ])
    def test_classify_game(self, game: GameRef, expected: GameType) -> None:
        assert classify_game(game) is expected

    def test_indie_games_prefer_third_party(self) -> None:
        resolver, steam, other, fallback = make_resolver(
            LookupResult.not_found(), LookupResult.not_found(), LookupResult.not_found()
        )

        chain = resolver.adapter_chain(GameRef(id="1", name="Celeste", declared_size_gb=1.2))

        assert chain == [other, steam, fallback]
