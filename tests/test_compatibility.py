"""Tests for the compatibility check service."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from gamereqs.models import (
    CacheEntry,
    CompatibilityTier,
    GameRef,
    GameRequirements,
    RequirementRecord,
    RequirementSource,
    UserHardwareProfile,
)
from gamereqs.services import (
    CompatibilityService,
    LookupResult,
    MemoryRequirementsCache,
    RequirementsResolver,
    SourceAdapter,
)
from gamereqs.services.compatibility import NO_REQUIREMENTS_NOTE


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

PROFILE = UserHardwareProfile(
    cpu="Intel Core i5-8400",
    gpu="NVIDIA GTX 1060",
    ram_gb=16,
    storage_gb=500,
    os="Windows 10",
)

REQUIREMENTS = GameRequirements.build(RequirementRecord(
    cpu="Intel Core i5-2500K",
    gpu="NVIDIA GTX 660",
    ram="8 GB",
    ram_gb=8.0,
    storage="50 GB",
    storage_gb=50.0,
    os="Windows 10",
))


@pytest.fixture
def resolver() -> AsyncMock:
    return AsyncMock(spec=RequirementsResolver)


class TestCompatibilityService:
    @pytest.mark.asyncio
    async def test_catalog_requirements_are_used_directly(self, resolver: AsyncMock) -> None:
        game = GameRef(id="1", name="The Witcher 3", requirements=REQUIREMENTS)

        [report] = await CompatibilityService(resolver).check(PROFILE, [game])

        resolver.resolve.assert_not_awaited()
        assert report.source is RequirementSource.CACHE
        assert report.result.score == 1.0
        assert report.result.tier is CompatibilityTier.STRONG
        assert report.note is None

    @pytest.mark.asyncio
    async def test_missing_requirements_are_resolved(self, resolver: AsyncMock) -> None:
        resolver.resolve.return_value = CacheEntry(RequirementSource.STEAM, REQUIREMENTS, NOW)
        game = GameRef(id="2", name="Hades")

        [report] = await CompatibilityService(resolver).check(PROFILE, [game])

        resolver.resolve.assert_awaited_once_with(game)
        assert report.source is RequirementSource.STEAM
        assert report.result.tier is CompatibilityTier.STRONG

    @pytest.mark.asyncio
    async def test_flagged_entries_are_resolved_even_with_requirements(self, resolver: AsyncMock) -> None:
        resolver.resolve.return_value = CacheEntry(RequirementSource.FALLBACK, REQUIREMENTS, NOW).served_from_cache()
        game = GameRef(id="3", name="Hades", requirements=REQUIREMENTS, flagged_unknown=True)

        [report] = await CompatibilityService(resolver).check(PROFILE, [game])

        resolver.resolve.assert_awaited_once()
        assert report.source is RequirementSource.CACHE

    @pytest.mark.asyncio
    async def test_no_requirements_still_scored_with_note(self, resolver: AsyncMock) -> None:
        resolver.resolve.return_value = CacheEntry(RequirementSource.NONE, None, NOW)

        [report] = await CompatibilityService(resolver).check(PROFILE, [GameRef(id="4", name="Obscure Game")])

        assert report.source is RequirementSource.NONE
        assert report.note == NO_REQUIREMENTS_NOTE
        assert report.result.score == pytest.approx(0.4)
        assert report.result.tier is CompatibilityTier.WEAK

    @pytest.mark.asyncio
    async def test_reports_keep_input_order(self, resolver: AsyncMock) -> None:
        resolver.resolve.return_value = CacheEntry(RequirementSource.NONE, None, NOW)
        games = [GameRef(id=str(i), name=f"Game {i}") for i in range(5)]

        reports = await CompatibilityService(resolver).check(PROFILE, games)

        assert [report.game_id for report in reports] == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_weight_overrides(self, resolver: AsyncMock) -> None:
        game = GameRef(id="1", name="a", requirements=REQUIREMENTS)
        weak_profile = UserHardwareProfile(ram_gb=4, storage_gb=500, os="Windows 10")

        [default] = await CompatibilityService(resolver).check(weak_profile, [game])
        [ram_only] = await CompatibilityService(resolver).check(
            weak_profile, [game], {"cpu": 0, "gpu": 0, "ram": 1, "storage": 0, "os": 0}
        )

        assert ram_only.result.score == 0.5
        assert default.result.score != ram_only.result.score

    def test_report_to_dict(self) -> None:
        from gamereqs.services.compatibility import CompatibilityReport
        from gamereqs.services.scoring import score_compatibility

        report = CompatibilityReport("1", "Hades", RequirementSource.CACHE, score_compatibility(PROFILE, REQUIREMENTS))

        data = report.to_dict()

        assert data["gameId"] == "1"
        assert data["source"] == "cache"
        assert data["tier"] == "Strong"
        assert data["note"] is None
        assert "breakdown" in data


class TestRepeatedChecks:
    @pytest.mark.asyncio
    async def test_flagged_game_makes_one_adapter_pass_per_ttl(self) -> None:
        adapter = Mock(spec=SourceAdapter)
        adapter.source = RequirementSource.STEAM
        adapter.lookup = AsyncMock(return_value=LookupResult.not_found())
        resolver = RequirementsResolver(
            adapters=[adapter],
            cache=MemoryRequirementsCache(clock=lambda: NOW),
            clock=lambda: NOW,
        )
        service = CompatibilityService(resolver)
        game = GameRef(id="g1", name="Some Game", flagged_unknown=True)

        for _ in range(3):
            [report] = await service.check(PROFILE, [game])
            assert report.note == NO_REQUIREMENTS_NOTE

        assert adapter.lookup.await_count == 1
