""""Can I run it" checks across a list of catalog games."""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import structlog

from ..models import GameRef, RequirementSource, ScoreResult, ScoreWeights, UserHardwareProfile, has_meaningful_data
from .resolver import RequirementsResolver
from .scoring import score_compatibility

log = structlog.stdlib.get_logger()

NO_REQUIREMENTS_NOTE = "no system requirements available"


@dataclass(frozen=True)
class CompatibilityReport:
    game_id: str
    name: str
    source: RequirementSource
    result: ScoreResult
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameId": self.game_id,
            "name": self.name,
            "source": self.source.value,
            **self.result.to_dict(),
            "note": self.note,
        }


class CompatibilityService:
    """Resolves and scores games for one hardware profile."""

    def __init__(self, resolver: RequirementsResolver) -> None:
        self.resolver = resolver

    async def check(
        self,
        profile: UserHardwareProfile,
        games: Iterable[GameRef],
        weights: ScoreWeights | Mapping[str, float] | None = None,
    ) -> list[CompatibilityReport]:
        """Score ``profile`` against each game, in order.

        Catalog requirements are used when present; otherwise the game is
        resolved. A game without requirements still gets a best-effort score
        with a note.
        """
        if not isinstance(weights, ScoreWeights):
            weights = ScoreWeights.from_mapping(weights)

        reports = []
        for game in games:
            if has_meaningful_data(game.requirements) and not game.flagged_unknown:
                requirements = game.requirements
                source = RequirementSource.CACHE
            else:
                entry = await self.resolver.resolve(game)
                requirements = entry.requirements
                source = entry.effective_source

            result = score_compatibility(profile, requirements, weights)
            note = None if has_meaningful_data(requirements) else NO_REQUIREMENTS_NOTE
            reports.append(CompatibilityReport(game.id, game.name, source, result, note))
            log.debug("Game scored", game_id=game.id, score=result.score, tier=result.tier.value)

        return reports
