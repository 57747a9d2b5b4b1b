"""Requirement source adapters.

Each adapter answers one question for one game: what are its requirements
according to this source? Adapters return a :class:`LookupResult` instead of
raising, so "not found" stays a normal outcome and transport failures are a
separate, tagged one the resolver can log and skip past.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import structlog

from ..models import GameRef, GameRequirements, RequirementSource, SearchHit
from .errors import NetworkError
from .fallback import FallbackTable
from .parser import parse_requirement_text

log = structlog.stdlib.get_logger()


class LookupStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult:
    """Tagged outcome of a single adapter lookup."""
    status: LookupStatus
    requirements: GameRequirements | None = None
    error: str | None = None

    @classmethod
    def found(cls, requirements: GameRequirements) -> "LookupResult":
        return cls(LookupStatus.FOUND, requirements=requirements)

    @classmethod
    def not_found(cls) -> "LookupResult":
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> "LookupResult":
        return cls(LookupStatus.FAILED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND


class SourceAdapter(ABC):
    """A provider of requirement data for a named game."""

    source: RequirementSource

    @abstractmethod
    async def lookup(self, game: GameRef) -> LookupResult:
        """Look up requirements for ``game``. Must not raise on not-found."""


class CatalogProvider(Protocol):
    """An external catalog searchable by name with per-game detail records."""

    source: RequirementSource

    async def search(self, name: str) -> SearchHit | None: ...

    async def fetch_details(self, platform_id: str) -> dict[str, Any] | None: ...

    def requirement_blocks(self, details: dict[str, Any]) -> tuple[str | None, str | None]: ...


class CatalogAdapter(SourceAdapter):
    """Two-step lookup: name search, then detail fetch and text parsing."""

    def __init__(self, provider: CatalogProvider, use_known_platform_id: bool = False) -> None:
        """
        Args:
            provider: Catalog to query
            use_known_platform_id: Skip the search step when the game already
                carries this catalog's identifier
        """
        self.provider = provider
        self.source = provider.source
        self.use_known_platform_id = use_known_platform_id

    async def lookup(self, game: GameRef) -> LookupResult:
        try:
            platform_id = game.known_platform_id if self.use_known_platform_id else None
            if not platform_id:
                hit = await self.provider.search(game.name)
                if hit is None:
                    log.debug("No search match", source=self.source.value, game=game.name)
                    return LookupResult.not_found()
                platform_id = hit.platform_id

            details = await self.provider.fetch_details(platform_id)
            if not details:
                log.debug("No detail record", source=self.source.value, platform_id=platform_id)
                return LookupResult.not_found()

            minimum_text, recommended_text = self.provider.requirement_blocks(details)
        except NetworkError as e:
            log.warning(
                "Source lookup failed",
                source=self.source.value,
                game_id=game.id,
                error=e.message,
                status_code=e.status_code,
            )
            return LookupResult.failed(f"{self.source.value}: {e.message}")
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            # malformed payload shapes count as transport failures
            log.warning("Malformed response from source", source=self.source.value, game_id=game.id, error=str(e))
            return LookupResult.failed(f"{self.source.value}: malformed response ({e})")

        requirements = GameRequirements.build(
            parse_requirement_text(minimum_text),
            parse_requirement_text(recommended_text),
        )
        if not requirements.has_meaningful_data():
            log.debug("Detail record has no usable requirements", source=self.source.value, platform_id=platform_id)
            return LookupResult.not_found()

        log.debug("Requirements found", source=self.source.value, game_id=game.id, platform_id=platform_id)
        return LookupResult.found(requirements)


class FallbackAdapter(SourceAdapter):
    """Lookup against the curated fallback table."""

    source = RequirementSource.FALLBACK

    def __init__(self, table: FallbackTable) -> None:
        self.table = table

    async def lookup(self, game: GameRef) -> LookupResult:
        await self.table.ensure_loaded()
        requirements = self.table.find(game.name)
        if requirements is None or not requirements.has_meaningful_data():
            log.debug("No fallback entry", game=game.name)
            return LookupResult.not_found()
        return LookupResult.found(requirements)
