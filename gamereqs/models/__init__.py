"""Data models for the game requirements engine."""

from .cache import CacheEntry
from .config import AppConfig
from .game import GameRef, SearchHit
from .hardware import (
    CompatibilityTier,
    ScoreBreakdown,
    ScoreResult,
    ScoreWeights,
    UserHardwareProfile,
)
from .progress import BackfillProgress
from .requirements import (
    EMPTY_RECORD,
    GameRequirements,
    RequirementRecord,
    RequirementSource,
    has_meaningful_data,
    merge_missing_fields,
    merge_missing_requirements,
)

__all__ = [
    "AppConfig",
    "BackfillProgress",
    "CacheEntry",
    "CompatibilityTier",
    "EMPTY_RECORD",
    "GameRef",
    "GameRequirements",
    "RequirementRecord",
    "RequirementSource",
    "ScoreBreakdown",
    "ScoreResult",
    "ScoreWeights",
    "SearchHit",
    "UserHardwareProfile",
    "has_meaningful_data",
    "merge_missing_fields",
    "merge_missing_requirements",
]
