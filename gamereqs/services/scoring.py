"""Compatibility scoring of user hardware against game requirements.

Pure functions only. Each axis scores 0..1, the total is the weighted sum
clamped to [0, 1], and the tier is a fixed threshold mapping of the total.
"""

import re
from typing import Mapping

from ..models import (
    EMPTY_RECORD,
    CompatibilityTier,
    GameRequirements,
    RequirementRecord,
    ScoreBreakdown,
    ScoreResult,
    ScoreWeights,
    UserHardwareProfile,
)
from .parser import size_to_gb

BRAND_TOKENS = ("intel", "amd", "nvidia", "geforce", "radeon", "gtx", "rtx", "rx")

TIER_THRESHOLDS = (
    (0.85, CompatibilityTier.STRONG),
    (0.60, CompatibilityTier.MEDIUM),
    (0.35, CompatibilityTier.WEAK),
)

EXACT_MATCH = 1.0
TOKEN_MATCH = 0.7
BRAND_MATCH = 0.4

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")

# groups are (series, model number)
_MODEL_FAMILIES = (
    (re.compile(r"\bi([3579])[\s-]*(\d{3,5})"), "intel-core"),
    (re.compile(r"\bryzen\s*([3579])\s*(\d{3,4})"), "amd-ryzen"),
    (re.compile(r"\b(gtx|rtx)\s*-?\s*(\d{3,4})"), "nvidia"),
    (re.compile(r"\brx\s*-?\s*(\d)(\d{2,3})\b"), "amd-radeon"),
)
_NVIDIA_RANK = {"gtx": 1, "rtx": 2}


def crude_match(user_text: str | None, required_text: str | None) -> float:
    """Score how well a user CPU/GPU string meets a required one.

    1.0 for mutual containment or a same-family model at least as high,
    0.7 for a shared model token, 0.4 for a shared brand, else 0.
    """
    if not required_text:
        return 0.0
    user = (user_text or "").lower().strip()
    required = required_text.lower().strip()
    if not user:
        return 0.0

    if required in user or user in required:
        return EXACT_MATCH
    if model_meets_requirement(user, required):
        return EXACT_MATCH

    for token in _TOKEN_SPLIT_RE.split(required):
        if len(token) >= 2 and token in user:
            return TOKEN_MATCH

    for brand in BRAND_TOKENS:
        if brand in required and brand in user:
            return BRAND_MATCH
    return 0.0


def model_meets_requirement(user: str, required: str) -> bool:
    """True if both name a model of the same family and the user's is not lower.

    Compares e.g. "i5-8400" against "i5-2500k" or "gtx 1060" against
    "gtx 660". GPU model numbers are split into generation and tier, and the
    user's part must be at least as high in both: a newer generation does not
    make up for a lower tier, so "gtx 1050" does not meet "gtx 970" and
    "rx 6500" does not meet "rx 580". Those cases fall through to the token
    and brand rules.
    """
    for pattern, family in _MODEL_FAMILIES:
        user_match = pattern.search(user)
        required_match = pattern.search(required)
        if not user_match or not required_match:
            continue
        user_key = _model_key(family, user_match)
        required_key = _model_key(family, required_match)
        if all(u >= r for u, r in zip(user_key, required_key)):
            return True
    return False


def _model_key(family: str, match: re.Match[str]) -> tuple[int, ...]:
    series, number = match.group(1), match.group(2)
    if family == "nvidia":
        # 1060 is generation 10, tier 60
        model = int(number)
        return _NVIDIA_RANK[series], model // 100, model % 100
    if family == "amd-radeon":
        # 580 is generation 5, tier 8; 6500 is generation 6, tier 5
        return int(series), int(number[0])
    return int(series), int(number)


def ratio_score(user_gb: float, required_gb: float | None) -> float:
    """Capacity score: ``user / required`` capped at 1.

    With no stated requirement the user gets full credit for any capacity,
    and none for an empty profile.
    """
    if required_gb is not None and required_gb > 0:
        return clamp01(user_gb / required_gb)
    return 1.0 if user_gb > 0 else 0.0


def os_score(user_os: str | None, required_os: str | None) -> float:
    required = (required_os or "").lower().strip()
    if not required:
        return 1.0
    user = (user_os or "").lower().strip()
    return 1.0 if user in required or required in user else 0.0


def select_comparison_tier(requirements: GameRequirements | None) -> RequirementRecord:
    """Recommended tier when it states any hardware, else minimum."""
    if requirements is None:
        return EMPTY_RECORD
    recommended = requirements.recommended
    if any(value is not None for value in (recommended.cpu, recommended.gpu, recommended.ram, recommended.storage)):
        return recommended
    return requirements.minimum


def tier_for_score(score: float) -> CompatibilityTier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return CompatibilityTier.CANNOT_RUN


def clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return min(max(value, 0.0), 1.0)


def score_compatibility(
    user: UserHardwareProfile,
    requirements: GameRequirements | None,
    weights: ScoreWeights | Mapping[str, float] | None = None,
) -> ScoreResult:
    """Score ``user`` against ``requirements``.

    Args:
        user: Hardware profile to evaluate
        requirements: Resolved requirements; None scores like an all-null set
        weights: Per-axis weights, or a mapping overriding some defaults

    Returns:
        ScoreResult with the per-axis breakdown
    """
    if not isinstance(weights, ScoreWeights):
        weights = ScoreWeights.from_mapping(weights)

    required = select_comparison_tier(requirements)
    required_os = required.os or (requirements.minimum.os if requirements else None)

    cpu = clamp01(crude_match(user.cpu, required.cpu))
    gpu = clamp01(crude_match(user.gpu, required.gpu))
    ram = ratio_score(user.ram_gb, _gigabytes(required.ram_gb, required.ram))
    storage = ratio_score(user.storage_gb, _gigabytes(required.storage_gb, required.storage))
    os_match = os_score(user.os, required_os)

    breakdown = ScoreBreakdown(
        cpu_score=cpu,
        gpu_score=gpu,
        ram_score=ram,
        storage_score=storage,
        os_score=os_match,
        cpu_contribution=weights.cpu * cpu,
        gpu_contribution=weights.gpu * gpu,
        ram_contribution=weights.ram * ram,
        storage_contribution=weights.storage * storage,
        os_contribution=weights.os * os_match,
    )
    total = (
        breakdown.cpu_contribution
        + breakdown.gpu_contribution
        + breakdown.ram_contribution
        + breakdown.storage_contribution
        + breakdown.os_contribution
    )
    # rounding keeps 0.3 + 0.3 + 0.15 + 0.15 + 0.1 at exactly 1.0
    score = round(clamp01(total), 6)
    return ScoreResult(score=score, tier=tier_for_score(score), breakdown=breakdown)


def _gigabytes(numeric: float | None, text: str | None) -> float | None:
    if numeric is not None:
        return numeric
    return size_to_gb(text)
