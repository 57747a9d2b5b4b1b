"""User hardware and compatibility score models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


@dataclass(frozen=True)
class UserHardwareProfile:
    """Hardware supplied with a scoring request."""
    cpu: str = ""
    gpu: str = ""
    ram_gb: float = 0.0
    storage_gb: float = 0.0
    os: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserHardwareProfile":
        return cls(
            cpu=str(data.get("cpu") or ""),
            gpu=str(data.get("gpu") or ""),
            ram_gb=_as_number(data.get("ramGB")),
            storage_gb=_as_number(data.get("storageGB")),
            os=str(data.get("os") or ""),
        )


@dataclass(frozen=True)
class ScoreWeights:
    """Per-axis weights, summing to 1.0 by default."""
    cpu: float = 0.30
    gpu: float = 0.30
    ram: float = 0.15
    storage: float = 0.15
    os: float = 0.10

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, float] | None) -> "ScoreWeights":
        """Default weights with any given axes replaced."""
        if not overrides:
            return cls()
        unknown = set(overrides) - {"cpu", "gpu", "ram", "storage", "os"}
        if unknown:
            raise ValueError(f"Unknown weight axes: {', '.join(sorted(unknown))}")
        return cls(**{axis: float(value) for axis, value in overrides.items()})


class CompatibilityTier(Enum):
    STRONG = "Strong"
    MEDIUM = "Medium"
    WEAK = "Weak"
    CANNOT_RUN = "CannotRun"


@dataclass(frozen=True)
class ScoreBreakdown:
    cpu_score: float
    gpu_score: float
    ram_score: float
    storage_score: float
    os_score: float
    cpu_contribution: float
    gpu_contribution: float
    ram_contribution: float
    storage_contribution: float
    os_contribution: float

    def to_dict(self) -> dict[str, float]:
        return {
            "cpuScore": self.cpu_score,
            "gpuScore": self.gpu_score,
            "ramScore": self.ram_score,
            "storageScore": self.storage_score,
            "osScore": self.os_score,
            "cpuContribution": self.cpu_contribution,
            "gpuContribution": self.gpu_contribution,
            "ramContribution": self.ram_contribution,
            "storageContribution": self.storage_contribution,
            "osContribution": self.os_contribution,
        }


@dataclass(frozen=True)
class ScoreResult:
    score: float  # clamped to [0, 1]
    tier: CompatibilityTier
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "tier": self.tier.value,
            "breakdown": self.breakdown.to_dict(),
        }


def _as_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
