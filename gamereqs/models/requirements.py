"""Requirement data models."""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any


class RequirementSource(Enum):
    """Where a resolved requirement set came from."""
    CACHE = "cache"
    FALLBACK = "fallback"
    STEAM = "steam"
    OTHER = "other"
    NONE = "none"


@dataclass(frozen=True)
class RequirementRecord:
    """Hardware requirements for one difficulty tier.

    Every field is independently nullable. ``None`` means the source did not
    state the value, never a zero requirement.
    """
    cpu: str | None = None
    gpu: str | None = None
    ram: str | None = None
    ram_gb: float | None = None
    storage: str | None = None
    storage_gb: float | None = None
    os: str | None = None

    def has_data(self) -> bool:
        """Return True if at least one field was stated."""
        return any(getattr(self, f.name) is not None for f in fields(self))

    def to_dict(self) -> dict[str, str | float | None]:
        """Serialize with ``None`` kept for absent fields."""
        return {
            "cpu": self.cpu,
            "gpu": self.gpu,
            "ram": self.ram,
            "ramGB": self.ram_gb,
            "storage": self.storage,
            "storageGB": self.storage_gb,
            "os": self.os,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RequirementRecord":
        if not data:
            return cls()
        return cls(
            cpu=_optional_str(data.get("cpu")),
            gpu=_optional_str(data.get("gpu")),
            ram=_optional_str(data.get("ram")),
            ram_gb=_optional_float(data.get("ramGB")),
            storage=_optional_str(data.get("storage")),
            storage_gb=_optional_float(data.get("storageGB")),
            os=_optional_str(data.get("os")),
        )


EMPTY_RECORD = RequirementRecord()


@dataclass(frozen=True)
class GameRequirements:
    """Minimum and recommended requirements for a game.

    Use :meth:`build` to construct from possibly-missing tiers; it copies the
    discovered tier into the missing one so both are always present.
    """
    minimum: RequirementRecord
    recommended: RequirementRecord

    @classmethod
    def build(
        cls,
        minimum: RequirementRecord | None,
        recommended: RequirementRecord | None = None,
    ) -> "GameRequirements":
        has_min = minimum is not None and minimum.has_data()
        has_rec = recommended is not None and recommended.has_data()
        if has_min and not has_rec:
            recommended = minimum
        elif has_rec and not has_min:
            minimum = recommended
        return cls(minimum=minimum or EMPTY_RECORD, recommended=recommended or EMPTY_RECORD)

    def has_meaningful_data(self) -> bool:
        return self.minimum.has_data() or self.recommended.has_data()

    def to_dict(self) -> dict[str, dict[str, str | float | None]]:
        return {
            "minimum": self.minimum.to_dict(),
            "recommended": self.recommended.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GameRequirements | None":
        if not data:
            return None
        return cls.build(
            RequirementRecord.from_dict(data.get("minimum")),
            RequirementRecord.from_dict(data.get("recommended")),
        )


def has_meaningful_data(requirements: GameRequirements | None) -> bool:
    """Treat a missing requirement set the same as an all-null one."""
    return requirements is not None and requirements.has_meaningful_data()


def merge_missing_fields(primary: RequirementRecord, secondary: RequirementRecord) -> RequirementRecord:
    """Fill fields absent from ``primary`` with values from ``secondary``.

    Present values in ``primary`` are never overwritten. Numeric fields travel
    with their display text so a borrowed ``ram`` also brings its ``ram_gb``.
    """
    updates: dict[str, Any] = {}
    if primary.cpu is None and secondary.cpu is not None:
        updates["cpu"] = secondary.cpu
    if primary.gpu is None and secondary.gpu is not None:
        updates["gpu"] = secondary.gpu
    if primary.ram is None and secondary.ram is not None:
        updates["ram"] = secondary.ram
        if primary.ram_gb is None:
            updates["ram_gb"] = secondary.ram_gb
    elif primary.ram_gb is None and secondary.ram_gb is not None and primary.ram is None:
        updates["ram_gb"] = secondary.ram_gb
    if primary.storage is None and secondary.storage is not None:
        updates["storage"] = secondary.storage
        if primary.storage_gb is None:
            updates["storage_gb"] = secondary.storage_gb
    elif primary.storage_gb is None and secondary.storage_gb is not None and primary.storage is None:
        updates["storage_gb"] = secondary.storage_gb
    if primary.os is None and secondary.os is not None:
        updates["os"] = secondary.os
    return replace(primary, **updates) if updates else primary


def merge_missing_requirements(
    primary: GameRequirements | None,
    secondary: GameRequirements | None,
) -> GameRequirements | None:
    """Tier-by-tier :func:`merge_missing_fields` over two requirement sets."""
    if primary is None:
        return secondary
    if secondary is None:
        return primary
    return GameRequirements.build(
        merge_missing_fields(primary.minimum, secondary.minimum),
        merge_missing_fields(primary.recommended, secondary.recommended),
    )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
