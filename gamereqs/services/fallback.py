"""Curated fallback requirements table."""

import re
from pathlib import Path
from typing import Any

import structlog

from ..models import GameRequirements, RequirementRecord, merge_missing_requirements
from .filesystem import FileSystemService
from .parser import MAX_COMPONENT_LENGTH, MAX_OS_LENGTH, is_placeholder, parse_quantity

log = structlog.stdlib.get_logger()

_PUNCTUATION_RE = re.compile(r"[^\w\s]+", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    without_punctuation = _PUNCTUATION_RE.sub(" ", name.lower()).replace("_", " ")
    return _WHITESPACE_RE.sub(" ", without_punctuation).strip()


class FallbackTable:
    """In-memory view of the ``displayName -> requirement fields`` JSON file.

    Entries look like::

        {"Hades": {"cpu": "Dual Core 2.4 GHz", "ram": "4 GB", "os": "Windows 7",
                   "recommended": {"ram": "8 GB"}}}

    The nested ``recommended`` object is optional and overrides the top-level
    fields for the recommended tier.
    """

    def __init__(self, path: Path, filesystem: FileSystemService | None = None) -> None:
        self.path = path
        self.filesystem = filesystem or FileSystemService()
        self._entries: dict[str, dict[str, Any]] = {}
        self._normalized: dict[str, str] = {}
        self._loaded = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Read the table from disk. A missing file yields an empty table."""
        try:
            data = await self.filesystem.load_json(self.path)
        except FileNotFoundError:
            log.info("Fallback table not found, starting empty", path=str(self.path))
            data = {}
        except (OSError, ValueError) as e:
            log.error("Failed to load fallback table", path=str(self.path), error=str(e))
            data = {}

        self._entries = {str(name): entry for name, entry in data.items() if isinstance(entry, dict)}
        self._reindex()
        self._loaded = True
        log.debug("Fallback table loaded", entries=len(self._entries))

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    def find(self, name: str) -> GameRequirements | None:
        """Exact name match first, then normalized match."""
        entry = self._entries.get(name)
        if entry is None:
            key = self._normalized.get(normalize_name(name))
            entry = self._entries.get(key) if key is not None else None
        if entry is None:
            return None

        minimum = record_from_entry(entry)
        override = entry.get("recommended")
        recommended = None
        if isinstance(override, dict):
            recommended = record_from_entry({**_flat_fields(entry), **override})
        return GameRequirements.build(minimum, recommended)

    def record(self, name: str, requirements: GameRequirements) -> None:
        """Add or replace the entry for ``name``."""
        entry = entry_from_record(requirements.minimum)
        if requirements.recommended != requirements.minimum:
            entry["recommended"] = entry_from_record(requirements.recommended)
        self._entries[name] = entry
        self._normalized[normalize_name(name)] = name
        log.debug("Fallback entry recorded", name=name)

    def backfill(self, name: str, requirements: GameRequirements | None) -> GameRequirements | None:
        """Fill fields missing from ``requirements`` using this table's entry for ``name``."""
        return merge_missing_requirements(requirements, self.find(name))

    async def save(self) -> None:
        await self.filesystem.save_json(dict(sorted(self._entries.items())), self.path)
        log.info("Fallback table saved", path=str(self.path), entries=len(self._entries))

    def _reindex(self) -> None:
        self._normalized = {}
        for name in self._entries:
            self._normalized.setdefault(normalize_name(name), name)


def record_from_entry(entry: dict[str, Any]) -> RequirementRecord:
    """Build a record from hand-written table fields, nulling placeholders."""
    cpu = _text(entry.get("cpu"), MAX_COMPONENT_LENGTH)
    gpu = _text(entry.get("gpu"), MAX_COMPONENT_LENGTH)
    os_name = _text(entry.get("os"), MAX_OS_LENGTH)
    ram = parse_quantity(_text(entry.get("ram"), MAX_COMPONENT_LENGTH))
    storage = parse_quantity(_text(entry.get("storage"), MAX_COMPONENT_LENGTH))
    return RequirementRecord(
        cpu=cpu,
        gpu=gpu,
        ram=ram[0] if ram else None,
        ram_gb=ram[1] if ram else None,
        storage=storage[0] if storage else None,
        storage_gb=storage[1] if storage else None,
        os=os_name,
    )


def entry_from_record(record: RequirementRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in (
            ("cpu", record.cpu),
            ("gpu", record.gpu),
            ("ram", record.ram),
            ("storage", record.storage),
            ("os", record.os),
        )
        if value is not None
    }


def _flat_fields(entry: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in entry.items() if key != "recommended"}


def _text(value: Any, max_length: int) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    if not text or is_placeholder(text):
        return None
    return text[:max_length]
