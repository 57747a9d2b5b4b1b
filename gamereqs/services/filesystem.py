"""File system service for JSON persistence."""

import json
from pathlib import Path
from typing import Any

import structlog

log = structlog.stdlib.get_logger()


class FileSystemService:
    """Atomic JSON reads and writes used by the cache, fallback table and batch store."""

    async def save_json(self, data: dict[str, Any], path: Path) -> None:
        """Save data as JSON, replacing the target atomically.

        Raises:
            OSError: If the file cannot be written
            ValueError: If data cannot be serialized to JSON
        """
        self.ensure_directory(path.parent)
        temp_path = path.with_suffix(path.suffix + ".tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(path)
            log.debug("JSON data saved", path=str(path))

        except OSError as e:
            log.error("Failed to save JSON data", path=str(path), error=str(e))
            self._discard(temp_path)
            raise
        except (TypeError, ValueError) as e:
            log.error("Failed to serialize data to JSON", path=str(path), error=str(e))
            self._discard(temp_path)
            raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    async def load_json(self, path: Path) -> dict[str, Any]:
        """Load a JSON object from ``path``.

        Raises:
            FileNotFoundError: If file does not exist
            OSError: If file cannot be read
            ValueError: If the file is not a JSON object
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            log.error("Invalid JSON in file", path=str(path), error=str(e))
            raise ValueError(f"Invalid JSON in file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected JSON object (dict), got {type(data).__name__}")

        log.debug("JSON data loaded", path=str(path), keys=len(data))
        return data

    def ensure_directory(self, path: Path) -> None:
        """Create ``path`` and its parents if needed.

        Raises:
            OSError: If the path exists as a file or cannot be created
        """
        if path.exists():
            if not path.is_dir():
                raise OSError(f"Path exists but is not a directory: {path}")
            return
        path.mkdir(parents=True, exist_ok=True)
        log.debug("Directory created", path=str(path))

    def delete_file(self, path: Path) -> bool:
        """Delete a file if present. Returns True if something was removed."""
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        log.debug("File deleted", path=str(path))
        return True

    def _discard(self, temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            log.warning("Failed to clean up temporary file", path=str(temp_path))
