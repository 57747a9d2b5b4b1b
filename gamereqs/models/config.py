"""Configuration data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    cache_dir: Path
    fallback_path: Path
    cache_ttl_hours: float = 24.0
    request_timeout: float = 12.0
    max_retries: int = 2
    request_delay: float = 1.0  # minimum spacing between outbound requests
    batch_size: int = 3
    item_delay: float = 1.0
    batch_delay: float = 2.0
    log_level: str = "INFO"
    rawg_api_key: str | None = None
    enable_third_party: bool = True
    user_agent: str = "game-requirements-engine/0.1"
