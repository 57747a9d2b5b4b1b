"""Configuration service for managing application settings."""

import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig
from .errors import ConfigurationError

log = structlog.stdlib.get_logger()

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "game-requirements" / "config.json"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "game-requirements"


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for loading, validating and saving configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or DEFAULT_CONFIG_PATH
        log.debug("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file, falling back to defaults.

        Environment overrides (``RAWG_API_KEY``, ``GAMEREQS_CACHE_DIR``) are
        applied on top of whatever was loaded.
        """
        config = self._load_file_config()
        return self._apply_environment(config)

    def _load_file_config(self) -> AppConfig:
        if not self.config_path.exists():
            log.info("Configuration file not found, using defaults")
            return self._get_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded successfully")
            return config

        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self._get_default_config()

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file.

        Raises:
            ConfigurationError: If the configuration does not validate
            OSError: If the file cannot be written
        """
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ConfigurationError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config_to_dict(config), f, indent=2, ensure_ascii=False)
            log.info("Configuration saved successfully")
        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.cache_dir, Path):
            errors.append("cache_dir must be a Path object")
        if not isinstance(config.fallback_path, Path):
            errors.append("fallback_path must be a Path object")

        if not isinstance(config.cache_ttl_hours, (int, float)) or config.cache_ttl_hours <= 0:
            errors.append("cache_ttl_hours must be a positive number")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 60:
            errors.append("request_timeout should not exceed 60 seconds")

        if not isinstance(config.max_retries, int) or config.max_retries < 0:
            errors.append("max_retries must be a non-negative integer")
        elif config.max_retries > 5:
            errors.append("max_retries should not exceed 5")

        for name in ("request_delay", "item_delay", "batch_delay"):
            value = getattr(config, name)
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"{name} must be a non-negative number")
            elif value > 60:
                errors.append(f"{name} should not exceed 60 seconds")

        if not isinstance(config.batch_size, int) or config.batch_size < 1:
            errors.append("batch_size must be a positive integer")
        elif config.batch_size > 10:
            errors.append("batch_size should not exceed 10")

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if config.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of: {', '.join(sorted(valid_log_levels))}")

        if config.rawg_api_key is not None and not isinstance(config.rawg_api_key, str):
            errors.append("rawg_api_key must be a string or None")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        return AppConfig(
            cache_dir=DEFAULT_DATA_DIR / "cache" / "requirements",
            fallback_path=DEFAULT_DATA_DIR / "fallbackRequirements.json",
        )

    def _apply_environment(self, config: AppConfig) -> AppConfig:
        overrides: dict[str, Any] = {}
        api_key = os.getenv("RAWG_API_KEY")
        if api_key:
            overrides["rawg_api_key"] = api_key
        cache_dir = os.getenv("GAMEREQS_CACHE_DIR")
        if cache_dir:
            overrides["cache_dir"] = Path(cache_dir)
        if overrides:
            log.debug("Applying environment overrides", settings=sorted(overrides))
            return replace(config, **overrides)
        return config

    def _config_to_dict(self, config: AppConfig) -> dict[str, Any]:
        return {
            "cache_dir": str(config.cache_dir),
            "fallback_path": str(config.fallback_path),
            "cache_ttl_hours": config.cache_ttl_hours,
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "request_delay": config.request_delay,
            "batch_size": config.batch_size,
            "item_delay": config.item_delay,
            "batch_delay": config.batch_delay,
            "log_level": config.log_level,
            "rawg_api_key": config.rawg_api_key,
            "enable_third_party": config.enable_third_party,
            "user_agent": config.user_agent,
        }

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert a dictionary to AppConfig, defaulting missing keys."""
        defaults = self._get_default_config()

        def number(key: str, default: float) -> float:
            value = data.get(key, default)
            return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else default

        def integer(key: str, default: int) -> int:
            value = data.get(key, default)
            return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else default

        api_key = data.get("rawg_api_key")
        enable_third_party = data.get("enable_third_party", True)

        return AppConfig(
            cache_dir=Path(str(data.get("cache_dir") or defaults.cache_dir)),
            fallback_path=Path(str(data.get("fallback_path") or defaults.fallback_path)),
            cache_ttl_hours=number("cache_ttl_hours", defaults.cache_ttl_hours),
            request_timeout=number("request_timeout", defaults.request_timeout),
            max_retries=integer("max_retries", defaults.max_retries),
            request_delay=number("request_delay", defaults.request_delay),
            batch_size=integer("batch_size", defaults.batch_size),
            item_delay=number("item_delay", defaults.item_delay),
            batch_delay=number("batch_delay", defaults.batch_delay),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
            rawg_api_key=str(api_key) if api_key else None,
            enable_third_party=enable_third_party if isinstance(enable_third_party, bool) else True,
            user_agent=str(data.get("user_agent") or defaults.user_agent),
        )
