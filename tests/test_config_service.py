"""Property-based tests for configuration service."""

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from unittest.mock import patch

import pytest
from hypothesis import given, strategies as st

from gamereqs.models import AppConfig
from gamereqs.services import ConfigurationError, ConfigurationService


_ENV_OVERRIDES = ("RAWG_API_KEY", "GAMEREQS_CACHE_DIR")


@contextmanager
def clean_environment(**extra: str) -> Iterator[None]:
    env = {key: value for key, value in os.environ.items() if key not in _ENV_OVERRIDES}
    env.update(extra)
    with patch.dict(os.environ, env, clear=True):
        yield


# Strategies for generating valid configuration data
valid_paths = st.builds(
    lambda x: Path.home() / "test" / x,
    st.text(min_size=1, max_size=50, alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd")))
)
valid_delay = st.floats(min_value=0.0, max_value=60.0, allow_nan=False, allow_infinity=False)
valid_log_levels = st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
valid_api_keys = st.one_of(st.none(), st.text(min_size=1, max_size=40, alphabet="abcdef0123456789"))

valid_config_strategy = st.builds(
    AppConfig,
    cache_dir=valid_paths,
    fallback_path=valid_paths.map(lambda p: p.with_suffix(".json")),
    cache_ttl_hours=st.floats(min_value=0.5, max_value=720.0, allow_nan=False, allow_infinity=False),
    request_timeout=st.floats(min_value=1.0, max_value=60.0, allow_nan=False, allow_infinity=False),
    max_retries=st.integers(min_value=0, max_value=5),
    request_delay=valid_delay,
    batch_size=st.integers(min_value=1, max_value=10),
    item_delay=valid_delay,
    batch_delay=valid_delay,
    log_level=valid_log_levels,
    rawg_api_key=valid_api_keys,
    enable_third_party=st.booleans(),
)


@given(valid_config_strategy)
def test_configuration_round_trip(config: AppConfig) -> None:
    """For any valid configuration, saving and reloading preserves all values."""
    with tempfile.TemporaryDirectory() as temp_dir, clean_environment():
        config_path = Path(temp_dir) / "test_config.json"
        service = ConfigurationService(config_path)

        service.save_config(config)
        loaded_config = service.load_config()

        assert loaded_config == config


def test_configuration_round_trip_example() -> None:
    """Unit test example for configuration round-trip."""
    config = AppConfig(
        cache_dir=Path.home() / "games" / "cache",
        fallback_path=Path.home() / "games" / "fallbackRequirements.json",
        cache_ttl_hours=12.0,
        batch_size=5,
        item_delay=0.5,
        log_level="DEBUG",
        rawg_api_key="abc123",
    )

    with tempfile.TemporaryDirectory() as temp_dir, clean_environment():
        config_path = Path(temp_dir) / "test_config.json"
        service = ConfigurationService(config_path)

        service.save_config(config)
        loaded_config = service.load_config()

        assert loaded_config.cache_dir == Path.home() / "games" / "cache"
        assert loaded_config.cache_ttl_hours == 12.0
        assert loaded_config.batch_size == 5
        assert loaded_config.item_delay == 0.5
        assert loaded_config.log_level == "DEBUG"
        assert loaded_config.rawg_api_key == "abc123"


def test_missing_file_gives_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, clean_environment():
        service = ConfigurationService(Path(temp_dir) / "absent.json")
        config = service.load_config()

    assert config.cache_ttl_hours == 24.0
    assert config.batch_size == 3
    assert config.item_delay == 1.0
    assert config.batch_delay == 2.0
    assert config.rawg_api_key is None


def test_corrupt_file_gives_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, clean_environment():
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text("{not json", encoding="utf-8")

        config = ConfigurationService(config_path).load_config()

    assert config.batch_size == 3


def test_partial_file_keeps_defaults_for_missing_keys() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, clean_environment():
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text(json.dumps({"batch_size": 2, "log_level": "warning"}), encoding="utf-8")

        config = ConfigurationService(config_path).load_config()

    assert config.batch_size == 2
    assert config.log_level == "WARNING"
    assert config.request_timeout == 12.0


def test_environment_overrides() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        with clean_environment(RAWG_API_KEY="env-key", GAMEREQS_CACHE_DIR=temp_dir):
            config = ConfigurationService(Path(temp_dir) / "absent.json").load_config()

    assert config.rawg_api_key == "env-key"
    assert config.cache_dir == Path(temp_dir)


# Strategies for configs that construct fine but fail validation
def create_invalid_config_strategy():
    """Create strategy for invalid but constructible configs."""
    base = {
        "cache_dir": valid_paths,
        "fallback_path": valid_paths,
        "log_level": valid_log_levels,
    }
    return st.one_of(
        st.builds(AppConfig, **base, cache_ttl_hours=st.floats(max_value=0.0, allow_nan=False, allow_infinity=False)),
        st.builds(AppConfig, **base, request_timeout=st.floats(min_value=61.0, max_value=600.0)),
        st.builds(AppConfig, **base, max_retries=st.integers(min_value=6, max_value=50)),
        st.builds(AppConfig, **base, batch_size=st.integers(max_value=0)),
        st.builds(AppConfig, **base, batch_size=st.integers(min_value=11, max_value=100)),
        st.builds(AppConfig, **base, item_delay=st.floats(min_value=61.0, max_value=120.0)),
        st.builds(AppConfig, **base, batch_delay=st.floats(max_value=-0.01, allow_nan=False, allow_infinity=False)),
        st.builds(
            AppConfig,
            cache_dir=valid_paths,
            fallback_path=valid_paths,
            log_level=st.text(min_size=1).filter(lambda x: x not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
        ),
    )


@given(create_invalid_config_strategy())
def test_configuration_validation_rejects_invalid(config: AppConfig) -> None:
    """For any invalid configuration, validation fails with readable messages."""
    service = ConfigurationService()
    result = service.validate_config(config)

    assert not result.is_valid
    assert len(result.errors) > 0
    assert all(isinstance(error, str) for error in result.errors)


@given(valid_config_strategy)
def test_configuration_validation_accepts_valid(config: AppConfig) -> None:
    service = ConfigurationService()
    result = service.validate_config(config)

    assert result.is_valid
    assert len(result.errors) == 0


def test_save_rejects_invalid_config() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_path = Path(temp_dir) / "config.json"
        service = ConfigurationService(config_path)
        invalid = AppConfig(cache_dir=Path(temp_dir), fallback_path=Path(temp_dir) / "f.json", batch_size=0)

        with pytest.raises(ConfigurationError, match="batch_size"):
            service.save_config(invalid)

        assert not config_path.exists()
