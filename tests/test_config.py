"""
Tests for YAML + environment configuration loading.
"""

import logging

import pytest

from merchant_search.core.config import DEFAULT_CONFIG_PATH, SearchConfig, get_config, set_config
from merchant_search.utils.logger import get_logger

ENV_VARS = (
    "DATABASE_URL", "REDIS_URL", "REDIS_HOST", "REDIS_PORT", "REDIS_DB",
    "SEARCH_CACHE_ENABLED", "CACHE_TTL_FACETS", "LOG_LEVEL", "ENV",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_default_yaml_loads():
    config = SearchConfig.from_yaml(DEFAULT_CONFIG_PATH)
    assert config.suggestion_default_limit == 10
    assert config.suggestion_max_limit == 50
    assert config.suggestion_min_query_length == 2
    assert config.history_max_page_size == 100
    assert config.cache_enabled is False
    assert config.cache_ttl_facets == 60


def test_yaml_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n"
        "  url: postgresql://search@db/merchant\n"
        "cache:\n"
        "  enabled: true\n"
        "  ttl_facets: 15\n"
        "  redis:\n"
        "    host: cache.internal\n"
        "    port: 6380\n"
        "logging:\n"
        "  level: debug\n"
    )
    config = SearchConfig.from_yaml(path)
    assert config.database_url == "postgresql://search@db/merchant"
    assert config.cache_enabled is True
    assert config.cache_ttl_facets == 15
    assert (config.redis_host, config.redis_port) == ("cache.internal", 6380)
    assert config.log_level == "DEBUG"


def test_missing_file_uses_defaults(tmp_path):
    config = SearchConfig.from_yaml(tmp_path / "absent.yaml")
    assert config.database_url == "sqlite:///./merchant_search.db"
    assert config.env == "development"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./override.db")
    monkeypatch.setenv("SEARCH_CACHE_ENABLED", "yes")
    monkeypatch.setenv("CACHE_TTL_FACETS", "5")
    monkeypatch.setenv("REDIS_URL", "rediss://cache.example:6380/0")
    monkeypatch.setenv("ENV", "Production")

    config = SearchConfig.from_yaml(tmp_path / "absent.yaml")

    assert config.database_url == "sqlite:///./override.db"
    assert config.cache_enabled is True
    assert config.cache_ttl_facets == 5
    assert config.redis_url == "rediss://cache.example:6380/0"
    assert config.env == "production"


def test_set_config_applies_log_level():
    previous = get_config()
    try:
        set_config(SearchConfig(log_level="debug"))
        assert get_logger().level == logging.DEBUG
        assert get_logger("search.history").getEffectiveLevel() == logging.DEBUG
        assert len(get_logger().handlers) == 1
    finally:
        set_config(previous)
    assert get_logger().level == logging.getLevelName(previous.log_level.upper())
