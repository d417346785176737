"""
Configuration management for merchant search.

Loads settings from YAML config file, then applies environment overrides.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from merchant_search.utils.logger import configure_logging


def _project_root() -> Path:
    """Return project root (parent of merchant_search package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SearchConfig:
    """Configuration for the merchant search service."""

    # Storage
    database_url: str = "sqlite:///./merchant_search.db"

    # Suggestions
    suggestion_default_limit: int = 10
    suggestion_max_limit: int = 50
    suggestion_min_query_length: int = 2

    # History listing
    history_default_page_size: int = 20
    history_max_page_size: int = 100

    # Facet cache (Redis)
    cache_enabled: bool = False
    cache_ttl_facets: int = 60          # seconds
    redis_url: Optional[str] = None     # takes priority over host/port/db
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # Logging / runtime
    log_level: str = "INFO"
    env: str = "development"

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "SearchConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        database_config = data.get('database', {})
        suggestions_config = data.get('suggestions', {})
        history_config = data.get('history', {})
        cache_config = data.get('cache', {})
        redis_config = cache_config.get('redis', {})
        logging_config = data.get('logging', {})

        config = cls(
            database_url=database_config.get('url', cls.database_url),
            suggestion_default_limit=suggestions_config.get('default_limit', 10),
            suggestion_max_limit=suggestions_config.get('max_limit', 50),
            suggestion_min_query_length=suggestions_config.get('min_query_length', 2),
            history_default_page_size=history_config.get('default_page_size', 20),
            history_max_page_size=history_config.get('max_page_size', 100),
            cache_enabled=cache_config.get('enabled', False),
            cache_ttl_facets=cache_config.get('ttl_facets', 60),
            redis_url=redis_config.get('url'),
            redis_host=redis_config.get('host', 'localhost'),
            redis_port=redis_config.get('port', 6379),
            redis_db=redis_config.get('db', 0),
            log_level=logging_config.get('level', 'INFO'),
            env=data.get('env', 'development'),
        )
        return config.with_env_overrides()

    def with_env_overrides(self) -> "SearchConfig":
        """Apply DATABASE_URL, REDIS_*, LOG_LEVEL etc. from the environment."""
        self.database_url = os.getenv("DATABASE_URL") or self.database_url
        self.redis_url = os.getenv("REDIS_URL") or self.redis_url
        self.redis_host = os.getenv("REDIS_HOST", self.redis_host)
        self.redis_port = int(os.getenv("REDIS_PORT", str(self.redis_port)))
        self.redis_db = int(os.getenv("REDIS_DB", str(self.redis_db)))
        self.cache_enabled = _env_flag("SEARCH_CACHE_ENABLED", self.cache_enabled)
        self.cache_ttl_facets = int(os.getenv("CACHE_TTL_FACETS", str(self.cache_ttl_facets)))
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()
        self.env = os.getenv("ENV", self.env).lower()
        return self


# Global config instance
_config: Optional[SearchConfig] = None


def get_config() -> SearchConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SearchConfig.from_yaml()
        configure_logging(_config.log_level)
    return _config


def set_config(config: SearchConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
    configure_logging(config.log_level)
