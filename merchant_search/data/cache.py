"""
Redis cache layer for facet summaries.

Redis is ONLY a cache, never the source of truth; the entity stores are
authoritative. Facets are eventually-consistent snapshots either way.

Cache keys:
- merchant_search:facets:{tenant_id}:{entity}:{hash}   (TTL 60s by default)

Supports a full connection URL (REDIS_URL, e.g. rediss:// for hosted Redis)
or REDIS_HOST + REDIS_PORT + REDIS_DB.
"""

import hashlib
import json
from typing import Any, Dict, Optional

import redis

from merchant_search.core.config import SearchConfig, get_config
from merchant_search.utils.logger import get_logger

logger = get_logger("data.cache")


class FacetCache:
    """
    Redis facet cache with TTL management.

    Read and write failures are logged and treated as misses; a cache outage
    never fails a search.
    """

    def __init__(self, config: Optional[SearchConfig] = None, namespace: str = "merchant_search", client=None):
        config = config or get_config()
        self.namespace = namespace
        self.ttl_facets = config.cache_ttl_facets

        if client is not None:
            self.client = client
        elif config.redis_url:
            self.client = redis.from_url(
                config.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        else:
            self.client = redis.Redis(
                host=config.redis_host,
                port=config.redis_port,
                db=config.redis_db,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )

    def _key(self, key: str) -> str:
        """Prefix key with namespace."""
        return f"{self.namespace}:{key}"

    def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    @staticmethod
    def make_facet_key(tenant_id: str, entity: str, filters: Optional[Dict[str, Any]]) -> str:
        """
        Deterministic key for one entity's facets under a filter set.
        None values are dropped so {"priceMin": None} and {} share a key.
        """
        stable_filters = {
            k: v for k, v in sorted((filters or {}).items())
            if v is not None
        }
        raw = json.dumps(stable_filters, sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode()).hexdigest()[:16]
        return f"facets:{tenant_id}:{entity}:{digest}"

    def get_facets(self, cache_key: str) -> Optional[Dict[str, Any]]:
        """Get cached facets. Returns None on miss."""
        key = self._key(cache_key)
        try:
            cached = self.client.get(key)
            if cached:
                return json.loads(cached)
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning("Facet cache read error for %s: %s", key, e)
            return None

    def set_facets(self, cache_key: str, facets: Dict[str, Any]) -> bool:
        """Cache facets with the configured TTL."""
        key = self._key(cache_key)
        try:
            self.client.setex(key, self.ttl_facets, json.dumps(facets))
            return True
        except redis.RedisError as e:
            logger.warning("Facet cache write error for %s: %s", key, e)
            return False

    def invalidate_tenant(self, tenant_id: str) -> int:
        """Drop every cached facet for a tenant. Returns count of keys deleted."""
        try:
            pattern = self._key(f"facets:{tenant_id}:*")
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                return self.client.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.warning("Facet cache invalidation error for tenant %s: %s", tenant_id, e)
            return 0
