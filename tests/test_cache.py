"""
Tests for the Redis facet cache. The Redis client is mocked.
"""

import json
from unittest.mock import MagicMock

import redis

from merchant_search.core.config import SearchConfig
from merchant_search.data.cache import FacetCache


def make_cache(**config_overrides):
    client = MagicMock()
    return FacetCache(config=SearchConfig(**config_overrides), client=client), client


def test_facet_key_is_deterministic_and_drops_none():
    key = FacetCache.make_facet_key("t1", "product", {"priceMin": 10, "category": ["c1"]})
    assert key == FacetCache.make_facet_key("t1", "product", {"category": ["c1"], "priceMin": 10})
    assert key.startswith("facets:t1:product:")
    assert FacetCache.make_facet_key("t1", "product", {"priceMin": None}) == FacetCache.make_facet_key("t1", "product", {})
    assert key != FacetCache.make_facet_key("t2", "product", {"priceMin": 10, "category": ["c1"]})


def test_get_miss_and_hit():
    cache, client = make_cache()
    client.get.return_value = None
    assert cache.get_facets("facets:t1:order:abc") is None
    client.get.assert_called_with("merchant_search:facets:t1:order:abc")

    client.get.return_value = json.dumps({"statuses": []})
    assert cache.get_facets("facets:t1:order:abc") == {"statuses": []}


def test_read_errors_are_misses():
    cache, client = make_cache()
    client.get.side_effect = redis.ConnectionError("down")
    assert cache.get_facets("facets:t1:order:abc") is None


def test_corrupt_payload_is_a_miss():
    cache, client = make_cache()
    client.get.return_value = "{not json"
    assert cache.get_facets("facets:t1:order:abc") is None


def test_set_uses_ttl():
    cache, client = make_cache(cache_ttl_facets=30)
    assert cache.set_facets("facets:t1:order:abc", {"statuses": []}) is True
    client.setex.assert_called_once_with("merchant_search:facets:t1:order:abc", 30, json.dumps({"statuses": []}))


def test_write_errors_are_swallowed():
    cache, client = make_cache()
    client.setex.side_effect = redis.TimeoutError("slow")
    assert cache.set_facets("facets:t1:order:abc", {}) is False


def test_invalidate_tenant():
    cache, client = make_cache()
    client.scan_iter.return_value = iter(["merchant_search:facets:t1:order:a", "merchant_search:facets:t1:product:b"])
    client.delete.return_value = 2
    assert cache.invalidate_tenant("t1") == 2
    client.scan_iter.assert_called_once_with(match="merchant_search:facets:t1:*", count=100)
    client.delete.assert_called_once_with("merchant_search:facets:t1:order:a", "merchant_search:facets:t1:product:b")


def test_invalidate_with_no_keys():
    cache, client = make_cache()
    client.scan_iter.return_value = iter([])
    assert cache.invalidate_tenant("t1") == 0
    client.delete.assert_not_called()


def test_ping():
    cache, client = make_cache()
    client.ping.return_value = True
    assert cache.ping() is True
    client.ping.side_effect = redis.ConnectionError("down")
    assert cache.ping() is False
