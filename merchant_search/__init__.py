"""
Merchant Search - cross-entity search for a multi-tenant commerce back office.

- Free-text + structured-filter search across products, orders and customers
- Heuristic relevance scoring and faceted aggregations
- Search history and live autocomplete suggestions
"""

from merchant_search.core.config import SearchConfig, get_config, set_config
from merchant_search.search.orchestrator import SearchService
from merchant_search.search.schemas import SearchRequest, SearchResponse

__all__ = [
    'SearchService',
    'SearchRequest',
    'SearchResponse',
    'SearchConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
