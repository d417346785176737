"""
Search orchestrator: the public cross-entity search entry point.

Fans the request out to every requested entity searcher plus the aggregator,
each on its own database session in a worker thread, and merges the outcomes
into one envelope.
"""

import asyncio
import math
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from merchant_search.core.config import SearchConfig, get_config
from merchant_search.core.errors import InternalError, SearchError, require_tenant, require_user
from merchant_search.data.cache import FacetCache
from merchant_search.search.aggregations import Aggregator
from merchant_search.search.schemas import (
    EntityKind, EntitySearchResult, SearchRequest, SearchResponse,
)
from merchant_search.search.searchers import get_searcher
from merchant_search.utils.logger import get_logger

logger = get_logger("search.orchestrator")


class SearchService:
    """
    Cross-entity search.

    Args:
        session_factory: sessionmaker; one session is opened per concurrent read
        cache: optional FacetCache for aggregations
        config: settings (global config when omitted)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        cache: Optional[FacetCache] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.session_factory = session_factory
        self.config = config or get_config()
        self.aggregator = Aggregator(cache)

    def _in_session(self, work: Callable[..., object], *args):
        db: Session = self.session_factory()
        try:
            return work(db, *args)
        finally:
            db.close()

    async def search(self, tenant_id: Optional[str], user_id: Optional[str], request: SearchRequest) -> SearchResponse:
        require_user(user_id)
        tenant_id = require_tenant(tenant_id)

        kinds = request.entities
        page = request.pagination
        searchable = [kind for kind in kinds if get_searcher(kind) is not None]

        jobs = [
            asyncio.to_thread(
                self._in_session,
                get_searcher(kind).search,
                tenant_id,
                request.query,
                request.filters.for_kind(kind),
                page.skip,
                page.limit,
                request.sorting,
            )
            for kind in searchable
        ]
        jobs.append(asyncio.to_thread(self._in_session, self.aggregator.aggregate, tenant_id, kinds, request.filters))

        try:
            outcomes = await asyncio.gather(*jobs)
        except SearchError:
            raise
        except Exception as e:
            logger.exception(
                "Search failed tenant=%s user=%s entities=%s query=%r: %s",
                tenant_id, user_id, [k.value for k in kinds], request.query, e,
            )
            raise InternalError("Failed to perform search") from e

        by_kind: Dict[EntityKind, EntitySearchResult] = dict(zip(searchable, outcomes[:-1]))
        aggregations = outcomes[-1]

        results: Dict[EntityKind, EntitySearchResult] = {}
        for kind in kinds:
            # Kinds without a searcher (task) resolve to an empty result
            results[kind] = by_kind.get(kind, EntitySearchResult(count=0, items=[]))

        total_results = sum(result.count for result in results.values())
        total_pages = math.ceil(total_results / page.limit) if total_results else 0

        logger.info(
            "Search tenant=%s entities=%s query=%r filtered=%s total=%d",
            tenant_id, [k.value for k in kinds], request.query, not request.filters.is_empty(), total_results,
        )
        return SearchResponse(
            success=True,
            query=request.query or "",
            total_results=total_results,
            page=page.page,
            limit=page.limit,
            total_pages=total_pages,
            results=results,
            aggregations=aggregations,
        )
