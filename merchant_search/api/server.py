"""
Merchant Search - FastAPI Application

Cross-entity search, search history and suggestions for the merchant back
office. Tenant and user identity arrive in X-Tenant-Id / X-User-Id headers set
by the upstream auth layer.

Run with:
    uvicorn merchant_search.api.server:app --reload --port 8002
"""

import time
import traceback
import uuid
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from merchant_search.api.params import parse_entities, search_query_params
from merchant_search.core.config import get_config
from merchant_search.core.errors import SearchError
from merchant_search.data.cache import FacetCache
from merchant_search.data.database import Base, engine, get_db, get_session_factory
from merchant_search.search.history import delete_search_history, get_search_history, save_search_history
from merchant_search.search.orchestrator import SearchService
from merchant_search.search.schemas import (
    DeleteSearchHistoryRequest, DeleteSearchHistoryResponse, SaveSearchHistoryRequest,
    SaveSearchHistoryResponse, SearchHistoryPage, SearchRequest, SearchResponse, SuggestionsResponse,
)
from merchant_search.search.suggestions import get_search_suggestions
from merchant_search.utils.logger import get_logger
from merchant_search.utils.metrics import metrics_collector, record_request_metrics
from merchant_search.utils.structured_logger import structured_logger

logger = get_logger("api.server")

API_PREFIX = "/api/merchant/search"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables if they don't exist. In production the schema is migrated externally."""
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.warning("Could not run Base.metadata.create_all: %s. Tables should already exist.", e)
    yield


app = FastAPI(
    title="Merchant Search API",
    description="Cross-entity search, search history and suggestions for the merchant back office",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled exceptions and return an opaque 500."""
    logger.error("Unhandled exception: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "InternalError", "message": "Internal server error"},
    )


#
# Dependencies
#

_facet_cache: Optional[FacetCache] = None


def get_facet_cache() -> Optional[FacetCache]:
    """Shared facet cache when enabled in config, else None."""
    global _facet_cache
    config = get_config()
    if not config.cache_enabled:
        return None
    if _facet_cache is None:
        _facet_cache = FacetCache(config)
    return _facet_cache


def get_search_service(
    session_factory: sessionmaker = Depends(get_session_factory),
    cache: Optional[FacetCache] = Depends(get_facet_cache),
) -> SearchService:
    return SearchService(session_factory, cache=cache)


def tenant_header(x_tenant_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_tenant_id


def user_header(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id


@contextmanager
def observed(operation: str, tenant_id: Optional[str] = None, params: Optional[Dict[str, Any]] = None):
    """
    Structured request/response/error events plus latency metrics for one call.
    The body may set outcome["result_count"].
    """
    request_id = str(uuid.uuid4())
    outcome: Dict[str, Any] = {"result_count": None}
    structured_logger.log_request(operation, request_id, tenant_id, params)
    start = time.perf_counter()
    try:
        yield outcome
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        record_request_metrics(operation, latency_ms, is_error=True)
        stack_trace = None if isinstance(e, SearchError) else traceback.format_exc()
        structured_logger.log_error(type(e).__name__, str(e), request_id, stack_trace)
        raise
    latency_ms = (time.perf_counter() - start) * 1000
    record_request_metrics(operation, latency_ms)
    structured_logger.log_response(operation, request_id, "success", latency_ms, outcome["result_count"])


#
# Health Check Endpoints
#

@app.get("/")
def root():
    return {
        "service": "Merchant Search API",
        "version": "1.0.0",
        "env": get_config().env,
        "status": "operational",
    }


@app.get("/health")
def health_check(
    session_factory: sessionmaker = Depends(get_session_factory),
    cache: Optional[FacetCache] = Depends(get_facet_cache),
):
    """Database and facet cache connectivity."""
    health_status = {
        "service": "healthy",
        "database": "unknown",
        "cache": "disabled",
    }

    db = session_factory()
    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = "healthy"
    except Exception as e:
        health_status["database"] = f"unhealthy: {str(e)}"
        health_status["service"] = "degraded"
    finally:
        db.close()

    if cache is not None:
        if cache.ping():
            health_status["cache"] = "healthy"
        else:
            health_status["cache"] = "unhealthy: no response"
            health_status["service"] = "degraded"

    return health_status


@app.get("/metrics")
def get_metrics():
    """Latency percentiles, request counts and error rates per operation."""
    return metrics_collector.get_summary()


#
# Search Endpoints
#

@app.get(API_PREFIX, response_model=SearchResponse)
async def api_search_get(
    request: SearchRequest = Depends(search_query_params),
    tenant_id: Optional[str] = Depends(tenant_header),
    user_id: Optional[str] = Depends(user_header),
    service: SearchService = Depends(get_search_service),
):
    """
    Cross-entity search from flat query parameters
    (q, entities, page, limit, sortBy, sortOrder, productPriceMin, orderStatus, ...).
    """
    with observed("search", tenant_id, request.model_dump(mode="json", exclude_none=True)) as outcome:
        response = await service.search(tenant_id, user_id, request)
        outcome["result_count"] = response.total_results
    return response


@app.post(API_PREFIX, response_model=SearchResponse)
async def api_search_post(
    request: SearchRequest,
    tenant_id: Optional[str] = Depends(tenant_header),
    user_id: Optional[str] = Depends(user_header),
    service: SearchService = Depends(get_search_service),
):
    """Cross-entity search from a JSON SearchRequest body."""
    with observed("search", tenant_id, request.model_dump(mode="json", exclude_none=True)) as outcome:
        response = await service.search(tenant_id, user_id, request)
        outcome["result_count"] = response.total_results
    return response


#
# History Endpoints
#

@app.get(f"{API_PREFIX}/history", response_model=SearchHistoryPage)
def api_get_history(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    entity: Optional[str] = Query(None),
    tenant_id: Optional[str] = Depends(tenant_header),
    user_id: Optional[str] = Depends(user_header),
    db: Session = Depends(get_db),
):
    """Saved searches for the acting user, newest first."""
    with observed("get_search_history", tenant_id, {"page": page, "limit": limit, "entity": entity}) as outcome:
        result = get_search_history(db, tenant_id, user_id, page=page, limit=limit, entity=entity)
        outcome["result_count"] = result.total
    return result


@app.post(f"{API_PREFIX}/history", response_model=SaveSearchHistoryResponse)
def api_save_history(
    request: SaveSearchHistoryRequest,
    tenant_id: Optional[str] = Depends(tenant_header),
    user_id: Optional[str] = Depends(user_header),
    db: Session = Depends(get_db),
):
    """Save a search to history."""
    with observed("save_search_history", tenant_id):
        return save_search_history(db, tenant_id, user_id, request)


@app.delete(f"{API_PREFIX}/history", response_model=DeleteSearchHistoryResponse)
def api_delete_history(
    id: Optional[str] = Query(None),
    body: Optional[DeleteSearchHistoryRequest] = Body(None),
    tenant_id: Optional[str] = Depends(tenant_header),
    user_id: Optional[str] = Depends(user_header),
    db: Session = Depends(get_db),
):
    """Delete by id (query string or body), by ids, or clearAll."""
    request = body or DeleteSearchHistoryRequest()
    if id and not request.id:
        request = request.model_copy(update={"id": id})
    with observed("delete_search_history", tenant_id) as outcome:
        result = delete_search_history(db, tenant_id, user_id, request)
        outcome["result_count"] = result.deleted_count
    return result


#
# Suggestions Endpoint
#

@app.get(f"{API_PREFIX}/suggestions", response_model=SuggestionsResponse)
def api_get_suggestions(
    q: Optional[str] = Query(None),
    entities: Optional[List[str]] = Query(None),
    limit: Optional[int] = Query(None),
    tenant_id: Optional[str] = Depends(tenant_header),
    db: Session = Depends(get_db),
):
    """Autocomplete suggestions; needs only the tenant."""
    kinds = parse_entities(entities) or None
    with observed("get_search_suggestions", tenant_id, {"q": q, "limit": limit}) as outcome:
        result = get_search_suggestions(db, tenant_id, q, entities=kinds, limit=limit)
        outcome["result_count"] = len(result.suggestions)
    return result


#
# Development Server
#

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("merchant_search.api.server:app", host="0.0.0.0", port=8002, reload=True)
