"""
Search history store: save, list and delete saved searches.

Every operation is scoped to tenant + user. Records are immutable once saved.
"""

import math
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from merchant_search.core.config import SearchConfig, get_config
from merchant_search.core.errors import ClientError, InternalError, require_tenant, require_user
from merchant_search.data.models import SearchHistory
from merchant_search.search.schemas import (
    DeleteSearchHistoryRequest, DeleteSearchHistoryResponse, EntityKind, SaveSearchHistoryRequest,
    SaveSearchHistoryResponse, SearchHistoryItem, SearchHistoryPage,
)
from merchant_search.utils.logger import get_logger

logger = get_logger("search.history")


def _to_item(row: SearchHistory) -> SearchHistoryItem:
    return SearchHistoryItem(
        id=row.id,
        query=row.query,
        entities=list(row.entities or []),
        filters=row.filters,
        result_count=row.result_count or 0,
        entity=row.entity,
        created_at=row.created_at,
    )


def get_search_history(
    db: Session,
    tenant_id: Optional[str],
    user_id: Optional[str],
    page: int = 1,
    limit: Optional[int] = None,
    entity: Optional[str] = None,
    config: Optional[SearchConfig] = None,
) -> SearchHistoryPage:
    """
    List saved searches newest first.

    page below 1 becomes 1; limit is clamped to [1, history_max_page_size].
    entity filters on the primary entity tag (plural spellings accepted).
    """
    user_id = require_user(user_id)
    tenant_id = require_tenant(tenant_id)
    config = config or get_config()

    page = max(page or 1, 1)
    limit = limit if limit is not None else config.history_default_page_size
    limit = min(max(limit, 1), config.history_max_page_size)

    try:
        query = db.query(SearchHistory).filter(
            SearchHistory.tenant_id == tenant_id,
            SearchHistory.user_id == user_id,
        )
        if entity:
            kind = EntityKind.parse(entity)
            query = query.filter(SearchHistory.entity == (kind.value if kind else entity.strip().lower()))

        total = query.count()
        rows = (
            query.order_by(SearchHistory.created_at.desc(), SearchHistory.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("Failed to list search history tenant=%s user=%s: %s", tenant_id, user_id, e)
        raise InternalError("Failed to get search history") from e

    return SearchHistoryPage(
        success=True,
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
        items=[_to_item(row) for row in rows],
    )


def save_search_history(
    db: Session,
    tenant_id: Optional[str],
    user_id: Optional[str],
    request: SaveSearchHistoryRequest,
) -> SaveSearchHistoryResponse:
    """Persist a search verbatim. Identical saves create separate records."""
    user_id = require_user(user_id)
    tenant_id = require_tenant(tenant_id)

    entities = [kind.value for kind in (request.entities or [])]
    record = SearchHistory(
        tenant_id=tenant_id,
        user_id=user_id,
        query=request.query,
        entities=entities,
        filters=request.filters,
        result_count=request.result_count or 0,
        entity=entities[0] if entities else None,
    )

    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to save search history tenant=%s user=%s: %s", tenant_id, user_id, e)
        raise InternalError("Failed to save search history") from e

    logger.info("Saved search history %s for tenant=%s user=%s", record.id, tenant_id, user_id)
    return SaveSearchHistoryResponse(search_history=_to_item(record))


def delete_search_history(
    db: Session,
    tenant_id: Optional[str],
    user_id: Optional[str],
    request: DeleteSearchHistoryRequest,
) -> DeleteSearchHistoryResponse:
    """
    Delete by exactly one selector: clearAll, ids or id.
    No selector, or more than one, deletes nothing and raises ClientError.
    """
    user_id = require_user(user_id)
    tenant_id = require_tenant(tenant_id)

    selectors = [
        name for name, present in (
            ("clearAll", request.clear_all is True),
            ("ids", bool(request.ids)),
            ("id", bool(request.id)),
        )
        if present
    ]
    if len(selectors) != 1:
        raise ClientError("Provide exactly one of id, ids or clearAll")

    query = db.query(SearchHistory).filter(
        SearchHistory.tenant_id == tenant_id,
        SearchHistory.user_id == user_id,
    )
    if selectors[0] == "ids":
        query = query.filter(SearchHistory.id.in_(list(dict.fromkeys(request.ids))))
    elif selectors[0] == "id":
        query = query.filter(SearchHistory.id == request.id)

    try:
        deleted_count = query.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete search history tenant=%s user=%s: %s", tenant_id, user_id, e)
        raise InternalError("Failed to delete search history") from e

    logger.info("Deleted %d search history records (%s) for tenant=%s user=%s", deleted_count, selectors[0], tenant_id, user_id)
    return DeleteSearchHistoryResponse(deleted_count=deleted_count)
