"""
Autocomplete suggestions derived live from the entity stores.

Each requested kind contributes up to `limit` substring matches, prefix matches
fetched first so the per-kind cut never drops them. The merged list is stably
sorted with prefix matches first and truncated to `limit`.
"""

from typing import Iterable, List, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from merchant_search.core.config import SearchConfig, get_config
from merchant_search.core.errors import ClientError, InternalError, require_tenant
from merchant_search.data.models import Customer, Order, Product, ProductCategory
from merchant_search.search.schemas import DEFAULT_ENTITIES, EntityKind, SuggestionItem, SuggestionsResponse
from merchant_search.search.searchers import LIKE_ESCAPE, contains_pattern, escape_like
from merchant_search.utils.logger import get_logger

logger = get_logger("search.suggestions")


def _prefix_first(column, query: str):
    """Sort key that puts rows whose column starts with the query ahead of the rest."""
    return case((column.ilike(f"{escape_like(query)}%", escape=LIKE_ESCAPE), 0), else_=1)


def _product_suggestions(db: Session, tenant_id: str, query: str, limit: int) -> List[SuggestionItem]:
    pattern = contains_pattern(query)
    products = (
        db.query(Product)
        .options(selectinload(Product.categories).selectinload(ProductCategory.category))
        .filter(
            Product.tenant_id == tenant_id,
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.name_ar.ilike(pattern, escape=LIKE_ESCAPE),
                Product.sku.ilike(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(_prefix_first(func.coalesce(Product.name, Product.name_ar), query), Product.name, Product.id)
        .limit(limit)
        .all()
    )
    suggestions = []
    for product in products:
        category = product.primary_category
        suggestions.append(SuggestionItem(
            text=product.name or product.name_ar or "",
            type=EntityKind.PRODUCT,
            entity_id=product.id,
            category=category.name if category else "Uncategorized",
        ))
    return suggestions


def _order_suggestions(db: Session, tenant_id: str, query: str, limit: int) -> List[SuggestionItem]:
    orders = (
        db.query(Order.id, Order.order_number)
        .filter(
            Order.tenant_id == tenant_id,
            Order.order_number.ilike(contains_pattern(query), escape=LIKE_ESCAPE),
        )
        .order_by(_prefix_first(Order.order_number, query), Order.order_number, Order.id)
        .limit(limit)
        .all()
    )
    return [
        SuggestionItem(text=order_number, type=EntityKind.ORDER, entity_id=order_id, category="Orders")
        for order_id, order_number in orders
    ]


def _customer_suggestions(db: Session, tenant_id: str, query: str, limit: int) -> List[SuggestionItem]:
    pattern = contains_pattern(query)
    customers = (
        db.query(Customer.id, Customer.name, Customer.email)
        .filter(
            Customer.tenant_id == tenant_id,
            or_(
                Customer.email.ilike(pattern, escape=LIKE_ESCAPE),
                Customer.name.ilike(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(_prefix_first(func.coalesce(Customer.name, Customer.email), query), Customer.name, Customer.id)
        .limit(limit)
        .all()
    )
    return [
        SuggestionItem(text=name or email, type=EntityKind.CUSTOMER, entity_id=customer_id, category="Customers")
        for customer_id, name, email in customers
    ]


SUGGESTION_SOURCES = {
    EntityKind.PRODUCT: _product_suggestions,
    EntityKind.ORDER: _order_suggestions,
    EntityKind.CUSTOMER: _customer_suggestions,
}


def rank_suggestions(suggestions: Iterable[SuggestionItem], query: str, limit: int) -> List[SuggestionItem]:
    """Prefix matches first, otherwise source order; truncated to limit."""
    query_lower = query.lower()
    ranked = sorted(suggestions, key=lambda s: 0 if s.text.lower().startswith(query_lower) else 1)
    return ranked[:limit]


def get_search_suggestions(
    db: Session,
    tenant_id: Optional[str],
    query: Optional[str],
    entities: Optional[Iterable[EntityKind]] = None,
    limit: Optional[int] = None,
    config: Optional[SearchConfig] = None,
) -> SuggestionsResponse:
    """
    Suggest entity names for a partial query.

    Raises:
        ClientError: missing tenant, or query shorter than the minimum after trimming
    """
    tenant_id = require_tenant(tenant_id)
    config = config or get_config()

    text = (query or "").strip()
    if len(text) < config.suggestion_min_query_length:
        raise ClientError(f"Query must be at least {config.suggestion_min_query_length} characters")

    limit = limit if limit is not None else config.suggestion_default_limit
    limit = min(max(limit, 1), config.suggestion_max_limit)
    kinds = list(dict.fromkeys(entities)) if entities else list(DEFAULT_ENTITIES)

    suggestions: List[SuggestionItem] = []
    try:
        for kind in kinds:
            source = SUGGESTION_SOURCES.get(kind)
            if source is not None:
                suggestions.extend(source(db, tenant_id, text, limit))
    except SQLAlchemyError as e:
        logger.error("Suggestion lookup failed tenant=%s query=%r: %s", tenant_id, text, e)
        raise InternalError("Failed to get search suggestions") from e

    return SuggestionsResponse(
        success=True,
        query=text,
        suggestions=rank_suggestions(suggestions, text, limit),
    )
