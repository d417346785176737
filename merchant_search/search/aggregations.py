"""
Facet aggregator.

Facets are computed over the tenant's population under the entity's own
structured filters minus the facet's dimension: the price range ignores the
price bounds, the category counts ignore the category set. The text query and
the page window never apply.
"""

from typing import Dict, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from merchant_search.data.cache import FacetCache
from merchant_search.data.models import Category, Order, Product, ProductCategory
from merchant_search.search.filters import compile_order_filters, compile_product_filters
from merchant_search.search.schemas import (
    Aggregation, CategoryCount, EntityKind, NumericRange, OrderAggregation, OrderFilters,
    ProductAggregation, ProductFilters, SearchFilters, StatusCount,
)
from merchant_search.utils.logger import get_logger
from merchant_search.utils.metrics import metrics_collector
from merchant_search.utils.structured_logger import structured_logger

logger = get_logger("search.aggregations")

FACETED_KINDS = (EntityKind.PRODUCT, EntityKind.ORDER)


def _range(row) -> NumericRange:
    low, high = row
    if low is None or high is None:
        return NumericRange(min=0.0, max=0.0)
    return NumericRange(min=float(low), max=float(high))


class Aggregator:
    """Computes per-entity facet summaries, optionally through a FacetCache."""

    def __init__(self, cache: Optional[FacetCache] = None):
        self.cache = cache

    def product_facets(self, db: Session, tenant_id: str, filters: Optional[ProductFilters]) -> ProductAggregation:
        price_row = (
            db.query(func.min(Product.price), func.max(Product.price))
            .filter(Product.tenant_id == tenant_id, *compile_product_filters(filters, frozenset({"price"})))
            .one()
        )

        scoped_products = select(Product.id).where(
            Product.tenant_id == tenant_id,
            *compile_product_filters(filters, frozenset({"category"})),
        )
        category_rows = (
            db.query(Category.id, Category.name, func.count(ProductCategory.product_id))
            .join(ProductCategory, ProductCategory.category_id == Category.id)
            .filter(Category.tenant_id == tenant_id, ProductCategory.product_id.in_(scoped_products))
            .group_by(Category.id, Category.name)
            .order_by(Category.name, Category.id)
            .all()
        )

        return ProductAggregation(
            price_range=_range(price_row),
            categories=[CategoryCount(id=cid, name=name, count=count) for cid, name, count in category_rows],
        )

    def order_facets(self, db: Session, tenant_id: str, filters: Optional[OrderFilters]) -> OrderAggregation:
        amount_row = (
            db.query(func.min(Order.total_amount), func.max(Order.total_amount))
            .filter(Order.tenant_id == tenant_id, *compile_order_filters(filters, frozenset({"amount"})))
            .one()
        )

        status_rows = (
            db.query(Order.status, func.count(Order.id))
            .filter(Order.tenant_id == tenant_id, *compile_order_filters(filters, frozenset({"status"})))
            .group_by(Order.status)
            .order_by(Order.status)
            .all()
        )

        return OrderAggregation(
            amount_range=_range(amount_row),
            statuses=[StatusCount(status=status.lower(), count=count) for status, count in status_rows],
        )

    def facets_for(self, db: Session, tenant_id: str, kind: EntityKind, filters: SearchFilters) -> Optional[Aggregation]:
        entity_filters = filters.for_kind(kind)
        if kind == EntityKind.PRODUCT:
            compute, model = self.product_facets, ProductAggregation
        elif kind == EntityKind.ORDER:
            compute, model = self.order_facets, OrderAggregation
        else:
            return None

        if self.cache is None:
            return compute(db, tenant_id, entity_filters)

        filter_dump = entity_filters.model_dump(mode="json", exclude_none=True) if entity_filters else {}
        cache_key = FacetCache.make_facet_key(tenant_id, kind.value, filter_dump)
        cached = self.cache.get_facets(cache_key)
        structured_logger.log_cache_event("facets", cache_key, hit=cached is not None)
        if cached is not None:
            metrics_collector.record_cache_hit()
            return model.model_validate(cached)

        metrics_collector.record_cache_miss()
        facets = compute(db, tenant_id, entity_filters)
        self.cache.set_facets(cache_key, facets.model_dump(mode="json"))
        return facets

    def aggregate(
        self,
        db: Session,
        tenant_id: str,
        kinds: Iterable[EntityKind],
        filters: SearchFilters,
    ) -> Dict[EntityKind, Aggregation]:
        """Facets for every requested kind that supports them."""
        aggregations: Dict[EntityKind, Aggregation] = {}
        for kind in kinds:
            if kind not in FACETED_KINDS:
                continue
            aggregations[kind] = self.facets_for(db, tenant_id, kind, filters)
        return aggregations
