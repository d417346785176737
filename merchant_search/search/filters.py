"""
Filter compiler: per-entity filter struct -> SQLAlchemy predicates.

Each populated field contributes one predicate; the caller ANDs them with the
tenant scope and the text predicate. Unset fields and empty sets contribute
nothing. `exclude` names dimensions to leave out, which is how facets are
computed over the population unfiltered by their own dimension.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from sqlalchemy import and_, not_

from merchant_search.data.models import Customer, Order, Product, ProductCategory, ProductVariant
from merchant_search.search.schemas import (
    CustomerFilters, EntityFilters, EntityKind, OrderFilters, ProductFilters,
)


# Request vocabulary -> store vocabulary. Internal spellings map to themselves.
ORDER_STATUS_MAP: Dict[str, str] = {
    "pending": "PENDING",
    "processing": "PROCESSING",
    "completed": "DELIVERED",
    "failed": "CANCELLED",
    "cancelled": "CANCELLED",
    "confirmed": "CONFIRMED",
    "shipped": "SHIPPED",
    "delivered": "DELIVERED",
    "refunded": "REFUNDED",
}

PAYMENT_STATUS_MAP: Dict[str, str] = {
    "pending_payment": "PENDING",
    "pending": "PENDING",
    "under_review": "PROCESSING",
    "processing": "PROCESSING",
    "paid": "SUCCEEDED",
    "succeeded": "SUCCEEDED",
    "failed": "FAILED",
    "refunded": "REFUNDED",
    "cancelled": "CANCELLED",
}

CUSTOMER_STATUS_MAP: Dict[str, str] = {
    "active": "ACTIVE",
    "blocked": "BLOCKED",
    "pending": "PENDING",
}

STOCK_TYPE_MAP: Dict[str, str] = {
    "infinite": "INFINITE",
    "preloaded_codes": "PRELOADED_CODES",
    "real_time_api": "REAL_TIME_API",
}

NO_EXCLUSIONS: FrozenSet[str] = frozenset()


def map_vocabulary(values: Iterable[str], mapping: Mapping[str, str]) -> List[str]:
    """
    Map request values onto store values, deduplicated in input order.
    Unknown values are upper-cased rather than rejected.
    """
    mapped = []
    for value in values:
        if value is None:
            continue
        key = str(value).strip()
        internal = mapping.get(key.lower(), key.upper())
        if internal not in mapped:
            mapped.append(internal)
    return mapped


def to_store_datetime(value: datetime) -> datetime:
    """Entity timestamps are stored as naive UTC; normalize aware inputs."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _wants(dimension: str, exclude: FrozenSet[str], value) -> bool:
    """True when the dimension is populated and not excluded. Empty sets are unset."""
    if dimension in exclude or value is None:
        return False
    if isinstance(value, (list, tuple, set, frozenset)) and len(value) == 0:
        return False
    return True


def compile_product_filters(filters: Optional[ProductFilters], exclude: FrozenSet[str] = NO_EXCLUSIONS) -> list:
    if filters is None:
        return []
    conditions = []

    if _wants("category", exclude, filters.category):
        conditions.append(
            Product.categories.any(ProductCategory.category_id.in_(list(dict.fromkeys(filters.category))))
        )

    if _wants("price", exclude, filters.price_min):
        conditions.append(Product.price >= filters.price_min)
    if _wants("price", exclude, filters.price_max):
        conditions.append(Product.price <= filters.price_max)

    if _wants("status", exclude, filters.status):
        wanted = {str(s).strip().lower() for s in filters.status}
        active = and_(Product.is_available.is_(True), Product.is_published.is_(True))
        # Naming both active and inactive (or neither) is no constraint
        if "active" in wanted and "inactive" not in wanted:
            conditions.append(active)
        elif "inactive" in wanted and "active" not in wanted:
            conditions.append(not_(active))

    if _wants("stock_type", exclude, filters.stock_type):
        conditions.append(Product.stock_type.in_(map_vocabulary(filters.stock_type, STOCK_TYPE_MAP)))

    if _wants("featured", exclude, filters.featured):
        conditions.append(Product.featured.is_(filters.featured))

    if _wants("in_stock", exclude, filters.in_stock):
        has_stock = Product.variants.any(ProductVariant.inventory_quantity > 0)
        conditions.append(has_stock if filters.in_stock else not_(has_stock))

    return conditions


def compile_order_filters(filters: Optional[OrderFilters], exclude: FrozenSet[str] = NO_EXCLUSIONS) -> list:
    if filters is None:
        return []
    conditions = []

    if _wants("status", exclude, filters.status):
        conditions.append(Order.status.in_(map_vocabulary(filters.status, ORDER_STATUS_MAP)))

    if _wants("payment_status", exclude, filters.payment_status):
        conditions.append(Order.payment_status.in_(map_vocabulary(filters.payment_status, PAYMENT_STATUS_MAP)))

    if _wants("date", exclude, filters.date_from):
        conditions.append(Order.created_at >= to_store_datetime(filters.date_from))
    if _wants("date", exclude, filters.date_to):
        conditions.append(Order.created_at <= to_store_datetime(filters.date_to))

    if _wants("amount", exclude, filters.amount_min):
        conditions.append(Order.total_amount >= filters.amount_min)
    if _wants("amount", exclude, filters.amount_max):
        conditions.append(Order.total_amount <= filters.amount_max)

    # Orders reference customers by email only
    if _wants("customer", exclude, filters.customer_id):
        conditions.append(Order.customer_email.in_(list(dict.fromkeys(filters.customer_id))))

    return conditions


def compile_customer_filters(filters: Optional[CustomerFilters], exclude: FrozenSet[str] = NO_EXCLUSIONS) -> list:
    if filters is None:
        return []
    conditions = []

    if _wants("status", exclude, filters.status):
        conditions.append(Customer.status.in_(map_vocabulary(filters.status, CUSTOMER_STATUS_MAP)))

    if _wants("date", exclude, filters.date_from):
        conditions.append(Customer.created_at >= to_store_datetime(filters.date_from))
    if _wants("date", exclude, filters.date_to):
        conditions.append(Customer.created_at <= to_store_datetime(filters.date_to))

    return conditions


FILTER_COMPILERS: Dict[EntityKind, Callable[..., list]] = {
    EntityKind.PRODUCT: compile_product_filters,
    EntityKind.ORDER: compile_order_filters,
    EntityKind.CUSTOMER: compile_customer_filters,
}


def compile_filters(
    kind: EntityKind,
    filters: Optional[EntityFilters],
    exclude: FrozenSet[str] = NO_EXCLUSIONS,
) -> list:
    """
    Dispatch on the entity tag. Kinds without a compiler (task) compile to no
    predicates.
    """
    compiler = FILTER_COMPILERS.get(kind)
    if compiler is None:
        return []
    return compiler(filters, exclude)
