"""
GET query-string parsing.

The flat, loosely typed query parameters of GET /api/merchant/search are
converted once, here, into a typed SearchRequest. Everything past this point
works on the typed struct.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Query

from merchant_search.search.schemas import (
    CustomerFilters, EntityKind, OrderFilters, Pagination, ProductFilters, SearchFilters,
    SearchRequest, SortBy, Sorting, SortOrder,
)


def split_values(values: Optional[List[str]]) -> Optional[List[str]]:
    """Flatten repeated and comma-separated values; blanks are dropped."""
    if not values:
        return None
    flat = [part.strip() for value in values for part in str(value).split(",")]
    flat = [part for part in flat if part]
    return flat or None


def parse_entities(values: Optional[List[str]]) -> List[EntityKind]:
    """Known entity names in input order; unknown names are dropped."""
    kinds = []
    for value in split_values(values) or []:
        kind = EntityKind.parse(value)
        if kind is not None and kind not in kinds:
            kinds.append(kind)
    return kinds


def _present(values: Dict[str, object]) -> Dict[str, object]:
    return {k: v for k, v in values.items() if v is not None}


def build_search_request(
    q: Optional[str] = None,
    entities: Optional[List[str]] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[SortBy] = None,
    sort_order: Optional[SortOrder] = None,
    product_category: Optional[List[str]] = None,
    product_price_min: Optional[float] = None,
    product_price_max: Optional[float] = None,
    product_status: Optional[List[str]] = None,
    product_featured: Optional[bool] = None,
    product_in_stock: Optional[bool] = None,
    order_status: Optional[List[str]] = None,
    payment_status: Optional[List[str]] = None,
    order_date_from: Optional[datetime] = None,
    order_date_to: Optional[datetime] = None,
    order_amount_min: Optional[float] = None,
    order_amount_max: Optional[float] = None,
    order_customer_id: Optional[List[str]] = None,
    customer_status: Optional[List[str]] = None,
    customer_date_from: Optional[datetime] = None,
    customer_date_to: Optional[datetime] = None,
) -> SearchRequest:
    """Assemble a SearchRequest from flat parameters. Absent values stay unset."""
    product = _present({
        "category": split_values(product_category),
        "price_min": product_price_min,
        "price_max": product_price_max,
        "status": split_values(product_status),
        "featured": product_featured,
        "in_stock": product_in_stock,
    })
    order = _present({
        "status": split_values(order_status),
        "payment_status": split_values(payment_status),
        "date_from": order_date_from,
        "date_to": order_date_to,
        "amount_min": order_amount_min,
        "amount_max": order_amount_max,
        "customer_id": split_values(order_customer_id),
    })
    customer = _present({
        "status": split_values(customer_status),
        "date_from": customer_date_from,
        "date_to": customer_date_to,
    })

    filters = SearchFilters(
        products=ProductFilters(**product) if product else None,
        orders=OrderFilters(**order) if order else None,
        customers=CustomerFilters(**customer) if customer else None,
    )

    return SearchRequest(
        query=q,
        entities=parse_entities(entities),
        filters=filters,
        pagination=Pagination(**_present({"page": page, "limit": limit})),
        sorting=Sorting(**_present({"by": sort_by, "order": sort_order})),
    )


def search_query_params(
    q: Optional[str] = Query(None, description="Free-text query"),
    entities: Optional[List[str]] = Query(None, description="Repeated or comma-separated entity names"),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort_by: Optional[SortBy] = Query(None, alias="sortBy"),
    sort_order: Optional[SortOrder] = Query(None, alias="sortOrder"),
    product_category: Optional[List[str]] = Query(None, alias="productCategory"),
    product_price_min: Optional[float] = Query(None, alias="productPriceMin", ge=0),
    product_price_max: Optional[float] = Query(None, alias="productPriceMax", ge=0),
    product_status: Optional[List[str]] = Query(None, alias="productStatus"),
    product_featured: Optional[bool] = Query(None, alias="productFeatured"),
    product_in_stock: Optional[bool] = Query(None, alias="productInStock"),
    order_status: Optional[List[str]] = Query(None, alias="orderStatus"),
    payment_status: Optional[List[str]] = Query(None, alias="paymentStatus"),
    order_date_from: Optional[datetime] = Query(None, alias="orderDateFrom"),
    order_date_to: Optional[datetime] = Query(None, alias="orderDateTo"),
    order_amount_min: Optional[float] = Query(None, alias="orderAmountMin", ge=0),
    order_amount_max: Optional[float] = Query(None, alias="orderAmountMax", ge=0),
    order_customer_id: Optional[List[str]] = Query(None, alias="orderCustomerId"),
    customer_status: Optional[List[str]] = Query(None, alias="customerStatus"),
    customer_date_from: Optional[datetime] = Query(None, alias="customerDateFrom"),
    customer_date_to: Optional[datetime] = Query(None, alias="customerDateTo"),
) -> SearchRequest:
    """FastAPI dependency: query string -> SearchRequest."""
    return build_search_request(
        q=q,
        entities=entities,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        product_category=product_category,
        product_price_min=product_price_min,
        product_price_max=product_price_max,
        product_status=product_status,
        product_featured=product_featured,
        product_in_stock=product_in_stock,
        order_status=order_status,
        payment_status=payment_status,
        order_date_from=order_date_from,
        order_date_to=order_date_to,
        order_amount_min=order_amount_min,
        order_amount_max=order_amount_max,
        order_customer_id=order_customer_id,
        customer_status=customer_status,
        customer_date_from=customer_date_from,
        customer_date_to=customer_date_to,
    )
