"""
Entity searchers: one routine per entity kind with a uniform contract

    search(db, tenant_id, query, filters, skip, limit, sorting) -> EntitySearchResult

Each combines the text predicate, the compiled structured filter and the
tenant scope, fetches one page, counts the full match set, and annotates
items with relevance metadata when a query is present.

The page fetch and the count are two separate reads; a write landing between
them can skew count against items. That window is accepted.

Relevance sort is approximated by a stable secondary key (name-like column
ascending); the store does not rank by score.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session, selectinload

from merchant_search.data.models import Customer, Order, OrderItem, Product, ProductCategory
from merchant_search.search import scoring
from merchant_search.search.filters import compile_filters
from merchant_search.search.schemas import (
    CategoryRef, CustomerRef, CustomerResult, EntityFilters, EntityKind, EntitySearchResult,
    OrderLineItem, OrderResult, ProductResult, SearchResultItem, SortBy, SortOrder, Sorting,
)
from merchant_search.utils.logger import get_logger

logger = get_logger("search.searchers")

LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(query: str) -> str:
    return f"%{escape_like(query)}%"


def to_float(value: Any) -> float:
    """Decimal/None -> float for display."""
    if value is None:
        return 0.0
    return float(value)


class EntitySearcher:
    """
    Base searcher. Subclasses declare the model, the text-searchable columns,
    the sort mapping and how a row becomes a result item.
    """

    kind: EntityKind
    model = None

    def text_columns(self) -> Sequence:
        raise NotImplementedError

    def relevance_column(self):
        """Stable secondary key used when sorting by relevance with a query."""
        raise NotImplementedError

    def sort_columns(self) -> Dict[SortBy, Tuple[Sequence, SortOrder]]:
        """SortBy -> (columns, default direction)."""
        raise NotImplementedError

    def load_options(self) -> Sequence:
        return ()

    def score_record(self, row) -> Dict[str, Any]:
        """Field map the relevance scorer reads."""
        raise NotImplementedError

    def to_item(self, db: Session, tenant_id: str, row, relevance: Dict[str, Any]) -> SearchResultItem:
        raise NotImplementedError

    def text_predicate(self, query: Optional[str]):
        if not query:
            return None
        pattern = contains_pattern(query)
        return or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in self.text_columns()))

    def order_by(self, query: Optional[str], sorting: Sorting) -> List:
        created_desc = [self.model.created_at.desc()]
        if sorting.by == SortBy.RELEVANCE:
            clauses = [self.relevance_column().asc()] if query else created_desc
        else:
            mapping = self.sort_columns().get(sorting.by)
            if mapping is None:
                clauses = created_desc
            else:
                columns, default_order = mapping
                direction = sorting.order or default_order
                clauses = [c.asc() if direction == SortOrder.ASC else c.desc() for c in columns]
        # Deterministic paging across equal sort keys
        return clauses + [self.model.id.asc()]

    def relevance(self, row, query: Optional[str]) -> Dict[str, Any]:
        if not query:
            return {}
        score, matched_fields = scoring.score(self.score_record(row), query, self.kind)
        return {"relevance_score": score, "matched_fields": matched_fields}

    def search(
        self,
        db: Session,
        tenant_id: str,
        query: Optional[str],
        filters: Optional[EntityFilters],
        skip: int,
        limit: int,
        sorting: Sorting,
    ) -> EntitySearchResult:
        candidates = db.query(self.model).filter(
            self.model.tenant_id == tenant_id,
            *compile_filters(self.kind, filters),
        )
        text = self.text_predicate(query)
        if text is not None:
            candidates = candidates.filter(text)

        rows = (
            candidates.options(*self.load_options())
            .order_by(*self.order_by(query, sorting))
            .offset(skip)
            .limit(limit)
            .all()
        )
        total = candidates.count()

        items = [self.to_item(db, tenant_id, row, self.relevance(row, query)) for row in rows]
        logger.debug("%s search tenant=%s total=%d page_items=%d", self.kind.value, tenant_id, total, len(items))
        return EntitySearchResult(count=total, items=items)


class ProductSearcher(EntitySearcher):
    kind = EntityKind.PRODUCT
    model = Product

    def text_columns(self):
        return (
            Product.name,
            Product.name_ar,
            Product.description,
            Product.description_ar,
            Product.sku,
            Product.product_code,
        )

    def relevance_column(self):
        return Product.name

    def sort_columns(self):
        status = case(
            (and_(Product.is_available.is_(True), Product.is_published.is_(True)), "active"),
            else_="inactive",
        )
        return {
            SortBy.DATE: ((Product.created_at,), SortOrder.DESC),
            SortBy.PRICE: ((Product.price,), SortOrder.ASC),
            SortBy.NAME: ((Product.name,), SortOrder.ASC),
            SortBy.STATUS: ((status,), SortOrder.ASC),
        }

    def load_options(self):
        return (selectinload(Product.categories).selectinload(ProductCategory.category),)

    def score_record(self, row: Product) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "sku": row.sku,
        }

    def to_item(self, db, tenant_id, row: Product, relevance) -> ProductResult:
        category = row.primary_category
        return ProductResult(
            id=row.id,
            name=row.name,
            name_ar=row.name_ar,
            description=row.description,
            description_ar=row.description_ar,
            price=to_float(row.price),
            sku=row.sku,
            product_code=row.product_code,
            status="active" if row.is_active else "inactive",
            featured=bool(row.featured),
            category=CategoryRef(id=category.id, name=category.name) if category else None,
            created_at=row.created_at,
            **relevance,
        )


class OrderSearcher(EntitySearcher):
    kind = EntityKind.ORDER
    model = Order

    def text_columns(self):
        return (
            Order.order_number,
            Order.customer_email,
            Order.customer_name,
            Order.customer_phone,
        )

    def relevance_column(self):
        return Order.order_number

    def sort_columns(self):
        return {
            SortBy.DATE: ((Order.created_at,), SortOrder.DESC),
            SortBy.PRICE: ((Order.total_amount,), SortOrder.ASC),
            SortBy.NAME: ((Order.customer_name,), SortOrder.ASC),
            SortBy.STATUS: ((Order.status,), SortOrder.ASC),
        }

    def load_options(self):
        return (selectinload(Order.items).selectinload(OrderItem.product),)

    def score_record(self, row: Order) -> Dict[str, Any]:
        return {
            "id": row.id,
            "customerName": row.customer_name,
            "customerEmail": row.customer_email,
            "orderCode": row.order_number,
        }

    def to_item(self, db, tenant_id, row: Order, relevance) -> OrderResult:
        return OrderResult(
            id=row.id,
            order_code=row.order_number,
            status=row.status.lower(),
            payment_status=row.payment_status.lower(),
            total_amount=to_float(row.total_amount),
            customer=CustomerRef(id=row.customer_email, name=row.customer_name or row.customer_email),
            line_items=[
                OrderLineItem(
                    product_id=line.product_id,
                    product_name=line.product.name if line.product else None,
                    quantity=line.quantity,
                    price=to_float(line.price),
                )
                for line in row.items
            ],
            created_at=row.created_at,
            **relevance,
        )


class CustomerSearcher(EntitySearcher):
    """
    Customer search. Each returned customer is enriched with an order count and
    total spend for the tenant, one aggregate query per customer.
    """

    kind = EntityKind.CUSTOMER
    model = Customer

    def text_columns(self):
        return (Customer.email, Customer.name)

    def relevance_column(self):
        return Customer.name

    def sort_columns(self):
        return {
            SortBy.DATE: ((Customer.created_at,), SortOrder.DESC),
            SortBy.NAME: ((Customer.name,), SortOrder.ASC),
            SortBy.STATUS: ((Customer.status,), SortOrder.ASC),
        }

    def score_record(self, row: Customer) -> Dict[str, Any]:
        return {"id": row.id, "name": row.name, "email": row.email}

    def order_stats(self, db: Session, tenant_id: str, email: str) -> Tuple[int, float]:
        count, spent = (
            db.query(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
            .filter(Order.tenant_id == tenant_id, Order.customer_email == email)
            .one()
        )
        return int(count or 0), to_float(spent)

    def to_item(self, db, tenant_id, row: Customer, relevance) -> CustomerResult:
        total_orders, total_spent = self.order_stats(db, tenant_id, row.email)
        return CustomerResult(
            id=row.id,
            name=row.name or row.email,
            email=row.email,
            phone=None,
            status=(row.status or "ACTIVE").lower(),
            total_orders=total_orders,
            total_spent=total_spent,
            created_at=row.created_at,
            **relevance,
        )


SEARCHERS: Dict[EntityKind, EntitySearcher] = {
    EntityKind.PRODUCT: ProductSearcher(),
    EntityKind.ORDER: OrderSearcher(),
    EntityKind.CUSTOMER: CustomerSearcher(),
}


def get_searcher(kind: EntityKind) -> Optional[EntitySearcher]:
    """Searcher for a kind, or None for kinds without one (task)."""
    return SEARCHERS.get(kind)
