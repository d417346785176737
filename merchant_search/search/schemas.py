"""
Pydantic v2 schemas for search requests and responses.

Wire names are camelCase (priceMin, relevanceScore, totalPages); Python
attributes are snake_case. Request schemas use extra="forbid" to reject
unknown fields. The request struct is normalized once here, so the core
never sees raw parameters.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, field_validator, model_serializer, model_validator,
)
from pydantic.alias_generators import to_camel


MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


#
# Enums
#

class EntityKind(str, Enum):
    """Searchable entity kinds. TASK is reserved and always yields no results."""
    PRODUCT = "product"
    ORDER = "order"
    CUSTOMER = "customer"
    TASK = "task"

    @classmethod
    def parse(cls, value: Any) -> Optional["EntityKind"]:
        """Accept singular or plural spelling, any case. Returns None when unknown."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip().lower()
        if text.endswith("s"):
            text = text[:-1]
        try:
            return cls(text)
        except ValueError:
            return None


DEFAULT_ENTITIES = [EntityKind.PRODUCT, EntityKind.ORDER, EntityKind.CUSTOMER]


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    PRICE = "price"
    NAME = "name"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _parse_entity_list(value: Any) -> Any:
    """Map plural/any-case entity names onto EntityKind; leave unknowns for pydantic to reject."""
    if value is None:
        return None
    if isinstance(value, (str, EntityKind)):
        value = [value]
    return [EntityKind.parse(v) or v for v in value]


#
# Per-entity filter structs (independent, no shared base)
#

class ProductFilters(_RequestModel):
    """Product filters. Set fields are OR within the set; an empty set means no constraint."""
    category: Optional[List[str]] = Field(None, description="Category ids")
    price_min: Optional[float] = Field(None, ge=0)
    price_max: Optional[float] = Field(None, ge=0)
    status: Optional[List[str]] = Field(None, description="active | inactive")
    stock_type: Optional[List[str]] = Field(None, description="infinite | preloaded_codes | real_time_api")
    featured: Optional[bool] = None
    in_stock: Optional[bool] = None


class OrderFilters(_RequestModel):
    status: Optional[List[str]] = Field(None, description="pending | processing | completed | failed | cancelled | ...")
    payment_status: Optional[List[str]] = Field(None, description="pending_payment | under_review | paid | failed | ...")
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[float] = Field(None, ge=0)
    amount_max: Optional[float] = Field(None, ge=0)
    customer_id: Optional[List[str]] = Field(None, description="Customer emails")


class CustomerFilters(_RequestModel):
    status: Optional[List[str]] = Field(None, description="active | blocked | pending")
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class TaskFilters(_RequestModel):
    """Accepted for forward compatibility; tasks are not searchable yet."""
    status: Optional[List[str]] = None
    priority: Optional[List[str]] = None
    assigned_to: Optional[List[str]] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    price_min: Optional[float] = Field(None, ge=0)
    price_max: Optional[float] = Field(None, ge=0)
    category: Optional[List[str]] = None


EntityFilters = Union[ProductFilters, OrderFilters, CustomerFilters, TaskFilters]


class SearchFilters(_RequestModel):
    """Filter container keyed by entity; each variant is an independent struct."""
    products: Optional[ProductFilters] = None
    orders: Optional[OrderFilters] = None
    customers: Optional[CustomerFilters] = None
    tasks: Optional[TaskFilters] = None

    def for_kind(self, kind: EntityKind) -> Optional[EntityFilters]:
        return {
            EntityKind.PRODUCT: self.products,
            EntityKind.ORDER: self.orders,
            EntityKind.CUSTOMER: self.customers,
            EntityKind.TASK: self.tasks,
        }[kind]

    def is_empty(self) -> bool:
        return not any((self.products, self.orders, self.customers, self.tasks))


#
# Search request
#

class Pagination(_RequestModel):
    """Offset pagination. page < 1 becomes 1; limit is clamped to [1, 100]."""
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @model_validator(mode="after")
    def _clamp(self) -> "Pagination":
        self.page = max(self.page, 1)
        self.limit = min(max(self.limit, 1), MAX_PAGE_SIZE)
        return self

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Sorting(_RequestModel):
    """Sort key and direction. A missing direction means the key's own default."""
    by: SortBy = SortBy.RELEVANCE
    order: Optional[SortOrder] = None


class SearchRequest(_RequestModel):
    """
    Cross-entity search request.

    Example:
        {"query": "gift card", "entities": ["product"],
         "filters": {"products": {"priceMin": 10, "priceMax": 20}},
         "pagination": {"page": 1, "limit": 20},
         "sorting": {"by": "price", "order": "asc"}}
    """
    query: Optional[str] = Field(None, description="Free-text query")
    entities: Optional[List[EntityKind]] = Field(None, description="Defaults to product, order, customer")
    filters: SearchFilters = Field(default_factory=SearchFilters)
    pagination: Pagination = Field(default_factory=Pagination)
    sorting: Sorting = Field(default_factory=Sorting)

    @field_validator("query", mode="before")
    @classmethod
    def _normalize_query(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("entities", mode="before")
    @classmethod
    def _parse_entities(cls, value: Any) -> Any:
        return _parse_entity_list(value)

    @field_validator("filters", mode="before")
    @classmethod
    def _default_filters(cls, value: Any) -> Any:
        return SearchFilters() if value is None else value

    @model_validator(mode="after")
    def _default_entities(self) -> "SearchRequest":
        if not self.entities:
            self.entities = list(DEFAULT_ENTITIES)
        else:
            # Set semantics, first occurrence wins
            self.entities = list(dict.fromkeys(self.entities))
        return self


#
# Result items
#

class SearchResultItem(_ResponseModel):
    """
    Base result item. relevanceScore / matchedFields are emitted only when the
    request carried a query; unscored items omit both keys.
    """
    id: str
    relevance_score: Optional[float] = None
    matched_fields: Optional[List[str]] = None

    @model_serializer(mode="wrap")
    def _omit_unscored(self, handler):
        data = handler(self)
        if self.relevance_score is None:
            data.pop("relevanceScore", None)
            data.pop("relevance_score", None)
            data.pop("matchedFields", None)
            data.pop("matched_fields", None)
        return data


class CategoryRef(_ResponseModel):
    id: str
    name: str


class ProductResult(SearchResultItem):
    name: str
    name_ar: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    price: float
    sku: Optional[str] = None
    product_code: Optional[str] = None
    status: str
    featured: bool
    category: Optional[CategoryRef] = None
    created_at: datetime


class CustomerRef(_ResponseModel):
    id: str
    name: str


class OrderLineItem(_ResponseModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    price: float


class OrderResult(SearchResultItem):
    order_code: str
    status: str
    payment_status: str
    total_amount: float
    customer: CustomerRef
    line_items: List[OrderLineItem] = Field(default_factory=list)
    created_at: datetime


class CustomerResult(SearchResultItem):
    name: str
    email: str
    phone: Optional[str] = None
    status: str
    total_orders: int = 0
    total_spent: float = 0.0
    created_at: datetime


ResultItem = Union[ProductResult, OrderResult, CustomerResult]


class EntitySearchResult(_ResponseModel):
    """count is the total under the entity's filter, not the page size."""
    count: int = 0
    items: List[ResultItem] = Field(default_factory=list)


#
# Aggregations
#

class NumericRange(_ResponseModel):
    min: float = 0.0
    max: float = 0.0


class CategoryCount(_ResponseModel):
    id: str
    name: str
    count: int


class StatusCount(_ResponseModel):
    status: str
    count: int


class ProductAggregation(_ResponseModel):
    price_range: NumericRange
    categories: List[CategoryCount]


class OrderAggregation(_ResponseModel):
    amount_range: NumericRange
    statuses: List[StatusCount]


Aggregation = Union[ProductAggregation, OrderAggregation]


class SearchResponse(_ResponseModel):
    """Unified search envelope. Unrequested kinds are absent from results."""
    success: bool = True
    query: str = ""
    total_results: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    total_pages: int = 0
    results: Dict[EntityKind, EntitySearchResult] = Field(default_factory=dict)
    aggregations: Dict[EntityKind, Aggregation] = Field(default_factory=dict)


#
# History
#

class SaveSearchHistoryRequest(_RequestModel):
    query: Optional[str] = None
    entities: Optional[List[EntityKind]] = None
    filters: Optional[Dict[str, Any]] = None
    result_count: Optional[int] = Field(None, ge=0)

    @field_validator("entities", mode="before")
    @classmethod
    def _parse_entities(cls, value: Any) -> Any:
        return _parse_entity_list(value)


class DeleteSearchHistoryRequest(_RequestModel):
    """Exactly one of id, ids, clearAll must be set."""
    id: Optional[str] = None
    ids: Optional[List[str]] = None
    clear_all: Optional[bool] = None


class SearchHistoryItem(_ResponseModel):
    id: str
    query: Optional[str] = None
    entities: List[str] = Field(default_factory=list)
    filters: Optional[Dict[str, Any]] = None
    result_count: int = 0
    entity: Optional[str] = None
    created_at: datetime


class SearchHistoryPage(_ResponseModel):
    success: bool = True
    page: int
    limit: int
    total: int
    total_pages: int
    items: List[SearchHistoryItem] = Field(default_factory=list)


class SaveSearchHistoryResponse(_ResponseModel):
    success: bool = True
    message: str = "Search saved to history"
    search_history: SearchHistoryItem


class DeleteSearchHistoryResponse(_ResponseModel):
    success: bool = True
    message: str = "Search history deleted successfully"
    deleted_count: int


#
# Suggestions
#

class SuggestionItem(_ResponseModel):
    text: str
    type: EntityKind
    entity_id: str
    category: str


class SuggestionsResponse(_ResponseModel):
    success: bool = True
    query: str
    suggestions: List[SuggestionItem] = Field(default_factory=list)
