"""
SQLAlchemy database models.

The entity tables (catalog, orders, customers) are owned by the back office's
write path; the search core only reads them. `search_history` is the one table
this service writes.

Internal status vocabularies are upper-case:
- orders.status          PENDING | CONFIRMED | PROCESSING | SHIPPED | DELIVERED | CANCELLED | REFUNDED
- orders.payment_status  PENDING | PROCESSING | SUCCEEDED | FAILED | REFUNDED | CANCELLED
- users.status           ACTIVE | BLOCKED | PENDING
- products.stock_type    INFINITE | PRELOADED_CODES | REAL_TIME_API
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, Numeric, String, Text,
)
from sqlalchemy.orm import relationship

from merchant_search.data.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Category(Base):
    """Catalog category, tenant-scoped."""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    name_ar = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Product(Base):
    """
    Product catalog row.
    A product is "active" when it is both available and published.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_tenant_created", "tenant_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)

    name = Column(String(255), nullable=False, index=True)
    name_ar = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    sku = Column(String(100), nullable=True)
    product_code = Column(String(100), nullable=True)

    # Decimal currency amount; exposed to callers as float
    price = Column(Numeric(12, 2), nullable=False, default=0)

    is_available = Column(Boolean, nullable=False, default=True)
    is_published = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    stock_type = Column(String(32), nullable=False, default="INFINITE")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    categories = relationship(
        "ProductCategory",
        back_populates="product",
        order_by=lambda: [ProductCategory.created_at, ProductCategory.category_id],
        cascade="all, delete-orphan",
    )
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return bool(self.is_available and self.is_published)

    @property
    def primary_category(self):
        """First linked category, or None."""
        if self.categories:
            return self.categories[0].category
        return None


class ProductCategory(Base):
    """Product ↔ category link. The earliest link is the product's primary category."""
    __tablename__ = "product_categories"

    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="categories")
    category = relationship("Category")


class ProductVariant(Base):
    """Sellable variant of a product; inventory lives here."""
    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    inventory_quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")


class Order(Base):
    """
    Customer order. Orders carry no customer foreign key; the customer is
    identified by email.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_tenant_created", "tenant_id", "created_at"),
        Index("ix_orders_tenant_email", "tenant_id", "customer_email"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)
    order_number = Column(String(64), nullable=False)

    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(64), nullable=True)

    status = Column(String(32), nullable=False, default="PENDING")
    payment_status = Column(String(32), nullable=False, default="PENDING")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    """Order line item."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class Customer(Base):
    """
    Store customer account - maps to the back office 'users' table.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="ACTIVE")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SearchHistory(Base):
    """
    Saved search, scoped to tenant + user. Immutable once created.
    `entity` is the primary entity tag: the first requested entity kind.
    """
    __tablename__ = "search_history"
    __table_args__ = (
        Index("ix_search_history_owner_created", "tenant_id", "user_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False)
    user_id = Column(String(64), nullable=False)
    query = Column(Text, nullable=True)
    entities = Column(JSON, nullable=False, default=list)
    filters = Column(JSON, nullable=True)
    result_count = Column(Integer, nullable=False, default=0)
    entity = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
