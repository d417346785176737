"""Pytest configuration for merchant search tests."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add repo root to Python path so `merchant_search` is importable without install
sys.path.insert(0, str(Path(__file__).parent.parent))

from merchant_search.data.database import Base
from merchant_search.data.models import (
    Category, Customer, Order, OrderItem, Product, ProductCategory, ProductVariant,
)


# File-backed SQLite so worker threads in the orchestrator share one database
TEST_DATABASE_URL = "sqlite:///./test_merchant_search.db"

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def at(days: int) -> datetime:
    return BASE_TIME + timedelta(days=days)


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """
    Create fresh database for each test.
    This ensures tests don't interfere with each other.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    """
    tenant-a:
        products   p1 Gift Card 50 SAR (50, Gift Cards, featured, in stock)
                   p2 Gift Card 100 SAR (100, Gift Cards)
                   p3 iPhone Game Pass (20, Games, unpublished, variant out of stock)
                   p4 Steam Wallet 10 (10, no category)
        orders     o1 ORD-1001 alice 150 DELIVERED/SUCCEEDED (p1, p2)
                   o2 ORD-1002 bob    20 PENDING/PENDING     (p3)
                   o3 ORD-1003 alice  10 CANCELLED/FAILED
        customers  u1 Alice ACTIVE, u2 Bob BLOCKED, u3 Philip ACTIVE
    tenant-b mirrors a few names to prove tenant isolation.
    """
    db.add_all([
        Category(id="cat-cards", tenant_id=TENANT, name="Gift Cards", created_at=at(0)),
        Category(id="cat-games", tenant_id=TENANT, name="Games", created_at=at(0)),
        Category(id="cat-b", tenant_id=OTHER_TENANT, name="Gift Cards", created_at=at(0)),
    ])

    p1 = Product(
        id="p1", tenant_id=TENANT, name="Gift Card 50 SAR", name_ar="بطاقة هدية 50",
        description="Digital gift card", sku="GC-50", product_code="PC-50", price=50,
        featured=True, created_at=at(1),
    )
    p2 = Product(
        id="p2", tenant_id=TENANT, name="Gift Card 100 SAR", sku="GC-100", price=100,
        created_at=at(2),
    )
    p3 = Product(
        id="p3", tenant_id=TENANT, name="iPhone Game Pass", sku="IGP-1", price=20,
        is_published=False, stock_type="PRELOADED_CODES", created_at=at(3),
    )
    p4 = Product(
        id="p4", tenant_id=TENANT, name="Steam Wallet 10", description="Top up wallet",
        price=10, created_at=at(4),
    )
    pb = Product(id="pb1", tenant_id=OTHER_TENANT, name="Gift Card 50 SAR", price=999, created_at=at(1))
    db.add_all([p1, p2, p3, p4, pb])
    db.flush()

    db.add_all([
        ProductCategory(product_id="p1", category_id="cat-cards", created_at=at(1)),
        ProductCategory(product_id="p2", category_id="cat-cards", created_at=at(2)),
        ProductCategory(product_id="p3", category_id="cat-games", created_at=at(3)),
        ProductCategory(product_id="pb1", category_id="cat-b", created_at=at(1)),
        ProductVariant(id="v1", product_id="p1", name="Default", inventory_quantity=10),
        ProductVariant(id="v3", product_id="p3", name="Default", inventory_quantity=0),
    ])

    db.add_all([
        Order(
            id="o1", tenant_id=TENANT, order_number="ORD-1001", customer_email="alice@example.com",
            customer_name="Alice", status="DELIVERED", payment_status="SUCCEEDED",
            total_amount=150, created_at=at(1),
        ),
        Order(
            id="o2", tenant_id=TENANT, order_number="ORD-1002", customer_email="bob@example.com",
            customer_name="Bob", status="PENDING", payment_status="PENDING",
            total_amount=20, created_at=at(2),
        ),
        Order(
            id="o3", tenant_id=TENANT, order_number="ORD-1003", customer_email="alice@example.com",
            customer_name="Alice", status="CANCELLED", payment_status="FAILED",
            total_amount=10, created_at=at(3),
        ),
        Order(
            id="ob1", tenant_id=OTHER_TENANT, order_number="ORD-9001", customer_email="alice@example.com",
            customer_name="Alice", status="DELIVERED", payment_status="SUCCEEDED",
            total_amount=500, created_at=at(1),
        ),
    ])
    db.flush()

    db.add_all([
        OrderItem(id="oi-1", order_id="o1", product_id="p1", quantity=1, price=50),
        OrderItem(id="oi-2", order_id="o1", product_id="p2", quantity=1, price=100),
        OrderItem(id="oi-3", order_id="o2", product_id="p3", quantity=1, price=20),
    ])

    db.add_all([
        Customer(id="u1", tenant_id=TENANT, email="alice@example.com", name="Alice", status="ACTIVE", created_at=at(1)),
        Customer(id="u2", tenant_id=TENANT, email="bob@example.com", name="Bob", status="BLOCKED", created_at=at(2)),
        Customer(id="u3", tenant_id=TENANT, email="philip@example.com", name="Philip", status="ACTIVE", created_at=at(3)),
        Customer(id="ub1", tenant_id=OTHER_TENANT, email="alice@example.com", name="Alice B", created_at=at(1)),
    ])

    db.commit()
    return db
