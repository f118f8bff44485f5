"""
Test Suite Configuration
"""
import pytest
from datetime import datetime, timedelta
from typing import Optional

from pos_analytics.config import AnalyticsSettings
from pos_analytics.engine import AnalyticsEngine
from pos_analytics.query import (
    CustomerRecord,
    InMemoryQueryInterface,
    LineItem,
    ProductRecord,
    TransactionRecord,
)

# Saturday
NOW = datetime(2024, 6, 15, 12, 0, 0)
COMPANY = "acme"


def make_transaction(
    tx_id: str,
    days_ago: float,
    total: float,
    items: Optional[list] = None,
    customer_id: Optional[str] = None,
    status: str = "completed",
    company_id: str = COMPANY,
) -> TransactionRecord:
    """Transaction ``days_ago`` days before NOW; ``items`` as (product_id, price, quantity) tuples"""
    return TransactionRecord(
        id=tx_id,
        company_id=company_id,
        customer_id=customer_id,
        timestamp=NOW - timedelta(days=days_ago),
        status=status,
        total=total,
        subtotal=total,
        items=[LineItem(product_id=p, price=price, quantity=qty) for p, price, qty in (items or [])],
    )


def make_product(
    product_id: str,
    price: float = 10.0,
    cost: float = 5.0,
    category: Optional[str] = None,
    stock: int = 100,
    min_stock: int = 10,
    is_active: bool = True,
    company_id: str = COMPANY,
) -> ProductRecord:
    return ProductRecord(
        id=product_id,
        company_id=company_id,
        name=f"Product {product_id}",
        price=price,
        cost=cost,
        category=category,
        stock=stock,
        min_stock=min_stock,
        is_active=is_active,
    )


def make_customer(customer_id: str, is_active: bool = True, company_id: str = COMPANY) -> CustomerRecord:
    return CustomerRecord(
        id=customer_id,
        company_id=company_id,
        name=f"Customer {customer_id}",
        email=f"{customer_id}@example.com",
        is_active=is_active,
    )


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    """Analytics settings with the documented defaults"""
    return AnalyticsSettings()


@pytest.fixture
def empty_query() -> InMemoryQueryInterface:
    """Store with no records at all"""
    return InMemoryQueryInterface()


@pytest.fixture
def store_query() -> InMemoryQueryInterface:
    """Small store with a week of sales over three products and two customers"""
    products = [
        make_product("p1", price=5.0, cost=2.0, category="drinks", stock=3, min_stock=10),
        make_product("p2", price=10.0, cost=6.0, category="food", stock=50),
        make_product("p3", price=20.0, cost=15.0, category="food", stock=8, min_stock=8),
    ]
    customers = [make_customer("c1"), make_customer("c2")]
    transactions = [
        make_transaction("t1", 6, 20.0, [("p1", 5.0, 2), ("p2", 10.0, 1)], customer_id="c1"),
        make_transaction("t2", 5, 30.0, [("p2", 10.0, 3)], customer_id="c2"),
        make_transaction("t3", 4, 40.0, [("p3", 20.0, 2)], customer_id="c1"),
        make_transaction("t4", 3, 50.0, [("p1", 5.0, 10)]),
        make_transaction("t5", 2, 60.0, [("p2", 10.0, 6)], customer_id="c2"),
        make_transaction("t6", 1, 70.0, [("p1", 5.0, 4), ("p3", 20.0, 2.5)], customer_id="c1"),
        make_transaction("t7", 1, 999.0, [("p3", 20.0, 50)], status="cancelled"),
        make_transaction("t8", 0.1, 10.0, [("p1", 5.0, 2)], customer_id="c2"),
        make_transaction("x1", 1, 500.0, [("p1", 5.0, 100)], company_id="other"),
    ]
    return InMemoryQueryInterface(transactions, products, customers)


@pytest.fixture
def engine(store_query, analytics_settings) -> AnalyticsEngine:
    """Engine over the sample store with a frozen clock"""
    return AnalyticsEngine(store_query, settings=analytics_settings, clock=lambda: NOW)
