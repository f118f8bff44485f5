"""
Unit Tests - SQL Query Interface
"""
import json
from datetime import timedelta

import pytest
from sqlalchemy.pool import StaticPool

from conftest import COMPANY, NOW
from pos_analytics.database import (
    Base,
    SqlQueryInterface,
    check_database_health,
    create_db_engine,
    create_session_factory,
)
from pos_analytics.database.models import Customer, Product, Transaction
from pos_analytics.engine import AnalyticsEngine
from pos_analytics.exceptions import QueryError
from pos_analytics.query import LineItem, QueryFilter


def _items(*lines):
    return json.dumps([{"productId": p, "price": price, "quantity": qty} for p, price, qty in lines])


@pytest.fixture
def sql_engine():
    """In-memory SQLite store with a few days of sales"""
    engine = create_db_engine(url="sqlite://")
    Base.metadata.create_all(engine)

    factory = create_session_factory(engine)
    with factory() as session:
        session.add_all([
            Product(id="p1", company_id=COMPANY, name="Cola", price=2.5, cost=1.0, stock=5, category="drinks"),
            Product(id="p2", company_id=COMPANY, name="Old Chips", price=1.5, cost=0.5, stock=0, is_active=False),
            Product(id="q1", company_id="other", name="Tea", price=3.0, cost=1.0, stock=40),
            Customer(id="c1", company_id=COMPANY, name="Ada", email="ada@example.com", visits=3),
            Customer(id="c2", company_id=COMPANY, name="Bob", is_active=False),
        ])
        session.flush()
        session.add_all([
            Transaction(
                id="t1", company_id=COMPANY, customer_id="c1", items=_items(("p1", 2.5, 4)),
                subtotal=10.0, total=10.0, status="completed", timestamp=NOW - timedelta(days=3),
            ),
            Transaction(
                id="t2", company_id=COMPANY, customer_id=None, items=_items(("p1", 2.5, 2)),
                subtotal=5.0, total=5.0, status="completed", timestamp=NOW - timedelta(days=1),
            ),
            Transaction(
                id="t3", company_id=COMPANY, customer_id="c1", items=_items(("p1", 2.5, 8)),
                subtotal=20.0, total=20.0, status="cancelled", timestamp=NOW - timedelta(days=2),
            ),
            Transaction(
                id="t4", company_id=COMPANY, customer_id="c1", items="not json",
                subtotal=7.0, total=7.0, status="completed", timestamp=NOW - timedelta(days=40),
            ),
            Transaction(
                id="x1", company_id="other", items=_items(("q1", 3.0, 1)),
                subtotal=3.0, total=3.0, status="completed", timestamp=NOW - timedelta(days=1),
            ),
        ])
        session.commit()

    yield engine
    engine.dispose()


@pytest.fixture
def sql_query(sql_engine) -> SqlQueryInterface:
    return SqlQueryInterface(create_session_factory(sql_engine))


class TestFetchTransactions:
    """Tests for transaction queries"""

    def test_completed_ordered_by_timestamp(self, sql_query):
        records = sql_query.fetch_transactions(QueryFilter(company_id=COMPANY))

        assert [r.id for r in records] == ["t4", "t1", "t2"]
        assert records[1].items == [LineItem("p1", 2.5, 4.0)]
        assert records[1].customer_id == "c1"

    def test_malformed_items_are_empty(self, sql_query):
        records = sql_query.fetch_transactions(QueryFilter(company_id=COMPANY))

        assert records[0].items == []

    def test_filters(self, sql_query):
        since = NOW - timedelta(days=5)

        recent = sql_query.fetch_transactions(QueryFilter(company_id=COMPANY, since=since))
        every_status = sql_query.fetch_transactions(QueryFilter(company_id=COMPANY, since=since, statuses=None))
        for_customer = sql_query.fetch_transactions(QueryFilter(company_id=COMPANY, customer_id="c1"))

        assert [r.id for r in recent] == ["t1", "t2"]
        assert [r.id for r in every_status] == ["t1", "t3", "t2"]
        assert [r.id for r in for_customer] == ["t4", "t1"]


class TestFetchCatalog:
    """Tests for product, customer and company queries"""

    def test_products(self, sql_query):
        assert [p.id for p in sql_query.fetch_products(COMPANY)] == ["p1"]
        assert [p.id for p in sql_query.fetch_products(COMPANY, active_only=False)] == ["p1", "p2"]

        cola = sql_query.fetch_products(COMPANY, product_id="p1")[0]
        assert cola.cost == 1.0
        assert cola.category == "drinks"
        assert cola.min_stock == 10

    def test_customers(self, sql_query):
        customers = sql_query.fetch_customers(COMPANY)

        assert [c.id for c in customers] == ["c1"]
        assert customers[0].visit_count == 3
        assert len(sql_query.fetch_customers(COMPANY, active_only=False)) == 2

    def test_company_ids(self, sql_query):
        assert sql_query.fetch_company_ids() == ["acme", "other"]


class TestStoreFailures:
    """Tests for error propagation and health checks"""

    def test_missing_tables_raise_query_error(self):
        engine = create_db_engine(url="sqlite://")
        query = SqlQueryInterface(create_session_factory(engine))

        with pytest.raises(QueryError) as exc_info:
            query.fetch_products(COMPANY)

        assert exc_info.value.operation == "fetch_products"
        assert exc_info.value.company_id == COMPANY
        engine.dispose()

    def test_health_check(self, sql_engine):
        assert check_database_health(sql_engine)["status"] == "healthy"


class TestEngineOverSql:
    """Tests for reports computed from the SQL store"""

    def test_eoq(self, sql_query):
        engine = AnalyticsEngine(sql_query, clock=lambda: NOW)

        result = engine.compute_eoq(COMPANY, "p1")

        # (4 + 2) / 2 sale days = 3 units per day
        assert result.average_demand == 3.0
        assert result.reorder_point == 30

    def test_abc_counts_every_status(self, sql_query):
        engine = AnalyticsEngine(sql_query, clock=lambda: NOW)

        result = engine.classify_inventory_abc(COMPANY)

        assert [e.product_id for e in result.A] == []
        assert [e.product_id for e in result.C] == ["p1"]
        assert result.C[0].revenue == 35.0


class TestEnginePooling:
    """Tests for SQLite pool selection"""

    def test_memory_database_shares_one_connection(self):
        engine = create_db_engine(url="sqlite://")

        assert isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_file_database_uses_a_connection_pool(self, tmp_path):
        engine = create_db_engine(url=f"sqlite:///{tmp_path / 'pos.db'}")

        assert not isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_file_database_records_outlive_the_session(self, tmp_path):
        engine = create_db_engine(url=f"sqlite:///{tmp_path / 'pos.db'}")
        Base.metadata.create_all(engine)
        factory = create_session_factory(engine)
        with factory() as session:
            session.add(Product(id="p1", company_id=COMPANY, name="Cola", price=2.5, cost=1.0, stock=5))
            session.add(Transaction(
                id="t1", company_id=COMPANY, items=_items(("p1", 2.5, 2)),
                subtotal=5.0, total=5.0, status="completed", timestamp=NOW - timedelta(days=1),
            ))
            session.commit()

        query = SqlQueryInterface(factory)
        records = query.fetch_transactions(QueryFilter(company_id=COMPANY))
        products = query.fetch_products(COMPANY)

        assert [(r.id, r.total, r.items) for r in records] == [("t1", 5.0, [LineItem("p1", 2.5, 2.0)])]
        assert [(p.id, p.price, p.stock) for p in products] == [("p1", 2.5, 5)]
        engine.dispose()
