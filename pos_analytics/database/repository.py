"""
SQL Query Interface

``QueryInterface`` implementation over the POS store tables. Rows are
fetched raw; line-item JSON is decoded here, in the application layer, and
every aggregation happens in the analytics modules.

Store failures are raised as ``QueryError``: a wrong report is worse than a
visible failure.
"""

from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from pos_analytics.database.connection import session_scope
from pos_analytics.database.models import Customer, Product, Transaction
from pos_analytics.exceptions import QueryError
from pos_analytics.query import (
    CustomerRecord,
    ProductRecord,
    QueryFilter,
    TransactionRecord,
    parse_line_items,
)

logger = structlog.get_logger(__name__)


class SqlQueryInterface:
    """
    Read-only store access through SQLAlchemy.

    Example:
        factory = create_session_factory(create_db_engine())
        query = SqlQueryInterface(factory)
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def fetch_transactions(self, query_filter: QueryFilter) -> List[TransactionRecord]:
        stmt = select(Transaction).where(Transaction.company_id == query_filter.company_id)

        if query_filter.since is not None:
            stmt = stmt.where(Transaction.timestamp >= query_filter.since)
        if query_filter.until is not None:
            stmt = stmt.where(Transaction.timestamp <= query_filter.until)
        if query_filter.statuses is not None:
            stmt = stmt.where(Transaction.status.in_(query_filter.statuses))
        if query_filter.customer_id is not None:
            stmt = stmt.where(Transaction.customer_id == query_filter.customer_id)

        stmt = stmt.order_by(Transaction.timestamp, Transaction.id)

        try:
            with session_scope(self.session_factory) as session:
                return [
                    TransactionRecord(
                        id=row.id,
                        company_id=row.company_id,
                        customer_id=row.customer_id,
                        timestamp=row.timestamp,
                        status=row.status,
                        items=parse_line_items(row.items, transaction_id=row.id),
                        subtotal=row.subtotal or 0.0,
                        tax=row.tax or 0.0,
                        discount=row.discount or 0.0,
                        total=row.total or 0.0,
                    )
                    for row in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            logger.error("Transaction query failed", company_id=query_filter.company_id, error=str(e))
            raise QueryError("fetch_transactions", query_filter.company_id, str(e)) from e

    def fetch_products(
        self,
        company_id: str,
        product_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[ProductRecord]:
        stmt = select(Product).where(Product.company_id == company_id)
        if product_id is not None:
            stmt = stmt.where(Product.id == product_id)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        stmt = stmt.order_by(Product.id)

        try:
            with session_scope(self.session_factory) as session:
                return [
                    ProductRecord(
                        id=row.id,
                        company_id=row.company_id,
                        name=row.name,
                        category=row.category,
                        price=row.price,
                        cost=row.cost,
                        stock=row.stock,
                        min_stock=row.min_stock if row.min_stock is not None else 10,
                        is_active=bool(row.is_active),
                    )
                    for row in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            logger.error("Product query failed", company_id=company_id, error=str(e))
            raise QueryError("fetch_products", company_id, str(e)) from e

    def fetch_customers(
        self,
        company_id: str,
        customer_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[CustomerRecord]:
        stmt = select(Customer).where(Customer.company_id == company_id)
        if customer_id is not None:
            stmt = stmt.where(Customer.id == customer_id)
        if active_only:
            stmt = stmt.where(Customer.is_active.is_(True))
        stmt = stmt.order_by(Customer.id)

        try:
            with session_scope(self.session_factory) as session:
                return [
                    CustomerRecord(
                        id=row.id,
                        company_id=row.company_id,
                        name=row.name,
                        email=row.email,
                        total_spent=row.total_spent or 0.0,
                        visit_count=row.visits or 0,
                        last_visit=row.last_visit,
                        is_active=bool(row.is_active),
                    )
                    for row in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            logger.error("Customer query failed", company_id=company_id, error=str(e))
            raise QueryError("fetch_customers", company_id, str(e)) from e

    def fetch_company_ids(self) -> List[str]:
        """Every company with a product or a transaction"""
        try:
            with session_scope(self.session_factory) as session:
                product_companies = session.scalars(select(Product.company_id).distinct()).all()
                transaction_companies = session.scalars(select(Transaction.company_id).distinct()).all()
        except SQLAlchemyError as e:
            logger.error("Company listing failed", error=str(e))
            raise QueryError("fetch_company_ids", "*", str(e)) from e

        return sorted(set(product_companies) | set(transaction_companies))
