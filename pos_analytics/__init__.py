"""
POS Analytics Engine

Business-intelligence computations over point-of-sale history.
"""
from .engine import AnalyticsEngine
from .exceptions import AnalyticsError, QueryError
from .query import (
    CustomerRecord,
    InMemoryQueryInterface,
    LineItem,
    ProductRecord,
    QueryFilter,
    QueryInterface,
    TransactionRecord,
    TransactionStatus,
)

__version__ = "1.0.0"

__all__ = [
    "AnalyticsEngine",
    "AnalyticsError",
    "QueryError",
    "CustomerRecord",
    "InMemoryQueryInterface",
    "LineItem",
    "ProductRecord",
    "QueryFilter",
    "QueryInterface",
    "TransactionRecord",
    "TransactionStatus",
]
