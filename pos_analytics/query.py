"""
Query Interface

The read-only boundary between the analytics engine and the transactional
store. The engine only ever sees the records defined here: line-item
payloads are deserialized into ``LineItem`` objects before any report runs,
so the analytics modules never depend on how the store encodes them.

Includes:
- Record types for transactions, products and customers
- ``QueryFilter`` describing a transaction fetch
- ``QueryInterface`` protocol implemented by the stores
- ``InMemoryQueryInterface`` over already-materialized records
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Protocol, Tuple, Union

import structlog

logger = structlog.get_logger(__name__)


class TransactionStatus(str, Enum):
    """Transaction status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class LineItem:
    """A single product line of a transaction"""
    product_id: str
    price: float
    quantity: float

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["LineItem"]:
        """
        Build a line item from a decoded item payload.

        Accepts both the POS client's camelCase keys and snake_case keys.
        Returns None for payloads that cannot be attributed to a product or
        carry a non-finite price or quantity.
        """
        if not isinstance(payload, dict):
            return None

        product_id = payload.get("productId", payload.get("product_id"))
        if not product_id:
            return None

        try:
            price = float(payload.get("price") or 0)
            quantity = float(payload.get("quantity") or 0)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(price) and math.isfinite(quantity)):
            return None

        return cls(product_id=str(product_id), price=price, quantity=quantity)


def parse_line_items(raw: Union[str, bytes, Iterable[Any], None], transaction_id: str = "") -> List[LineItem]:
    """
    Deserialize a transaction's item payload.

    Malformed payloads and items are skipped (and logged) rather than
    failing the whole report.

    Args:
        raw: JSON text or an already-decoded list of item dicts
        transaction_id: Owning transaction, for log context

    Returns:
        Parsed line items
    """
    if raw is None:
        return []

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Skipping malformed item payload", transaction_id=transaction_id, error=str(e))
            return []

    if not isinstance(raw, list):
        logger.warning("Item payload is not a list", transaction_id=transaction_id)
        return []

    items = []
    skipped = 0
    for payload in raw:
        item = payload if isinstance(payload, LineItem) else LineItem.from_payload(payload)
        if item is None:
            skipped += 1
            continue
        items.append(item)

    if skipped:
        logger.warning("Skipped unattributable line items", transaction_id=transaction_id, skipped=skipped)

    return items


@dataclass
class TransactionRecord:
    """A point-of-sale transaction"""
    id: str
    company_id: str
    timestamp: datetime
    total: float
    status: str = TransactionStatus.COMPLETED.value
    customer_id: Optional[str] = None
    items: List[LineItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    discount: float = 0.0

    def __post_init__(self):
        self.timestamp = _naive_utc(self.timestamp)
        if isinstance(self.status, TransactionStatus):
            self.status = self.status.value


@dataclass
class ProductRecord:
    """A catalog product"""
    id: str
    company_id: str
    name: str
    price: float
    cost: float
    category: Optional[str] = None
    stock: int = 0
    min_stock: int = 10
    is_active: bool = True


@dataclass
class CustomerRecord:
    """A registered customer"""
    id: str
    company_id: str
    name: str
    email: Optional[str] = None
    total_spent: float = 0.0
    visit_count: int = 0
    last_visit: Optional[datetime] = None
    is_active: bool = True


@dataclass(frozen=True)
class QueryFilter:
    """
    Transaction fetch filter.

    ``statuses=None`` returns transactions of every status.
    """
    company_id: str
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    statuses: Optional[Tuple[str, ...]] = (TransactionStatus.COMPLETED.value,)
    customer_id: Optional[str] = None

    def matches(self, record: TransactionRecord) -> bool:
        """Whether a transaction satisfies this filter"""
        if record.company_id != self.company_id:
            return False
        if self.since is not None and record.timestamp < self.since:
            return False
        if self.until is not None and record.timestamp > self.until:
            return False
        if self.statuses is not None and record.status not in self.statuses:
            return False
        if self.customer_id is not None and record.customer_id != self.customer_id:
            return False
        return True


class QueryInterface(Protocol):
    """Read-only access to a company's store records"""

    def fetch_transactions(self, query_filter: QueryFilter) -> List[TransactionRecord]:
        """Transactions matching the filter, ordered by timestamp"""
        ...

    def fetch_products(
        self,
        company_id: str,
        product_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[ProductRecord]:
        ...

    def fetch_customers(
        self,
        company_id: str,
        customer_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[CustomerRecord]:
        ...


class InMemoryQueryInterface:
    """
    Query interface over records already held in memory.

    Useful for exports loaded from files and as a fake store in tests.

    Example:
        query = InMemoryQueryInterface(transactions, products, customers)
        engine = AnalyticsEngine(query)
    """

    def __init__(
        self,
        transactions: Optional[Iterable[TransactionRecord]] = None,
        products: Optional[Iterable[ProductRecord]] = None,
        customers: Optional[Iterable[CustomerRecord]] = None,
    ):
        self.transactions = list(transactions or [])
        self.products = list(products or [])
        self.customers = list(customers or [])

    def fetch_transactions(self, query_filter: QueryFilter) -> List[TransactionRecord]:
        matched = [t for t in self.transactions if query_filter.matches(t)]
        return sorted(matched, key=lambda t: t.timestamp)

    def fetch_products(
        self,
        company_id: str,
        product_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[ProductRecord]:
        return [
            p for p in self.products
            if p.company_id == company_id
            and (product_id is None or p.id == product_id)
            and (p.is_active or not active_only)
        ]

    def fetch_customers(
        self,
        company_id: str,
        customer_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[CustomerRecord]:
        return [
            c for c in self.customers
            if c.company_id == company_id
            and (customer_id is None or c.id == customer_id)
            and (c.is_active or not active_only)
        ]
