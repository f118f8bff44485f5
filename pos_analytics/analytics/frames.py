"""
Record-to-Frame Pipeline

Turns Query Interface records into polars DataFrames the reports aggregate
over. Line items are already deserialized by the time they get here; this
module only flattens them.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List

import polars as pl

from pos_analytics.analytics.models import TimeSeriesPoint
from pos_analytics.query import CustomerRecord, ProductRecord, TransactionRecord

TRANSACTION_SCHEMA = {
    "transaction_id": pl.Utf8,
    "customer_id": pl.Utf8,
    "timestamp": pl.Datetime("us"),
    "status": pl.Utf8,
    "total": pl.Float64,
}

LINE_ITEM_SCHEMA = {
    "transaction_id": pl.Utf8,
    "customer_id": pl.Utf8,
    "timestamp": pl.Datetime("us"),
    "product_id": pl.Utf8,
    "price": pl.Float64,
    "quantity": pl.Float64,
}

PRODUCT_SCHEMA = {
    "product_id": pl.Utf8,
    "name": pl.Utf8,
    "category": pl.Utf8,
    "price": pl.Float64,
    "cost": pl.Float64,
    "stock": pl.Int64,
    "min_stock": pl.Int64,
}

CUSTOMER_SCHEMA = {
    "customer_id": pl.Utf8,
    "name": pl.Utf8,
    "email": pl.Utf8,
}


def window_start(now: datetime, days: int) -> datetime:
    """Midnight ``days`` calendar days before ``now``."""
    return datetime.combine(now.date() - timedelta(days=days), time.min)


def transactions_frame(records: Iterable[TransactionRecord]) -> pl.DataFrame:
    """One row per transaction"""
    records = list(records)
    return pl.DataFrame(
        {
            "transaction_id": [r.id for r in records],
            "customer_id": [r.customer_id for r in records],
            "timestamp": [r.timestamp for r in records],
            "status": [r.status for r in records],
            "total": [float(r.total) for r in records],
        },
        schema=TRANSACTION_SCHEMA,
    )


def line_items_frame(records: Iterable[TransactionRecord]) -> pl.DataFrame:
    """One row per line item, carrying its transaction's id, customer and timestamp"""
    columns = {name: [] for name in LINE_ITEM_SCHEMA}
    for record in records:
        for item in record.items:
            columns["transaction_id"].append(record.id)
            columns["customer_id"].append(record.customer_id)
            columns["timestamp"].append(record.timestamp)
            columns["product_id"].append(item.product_id)
            columns["price"].append(float(item.price))
            columns["quantity"].append(float(item.quantity))
    return pl.DataFrame(columns, schema=LINE_ITEM_SCHEMA)


def products_frame(records: Iterable[ProductRecord]) -> pl.DataFrame:
    records = list(records)
    return pl.DataFrame(
        {
            "product_id": [p.id for p in records],
            "name": [p.name for p in records],
            "category": [p.category for p in records],
            "price": [float(p.price) for p in records],
            "cost": [float(p.cost) for p in records],
            "stock": [int(p.stock) for p in records],
            "min_stock": [int(p.min_stock) for p in records],
        },
        schema=PRODUCT_SCHEMA,
    )


def customers_frame(records: Iterable[CustomerRecord]) -> pl.DataFrame:
    records = list(records)
    return pl.DataFrame(
        {
            "customer_id": [c.id for c in records],
            "name": [c.name for c in records],
            "email": [c.email for c in records],
        },
        schema=CUSTOMER_SCHEMA,
    )


def daily_totals(frame: pl.DataFrame, value_col: str = "total") -> pl.DataFrame:
    """
    Sum ``value_col`` per calendar day.

    Days without rows are absent, not zero. Sorted oldest first.
    """
    return (
        frame.group_by(pl.col("timestamp").dt.date().alias("sale_date"))
        .agg(pl.col(value_col).sum().alias("value"))
        .sort("sale_date")
    )


def daily_series(frame: pl.DataFrame, value_col: str = "total") -> List[TimeSeriesPoint]:
    """``daily_totals`` as a list of points"""
    return [
        TimeSeriesPoint(day=row["sale_date"], value=row["value"])
        for row in daily_totals(frame, value_col).iter_rows(named=True)
    ]


def sale_dates(frame: pl.DataFrame) -> List[date]:
    """Distinct calendar days present in a frame, oldest first"""
    return sorted(frame.get_column("timestamp").dt.date().unique().to_list())
