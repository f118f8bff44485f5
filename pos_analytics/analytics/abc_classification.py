"""
ABC Inventory Classification

Ranks active products by revenue and splits them on cumulative revenue share:
    A: cumulative share <= 70%
    B: cumulative share <= 90%
    C: the rest
"""

from typing import Optional

import polars as pl
import structlog

from pos_analytics.analytics.aggregates import safe_divide
from pos_analytics.analytics.frames import line_items_frame, products_frame
from pos_analytics.analytics.models import ABCClassification, ABCEntry
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def product_revenue(products: pl.DataFrame, items: pl.DataFrame) -> pl.DataFrame:
    """
    Revenue per product (quantity * line price), highest first.

    Products without sales are kept with zero revenue; items referencing
    unknown products are dropped.
    """
    revenue = (
        items.with_columns((pl.col("price") * pl.col("quantity")).alias("line_revenue"))
        .group_by("product_id")
        .agg(pl.col("line_revenue").sum().alias("revenue"))
    )
    return (
        products.join(revenue, on="product_id", how="left")
        .with_columns(pl.col("revenue").fill_null(0.0))
        .sort(["revenue", "product_id"], descending=[True, False])
    )


def classify_inventory_abc(
    query: QueryInterface,
    company_id: str,
    *,
    settings: Optional[AnalyticsSettings] = None,
) -> ABCClassification:
    """
    ABC classification of a company's active products.

    Revenue counts every transaction of the company regardless of status.

    Args:
        query: Store to read products and transactions from
        company_id: Company to analyse
        settings: Analytics heuristics

    Returns:
        ABCClassification; with no revenue at all every product lands in C
        with a zero share
    """
    settings = settings or AnalyticsSettings()

    products = products_frame(query.fetch_products(company_id, active_only=True))
    transactions = query.fetch_transactions(QueryFilter(company_id=company_id, statuses=None))
    ranked = product_revenue(products, line_items_frame(transactions))

    total_revenue = float(ranked.get_column("revenue").sum()) if ranked.height else 0.0
    result = ABCClassification()
    cumulative = 0.0

    for row in ranked.iter_rows(named=True):
        revenue = float(row["revenue"])
        cumulative += revenue

        if total_revenue > 0:
            cumulative_percent = cumulative / total_revenue * 100
            if cumulative_percent <= settings.abc_a_threshold:
                label = "A"
            elif cumulative_percent <= settings.abc_b_threshold:
                label = "B"
            else:
                label = "C"
        else:
            label = "C"

        entry = ABCEntry(
            product_id=row["product_id"],
            name=row["name"],
            stock=row["stock"],
            price=row["price"],
            revenue=revenue,
            category=label,
            revenue_percent=safe_divide(revenue, total_revenue) * 100,
        )
        getattr(result, label).append(entry)

    logger.debug(
        "ABC classification computed",
        company_id=company_id,
        products=ranked.height,
        total_revenue=total_revenue,
        a=len(result.A),
        b=len(result.B),
        c=len(result.C),
    )
    return result
