"""
Profit Margin Analysis

Margin % = (Revenue - Cost of Goods) / Revenue × 100

Computed overall for the recent window, and over the full completed history
broken down by product category and by the best-selling products. Line
items whose product no longer exists contribute no cost and are left out of
the breakdowns.
"""

from datetime import datetime
from typing import Iterable, Optional

import polars as pl
import structlog

from pos_analytics.analytics.aggregates import safe_divide
from pos_analytics.analytics.frames import line_items_frame, products_frame, window_start
from pos_analytics.analytics.models import CategoryMargin, ProductMargin, ProfitMargins
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface, TransactionRecord

logger = structlog.get_logger(__name__)


def margin_percent(revenue: float, cost: float) -> float:
    """Margin as a percentage of revenue; 0 when there is no revenue"""
    return safe_divide(revenue - cost, revenue) * 100


def costed_lines(records: Iterable[TransactionRecord], products: pl.DataFrame) -> pl.DataFrame:
    """Line items joined to their product's cost, with line revenue and cost"""
    return (
        line_items_frame(records)
        .join(products.select(["product_id", "name", "category", "cost"]), on="product_id", how="inner")
        .with_columns(
            (pl.col("price") * pl.col("quantity")).alias("line_revenue"),
            (pl.col("cost") * pl.col("quantity")).alias("line_cost"),
        )
    )


def overall_margin(records: Iterable[TransactionRecord], products: pl.DataFrame) -> float:
    """Margin of transaction totals against the cost of their matched items"""
    records = list(records)
    revenue = sum(float(r.total) for r in records)
    lines = costed_lines(records, products)
    cogs = float(lines.get_column("line_cost").sum()) if lines.height else 0.0
    return margin_percent(revenue, cogs)


def compute_profit_margins(
    query: QueryInterface,
    company_id: str,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> ProfitMargins:
    """
    Profit margins overall, by category and by top-selling product.

    Args:
        query: Store to read products and transactions from
        company_id: Company to analyse
        now: Reference time for the overall window
        settings: Analytics heuristics

    Returns:
        ProfitMargins
    """
    settings = settings or AnalyticsSettings()

    products = products_frame(query.fetch_products(company_id, active_only=False))

    recent = query.fetch_transactions(
        QueryFilter(company_id=company_id, since=window_start(now, settings.profit_window_days))
    )
    overall = overall_margin(recent, products)

    lines = costed_lines(query.fetch_transactions(QueryFilter(company_id=company_id)), products)

    categories = (
        lines.filter(pl.col("category").is_not_null())
        .group_by("category")
        .agg([
            pl.col("line_revenue").sum().alias("revenue"),
            pl.col("line_cost").sum().alias("cost"),
        ])
        .sort(["revenue", "category"], descending=[True, False])
    )
    by_category = [
        CategoryMargin(
            category=row["category"],
            revenue=row["revenue"],
            cost=row["cost"],
            profit_margin=margin_percent(row["revenue"], row["cost"]),
        )
        for row in categories.iter_rows(named=True)
    ]

    top_products = (
        lines.group_by(["product_id", "name"])
        .agg([
            pl.col("quantity").sum().alias("units_sold"),
            pl.col("line_revenue").sum().alias("revenue"),
            pl.col("line_cost").sum().alias("cost"),
        ])
        .sort(["units_sold", "product_id"], descending=[True, False])
        .head(settings.profit_top_products)
    )
    by_product = [
        ProductMargin(
            product_id=row["product_id"],
            name=row["name"],
            units_sold=row["units_sold"],
            revenue=row["revenue"],
            profit_margin=margin_percent(row["revenue"], row["cost"]),
        )
        for row in top_products.iter_rows(named=True)
    ]

    logger.debug(
        "Profit margins computed",
        company_id=company_id,
        overall=overall,
        categories=len(by_category),
        products=len(by_product),
    )
    return ProfitMargins(overall=overall, by_category=by_category, by_product=by_product)
