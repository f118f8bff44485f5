"""
Dashboard Metrics

Headline figures for a company dashboard:
- Today's sales and a per-day sales summary
- Daily revenue median and volatility
- Top products by revenue with profit
- Customer segment summary (from RFM scores)
- Low-stock products
- Hour-of-day × day-of-week sales pattern
"""

from datetime import date, datetime, time
from typing import Iterable, List, Optional, Sequence

import polars as pl
import structlog

from pos_analytics.analytics.aggregates import median, stddev
from pos_analytics.analytics.frames import line_items_frame, products_frame, transactions_frame
from pos_analytics.analytics.models import (
    DailySales,
    DashboardMetrics,
    HourlySales,
    LowStockProduct,
    ProductPerformance,
    RFMScore,
    RFMSegment,
    SegmentSummary,
)
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import ProductRecord, QueryFilter, QueryInterface, TransactionRecord

logger = structlog.get_logger(__name__)


def daily_sales_summary(records: Iterable[TransactionRecord]) -> List[DailySales]:
    """Per-day revenue, transaction count, average value and unique customers, newest first"""
    daily = (
        transactions_frame(records)
        .group_by(pl.col("timestamp").dt.date().alias("sale_date"))
        .agg([
            pl.col("total").sum().alias("revenue"),
            pl.len().alias("transaction_count"),
            pl.col("total").mean().alias("avg_transaction_value"),
            pl.col("customer_id").drop_nulls().n_unique().alias("unique_customers"),
        ])
        .sort("sale_date", descending=True)
    )
    return [DailySales(**row) for row in daily.iter_rows(named=True)]


def top_products(
    records: Iterable[TransactionRecord],
    products: Sequence[ProductRecord],
    limit: int = 10,
) -> List[ProductPerformance]:
    """Best-selling products by revenue, with profit against unit cost"""
    performance = (
        line_items_frame(records)
        .join(
            products_frame(products).select(["product_id", "name", "category", "cost"]),
            on="product_id",
            how="inner",
        )
        .group_by(["product_id", "name", "category"])
        .agg([
            pl.col("quantity").sum().alias("quantity_sold"),
            (pl.col("price") * pl.col("quantity")).sum().alias("revenue"),
            (pl.col("cost") * pl.col("quantity")).sum().alias("cost"),
        ])
        .with_columns((pl.col("revenue") - pl.col("cost")).alias("profit"))
        .sort(["revenue", "product_id"], descending=[True, False])
        .head(limit)
    )
    return [
        ProductPerformance(
            product_id=row["product_id"],
            name=row["name"],
            category=row["category"],
            quantity_sold=row["quantity_sold"],
            revenue=row["revenue"],
            profit=row["profit"],
        )
        for row in performance.iter_rows(named=True)
    ]


def low_stock_products(products: Sequence[ProductRecord], limit: int = 10) -> List[LowStockProduct]:
    """Active products at or below their minimum stock, scarcest first"""
    low = sorted(
        (p for p in products if p.is_active and p.stock <= p.min_stock),
        key=lambda p: (p.stock, p.id),
    )
    return [
        LowStockProduct(product_id=p.id, name=p.name, stock=p.stock, min_stock=p.min_stock)
        for p in low[:limit]
    ]


def summarize_segments(scores: Sequence[RFMScore]) -> List[SegmentSummary]:
    """Customer count, revenue and average order value per RFM segment, best segment first"""
    summaries = []
    for segment in RFMSegment:
        members = [s for s in scores if s.segment == segment]
        if not members:
            continue
        order_values = [s.monetary / s.frequency for s in members if s.frequency > 0]
        summaries.append(SegmentSummary(
            segment=segment,
            customer_count=len(members),
            total_revenue=sum(s.monetary for s in members),
            avg_order_value=sum(order_values) / len(order_values) if order_values else 0.0,
        ))
    return summaries


def hourly_sales_pattern(records: Iterable[TransactionRecord]) -> List[HourlySales]:
    """Transaction count and revenue per (ISO weekday, hour)"""
    pattern = (
        transactions_frame(records)
        .group_by([
            pl.col("timestamp").dt.weekday().alias("day_of_week"),
            pl.col("timestamp").dt.hour().alias("hour_of_day"),
        ])
        .agg([
            pl.len().alias("transaction_count"),
            pl.col("total").sum().alias("total_revenue"),
        ])
        .sort(["day_of_week", "hour_of_day"])
    )
    return [HourlySales(**row) for row in pattern.iter_rows(named=True)]


def compute_hourly_sales_pattern(query: QueryInterface, company_id: str) -> List[HourlySales]:
    """Sales heatmap over a company's completed transactions."""
    return hourly_sales_pattern(query.fetch_transactions(QueryFilter(company_id=company_id)))


def compute_dashboard_metrics(
    query: QueryInterface,
    company_id: str,
    start: date,
    end: date,
    *,
    now: datetime,
    segments: Sequence[RFMScore] = (),
    settings: Optional[AnalyticsSettings] = None,
) -> DashboardMetrics:
    """
    Dashboard metrics for ``start``..``end`` (inclusive calendar days).

    Args:
        query: Store to read from
        company_id: Company to report on
        start: First day of the range
        end: Last day of the range
        now: Reference time for "today"
        segments: RFM scores to summarise
        settings: Analytics heuristics

    Returns:
        DashboardMetrics
    """
    settings = settings or AnalyticsSettings()

    records = query.fetch_transactions(
        QueryFilter(
            company_id=company_id,
            since=datetime.combine(start, time.min),
            until=datetime.combine(end, time.max),
        )
    )
    today = now.date()
    todays_records = query.fetch_transactions(
        QueryFilter(
            company_id=company_id,
            since=datetime.combine(today, time.min),
            until=datetime.combine(today, time.max),
        )
    )
    todays_sales = daily_sales_summary(todays_records)

    products = query.fetch_products(company_id, active_only=False)
    sales_trend = daily_sales_summary(records)
    daily_revenue = [day.revenue for day in sales_trend]

    metrics = DashboardMetrics(
        today=todays_sales[0] if todays_sales else DailySales(sale_date=today),
        sales_trend=sales_trend,
        revenue_median=median(daily_revenue),
        revenue_stddev=stddev(daily_revenue),
        top_products=top_products(records, products, settings.dashboard_top_products),
        customer_segments=summarize_segments(segments),
        low_stock=low_stock_products(products, settings.low_stock_limit),
    )

    logger.debug(
        "Dashboard metrics computed",
        company_id=company_id,
        start=str(start),
        end=str(end),
        days=len(sales_trend),
    )
    return metrics
