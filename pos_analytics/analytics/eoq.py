"""
Inventory Optimization - Economic Order Quantity

    EOQ = √((2 × Annual Demand × Order Cost) / Holding Cost)
    ROP = (Avg Daily Demand × Lead Time) + (Avg Daily Demand × Safety Days)

Holding cost is a fixed fraction of the product's unit cost per year.
"""

import math
from datetime import datetime
from typing import Optional

import polars as pl
import structlog

from pos_analytics.analytics.aggregates import round_half_up
from pos_analytics.analytics.frames import line_items_frame, window_start
from pos_analytics.analytics.models import EOQResult
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def economic_order_quantity(annual_demand: float, order_cost: float, holding_cost: float) -> int:
    """Rounded EOQ; 0 when demand, order cost or holding cost is not positive."""
    if annual_demand <= 0 or order_cost <= 0 or holding_cost <= 0:
        return 0
    return round_half_up(math.sqrt((2 * annual_demand * order_cost) / holding_cost))


def reorder_point(avg_daily_demand: float, lead_time_days: int = 7, safety_stock_days: int = 3) -> int:
    """Lead-time demand plus safety stock, rounded"""
    if avg_daily_demand <= 0:
        return 0
    lead_time_demand = avg_daily_demand * lead_time_days
    safety_stock = avg_daily_demand * safety_stock_days
    return round_half_up(lead_time_demand + safety_stock)


def average_daily_demand(
    query: QueryInterface,
    company_id: str,
    product_id: str,
    since: datetime,
) -> float:
    """Mean units sold per day, over the days the product sold at all."""
    records = query.fetch_transactions(QueryFilter(company_id=company_id, since=since))
    daily = (
        line_items_frame(records)
        .filter(pl.col("product_id") == product_id)
        .group_by(pl.col("timestamp").dt.date().alias("sale_date"))
        .agg(pl.col("quantity").sum().alias("units"))
    )
    if daily.height == 0:
        return 0.0
    return float(daily.get_column("units").mean())


def compute_eoq(
    query: QueryInterface,
    company_id: str,
    product_id: str,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> EOQResult:
    """
    EOQ and reorder point for one product.

    Args:
        query: Store to read the product and transactions from
        company_id: Company owning the product
        product_id: Product to optimize
        now: Reference time for the demand window
        settings: Order cost, holding rate, lead time and safety stock

    Returns:
        EOQResult; zero EOQ when the product has no cost or no demand
    """
    settings = settings or AnalyticsSettings()

    avg_demand = average_daily_demand(
        query,
        company_id,
        product_id,
        since=window_start(now, settings.eoq_window_days),
    )
    annual_demand = avg_demand * 365

    products = query.fetch_products(company_id, product_id=product_id, active_only=False)
    unit_cost = float(products[0].cost) if products else 0.0
    if not products:
        logger.warning("EOQ requested for unknown product", company_id=company_id, product_id=product_id)

    holding_cost = unit_cost * settings.eoq_holding_cost_rate

    result = EOQResult(
        eoq=economic_order_quantity(annual_demand, settings.eoq_order_cost, holding_cost),
        reorder_point=reorder_point(avg_demand, settings.eoq_lead_time_days, settings.eoq_safety_stock_days),
        average_demand=avg_demand,
    )

    logger.debug(
        "EOQ computed",
        company_id=company_id,
        product_id=product_id,
        eoq=result.eoq,
        reorder_point=result.reorder_point,
    )
    return result
