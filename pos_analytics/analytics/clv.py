"""
Customer Lifetime Value

CLV = Average Purchase Value × Purchase Frequency × Projected Lifespan

Frequency is purchases per year over the observed span, with the span
floored at a quarter year so new customers do not explode the estimate.
"""

from datetime import datetime
from typing import Optional, Sequence

import structlog

from pos_analytics.analytics.aggregates import round_half_up
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def lifetime_value(
    totals: Sequence[float],
    first_purchase: datetime,
    last_purchase: datetime,
    projected_years: float = 3.0,
    min_lifespan_years: float = 0.25,
) -> int:
    """
    Projected value of a customer from their purchase history.

    Args:
        totals: Completed purchase totals
        first_purchase: Earliest purchase time
        last_purchase: Latest purchase time
        projected_years: Projected relationship length
        min_lifespan_years: Floor for the observed span

    Returns:
        CLV rounded to whole currency units; 0 without purchases
    """
    count = len(totals)
    if count == 0:
        return 0

    avg_purchase = sum(totals) / count
    lifespan_days = (last_purchase - first_purchase).total_seconds() / 86400
    lifespan_years = max(lifespan_days / 365, min_lifespan_years)
    purchase_frequency = count / lifespan_years

    return round_half_up(avg_purchase * purchase_frequency * projected_years)


def compute_clv(
    query: QueryInterface,
    company_id: str,
    customer_id: str,
    *,
    settings: Optional[AnalyticsSettings] = None,
) -> int:
    """Lifetime value of one customer from their completed transactions."""
    settings = settings or AnalyticsSettings()

    records = query.fetch_transactions(
        QueryFilter(company_id=company_id, customer_id=customer_id)
    )
    if not records:
        logger.debug("No purchases for CLV", company_id=company_id, customer_id=customer_id)
        return 0

    timestamps = [r.timestamp for r in records]
    return lifetime_value(
        [float(r.total) for r in records],
        min(timestamps),
        max(timestamps),
        projected_years=settings.clv_projected_years,
        min_lifespan_years=settings.clv_min_lifespan_years,
    )
