"""
Churn Risk Scoring

Heuristic 0-100 score, higher meaning more likely to stop purchasing:
    recency   = min(days_since_last / (avg_days_between * 2), 1)
    frequency = 1 - min(purchases / 10, 1)
    monetary  = 1 - min(total_spent / 10000, 1)
    score     = (0.5 * recency + 0.3 * frequency + 0.2 * monetary) * 100
"""

from datetime import datetime
from typing import Optional

import structlog

from pos_analytics.analytics.aggregates import round_half_up, safe_divide
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def churn_score(
    days_since_last: float,
    avg_days_between: float,
    purchase_count: int,
    total_spent: float,
    settings: Optional[AnalyticsSettings] = None,
) -> int:
    """Weighted churn score from a customer's purchase statistics."""
    settings = settings or AnalyticsSettings()

    if avg_days_between > 0:
        recency_factor = _clamp(days_since_last / (avg_days_between * 2), 0.0, 1.0)
    else:
        # Every purchase at the same instant: any elapsed time is maximal risk
        recency_factor = 1.0 if days_since_last > 0 else 0.0

    frequency_factor = 1 - _clamp(
        safe_divide(purchase_count, settings.churn_frequency_cap, default=1.0), 0.0, 1.0
    )
    monetary_factor = 1 - _clamp(
        safe_divide(total_spent, settings.churn_monetary_cap, default=1.0), 0.0, 1.0
    )

    score = (
        recency_factor * settings.churn_recency_weight
        + frequency_factor * settings.churn_frequency_weight
        + monetary_factor * settings.churn_monetary_weight
    ) * 100

    return int(_clamp(round_half_up(score), 0, 100))


def compute_churn_risk(
    query: QueryInterface,
    company_id: str,
    customer_id: str,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> int:
    """
    Churn risk of one customer.

    Customers with fewer than two completed purchases get the neutral score.
    The average gap is the observed span divided by the purchase count.
    """
    settings = settings or AnalyticsSettings()

    records = query.fetch_transactions(
        QueryFilter(company_id=company_id, customer_id=customer_id)
    )
    if len(records) < settings.churn_min_purchases:
        logger.debug(
            "Insufficient purchases for churn score",
            company_id=company_id,
            customer_id=customer_id,
            purchases=len(records),
        )
        return settings.churn_neutral_score

    timestamps = [r.timestamp for r in records]
    first, last = min(timestamps), max(timestamps)
    purchase_count = len(records)

    return churn_score(
        days_since_last=(now - last).total_seconds() / 86400,
        avg_days_between=(last - first).total_seconds() / 86400 / purchase_count,
        purchase_count=purchase_count,
        total_spent=sum(float(r.total) for r in records),
        settings=settings,
    )
