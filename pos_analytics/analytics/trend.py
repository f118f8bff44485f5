"""
Sales Trend Analysis

Ordinary least-squares fit of daily revenue against day index:
    y = slope * x + intercept,  x = 0..n-1

The trend label follows the sign of the slope beyond a small dead band, and
the next day's revenue is extrapolated from the fit.
"""

from datetime import datetime
from typing import Optional, Sequence

import numpy as np
from scipy import stats
import structlog

from pos_analytics.analytics.frames import daily_series, transactions_frame, window_start
from pos_analytics.analytics.models import TrendLabel, TrendResult
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def classify_slope(slope: float, threshold: float = 0.01) -> TrendLabel:
    """Map a slope to a trend label"""
    if slope > threshold:
        return TrendLabel.INCREASING
    if slope < -threshold:
        return TrendLabel.DECREASING
    return TrendLabel.STABLE


def fit_trend(values: Sequence[float], threshold: float = 0.01) -> TrendResult:
    """
    Fit a line through a chronological series.

    Args:
        values: Series values, oldest first
        threshold: Slope dead band for the ``stable`` label

    Returns:
        TrendResult; zeroed and ``stable`` for fewer than two points
    """
    n = len(values)
    if n < 2:
        return TrendResult()

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)

    fit = stats.linregress(x, y)
    slope = float(fit.slope)
    intercept = float(fit.intercept)

    # R² is undefined for a flat series
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot > 0:
        ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
        r_squared = min(max(1.0 - ss_res / ss_tot, 0.0), 1.0)
    else:
        r_squared = 0.0

    return TrendResult(
        slope=slope,
        intercept=intercept,
        trend=classify_slope(slope, threshold),
        prediction=max(0.0, slope * n + intercept),
        r_squared=r_squared,
    )


def compute_sales_trend(
    query: QueryInterface,
    company_id: str,
    days: Optional[int] = None,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> TrendResult:
    """
    Trend of daily completed revenue over the last ``days`` days.

    Args:
        query: Store to read transactions from
        company_id: Company to analyse
        days: Lookback window (defaults to ``trend_window_days``)
        now: Reference time
        settings: Analytics heuristics

    Returns:
        TrendResult
    """
    settings = settings or AnalyticsSettings()
    days = settings.trend_window_days if days is None else days

    records = query.fetch_transactions(
        QueryFilter(company_id=company_id, since=window_start(now, days))
    )
    series = daily_series(transactions_frame(records))

    result = fit_trend([point.value for point in series], settings.trend_slope_threshold)

    logger.debug(
        "Sales trend computed",
        company_id=company_id,
        days=days,
        points=len(series),
        slope=result.slope,
        trend=result.trend.value,
    )
    return result
