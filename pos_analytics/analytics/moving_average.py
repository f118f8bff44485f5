"""
Moving Average Forecast

Blends a simple and an exponential moving average of daily revenue into a
near-term forecast:
    forecast = 0.4 * SMA + 0.6 * EMA
"""

from datetime import datetime
from typing import Optional, Sequence

import structlog

from pos_analytics.analytics.aggregates import exp_smooth, moving_average
from pos_analytics.analytics.frames import daily_series, transactions_frame, window_start
from pos_analytics.analytics.models import ForecastResult
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def blend_forecast(
    values: Sequence[float],
    period: int,
    sma_weight: float = 0.4,
    ema_weight: float = 0.6,
) -> ForecastResult:
    """
    SMA, EMA and blended forecast of a chronological series.

    The EMA uses the smoothing factor 2 / (period + 1), seeded with the
    oldest value and walked toward the newest.
    """
    if len(values) == 0:
        return ForecastResult()

    sma = moving_average(period, values)
    ema = exp_smooth(2 / (period + 1), values)

    return ForecastResult(
        sma=sma,
        ema=ema,
        forecast=sma * sma_weight + ema * ema_weight,
    )


def compute_moving_average(
    query: QueryInterface,
    company_id: str,
    period: Optional[int] = None,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> ForecastResult:
    """
    Short-term revenue forecast from the last ``2 * period`` days.

    Args:
        query: Store to read transactions from
        company_id: Company to analyse
        period: Averaging period in days (defaults to ``moving_average_period``)
        now: Reference time
        settings: Analytics heuristics

    Returns:
        ForecastResult; all zeros when there are no sales
    """
    settings = settings or AnalyticsSettings()
    period = settings.moving_average_period if period is None else period
    if period < 1:
        raise ValueError(f"period must be a positive number of days, got {period}")

    records = query.fetch_transactions(
        QueryFilter(company_id=company_id, since=window_start(now, period * 2))
    )
    values = [point.value for point in daily_series(transactions_frame(records))]

    result = blend_forecast(values, period, settings.sma_weight, settings.ema_weight)

    logger.debug(
        "Moving average computed",
        company_id=company_id,
        period=period,
        points=len(values),
        forecast=result.forecast,
    )
    return result
