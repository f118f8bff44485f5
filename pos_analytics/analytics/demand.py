"""
Demand Forecasting

Seasonal-trend forecast of a product's daily unit sales. Level, trend and
weekly seasonal indices are estimated once from the start of the history
and projected forward:
    forecast[i] = (level + trend * (i + 1)) * seasonal[(n + i) mod 7]

This is a simplified approximation of Holt-Winters: the components are not
re-estimated step by step.
"""

from datetime import datetime
from typing import List, Optional, Sequence

import polars as pl
import structlog

from pos_analytics.analytics.aggregates import round_half_up
from pos_analytics.analytics.frames import (
    line_items_frame,
    sale_dates,
    transactions_frame,
    window_start,
)
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)


def daily_unit_series(
    query: QueryInterface,
    company_id: str,
    product_id: str,
    since: datetime,
) -> List[float]:
    """
    Units of a product sold per trading day, oldest first.

    A trading day is any day with a completed transaction; days on which the
    product itself did not sell count as zero.
    """
    records = query.fetch_transactions(QueryFilter(company_id=company_id, since=since))
    days = sale_dates(transactions_frame(records))

    units = (
        line_items_frame(records)
        .filter(pl.col("product_id") == product_id)
        .group_by(pl.col("timestamp").dt.date().alias("sale_date"))
        .agg(pl.col("quantity").sum().alias("units"))
    )
    by_day = dict(zip(units.get_column("sale_date").to_list(), units.get_column("units").to_list()))

    return [float(by_day.get(day, 0.0)) for day in days]


def seasonal_forecast(values: Sequence[float], periods: int, season_length: int = 7) -> List[int]:
    """
    Project a daily series ``periods`` steps ahead.

    Args:
        values: Daily observations, oldest first
        periods: Forecast horizon
        season_length: Observations per season

    Returns:
        Non-negative integer forecasts; all zeros with less than one season
        of history
    """
    n = len(values)
    if n < max(season_length, 2):
        return [0] * periods

    level = float(values[0])
    trend = float(values[1]) - float(values[0])
    if level == 0:
        # No base level to index against
        seasonal = [1.0] * season_length
    else:
        seasonal = [float(value) / level for value in values[:season_length]]

    forecast = []
    for i in range(periods):
        value = (level + trend * (i + 1)) * seasonal[(n + i) % season_length]
        forecast.append(max(0, round_half_up(value)))
    return forecast


def forecast_demand(
    query: QueryInterface,
    company_id: str,
    product_id: str,
    periods: Optional[int] = None,
    *,
    now: datetime,
    settings: Optional[AnalyticsSettings] = None,
) -> List[int]:
    """
    Forecast daily unit demand for a product.

    Args:
        query: Store to read transactions from
        company_id: Company to analyse
        product_id: Product to forecast
        periods: Days to forecast (defaults to ``demand_forecast_periods``)
        now: Reference time
        settings: Analytics heuristics

    Returns:
        List of ``periods`` integer forecasts
    """
    settings = settings or AnalyticsSettings()
    periods = settings.demand_forecast_periods if periods is None else periods
    if periods < 0:
        raise ValueError(f"periods must not be negative, got {periods}")

    series = daily_unit_series(
        query,
        company_id,
        product_id,
        since=window_start(now, settings.demand_lookback_days),
    )
    forecast = seasonal_forecast(series, periods, settings.demand_season_length)

    if len(series) < settings.demand_season_length:
        logger.debug(
            "Insufficient history for demand forecast",
            company_id=company_id,
            product_id=product_id,
            points=len(series),
        )
    return forecast
