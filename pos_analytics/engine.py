"""
Analytics Engine

The Report Interface. One engine is constructed at startup with its Query
Interface (and optionally a result cache) and handed to whatever serves the
reports; it holds no mutable state of its own.

Example:
    engine = AnalyticsEngine(SqlQueryInterface(session_factory))
    trend = engine.compute_sales_trend("company-1", days=30)
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from pos_analytics.analytics import (
    abc_classification,
    churn,
    clv,
    dashboard,
    demand,
    eoq,
    moving_average,
    profitability,
    rfm,
    trend,
)
from pos_analytics.analytics.models import (
    ABCClassification,
    DashboardMetrics,
    EOQResult,
    ForecastResult,
    HourlySales,
    ProfitMargins,
    RFMScore,
    TrendResult,
)
from pos_analytics.cache import CacheManager
from pos_analytics.config.settings import AnalyticsSettings
from pos_analytics.query import QueryInterface

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    """Naive UTC now, matching the store's timestamps"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AnalyticsEngine:
    """
    Business-intelligence reports over a company's POS history.

    Every report reads the store afresh through the injected query
    interface. Insufficient data yields documented neutral values; store
    failures propagate.

    Args:
        query: Read-only store access
        settings: Business heuristics (defaults from the environment)
        cache: Optional result cache; RFM scores are never cached
        clock: Source of the current time
    """

    def __init__(
        self,
        query: QueryInterface,
        settings: Optional[AnalyticsSettings] = None,
        cache: Optional[CacheManager] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.query = query
        self.settings = settings or AnalyticsSettings()
        self.cache = cache
        self.clock = clock

    def _cached(self, company_id: str, report: str, args: List[Any], result_type: Any, compute: Callable[[], Any]) -> Any:
        """Serve a report from the cache or compute and store it"""
        if self.cache is None:
            return compute()

        key = ":".join([company_id, report] + [str(a) for a in args])
        adapter = TypeAdapter(result_type)

        cached = self.cache.get(key)
        if cached is not None:
            try:
                result = adapter.validate_python(cached)
            except ValidationError as e:
                logger.warning(
                    "Discarding unreadable cached report",
                    company_id=company_id,
                    report=report,
                    error_count=e.error_count(),
                )
            else:
                logger.debug("Report served from cache", company_id=company_id, report=report)
                return result

        result = compute()
        self.cache.set(key, adapter.dump_python(result, mode="json"))
        return result

    # ==================== SALES ====================

    def compute_sales_trend(self, company_id: str, days: Optional[int] = None) -> TrendResult:
        """Linear trend of daily revenue over the last ``days`` days."""
        days = self.settings.trend_window_days if days is None else days
        return self._cached(
            company_id, "trend", [days], TrendResult,
            lambda: trend.compute_sales_trend(
                self.query, company_id, days, now=self.clock(), settings=self.settings,
            ),
        )

    def compute_moving_average(self, company_id: str, period: Optional[int] = None) -> ForecastResult:
        """SMA/EMA blended revenue forecast."""
        period = self.settings.moving_average_period if period is None else period
        return self._cached(
            company_id, "moving_average", [period], ForecastResult,
            lambda: moving_average.compute_moving_average(
                self.query, company_id, period, now=self.clock(), settings=self.settings,
            ),
        )

    # ==================== INVENTORY ====================

    def classify_inventory_abc(self, company_id: str) -> ABCClassification:
        """ABC classes of active products by revenue contribution."""
        return self._cached(
            company_id, "abc", [], ABCClassification,
            lambda: abc_classification.classify_inventory_abc(self.query, company_id, settings=self.settings),
        )

    def forecast_demand(self, company_id: str, product_id: str, periods: Optional[int] = None) -> List[int]:
        """Daily unit demand forecast for a product."""
        periods = self.settings.demand_forecast_periods if periods is None else periods
        return self._cached(
            company_id, "demand", [product_id, periods], List[int],
            lambda: demand.forecast_demand(
                self.query, company_id, product_id, periods, now=self.clock(), settings=self.settings,
            ),
        )

    def compute_eoq(self, company_id: str, product_id: str) -> EOQResult:
        """Economic order quantity and reorder point for a product."""
        return self._cached(
            company_id, "eoq", [product_id], EOQResult,
            lambda: eoq.compute_eoq(
                self.query, company_id, product_id, now=self.clock(), settings=self.settings,
            ),
        )

    # ==================== CUSTOMERS ====================

    def segment_customers_rfm(self, company_id: str) -> List[RFMScore]:
        """RFM scores and segments; always recomputed against the current cohort."""
        return rfm.segment_customers_rfm(self.query, company_id, now=self.clock())

    def compute_clv(self, company_id: str, customer_id: str) -> int:
        """Projected lifetime value of a customer."""
        return self._cached(
            company_id, "clv", [customer_id], int,
            lambda: clv.compute_clv(self.query, company_id, customer_id, settings=self.settings),
        )

    def compute_churn_risk(self, company_id: str, customer_id: str) -> int:
        """Churn risk score in [0, 100]."""
        return self._cached(
            company_id, "churn", [customer_id], int,
            lambda: churn.compute_churn_risk(
                self.query, company_id, customer_id, now=self.clock(), settings=self.settings,
            ),
        )

    # ==================== PROFITABILITY ====================

    def compute_profit_margins(self, company_id: str) -> ProfitMargins:
        """Margins overall, by category and by top-selling product."""
        return self._cached(
            company_id, "profit_margins", [], ProfitMargins,
            lambda: profitability.compute_profit_margins(
                self.query, company_id, now=self.clock(), settings=self.settings,
            ),
        )

    # ==================== DASHBOARD ====================

    def compute_dashboard_metrics(
        self,
        company_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> DashboardMetrics:
        """
        Dashboard metrics; the range defaults to the last ``dashboard_window_days`` days.

        Customer segments come from RFM and are summarised on every call,
        outside the cached part of the report.
        """
        now = self.clock()
        end = end or now.date()
        start = start or end - timedelta(days=self.settings.dashboard_window_days)

        def compute() -> DashboardMetrics:
            return dashboard.compute_dashboard_metrics(
                self.query,
                company_id,
                start,
                end,
                now=now,
                settings=self.settings,
            )

        metrics = self._cached(company_id, "dashboard", [start, end], DashboardMetrics, compute)
        segments = dashboard.summarize_segments(self.segment_customers_rfm(company_id))
        return metrics.model_copy(update={"customer_segments": segments})

    def compute_hourly_sales_pattern(self, company_id: str) -> List[HourlySales]:
        """Transaction count and revenue per weekday and hour."""
        return self._cached(
            company_id, "hourly", [], List[HourlySales],
            lambda: dashboard.compute_hourly_sales_pattern(self.query, company_id),
        )

    # ==================== CACHE MAINTENANCE ====================

    def refresh_company(self, company_id: str) -> Dict[str, Any]:
        """
        Drop a company's cached reports and recompute the company-wide ones.

        Product- and customer-level reports are recomputed lazily on their
        next request.

        Returns:
            Summary of the refresh
        """
        invalidated = self.cache.invalidate(f"{company_id}:*") if self.cache is not None else 0

        self.compute_sales_trend(company_id)
        self.compute_moving_average(company_id)
        self.classify_inventory_abc(company_id)
        self.compute_profit_margins(company_id)
        self.compute_dashboard_metrics(company_id)
        self.compute_hourly_sales_pattern(company_id)

        logger.info("Company analytics refreshed", company_id=company_id, invalidated=invalidated)
        return {"company_id": company_id, "invalidated": invalidated, "reports": 6}

    def refresh_dashboard(self, company_id: str) -> Dict[str, Any]:
        """Drop and recompute only the default-range dashboard of a company."""
        invalidated = self.cache.invalidate(f"{company_id}:dashboard:*") if self.cache is not None else 0
        self.compute_dashboard_metrics(company_id)

        logger.info("Dashboard refreshed", company_id=company_id, invalidated=invalidated)
        return {"company_id": company_id, "invalidated": invalidated, "reports": 1}
