"""
Unit Tests - Analytics Engine and Result Cache
"""
import json
from unittest.mock import MagicMock

import pytest
from redis import RedisError

from conftest import COMPANY, NOW
from pos_analytics.analytics.models import RFMSegment, TrendLabel, TrendResult
from pos_analytics.analytics.trend import compute_sales_trend
from pos_analytics.cache import CacheManager
from pos_analytics.engine import AnalyticsEngine
from pos_analytics.exceptions import QueryError


@pytest.fixture
def redis_client():
    """Redis client double with an empty cache"""
    client = MagicMock()
    client.get.return_value = None
    client.scan_iter.return_value = iter([])
    client.delete.return_value = 0
    return client


@pytest.fixture
def cached_engine(store_query, analytics_settings, redis_client):
    cache = CacheManager("analytics", client=redis_client, default_ttl=600)
    return AnalyticsEngine(store_query, settings=analytics_settings, cache=cache, clock=lambda: NOW)


class TestAnalyticsEngine:
    """Tests for report dispatch without a cache"""

    def test_matches_module_computation(self, engine, store_query):
        assert engine.compute_sales_trend(COMPANY) == compute_sales_trend(store_query, COMPANY, 30, now=NOW)

    def test_reports_are_scoped_to_company(self, engine):
        """Test another company's sales never leak in"""
        pattern = engine.compute_hourly_sales_pattern("other")

        assert [h.transaction_count for h in pattern] == [1]
        assert pattern[0].total_revenue == pytest.approx(500.0)
        assert engine.compute_profit_margins("nobody").by_product == []

    def test_dashboard_default_range(self, engine):
        result = engine.compute_dashboard_metrics(COMPANY)

        assert len(result.sales_trend) == 7
        assert result.revenue_median == pytest.approx(40.0)
        assert [p.product_id for p in result.top_products] == ["p2", "p1", "p3"]
        assert len(result.customer_segments) == 1
        segment = result.customer_segments[0]
        assert segment.segment == RFMSegment.POTENTIAL
        assert segment.customer_count == 2
        assert segment.total_revenue == pytest.approx(230.0)
        assert segment.avg_order_value == pytest.approx(230.0 / 6)

    def test_hourly_pattern(self, engine):
        result = engine.compute_hourly_sales_pattern(COMPANY)

        assert sum(h.transaction_count for h in result) == 7
        assert all(1 <= h.day_of_week <= 7 for h in result)

    def test_query_error_propagates(self, analytics_settings):
        """Test store failures are not turned into neutral values"""
        query = MagicMock()
        query.fetch_transactions.side_effect = QueryError("fetch_transactions", COMPANY, "connection reset")
        engine = AnalyticsEngine(query, settings=analytics_settings, clock=lambda: NOW)

        with pytest.raises(QueryError) as exc_info:
            engine.compute_churn_risk(COMPANY, "c1")

        assert exc_info.value.error_code == "QUERY_FAILED"
        assert exc_info.value.to_dict()["details"]["operation"] == "fetch_transactions"

    def test_refresh_without_cache(self, engine):
        summary = engine.refresh_company(COMPANY)

        assert summary == {"company_id": COMPANY, "invalidated": 0, "reports": 6}


class TestReportCache:
    """Tests for cached report serving"""

    def test_miss_stores_result(self, cached_engine, redis_client):
        result = cached_engine.compute_sales_trend(COMPANY)

        redis_client.setex.assert_called_once()
        key, ttl, payload = redis_client.setex.call_args.args
        assert key == "analytics:acme:trend:30"
        assert ttl == 600
        assert TrendResult.model_validate(json.loads(payload)) == result

    def test_hit_skips_query(self, analytics_settings, redis_client):
        """Test a cached report is validated back without touching the store"""
        redis_client.get.return_value = json.dumps({
            "slope": 1.5,
            "intercept": 2.0,
            "trend": "increasing",
            "prediction": 9.5,
            "r_squared": 0.5,
        })
        query = MagicMock()
        engine = AnalyticsEngine(
            query,
            settings=analytics_settings,
            cache=CacheManager("analytics", client=redis_client),
            clock=lambda: NOW,
        )

        result = engine.compute_sales_trend(COMPANY, 14)

        assert result.slope == 1.5
        assert result.trend == TrendLabel.INCREASING
        redis_client.get.assert_called_once_with("analytics:acme:trend:14")
        query.fetch_transactions.assert_not_called()

    def test_unreadable_entry_is_recomputed(self, cached_engine, redis_client, engine):
        """Test a cached payload that no longer validates counts as a miss"""
        redis_client.get.return_value = json.dumps({"slope": "steep"})

        result = cached_engine.compute_sales_trend(COMPANY)

        assert result == engine.compute_sales_trend(COMPANY)
        redis_client.setex.assert_called_once()

    def test_dashboard_segments_follow_current_cohort(self, cached_engine, redis_client, engine):
        """Test segments are summarised afresh even when the dashboard is cached"""
        cached_engine.compute_dashboard_metrics(COMPANY)
        payload = redis_client.setex.call_args.args[2]
        assert json.loads(payload)["customer_segments"] == []

        redis_client.get.return_value = payload
        result = cached_engine.compute_dashboard_metrics(COMPANY)

        assert redis_client.setex.call_count == 1
        assert result.customer_segments == engine.compute_dashboard_metrics(COMPANY).customer_segments
        assert sum(s.customer_count for s in result.customer_segments) == 2

    def test_scalar_and_list_reports(self, cached_engine, redis_client):
        redis_client.get.side_effect = ["600", "[1, 2, 3]"]

        assert cached_engine.compute_clv(COMPANY, "c1") == 600
        assert cached_engine.forecast_demand(COMPANY, "p1", 3) == [1, 2, 3]

    def test_rfm_is_never_cached(self, cached_engine, redis_client):
        scores = cached_engine.segment_customers_rfm(COMPANY)

        assert len(scores) == 2
        redis_client.get.assert_not_called()
        redis_client.setex.assert_not_called()

    def test_cache_outage_degrades_to_compute(self, cached_engine, redis_client, engine):
        redis_client.get.side_effect = RedisError("connection refused")
        redis_client.setex.side_effect = RedisError("connection refused")

        assert cached_engine.compute_moving_average(COMPANY) == engine.compute_moving_average(COMPANY)

    def test_refresh_invalidates_company_keys(self, cached_engine, redis_client):
        redis_client.scan_iter.return_value = iter(["analytics:acme:trend:30", "analytics:acme:abc"])
        redis_client.delete.return_value = 2

        summary = cached_engine.refresh_company(COMPANY)

        redis_client.scan_iter.assert_called_once_with(match="analytics:acme:*")
        assert summary["invalidated"] == 2
        assert summary["reports"] == 6
        assert redis_client.setex.call_count == 6

    def test_refresh_dashboard(self, cached_engine, redis_client):
        summary = cached_engine.refresh_dashboard(COMPANY)

        redis_client.scan_iter.assert_called_once_with(match="analytics:acme:dashboard:*")
        assert summary["reports"] == 1
        key = redis_client.setex.call_args.args[0]
        assert key == "analytics:acme:dashboard:2024-05-16:2024-06-15"
