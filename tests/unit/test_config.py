"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from pos_analytics.config import AnalyticsSettings, Settings
from pos_analytics.config.settings import DatabaseSettings


class TestAnalyticsSettings:
    """Tests for business heuristic settings"""

    def test_documented_defaults(self, analytics_settings):
        assert analytics_settings.trend_window_days == 30
        assert analytics_settings.moving_average_period == 7
        assert analytics_settings.abc_a_threshold == 70.0
        assert analytics_settings.abc_b_threshold == 90.0
        assert analytics_settings.eoq_order_cost == 100.0
        assert analytics_settings.eoq_holding_cost_rate == 0.25
        assert analytics_settings.churn_neutral_score == 50
        assert analytics_settings.cache_enabled is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ANALYTICS_EOQ_ORDER_COST", "50")
        monkeypatch.setenv("ANALYTICS_CACHE_ENABLED", "true")

        settings = AnalyticsSettings()

        assert settings.eoq_order_cost == 50.0
        assert settings.cache_enabled is True

    def test_abc_thresholds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(abc_a_threshold=80.0, abc_b_threshold=60.0)


class TestSettings:
    """Tests for application settings"""

    def test_environment_validation(self):
        assert Settings(app_env="Testing").app_env == "testing"

        with pytest.raises(ValidationError):
            Settings(app_env="qa")

    def test_database_url_override(self):
        assert DatabaseSettings(url="sqlite://").sync_url == "sqlite://"
        assert DatabaseSettings(host="db", port=5433).sync_url.endswith("@db:5433/pos")
