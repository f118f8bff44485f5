"""
POS Analytics Engine
Centralized Configuration Management

Pydantic settings with environment variable support. Every business
heuristic used by the analytics modules is exposed here with its
documented default so deployments can tune it without code changes.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Transactional store (read-only) connection"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="pos", description="Database name")
    user: str = Field(default="pos", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=5, description="Max overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full URL (overrides host/port)")

    @property
    def sync_url(self) -> str:
        """Sync database URL - uses DATABASE_URL if set, otherwise psycopg2 URL"""
        if self.url:
            return self.url
        return f"postgresql+psycopg2://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis result cache configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_", populate_by_name=True)

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class AnalyticsSettings(BaseSettings):
    """
    Business heuristics for the analytics modules.

    The defaults reproduce the fixed constants the reports were designed
    around; they are assumptions, not universal truths.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Sales trend
    trend_window_days: int = Field(default=30, description="Lookback window for the sales trend")
    trend_slope_threshold: float = Field(default=0.01, description="Slope magnitude above which a trend is reported")

    # Moving average forecast
    moving_average_period: int = Field(default=7, description="SMA/EMA period in days")
    sma_weight: float = Field(default=0.4, description="Weight of the SMA in the blended forecast")
    ema_weight: float = Field(default=0.6, description="Weight of the EMA in the blended forecast")

    # ABC classification
    abc_a_threshold: float = Field(default=70.0, description="Cumulative revenue % closing class A")
    abc_b_threshold: float = Field(default=90.0, description="Cumulative revenue % closing class B")

    # Demand forecast
    demand_lookback_days: int = Field(default=60, description="History used by the demand forecast")
    demand_season_length: int = Field(default=7, description="Season length in days")
    demand_forecast_periods: int = Field(default=7, description="Default forecast horizon")

    # Customer lifetime value
    clv_projected_years: float = Field(default=3.0, description="Projected customer lifespan in years")
    clv_min_lifespan_years: float = Field(default=0.25, description="Floor for the observed lifespan")

    # Profitability
    profit_window_days: int = Field(default=30, description="Window for the overall margin")
    profit_top_products: int = Field(default=20, description="Products in the per-product breakdown")

    # Inventory optimization
    eoq_window_days: int = Field(default=30, description="Window for average daily demand")
    eoq_order_cost: float = Field(default=100.0, description="Fixed cost per purchase order")
    eoq_holding_cost_rate: float = Field(default=0.25, description="Annual holding cost as a fraction of unit cost")
    eoq_lead_time_days: int = Field(default=7, description="Supplier lead time in days")
    eoq_safety_stock_days: int = Field(default=3, description="Days of safety stock")

    # Churn risk
    churn_neutral_score: int = Field(default=50, description="Score for customers without enough history")
    churn_min_purchases: int = Field(default=2, description="Purchases needed to score a customer")
    churn_frequency_cap: int = Field(default=10, description="Purchase count treated as fully engaged")
    churn_monetary_cap: float = Field(default=10000.0, description="Spend treated as fully engaged")
    churn_recency_weight: float = Field(default=0.5, description="Weight of the recency factor")
    churn_frequency_weight: float = Field(default=0.3, description="Weight of the frequency factor")
    churn_monetary_weight: float = Field(default=0.2, description="Weight of the monetary factor")

    # Dashboard
    dashboard_window_days: int = Field(default=30, description="Default dashboard date range")
    dashboard_top_products: int = Field(default=10, description="Top products shown on the dashboard")
    low_stock_limit: int = Field(default=10, description="Low-stock products shown on the dashboard")

    # Result cache
    cache_enabled: bool = Field(default=False, description="Cache report results in Redis")
    cache_ttl_seconds: int = Field(default=600, description="Cached report time-to-live")

    @field_validator("abc_b_threshold")
    @classmethod
    def validate_abc_thresholds(cls, v: float, info: ValidationInfo) -> float:
        """Class B must close after class A"""
        a_threshold = info.data.get("abc_a_threshold", 70.0)
        if not a_threshold <= v <= 100.0:
            raise ValueError("abc_b_threshold must lie between abc_a_threshold and 100")
        return v


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="pos-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
