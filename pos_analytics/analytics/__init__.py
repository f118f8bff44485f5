"""
Analytics Modules
"""
from .abc_classification import classify_inventory_abc
from .churn import compute_churn_risk
from .clv import compute_clv
from .dashboard import compute_dashboard_metrics, compute_hourly_sales_pattern
from .demand import forecast_demand
from .eoq import compute_eoq
from .moving_average import compute_moving_average
from .profitability import compute_profit_margins
from .rfm import segment_customers_rfm
from .trend import compute_sales_trend

__all__ = [
    "classify_inventory_abc",
    "compute_churn_risk",
    "compute_clv",
    "compute_dashboard_metrics",
    "compute_hourly_sales_pattern",
    "forecast_demand",
    "compute_eoq",
    "compute_moving_average",
    "compute_profit_margins",
    "segment_customers_rfm",
    "compute_sales_trend",
]
