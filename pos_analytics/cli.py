"""
Command-line access to the analytics reports.

Usage:
  pos-analytics --company acme trend --days 30
  pos-analytics --company acme demand --product p-1 --periods 14
  pos-analytics --company acme dashboard --start 2024-01-01 --end 2024-01-31
  pos-analytics health

Reports are written to stdout as JSON; logs go to stderr.
"""

import argparse
import json
import sys
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import structlog
from pydantic import TypeAdapter

from pos_analytics.cache import CacheManager, init_redis
from pos_analytics.config.logging import configure_logging
from pos_analytics.config.settings import Settings, get_settings
from pos_analytics.database import SqlQueryInterface, check_database_health, create_db_engine, create_session_factory
from pos_analytics.engine import AnalyticsEngine
from pos_analytics.exceptions import AnalyticsError

logger = structlog.get_logger(__name__)


def build_engine(settings: Settings, database_url: Optional[str] = None) -> AnalyticsEngine:
    """Wire an engine to the SQL store and, when enabled, the Redis cache."""
    db_engine = create_db_engine(settings.database, url=database_url)
    query = SqlQueryInterface(create_session_factory(db_engine))

    cache = None
    if settings.analytics.cache_enabled:
        cache = CacheManager(
            "analytics",
            client=init_redis(settings.redis),
            default_ttl=settings.analytics.cache_ttl_seconds,
        )

    return AnalyticsEngine(query, settings=settings.analytics, cache=cache)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pos-analytics",
        description="Business-intelligence reports over point-of-sale history",
    )
    parser.add_argument("--company", help="Company identifier the report is scoped to")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: from POSTGRES_* settings)")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    sub = parser.add_subparsers(dest="command", required=True)

    trend_cmd = sub.add_parser("trend", help="Linear trend of daily revenue")
    trend_cmd.add_argument("--days", type=int, default=None)

    ma_cmd = sub.add_parser("moving-average", help="SMA/EMA blended revenue forecast")
    ma_cmd.add_argument("--period", type=int, default=None)

    sub.add_parser("abc", help="ABC inventory classification")
    sub.add_parser("rfm", help="RFM customer segmentation")

    demand_cmd = sub.add_parser("demand", help="Seasonal unit demand forecast")
    demand_cmd.add_argument("--product", required=True)
    demand_cmd.add_argument("--periods", type=int, default=None)

    clv_cmd = sub.add_parser("clv", help="Customer lifetime value")
    clv_cmd.add_argument("--customer", required=True)

    sub.add_parser("margins", help="Profit margins")

    eoq_cmd = sub.add_parser("eoq", help="Economic order quantity")
    eoq_cmd.add_argument("--product", required=True)

    churn_cmd = sub.add_parser("churn", help="Churn risk score")
    churn_cmd.add_argument("--customer", required=True)

    dash_cmd = sub.add_parser("dashboard", help="Dashboard metrics")
    dash_cmd.add_argument("--start", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    dash_cmd.add_argument("--end", type=date.fromisoformat, default=None, help="YYYY-MM-DD")

    sub.add_parser("hourly", help="Sales by weekday and hour")
    sub.add_parser("refresh", help="Invalidate and recompute cached reports")
    sub.add_parser("health", help="Check database connectivity")

    return parser


def _reports(engine: AnalyticsEngine, args: argparse.Namespace) -> Dict[str, Callable[[], Any]]:
    company = args.company
    return {
        "trend": lambda: engine.compute_sales_trend(company, args.days),
        "moving-average": lambda: engine.compute_moving_average(company, args.period),
        "abc": lambda: engine.classify_inventory_abc(company),
        "rfm": lambda: engine.segment_customers_rfm(company),
        "demand": lambda: engine.forecast_demand(company, args.product, args.periods),
        "clv": lambda: engine.compute_clv(company, args.customer),
        "margins": lambda: engine.compute_profit_margins(company),
        "eoq": lambda: engine.compute_eoq(company, args.product),
        "churn": lambda: engine.compute_churn_risk(company, args.customer),
        "dashboard": lambda: engine.compute_dashboard_metrics(company, args.start, args.end),
        "hourly": lambda: engine.compute_hourly_sales_pattern(company),
        "refresh": lambda: engine.refresh_company(company),
    }


def main(argv: Optional[List[str]] = None, engine: Optional[AnalyticsEngine] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level, settings=settings)

    if args.command == "health":
        status = check_database_health(create_db_engine(settings.database, url=args.database_url))
        print(json.dumps(status))
        return 0 if status["status"] == "healthy" else 1

    if not args.company:
        parser.error(f"--company is required for '{args.command}'")

    engine = engine or build_engine(settings, args.database_url)

    try:
        result = _reports(engine, args)[args.command]()
    except AnalyticsError as e:
        logger.error("Report failed", command=args.command, **e.to_dict())
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 1
    except ValueError as e:
        parser.error(str(e))

    payload = TypeAdapter(Any).dump_python(result, mode="json")
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
