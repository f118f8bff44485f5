"""
Prefect Workflow Orchestration - Analytics Refresh

Keeps the report cache warm for every company in the store:
- Hourly full refresh of the company-wide reports
- 15-minute refresh of the dashboard
- Retries on store or cache failures
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from prefect import flow, get_run_logger, task

from pos_analytics.cache import CacheManager, init_redis
from pos_analytics.config import get_settings
from pos_analytics.config.logging import configure_logging
from pos_analytics.database import SqlQueryInterface, create_db_engine, create_session_factory
from pos_analytics.engine import AnalyticsEngine


@lru_cache()
def build_refresh_engine(database_url: Optional[str] = None) -> AnalyticsEngine:
    """Engine bound to the SQL store and the Redis cache, one per process and URL"""
    settings = get_settings()
    query = SqlQueryInterface(create_session_factory(create_db_engine(settings.database, url=database_url)))
    cache = CacheManager(
        "analytics",
        client=init_redis(settings.redis),
        default_ttl=settings.analytics.cache_ttl_seconds,
    )
    return AnalyticsEngine(query, settings=settings.analytics, cache=cache)


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="list_companies",
    description="List companies present in the store",
    retries=3,
    retry_delay_seconds=30,
)
def list_companies(database_url: Optional[str] = None) -> List[str]:
    """Companies with products or transactions"""
    logger = get_run_logger()
    engine = build_refresh_engine(database_url)

    companies = engine.query.fetch_company_ids()
    logger.info(f"Found {len(companies)} companies to refresh")
    return companies


@task(
    name="refresh_company_reports",
    description="Invalidate and recompute a company's cached reports",
    retries=2,
    retry_delay_seconds=60,
)
def refresh_company_reports(company_id: str, database_url: Optional[str] = None) -> dict:
    """Full refresh of one company"""
    logger = get_run_logger()
    engine = build_refresh_engine(database_url)

    summary = engine.refresh_company(company_id)
    logger.info(f"Refreshed {summary['reports']} reports for {company_id}")
    return summary


@task(
    name="refresh_company_dashboard",
    description="Recompute a company's dashboard",
    retries=2,
    retry_delay_seconds=30,
)
def refresh_company_dashboard(company_id: str, database_url: Optional[str] = None) -> dict:
    """Dashboard-only refresh of one company"""
    return build_refresh_engine(database_url).refresh_dashboard(company_id)


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="analytics_full_refresh",
    description="Hourly refresh of every company's cached analytics",
    retries=1,
    retry_delay_seconds=300,
)
def analytics_full_refresh(database_url: Optional[str] = None) -> dict:
    """
    Full analytics refresh.

    Steps:
    1. List companies in the store
    2. Invalidate and recompute each company's reports

    A failing company is reported and does not stop the others.
    """
    logger = get_run_logger()

    started = datetime.now(timezone.utc)
    results = {
        "started_at": started.isoformat(),
        "companies": {},
        "failed": [],
    }

    for company_id in list_companies(database_url):
        try:
            results["companies"][company_id] = refresh_company_reports(company_id, database_url)
        except Exception as e:
            logger.error(f"Refresh failed for {company_id}: {e}")
            results["failed"].append(company_id)

    results["status"] = "success" if not results["failed"] else "partial"
    logger.info(
        f"Full refresh {results['status']}: "
        f"{len(results['companies'])} refreshed, {len(results['failed'])} failed"
    )
    return results


@flow(
    name="dashboard_refresh",
    description="Frequent refresh of every company's dashboard",
)
def dashboard_refresh(database_url: Optional[str] = None) -> dict:
    """Dashboard-only refresh for every company"""
    logger = get_run_logger()

    refreshed = [
        refresh_company_dashboard(company_id, database_url)["company_id"]
        for company_id in list_companies(database_url)
    ]

    logger.info(f"Dashboard refresh complete for {len(refreshed)} companies")
    return {"companies": refreshed, "status": "success"}


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    from prefect import serve

    configure_logging()

    serve(
        analytics_full_refresh.to_deployment(name="hourly-full-refresh", cron="0 * * * *"),
        dashboard_refresh.to_deployment(name="dashboard-refresh", interval=900),
    )
