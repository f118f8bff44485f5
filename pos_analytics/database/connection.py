"""
Database Connection Management

Synchronous SQLAlchemy 2.0 engine and session factory for read-only access
to the POS store. Nothing here is global: callers create the engine once at
startup and pass the session factory to ``SqlQueryInterface``.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pos_analytics.config.settings import DatabaseSettings

logger = structlog.get_logger(__name__)


def is_memory_sqlite(url: str) -> bool:
    """True for SQLite URLs whose database lives in memory"""
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url or "mode=memory" in url)


def create_db_engine(settings: Optional[DatabaseSettings] = None, url: Optional[str] = None) -> Engine:
    """
    Create the database engine.

    Args:
        settings: Connection settings
        url: Explicit URL, overriding the settings

    Returns:
        Engine: The database engine
    """
    settings = settings or DatabaseSettings()
    url = url or settings.sync_url

    engine_config = {
        "echo": settings.echo,
        "pool_pre_ping": True,  # Verify connections before use
    }

    if is_memory_sqlite(url):
        # In-memory SQLite must share one connection across sessions
        engine_config.update({
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        })
    elif not url.startswith("sqlite"):
        engine_config.update({
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
        })

    engine = create_engine(url, **engine_config)
    logger.info("Database engine created", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``"""
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Provide a read-only session.

    The session is rolled back on exit; the engine never commits. The
    rollback expires loaded ORM instances, so rows must be converted to
    records inside the block.

    Example:
        with session_scope(factory) as session:
            rows = session.execute(query).all()
    """
    session = session_factory()
    try:
        yield session
    except Exception as e:
        logger.error("Database session error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        session.rollback()
        session.close()


def check_database_health(engine: Engine) -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
