"""
Database Module
"""
from .connection import check_database_health, create_db_engine, create_session_factory, session_scope
from .models import Base
from .repository import SqlQueryInterface

__all__ = [
    "check_database_health",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "Base",
    "SqlQueryInterface",
]
