"""
Database module - SQLAlchemy engine, sessions, schema and identity lookups.
"""
from ku_connect.db.session import get_db_session, execute_raw_sql, configure_engine, check_db_connection
from ku_connect.db.schema import init_schema

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "configure_engine",
    "check_db_connection",
    "init_schema",
]
