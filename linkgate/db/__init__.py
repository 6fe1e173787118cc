"""Database module for the link redirector."""
from linkgate.db.base import engine, get_engine, get_session, create_db_and_tables
from linkgate.db.session import get_db, db_transaction

__all__ = [
    "engine",
    "get_engine",
    "get_session",
    "create_db_and_tables",
    "get_db",
    "db_transaction",
]
