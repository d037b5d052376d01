"""
Database module.
Contains database connection, models, and the SQL message store.
"""

from leasequeue.db.connection import (
    close_db,
    create_schema,
    create_session_factory,
    get_engine,
    init_db,
)
from leasequeue.db.models import Base, Message
from leasequeue.db.store import SqlMessageStore

__all__ = [
    "get_engine",
    "create_session_factory",
    "create_schema",
    "init_db",
    "close_db",
    "Message",
    "Base",
    "SqlMessageStore",
]
