"""
Infrastructure package for the sales dashboard.

Centralizes record store concerns (Postgres connectivity, pooling, and the
store clients). Keep this layer focused on I/O and resource management,
decoupled from the analytics core.
"""

from sales_dashboard.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)
from sales_dashboard.infrastructure.store import InMemoryStore, PostgresStore, RecordStore

__all__ = [
    "InMemoryStore",
    "PoolManager",
    "PostgresStore",
    "RecordStore",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
]
