"""
Sales Dashboard - order/quote tracking and sales analytics for a logistics
brokerage.

This package turns a collection of order/quote records into:

- Dashboard KPIs (leads, bookings, conversion, broker fees)
- Per-agent performance leaderboards ranked by revenue
- A filtered, sorted, paginated orders table
- CSV exports rendered in the business timezone

Records live in an external record store (Postgres, or an in-memory store for
tests and JSON snapshots). Access is scoped by role through explicit sessions.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sales_dashboard.analytics import (
    OrderFilter,
    OrderTableState,
    SortDirection,
    TimezoneNormalizer,
    aggregate,
    aggregate_by_agent,
    filter_orders,
    paginate,
    sort_orders,
    to_csv,
)
from sales_dashboard.auth import AuthService, InMemoryCredentialProvider, Session
from sales_dashboard.config import Settings, get_settings
from sales_dashboard.domain.models import AgentStats, Metrics, Order, OrderStatus, User, UserRole
from sales_dashboard.errors import DashboardError
from sales_dashboard.infrastructure.store import InMemoryStore, PostgresStore, RecordStore
from sales_dashboard.service import DashboardService
from sales_dashboard.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "AgentStats",
    "Metrics",
    "Order",
    "OrderStatus",
    "User",
    "UserRole",
    "DashboardError",
    # Analytics
    "OrderFilter",
    "OrderTableState",
    "SortDirection",
    "TimezoneNormalizer",
    "aggregate",
    "aggregate_by_agent",
    "filter_orders",
    "paginate",
    "sort_orders",
    "to_csv",
    # Store, sessions, service
    "InMemoryStore",
    "PostgresStore",
    "RecordStore",
    "AuthService",
    "InMemoryCredentialProvider",
    "Session",
    "DashboardService",
    # Logging
    "configure_logging",
    "get_logger",
]
