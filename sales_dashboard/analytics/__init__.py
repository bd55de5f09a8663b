"""
Analytics core: pure functions over order collections.

Nothing in this package performs I/O or mutates its input, so every function
may be called concurrently and re-derived on each change.
"""

from sales_dashboard.analytics.agents import aggregate_by_agent, aggregate_by_agent_id
from sales_dashboard.analytics.export import export_filename, to_csv
from sales_dashboard.analytics.filtering import (
    OrderFilter,
    OrderTableState,
    Page,
    SortDirection,
    filter_orders,
    paginate,
    sort_orders,
)
from sales_dashboard.analytics.metrics import aggregate, parse_money
from sales_dashboard.analytics.timezone import TimezoneNormalizer

__all__ = [
    "aggregate",
    "aggregate_by_agent",
    "aggregate_by_agent_id",
    "export_filename",
    "filter_orders",
    "OrderFilter",
    "OrderTableState",
    "Page",
    "paginate",
    "parse_money",
    "sort_orders",
    "SortDirection",
    "TimezoneNormalizer",
    "to_csv",
]
