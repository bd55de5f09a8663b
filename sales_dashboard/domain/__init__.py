"""
Domain package for the sales dashboard.

Exports the order/user records, the validated input models, and the
statistic records produced by the analytics package.
"""

from sales_dashboard.domain.models import (
    BOOKING_STATUSES,
    AgentStats,
    Metrics,
    Order,
    OrderCreate,
    OrderStatus,
    OrderUpdate,
    User,
    UserRole,
    generate_order_quote_id,
    normalize_money,
)

__all__ = [
    "BOOKING_STATUSES",
    "AgentStats",
    "Metrics",
    "Order",
    "OrderCreate",
    "OrderStatus",
    "OrderUpdate",
    "User",
    "UserRole",
    "generate_order_quote_id",
    "normalize_money",
]
