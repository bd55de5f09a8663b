"""
Per-agent performance statistics.

Two groupings are offered:

- ``aggregate_by_agent`` groups by ``agent_name``, the display-name snapshot
  stored on each order. Two agents who ever shared a display name are merged,
  and a renamed agent appears under each name used. This is the grouping the
  dashboard shows.
- ``aggregate_by_agent_id`` groups by the stable ``agent_id`` and labels each
  group with the most recent name seen.

Revenue is the broker fee of every non-canceled order in the group.
``avg_order_value`` is revenue over the non-canceled order count, rounded
half-up to cents.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from sales_dashboard.analytics.filtering import filter_by_date
from sales_dashboard.analytics.metrics import ZERO, parse_money, percentage, round_half_up
from sales_dashboard.domain.models import AgentStats, Order, OrderStatus


def _group(orders: Iterable[Order], key: Callable[[Order], str]) -> Dict[str, List[Order]]:
    groups: Dict[str, List[Order]] = {}
    for order in orders:
        groups.setdefault(key(order), []).append(order)
    return groups


def agent_stats(agent_name: str, orders: List[Order], agent_id: Optional[str] = None) -> AgentStats:
    """Compute the KPI family for one agent's orders. Average order value is rounded to cents."""
    counts = Counter(order.status for order in orders)
    bookings = sum(1 for order in orders if order.status.is_booking)

    revenue_fees = [
        parse_money(order.broker_fee)
        for order in orders
        if order.status is not OrderStatus.CANCELED
    ]
    total_revenue = sum(revenue_fees, ZERO)
    avg_order_value = (
        round_half_up(total_revenue / len(revenue_fees), "0.01") if revenue_fees else ZERO
    )

    return AgentStats(
        agent_name=agent_name,
        agent_id=agent_id,
        total_leads=len(orders),
        total_quotes=counts[OrderStatus.QUOTE],
        in_process_orders=counts[OrderStatus.IN_PROCESS],
        dispatched_orders=counts[OrderStatus.DISPATCHED],
        completed_orders=counts[OrderStatus.COMPLETED],
        canceled_orders=counts[OrderStatus.CANCELED],
        total_revenue=total_revenue,
        avg_order_value=avg_order_value,
        conversion_rate=percentage(bookings, len(orders)),
    )


def rank_by_revenue(
    stats: Iterable[AgentStats], tie_break_by_name: bool = False
) -> List[AgentStats]:
    """
    Order by ``total_revenue`` descending.

    Ties keep grouping order (first appearance in the input) unless
    ``tie_break_by_name`` is set, which orders them by name ascending.
    """
    ranked = list(stats)
    if tie_break_by_name:
        ranked.sort(key=lambda s: s.agent_name)
    ranked.sort(key=lambda s: s.total_revenue, reverse=True)
    return ranked


def aggregate_by_agent(
    orders: Iterable[Order],
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tie_break_by_name: bool = False,
) -> List[AgentStats]:
    """
    Agent leaderboard keyed by display name, ranked by revenue.

    The optional date range is inclusive and applies to ``Order.date``.
    """
    subset = filter_by_date(orders, from_date, to_date)
    groups = _group(subset, lambda order: order.agent_name)
    stats = [agent_stats(name, group) for name, group in groups.items()]
    return rank_by_revenue(stats, tie_break_by_name)


def aggregate_by_agent_id(
    orders: Iterable[Order],
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tie_break_by_name: bool = False,
) -> List[AgentStats]:
    """
    Agent leaderboard keyed by stable agent id, ranked by revenue.
    """
    subset = filter_by_date(orders, from_date, to_date)
    groups = _group(subset, lambda order: order.agent_id)
    stats = []
    for agent_id, group in groups.items():
        latest = max(group, key=lambda order: order.updated_at)
        stats.append(agent_stats(latest.agent_name, group, agent_id=agent_id))
    return rank_by_revenue(stats, tie_break_by_name)


def total_revenue(stats: Iterable[AgentStats]) -> Decimal:
    return sum((s.total_revenue for s in stats), ZERO)


__all__ = [
    "agent_stats",
    "aggregate_by_agent",
    "aggregate_by_agent_id",
    "rank_by_revenue",
    "total_revenue",
]
