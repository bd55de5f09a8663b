"""
Dashboard-wide KPI aggregation.

Definitions:
- total_leads: every order, any status
- total_bookings: in_process + dispatched + completed
- conversion_rate: total_bookings / total_leads * 100
- total_broker_fee / avg_broker_fee: dispatched orders only, rounded to int
- dispatch_rate, cancellation_rate: dispatched / canceled over total_bookings

The cancellation rate divides by total_bookings, which itself excludes
canceled orders. That is the business definition in use, not a share of
leads.
"""

from __future__ import annotations

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from sales_dashboard.domain.models import (
    BOOKING_STATUSES,
    MAX_MONEY,
    Metrics,
    Order,
    OrderStatus,
)
from sales_dashboard.utils.logging import get_logger

log = get_logger(__name__)

ZERO = Decimal("0")


def parse_money(value: Any) -> Decimal:
    """
    Parse a stored monetary string for arithmetic.

    Unparsable, non-finite or out-of-range values count as zero and are
    logged at WARNING; they are never raised.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            log.warning("Unparsable monetary value treated as zero", extra={"value": value})
            return ZERO
    if not amount.is_finite():
        log.warning("Non-finite monetary value treated as zero", extra={"value": str(value)})
        return ZERO
    if abs(amount) > MAX_MONEY:
        log.warning("Out-of-range monetary value treated as zero", extra={"value": str(value)})
        return ZERO
    return amount


def round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def percentage(part: int, whole: int) -> float:
    """``part / whole * 100``, or 0.0 when ``whole`` is zero."""
    return (part / whole) * 100 if whole > 0 else 0.0


def count_statuses(orders: Iterable[Order]) -> Counter:
    return Counter(order.status for order in orders)


def aggregate(orders: Iterable[Order]) -> Metrics:
    """
    Compute dashboard KPIs over a collection of orders.
    """
    orders = list(orders)
    if not orders:
        return Metrics()

    counts = count_statuses(orders)
    quotes = counts[OrderStatus.QUOTE]
    in_process = counts[OrderStatus.IN_PROCESS]
    dispatched = counts[OrderStatus.DISPATCHED]
    canceled = counts[OrderStatus.CANCELED]
    completed = counts[OrderStatus.COMPLETED]

    total_leads = len(orders)
    total_bookings = sum(counts[status] for status in BOOKING_STATUSES)

    dispatched_fees = [
        parse_money(order.broker_fee) for order in orders if order.status is OrderStatus.DISPATCHED
    ]
    total_fee = sum(dispatched_fees, ZERO)
    avg_fee = total_fee / len(dispatched_fees) if dispatched_fees else ZERO

    return Metrics(
        total_quotes=quotes,
        in_process=in_process,
        dispatched=dispatched,
        canceled=canceled,
        completed=completed,
        total_leads=total_leads,
        total_bookings=total_bookings,
        conversion_rate=percentage(total_bookings, total_leads),
        total_broker_fee=int(round_half_up(total_fee)),
        avg_broker_fee=int(round_half_up(avg_fee)),
        dispatch_rate=percentage(dispatched, total_bookings),
        cancellation_rate=percentage(canceled, total_bookings),
    )


__all__ = ["aggregate", "count_statuses", "parse_money", "percentage", "round_half_up"]
