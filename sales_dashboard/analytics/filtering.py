"""
Order filtering, sorting, and pagination for the orders table.

Each step is a pure function over a collection of orders:

    subset = filter_orders(orders, OrderFilter(search_text="q-1", statuses={"quote"}))
    ordered = sort_orders(subset, "broker_fee", SortDirection.DESC)
    page = paginate(ordered, page_size=25, page=1)

``OrderTableState`` ties the three together the way the dashboard table uses
them: changing any filter resets the page to 1, and toggling the sort field
flips or resets the direction.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from math import ceil
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from pydantic import AwareDatetime, BaseModel, ConfigDict, field_validator

from sales_dashboard.analytics.metrics import parse_money
from sales_dashboard.domain.models import Order, OrderStatus


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


def _instant(field_name: str) -> Callable[[Order], Any]:
    return lambda order: getattr(order, field_name).timestamp()


def _money(field_name: str) -> Callable[[Order], Any]:
    return lambda order: parse_money(getattr(order, field_name))


def _text(field_name: str) -> Callable[[Order], Any]:
    return lambda order: getattr(order, field_name)


SORT_KEYS: Dict[str, Callable[[Order], Any]] = {
    "order_quote_id": _text("order_quote_id"),
    "date": _instant("date"),
    "status": lambda order: order.status.value,
    "agent_name": _text("agent_name"),
    "total_amount": _money("total_amount"),
    "broker_fee": _money("broker_fee"),
    "created_at": _instant("created_at"),
    "updated_at": _instant("updated_at"),
}

DEFAULT_SORT_FIELD = "created_at"


class OrderFilter(BaseModel):
    """
    Filter predicates for the orders table, combined with logical AND.

    Empty ``statuses``/``agents`` sets match everything. Date bounds are
    inclusive, compared against ``Order.date``, and must be timezone-aware.
    """

    search_text: Optional[str] = None
    statuses: FrozenSet[OrderStatus] = frozenset()
    agents: FrozenSet[str] = frozenset()
    from_date: Optional[AwareDatetime] = None
    to_date: Optional[AwareDatetime] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("search_text")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value

    @property
    def is_active(self) -> bool:
        return bool(
            self.search_text or self.statuses or self.agents or self.from_date or self.to_date
        )

    def matches(self, order: Order) -> bool:
        if self.search_text:
            needle = self.search_text.lower()
            haystacks = (order.order_quote_id.lower(), order.agent_name.lower())
            if not any(needle in text for text in haystacks):
                return False
        if self.statuses and order.status not in self.statuses:
            return False
        if self.agents and order.agent_name not in self.agents:
            return False
        return in_date_range(order, self.from_date, self.to_date)


def in_date_range(
    order: Order, from_date: Optional[datetime] = None, to_date: Optional[datetime] = None
) -> bool:
    """Inclusive on both ends; a missing bound is unconstrained."""
    if from_date is not None and order.date < from_date:
        return False
    if to_date is not None and order.date > to_date:
        return False
    return True


def filter_by_date(
    orders: Iterable[Order],
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> List[Order]:
    for bound in (from_date, to_date):
        if bound is not None and bound.tzinfo is None:
            raise ValueError("date bounds must be timezone-aware")
    return [order for order in orders if in_date_range(order, from_date, to_date)]


def filter_orders(orders: Iterable[Order], criteria: Optional[OrderFilter] = None) -> List[Order]:
    """Return the orders matching every active predicate, in input order."""
    if criteria is None or not criteria.is_active:
        return list(orders)
    return [order for order in orders if criteria.matches(order)]


def sort_orders(
    orders: Iterable[Order],
    field_name: str = DEFAULT_SORT_FIELD,
    direction: SortDirection = SortDirection.ASC,
) -> List[Order]:
    """
    Stable sort by one field. Dates compare as instants and money as parsed
    decimals; equal elements keep their input order in both directions.
    """
    try:
        key = SORT_KEYS[field_name]
    except KeyError:
        raise ValueError(
            f"Unknown sort field '{field_name}'. Available: {', '.join(SORT_KEYS)}"
        ) from None
    return sorted(orders, key=key, reverse=SortDirection(direction) is SortDirection.DESC)


@dataclass(frozen=True)
class Page:
    """A contiguous slice of a sorted collection."""

    items: List[Order]
    page: int
    page_size: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total_items / self.page_size)

    @property
    def start_index(self) -> int:
        """0-based offset of the first item on this page."""
        return (self.page - 1) * self.page_size

    @property
    def end_index(self) -> int:
        """Exclusive offset, clamped to the collection size."""
        return min(self.start_index + self.page_size, self.total_items)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(orders: Sequence[Order], page_size: int, page: int = 1) -> Page:
    """
    Slice a collection by 1-based page number. Pages past the end are empty.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    if page < 1:
        raise ValueError("page must be >= 1")
    start = (page - 1) * page_size
    return Page(
        items=list(orders[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(orders),
    )


def agent_options(orders: Iterable[Order]) -> List[str]:
    """Distinct agent names in first-seen order, for the agent filter."""
    return list(dict.fromkeys(order.agent_name for order in orders))


@dataclass(frozen=True)
class OrderTableState:
    """
    Immutable view state of the orders table. Every transition returns a new
    state.
    """

    criteria: OrderFilter = field(default_factory=OrderFilter)
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 1
    page_size: int = 25

    def with_filter(self, criteria: OrderFilter) -> "OrderTableState":
        return replace(self, criteria=criteria, page=1)

    def update_filter(self, **changes: Any) -> "OrderTableState":
        criteria = OrderFilter.model_validate({**self.criteria.model_dump(), **changes})
        return self.with_filter(criteria)

    def clear_filters(self) -> "OrderTableState":
        return self.with_filter(OrderFilter())

    def toggle_sort(self, field_name: str) -> "OrderTableState":
        """Same field flips the direction; a new field starts ascending."""
        if field_name not in SORT_KEYS:
            raise ValueError(f"Unknown sort field '{field_name}'")
        if field_name == self.sort_field:
            return replace(self, sort_direction=self.sort_direction.flipped())
        return replace(self, sort_field=field_name, sort_direction=SortDirection.ASC)

    def go_to_page(self, page: int) -> "OrderTableState":
        if page < 1:
            raise ValueError("page must be >= 1")
        return replace(self, page=page)

    def apply(self, orders: Iterable[Order]) -> Page:
        """Filter, sort, then paginate."""
        subset = filter_orders(orders, self.criteria)
        ordered = sort_orders(subset, self.sort_field, self.sort_direction)
        return paginate(ordered, self.page_size, self.page)


__all__ = [
    "DEFAULT_SORT_FIELD",
    "SORT_KEYS",
    "OrderFilter",
    "OrderTableState",
    "Page",
    "SortDirection",
    "agent_options",
    "filter_by_date",
    "filter_orders",
    "in_date_range",
    "paginate",
    "sort_orders",
]
