"""
Domain models for the sales dashboard.

Defines the order/quote and user records exchanged with the record store,
the validated input models used by add/edit actions, and the fixed-shape
statistic records produced by the analytics aggregators.

Monetary fields are carried as exact decimal strings. They are parsed to
``Decimal`` only for arithmetic (see ``sales_dashboard.analytics.metrics``).
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    """Closed set of pipeline statuses. Any status may change to any other."""

    QUOTE = "quote"
    IN_PROCESS = "in_process"
    DISPATCHED = "dispatched"
    CANCELED = "canceled"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def is_booking(self) -> bool:
        return self in BOOKING_STATUSES


_STATUS_LABELS = {
    OrderStatus.QUOTE: "Quote",
    OrderStatus.IN_PROCESS: "In Process",
    OrderStatus.DISPATCHED: "Dispatched",
    OrderStatus.CANCELED: "Canceled",
    OrderStatus.COMPLETED: "Completed",
}

# quote and canceled are leads but not bookings
BOOKING_STATUSES = frozenset(
    {OrderStatus.IN_PROCESS, OrderStatus.DISPATCHED, OrderStatus.COMPLETED}
)


# numeric(12,2) column bound
MAX_MONEY = Decimal("9999999999.99")


class UserRole(str, Enum):
    AGENT = "agent"
    ADMIN = "admin"


def normalize_money(value: Any) -> str:
    """
    Validate a monetary input and return it as a two-decimal string.

    Accepts strings and numbers. Rejects negatives, values with more than
    two fractional digits and values above ``MAX_MONEY``.
    """
    if isinstance(value, bool):
        raise ValueError("must be a numeric amount")
    if isinstance(value, str):
        value = value.strip()
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError("must be a numeric amount") from exc
    if not amount.is_finite():
        raise ValueError("must be a numeric amount")
    if amount < 0:
        raise ValueError("must be non-negative")
    if amount > MAX_MONEY:
        raise ValueError(f"must not exceed {MAX_MONEY}")
    if amount.as_tuple().exponent < -2:
        raise ValueError("must have at most 2 decimal places")
    return f"{amount:.2f}"


def _as_utc(value: datetime) -> datetime:
    # stored instants without tzinfo are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_model_config = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


class User(BaseModel):
    """
    Representation of a single row in the `users` table.
    """

    id: str = Field(..., description="Opaque store-assigned identifier.")
    email: str = Field(..., description="Unique sign-in email.")
    name: str = Field(..., description="Display name, copied onto orders at write time.")
    role: UserRole = Field(UserRole.AGENT, description="agent or admin.")
    created_at: datetime = Field(..., description="Store-assigned creation instant.")

    model_config = _model_config

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class Order(BaseModel):
    """
    Representation of a single row in the `orders` table.

    ``total_amount`` and ``broker_fee`` are kept as the store returned them;
    malformed values are tolerated here and coerced to zero by the
    aggregators.
    """

    id: str = Field(..., description="Opaque store-assigned identifier.")
    order_quote_id: str = Field(..., description="Human-assigned unique business identifier.")
    date: datetime = Field(..., description="Business-relevant instant (UTC).")
    status: OrderStatus = Field(..., description="Pipeline status.")
    agent_id: str = Field(..., description="Owning user id.")
    agent_name: str = Field(..., description="Owner's display name captured at write time.")
    total_amount: str = Field(..., description="Decimal string, 2 fractional digits.")
    broker_fee: str = Field(..., description="Decimal string, 2 fractional digits.")
    created_at: datetime = Field(..., description="Store-assigned creation instant.")
    updated_at: datetime = Field(..., description="Store-assigned last update instant.")

    model_config = _model_config

    @field_validator("total_amount", "broker_fee", mode="before")
    @classmethod
    def _money_as_text(cls, value: Any) -> Any:
        # drivers hand back Decimal for NUMERIC columns
        if isinstance(value, (Decimal, int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class OrderCreate(BaseModel):
    """
    Validated input for the add-order action.

    The owning agent is not part of the input; it is taken from the signed-in
    session when the order is written. A naive ``date`` is a wall-clock time
    in the business timezone.
    """

    order_quote_id: str = Field(..., min_length=1)
    date: datetime
    status: OrderStatus = OrderStatus.QUOTE
    total_amount: str = "0.00"
    broker_fee: str = "0.00"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("order_quote_id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("total_amount", "broker_fee", mode="before")
    @classmethod
    def _money(cls, value: Any) -> str:
        return normalize_money(value)


class OrderUpdate(BaseModel):
    """
    Partial edit of an order. Every field except ``id`` and ``created_at``
    may change; unset fields are left untouched.
    """

    order_quote_id: Optional[str] = Field(None, min_length=1)
    date: Optional[datetime] = None
    status: Optional[OrderStatus] = None
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    total_amount: Optional[str] = None
    broker_fee: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("order_quote_id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("total_amount", "broker_fee", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return normalize_money(value)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)


class Metrics(BaseModel):
    """Dashboard-wide KPIs. Empty input yields all zeros."""

    total_quotes: int = 0
    in_process: int = 0
    dispatched: int = 0
    canceled: int = 0
    completed: int = 0
    total_leads: int = 0
    total_bookings: int = 0
    conversion_rate: float = 0.0
    total_broker_fee: int = 0
    avg_broker_fee: int = 0
    dispatch_rate: float = 0.0
    cancellation_rate: float = 0.0

    model_config = _model_config


class AgentStats(BaseModel):
    """Per-agent KPIs; ``agent_id`` is only set by the id-keyed grouping."""

    agent_name: str
    agent_id: Optional[str] = None
    total_leads: int = 0
    total_quotes: int = 0
    in_process_orders: int = 0
    dispatched_orders: int = 0
    completed_orders: int = 0
    canceled_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    avg_order_value: Decimal = Decimal("0")  # cents, half-up
    conversion_rate: float = 0.0

    model_config = _model_config


def generate_order_quote_id(now: datetime) -> str:
    """
    Suggest a business identifier such as ``Q-2024-123456``.

    The suffix is the last six digits of the epoch milliseconds of ``now``.
    """
    millis = int(now.timestamp() * 1000)
    return f"Q-{now.year}-{str(millis)[-6:]}"


__all__ = [
    "OrderStatus",
    "UserRole",
    "BOOKING_STATUSES",
    "User",
    "Order",
    "OrderCreate",
    "OrderUpdate",
    "Metrics",
    "AgentStats",
    "MAX_MONEY",
    "normalize_money",
    "generate_order_quote_id",
]
