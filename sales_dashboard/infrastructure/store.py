"""
Record store clients for orders and users.

The dashboard treats persistence as an external collaborator offering
create/read/update/delete by opaque record id. Two implementations share the
``RecordStore`` protocol:

- ``InMemoryStore``: process-local, used by tests, demos, and JSON snapshots.
- ``PostgresStore``: psycopg over the managed pool, mapping columns to model
  fields in both directions.

Both enforce the referential rules the database would: ``order_quote_id`` is
unique and every ``agent_id`` names an existing user.
"""

from __future__ import annotations

import json
import uuid
from decimal import Decimal
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sales_dashboard.analytics.timezone import Clock, utc_now
from sales_dashboard.errors import (
    DuplicateOrderQuoteIdError,
    OrderNotFoundError,
    StoreError,
    UnknownAgentError,
)
from sales_dashboard.domain.models import Order, OrderStatus, User, UserRole
from sales_dashboard.infrastructure.db_factory import TRANSIENT_ERRORS, get_sync_pool
from sales_dashboard.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

# Writable order fields; id, created_at and updated_at belong to the store.
ORDER_WRITE_FIELDS = (
    "order_quote_id",
    "date",
    "status",
    "agent_id",
    "agent_name",
    "total_amount",
    "broker_fee",
)


@runtime_checkable
class RecordStore(Protocol):
    """CRUD contract the dashboard needs from persistence."""

    def list_orders(self, agent_id: Optional[str] = None) -> List[Order]: ...

    def get_order(self, order_id: str) -> Order: ...

    def create_order(self, values: Mapping[str, Any]) -> Order: ...

    def update_order(self, order_id: str, changes: Mapping[str, Any]) -> Order: ...

    def delete_order(self, order_id: str) -> None: ...

    def delete_all_orders(self) -> int: ...

    def get_user(self, user_id: str) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def create_user(self, email: str, name: str, role: UserRole = UserRole.AGENT) -> User: ...

    def list_users(self) -> List[User]: ...


def _newest_first(orders: Iterable[Order]) -> List[Order]:
    return sorted(orders, key=lambda order: order.created_at, reverse=True)


def _check_writable(values: Mapping[str, Any]) -> None:
    unknown = set(values) - set(ORDER_WRITE_FIELDS)
    if unknown:
        raise ValueError(f"Fields not writable: {', '.join(sorted(unknown))}")


class InMemoryStore:
    """
    Dict-backed store. Not shared across processes.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now
        self._users: Dict[str, User] = {}
        self._orders: Dict[str, Order] = {}

    # users

    def create_user(self, email: str, name: str, role: UserRole = UserRole.AGENT) -> User:
        if self.get_user_by_email(email) is not None:
            raise StoreError(f"User with email '{email}' already exists")
        user = User(
            id=str(uuid.uuid4()), email=email, name=name, role=role, created_at=self._clock()
        )
        self._users[user.id] = user
        return user

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        needle = email.lower()
        return next((u for u in self._users.values() if u.email.lower() == needle), None)

    def list_users(self) -> List[User]:
        return list(self._users.values())

    # orders

    def _check_constraints(self, candidate: Order) -> None:
        for other in self._orders.values():
            if other.id != candidate.id and other.order_quote_id == candidate.order_quote_id:
                raise DuplicateOrderQuoteIdError(candidate.order_quote_id)
        if candidate.agent_id not in self._users:
            raise UnknownAgentError(candidate.agent_id)

    def list_orders(self, agent_id: Optional[str] = None) -> List[Order]:
        orders = self._orders.values()
        if agent_id is not None:
            orders = [order for order in orders if order.agent_id == agent_id]
        return _newest_first(orders)

    def get_order(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise OrderNotFoundError(order_id) from None

    def create_order(self, values: Mapping[str, Any]) -> Order:
        _check_writable(values)
        now = self._clock()
        order = Order(id=str(uuid.uuid4()), created_at=now, updated_at=now, **values)
        self._check_constraints(order)
        self._orders[order.id] = order
        return order

    def add_order(self, order: Order) -> Order:
        """Insert a fully formed record as-is (snapshot loading)."""
        self._check_constraints(order)
        self._orders[order.id] = order
        return order

    def update_order(self, order_id: str, changes: Mapping[str, Any]) -> Order:
        _check_writable(changes)
        current = self.get_order(order_id)
        updated = Order.model_validate(
            {**current.model_dump(), **changes, "updated_at": self._clock()}
        )
        self._check_constraints(updated)
        self._orders[order_id] = updated
        return updated

    def delete_order(self, order_id: str) -> None:
        if self._orders.pop(order_id, None) is None:
            raise OrderNotFoundError(order_id)

    def delete_all_orders(self) -> int:
        count = len(self._orders)
        self._orders.clear()
        return count

    # snapshots

    @classmethod
    def from_snapshot(cls, path: Path | str, clock: Optional[Clock] = None) -> "InMemoryStore":
        """
        Load a JSON snapshot ``{"users": [...], "orders": [...]}``. Field names
        may be snake_case or camelCase.
        """
        with Path(path).open("r", encoding="utf-8") as f:
            payload = json.load(f)
        store = cls(clock=clock)
        for raw in payload.get("users", []):
            store.add_user(User.model_validate(raw))
        for raw in payload.get("orders", []):
            store.add_order(Order.model_validate(raw))
        log.info(
            "Snapshot loaded",
            extra={"path": str(path), "users": len(store._users), "orders": len(store._orders)},
        )
        return store

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "users": [u.model_dump(mode="json", by_alias=True) for u in self._users.values()],
            "orders": [o.model_dump(mode="json", by_alias=True) for o in self._orders.values()],
        }


def order_to_params(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert model values into driver parameters."""
    params: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, OrderStatus):
            value = value.value
        elif key in ("total_amount", "broker_fee") and value is not None:
            value = Decimal(str(value))
        params[key] = value
    return params


def order_from_row(row: Mapping[str, Any]) -> Order:
    """Columns are named after the model fields."""
    return Order.model_validate(dict(row))


def user_from_row(row: Mapping[str, Any]) -> User:
    return User.model_validate(dict(row))


_db_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    reraise=True,
)

_ORDER_COLUMNS = sql.SQL(", ").join(
    sql.Identifier(name)
    for name in ("id", *ORDER_WRITE_FIELDS, "created_at", "updated_at")
)


class PostgresStore:
    """
    Postgres-backed store over a psycopg connection pool.

    Transient connection errors are retried; constraint violations map to
    domain errors; any other driver error surfaces as ``StoreError``.
    """

    def __init__(self, pool: Optional[ConnectionPool] = None) -> None:
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = get_sync_pool()
        return self._pool

    def _run(
        self,
        operation: Callable[[psycopg.Connection], T],
        values: Optional[Mapping[str, Any]] = None,
    ) -> T:
        values = values or {}

        @_db_retry
        def attempt() -> T:
            with self._get_pool().connection() as conn:
                return operation(conn)

        try:
            return attempt()
        except pg_errors.UniqueViolation as exc:
            if "order_quote_id" in str(exc):
                raise DuplicateOrderQuoteIdError(str(values.get("order_quote_id"))) from exc
            raise StoreError(str(exc)) from exc
        except pg_errors.ForeignKeyViolation as exc:
            raise UnknownAgentError(str(values.get("agent_id"))) from exc
        except psycopg.Error as exc:
            log.exception("[STORE FAILED]")
            raise StoreError(str(exc)) from exc

    # users

    def create_user(self, email: str, name: str, role: UserRole = UserRole.AGENT) -> User:
        def op(conn: psycopg.Connection) -> User:
            row = conn.execute(
                "INSERT INTO public.users (email, name, role) "
                "VALUES (%s, %s, %s::user_role) RETURNING id, email, name, role, created_at;",
                (email, name, role.value),
            ).fetchone()
            return user_from_row(row)

        return self._run(op)

    def get_user(self, user_id: str) -> Optional[User]:
        def op(conn: psycopg.Connection) -> Optional[User]:
            row = conn.execute(
                "SELECT id, email, name, role, created_at FROM public.users WHERE id = %s;",
                (user_id,),
            ).fetchone()
            return user_from_row(row) if row else None

        return self._run(op)

    def get_user_by_email(self, email: str) -> Optional[User]:
        def op(conn: psycopg.Connection) -> Optional[User]:
            row = conn.execute(
                "SELECT id, email, name, role, created_at FROM public.users "
                "WHERE lower(email) = lower(%s);",
                (email,),
            ).fetchone()
            return user_from_row(row) if row else None

        return self._run(op)

    def list_users(self) -> List[User]:
        def op(conn: psycopg.Connection) -> List[User]:
            rows = conn.execute(
                "SELECT id, email, name, role, created_at FROM public.users ORDER BY name;"
            ).fetchall()
            return [user_from_row(row) for row in rows]

        return self._run(op)

    # orders

    def list_orders(self, agent_id: Optional[str] = None) -> List[Order]:
        query = sql.SQL("SELECT {} FROM public.orders").format(_ORDER_COLUMNS)
        params: tuple = ()
        if agent_id is not None:
            query += sql.SQL(" WHERE agent_id = %s")
            params = (agent_id,)
        query += sql.SQL(" ORDER BY created_at DESC;")

        def op(conn: psycopg.Connection) -> List[Order]:
            return [order_from_row(row) for row in conn.execute(query, params).fetchall()]

        return self._run(op)

    def get_order(self, order_id: str) -> Order:
        query = sql.SQL("SELECT {} FROM public.orders WHERE id = %s;").format(_ORDER_COLUMNS)

        def op(conn: psycopg.Connection) -> Optional[Order]:
            row = conn.execute(query, (order_id,)).fetchone()
            return order_from_row(row) if row else None

        order = self._run(op)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def create_order(self, values: Mapping[str, Any]) -> Order:
        _check_writable(values)
        query = sql.SQL(
            "INSERT INTO public.orders ({columns}) VALUES ({placeholders}) RETURNING {returning};"
        ).format(
            columns=sql.SQL(", ").join(sql.Identifier(k) for k in values),
            placeholders=sql.SQL(", ").join(_placeholder(k) for k in values),
            returning=_ORDER_COLUMNS,
        )

        def op(conn: psycopg.Connection) -> Order:
            return order_from_row(conn.execute(query, order_to_params(values)).fetchone())

        return self._run(op, values)

    def update_order(self, order_id: str, changes: Mapping[str, Any]) -> Order:
        _check_writable(changes)
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(k), _placeholder(k)) for k in changes
        ]
        assignments.append(sql.SQL("updated_at = now()"))
        query = sql.SQL("UPDATE public.orders SET {} WHERE id = %(id)s RETURNING {};").format(
            sql.SQL(", ").join(assignments), _ORDER_COLUMNS
        )
        params = {**order_to_params(changes), "id": order_id}

        def op(conn: psycopg.Connection) -> Optional[Order]:
            row = conn.execute(query, params).fetchone()
            return order_from_row(row) if row else None

        order = self._run(op, changes)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def delete_order(self, order_id: str) -> None:
        def op(conn: psycopg.Connection) -> int:
            return conn.execute("DELETE FROM public.orders WHERE id = %s;", (order_id,)).rowcount

        if self._run(op) == 0:
            raise OrderNotFoundError(order_id)

    def delete_all_orders(self) -> int:
        def op(conn: psycopg.Connection) -> int:
            return conn.execute("DELETE FROM public.orders;").rowcount

        return self._run(op)


def _placeholder(field_name: str) -> sql.Composable:
    if field_name == "status":
        return sql.SQL("{}::order_status").format(sql.Placeholder(field_name))
    return sql.Placeholder(field_name)


__all__ = [
    "ORDER_WRITE_FIELDS",
    "InMemoryStore",
    "PostgresStore",
    "RecordStore",
    "order_from_row",
    "order_to_params",
    "user_from_row",
]
