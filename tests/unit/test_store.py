from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from sales_dashboard.domain.models import OrderStatus, UserRole
from sales_dashboard.errors import (
    DuplicateOrderQuoteIdError,
    OrderNotFoundError,
    StoreError,
    UnknownAgentError,
)
from sales_dashboard.infrastructure.store import (
    InMemoryStore,
    RecordStore,
    order_from_row,
    order_to_params,
)


def _values(**overrides):
    values = {
        "order_quote_id": "Q-1",
        "date": datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc),
        "status": OrderStatus.QUOTE,
        "agent_id": "agent-jane",
        "agent_name": "Jane",
        "total_amount": "1000.00",
        "broker_fee": "100.00",
    }
    values.update(overrides)
    return values


def test_in_memory_store_satisfies_protocol(store):
    assert isinstance(store, RecordStore)


def test_create_order_assigns_id_and_timestamps(store, clock):
    order = store.create_order(_values())
    assert order.id
    assert order.created_at == order.updated_at == clock.now
    assert store.get_order(order.id) == order


def test_list_orders_newest_first_and_scoped_by_agent(store, clock):
    first = store.create_order(_values(order_quote_id="Q-1"))
    clock.advance(minutes=1)
    second = store.create_order(_values(order_quote_id="Q-2", agent_id="agent-bob"))

    assert store.list_orders() == [second, first]
    assert store.list_orders(agent_id="agent-jane") == [first]


def test_constraints(store):
    store.create_order(_values())
    with pytest.raises(DuplicateOrderQuoteIdError):
        store.create_order(_values())
    with pytest.raises(UnknownAgentError):
        store.create_order(_values(order_quote_id="Q-2", agent_id="ghost"))
    with pytest.raises(ValueError):
        store.create_order({**_values(order_quote_id="Q-3"), "created_at": datetime.now()})


def test_update_order_stamps_updated_at(store, clock):
    order = store.create_order(_values())
    clock.advance(hours=1)

    updated = store.update_order(order.id, {"status": OrderStatus.DISPATCHED})

    assert updated.status is OrderStatus.DISPATCHED
    assert updated.created_at == order.created_at
    assert updated.updated_at == clock.now


def test_update_order_enforces_unique_quote_id(store):
    store.create_order(_values(order_quote_id="Q-1"))
    other = store.create_order(_values(order_quote_id="Q-2"))
    with pytest.raises(DuplicateOrderQuoteIdError):
        store.update_order(other.id, {"order_quote_id": "Q-1"})
    # renaming to its own id is fine
    assert store.update_order(other.id, {"order_quote_id": "Q-2"}).order_quote_id == "Q-2"


def test_delete_order_and_delete_all(store):
    order = store.create_order(_values(order_quote_id="Q-1"))
    store.create_order(_values(order_quote_id="Q-2"))

    store.delete_order(order.id)
    with pytest.raises(OrderNotFoundError):
        store.get_order(order.id)
    with pytest.raises(OrderNotFoundError):
        store.delete_order(order.id)

    assert store.delete_all_orders() == 1
    assert store.list_orders() == []


def test_users(store):
    assert store.get_user_by_email("JANE@example.com").id == "agent-jane"
    assert store.get_user_by_email("nobody@example.com") is None

    created = store.create_user("new@example.com", "new", UserRole.AGENT)
    assert store.get_user(created.id) == created
    assert created in store.list_users()
    with pytest.raises(StoreError):
        store.create_user("NEW@example.com", "dup")


def test_snapshot_round_trip(store, tmp_path):
    store.create_order(_values(order_quote_id="Q-1", total_amount="12.50"))
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(store.to_snapshot()), encoding="utf-8")

    loaded = InMemoryStore.from_snapshot(path)

    assert loaded.list_orders() == store.list_orders()
    assert {u.email for u in loaded.list_users()} == {u.email for u in store.list_users()}
    assert "orderQuoteId" in store.to_snapshot()["orders"][0]


def test_row_mapping_helpers():
    params = order_to_params({"status": OrderStatus.COMPLETED, "broker_fee": "10.50"})
    assert params == {"status": "completed", "broker_fee": Decimal("10.50")}

    row = {"id": "o-1", **_values(total_amount=Decimal("5.00"), broker_fee=Decimal("1.25"))}
    row.update(created_at=row["date"], updated_at=row["date"])
    order = order_from_row(row)
    assert (order.total_amount, order.broker_fee) == ("5.00", "1.25")
