from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sales_dashboard.analytics.filtering import OrderTableState
from sales_dashboard.auth import Session
from sales_dashboard.domain.models import OrderCreate, OrderStatus, OrderUpdate
from sales_dashboard.errors import (
    AuthorizationError,
    DuplicateOrderQuoteIdError,
    EraseNotAllowedError,
    SessionExpiredError,
    UnknownAgentError,
)
from sales_dashboard.service import DashboardService


def _new(order_quote_id: str, **overrides) -> OrderCreate:
    values = {"order_quote_id": order_quote_id, "date": datetime(2024, 3, 1, 9, 0), **overrides}
    return OrderCreate(**values)


@pytest.fixture
def seeded(service: DashboardService, jane_session, bob_session, clock):
    jane_order = service.create_order(
        jane_session, _new("Q-J1", status=OrderStatus.DISPATCHED, broker_fee="300")
    )
    clock.advance(minutes=1)
    bob_order = service.create_order(
        bob_session, _new("Q-B1", status=OrderStatus.COMPLETED, broker_fee="500")
    )
    return jane_order, bob_order


def test_create_order_takes_owner_from_session(service, jane_session, jane):
    order = service.create_order(jane_session, _new("Q-1"))
    assert (order.agent_id, order.agent_name) == (jane.id, jane.name)
    assert order.status is OrderStatus.QUOTE
    # naive input is business-zone wall clock (UTC-6)
    assert order.date == datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc)


def test_duplicate_quote_id_surfaces(service, jane_session, seeded):
    with pytest.raises(DuplicateOrderQuoteIdError):
        service.create_order(jane_session, _new("Q-B1"))


def test_visibility_is_scoped_by_role(service, admin_session, jane_session, seeded):
    jane_order, bob_order = seeded
    assert service.visible_orders(admin_session) == [bob_order, jane_order]
    assert service.visible_orders(jane_session) == [jane_order]


def test_metrics_and_agent_analytics_follow_visibility(
    service, admin_session, jane_session, seeded
):
    assert service.metrics(admin_session).total_leads == 2
    assert service.metrics(jane_session).total_broker_fee == 300

    leaderboard = service.agent_analytics(admin_session)
    assert [s.agent_name for s in leaderboard] == ["Bob", "Jane"]
    assert [s.agent_id for s in service.agent_analytics(admin_session, by="id")] == [
        "agent-bob",
        "agent-jane",
    ]
    assert [s.agent_name for s in service.agent_analytics(jane_session)] == ["Jane"]
    with pytest.raises(ValueError):
        service.agent_analytics(admin_session, by="email")


def test_orders_page_uses_configured_page_size(service, admin_session, seeded):
    page = service.orders_page(admin_session)
    assert page.page_size == 25
    assert page.total_items == 2

    state = OrderTableState(page_size=1).toggle_sort("broker_fee")
    assert [o.order_quote_id for o in service.orders_page(admin_session, state).items] == ["Q-J1"]


def test_agents_edit_only_their_own_orders(service, jane_session, seeded):
    jane_order, bob_order = seeded

    updated = service.update_order(
        jane_session, jane_order.id, OrderUpdate(status=OrderStatus.CANCELED)
    )
    assert updated.status is OrderStatus.CANCELED

    with pytest.raises(AuthorizationError):
        service.update_order(jane_session, bob_order.id, OrderUpdate(broker_fee="1"))
    with pytest.raises(AuthorizationError):
        service.update_order(jane_session, jane_order.id, OrderUpdate(agent_id="agent-bob"))
    with pytest.raises(AuthorizationError):
        service.delete_order(jane_session, bob_order.id)


def test_update_converts_wall_clock_date(service, jane_session, seeded):
    jane_order, _ = seeded
    updated = service.update_order(
        jane_session, jane_order.id, OrderUpdate(date=datetime(2024, 4, 1, 0, 0))
    )
    assert updated.date == datetime(2024, 4, 1, 6, 0, tzinfo=timezone.utc)


def test_empty_update_returns_current(service, jane_session, seeded):
    jane_order, _ = seeded
    assert service.update_order(jane_session, jane_order.id, OrderUpdate()) == jane_order


def test_admin_may_reassign_and_delete_any_order(service, admin_session, seeded):
    jane_order, bob_order = seeded
    moved = service.update_order(admin_session, jane_order.id, OrderUpdate(agent_id="agent-bob"))
    assert moved.agent_id == "agent-bob"
    assert moved.agent_name == "Bob"

    service.delete_order(admin_session, bob_order.id)
    assert service.visible_orders(admin_session) == [moved]


def test_export_is_admin_only_and_recorded(service, admin_session, jane_session, seeded, clock):
    with pytest.raises(AuthorizationError):
        service.export_csv(jane_session)

    export = service.export_csv(admin_session)

    assert export.filename == "sales-data-2024-03-15.csv"
    assert export.rows == 2
    assert export.content.splitlines()[0].startswith('"Order/Quote ID","Date (Central Time)"')
    assert admin_session.last_export_at == clock.now


def test_erase_requires_recent_export(service, admin_session, jane_session, seeded, store):
    with pytest.raises(AuthorizationError):
        service.erase_all(jane_session)
    with pytest.raises(EraseNotAllowedError):
        service.erase_all(admin_session)

    service.export_csv(admin_session)
    assert service.erase_all(admin_session) == 2
    assert store.list_orders() == []


def test_erase_window_is_inclusive_of_24_hours(service, admin_user, clock, seeded):
    session = Session(
        user=admin_user,
        issued_at=clock.now,
        expires_at=clock.now + timedelta(days=7),
        last_export_at=clock.now,
    )
    clock.advance(hours=24, seconds=1)
    with pytest.raises(EraseNotAllowedError):
        service.erase_all(session)

    session.record_export(clock.now - timedelta(hours=24))
    assert service.erase_all(session) == 2


def test_expired_session_is_rejected(service, jane_session, clock):
    clock.advance(hours=2)
    with pytest.raises(SessionExpiredError):
        service.visible_orders(jane_session)


def test_reassignment_credits_revenue_to_new_owner(service, admin_session, seeded):
    jane_order, _ = seeded
    service.update_order(admin_session, jane_order.id, OrderUpdate(agent_id="agent-bob"))

    stats = service.agent_analytics(admin_session)

    assert [(s.agent_name, s.total_leads) for s in stats] == [("Bob", 2)]


def test_reassignment_to_unknown_agent_is_rejected(service, admin_session, seeded):
    jane_order, _ = seeded
    with pytest.raises(UnknownAgentError):
        service.update_order(admin_session, jane_order.id, OrderUpdate(agent_id="agent-ghost"))


def test_agents_may_not_rename_order_owner(service, jane_session, seeded):
    jane_order, _ = seeded
    with pytest.raises(AuthorizationError):
        service.update_order(jane_session, jane_order.id, OrderUpdate(agent_name="Bob"))

    same = service.update_order(jane_session, jane_order.id, OrderUpdate(agent_name="Jane"))
    assert same.agent_name == "Jane"
