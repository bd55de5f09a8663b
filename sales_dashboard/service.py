"""
Dashboard service: role-scoped access to the record store plus the analytics
core.

Usage:
    from sales_dashboard.service import DashboardService

    service = DashboardService(store)
    session = auth.sign_in("jane@example.com", "secret")
    metrics = service.metrics(session)
    leaderboard = service.agent_analytics(session, from_date=start, to_date=end)

Agents see and edit only their own orders; admins see everything and may
export and erase in bulk. Bulk erase additionally requires an export from the
same session within ``Settings.erase_export_window_hours``. That timestamp is
held by the caller's session, so the guard is a safety net against accidental
loss, not an access control boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

from sales_dashboard.analytics.agents import aggregate_by_agent, aggregate_by_agent_id
from sales_dashboard.analytics.export import export_filename, to_csv
from sales_dashboard.analytics.filtering import OrderTableState, Page
from sales_dashboard.analytics.metrics import aggregate
from sales_dashboard.analytics.timezone import TimezoneNormalizer
from sales_dashboard.auth import Session
from sales_dashboard.config import Settings, get_settings
from sales_dashboard.domain.models import AgentStats, Metrics, Order, OrderCreate, OrderUpdate
from sales_dashboard.errors import (
    AuthorizationError,
    EraseNotAllowedError,
    SessionExpiredError,
    UnknownAgentError,
)
from sales_dashboard.infrastructure.store import RecordStore
from sales_dashboard.utils.logging import get_logger

log = get_logger(__name__)

AgentGrouping = Literal["name", "id"]


@dataclass(frozen=True)
class CsvExport:
    filename: str
    content: str
    rows: int
    exported_at: datetime


class DashboardService:
    def __init__(
        self,
        store: RecordStore,
        tz: Optional[TimezoneNormalizer] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.tz = tz or TimezoneNormalizer()
        self.settings = settings or get_settings()

    # session checks

    def _active(self, session: Session) -> Session:
        if not session.is_active(self.tz.now()):
            raise SessionExpiredError("Session expired; sign in again")
        return session

    def _admin(self, session: Session, action: str) -> Session:
        self._active(session)
        if not session.is_admin:
            log.warning(
                "[DENIED] admin action", extra={"action": action, "user_id": session.user.id}
            )
            raise AuthorizationError(f"Only admins may {action}")
        return session

    def _owned(self, session: Session, order: Order, action: str) -> None:
        if not session.is_admin and order.agent_id != session.user.id:
            raise AuthorizationError(f"Agents may only {action} their own orders")

    # reads

    def visible_orders(self, session: Session) -> List[Order]:
        """Newest first; admins get every order, agents only their own."""
        self._active(session)
        agent_id = None if session.is_admin else session.user.id
        return self.store.list_orders(agent_id=agent_id)

    def orders_page(self, session: Session, state: Optional[OrderTableState] = None) -> Page:
        state = state or OrderTableState(page_size=self.settings.page_size)
        return state.apply(self.visible_orders(session))

    def metrics(self, session: Session) -> Metrics:
        return aggregate(self.visible_orders(session))

    def agent_analytics(
        self,
        session: Session,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        by: AgentGrouping = "name",
        tie_break_by_name: bool = False,
    ) -> List[AgentStats]:
        orders = self.visible_orders(session)
        if by == "id":
            return aggregate_by_agent_id(orders, from_date, to_date, tie_break_by_name)
        if by != "name":
            raise ValueError(f"Unknown agent grouping '{by}'")
        return aggregate_by_agent(orders, from_date, to_date, tie_break_by_name)

    # writes

    def create_order(self, session: Session, data: OrderCreate) -> Order:
        """
        Add an order owned by the session user. The agent name is copied from
        the user record now and is not kept in sync afterwards.
        """
        self._active(session)
        values: Dict[str, Any] = {
            "order_quote_id": data.order_quote_id,
            "date": self.tz.to_storage_instant(data.date),
            "status": data.status,
            "agent_id": session.user.id,
            "agent_name": session.user.name,
            "total_amount": data.total_amount,
            "broker_fee": data.broker_fee,
        }
        order = self.store.create_order(values)
        log.info(
            "[ORDER CREATED]",
            extra={
                "order_id": order.id,
                "order_quote_id": order.order_quote_id,
                "user_id": session.user.id,
            },
        )
        return order

    def update_order(self, session: Session, order_id: str, update: OrderUpdate) -> Order:
        """
        Apply a partial edit. Reassigning an order copies the new owner's
        display name onto it; only admins may set ``agent_name`` directly.
        """
        self._active(session)
        current = self.store.get_order(order_id)
        self._owned(session, current, "edit")
        changes = update.changes()
        if changes.get("date") is not None:
            changes["date"] = self.tz.to_storage_instant(changes["date"])
        if not session.is_admin:
            if changes.get("agent_id", session.user.id) != session.user.id:
                raise AuthorizationError("Agents may not reassign orders")
            if changes.get("agent_name", current.agent_name) != current.agent_name:
                raise AuthorizationError("Agents may not rename the order owner")
        new_owner = changes.get("agent_id")
        if new_owner is not None and new_owner != current.agent_id:
            owner = self.store.get_user(new_owner)
            if owner is None:
                raise UnknownAgentError(new_owner)
            changes["agent_name"] = owner.name
        if not changes:
            return current
        order = self.store.update_order(order_id, changes)
        log.info(
            "[ORDER UPDATED]",
            extra={"order_id": order_id, "fields": sorted(changes), "user_id": session.user.id},
        )
        return order

    def delete_order(self, session: Session, order_id: str) -> None:
        self._active(session)
        self._owned(session, self.store.get_order(order_id), "delete")
        self.store.delete_order(order_id)
        log.info("[ORDER DELETED]", extra={"order_id": order_id, "user_id": session.user.id})

    # export / erase

    def export_csv(self, session: Session, orders: Optional[Sequence[Order]] = None) -> CsvExport:
        """
        Serialize orders (all visible orders by default) and stamp the session
        with the export time.
        """
        self._admin(session, "export data")
        if orders is None:
            orders = self.visible_orders(session)
        now = self.tz.now()
        export = CsvExport(
            filename=export_filename(self.tz),
            content=to_csv(orders, self.tz, self.settings.business_timezone_label),
            rows=len(orders),
            exported_at=now,
        )
        session.record_export(now)
        log.info("[EXPORT]", extra={"rows": export.rows, "csv_file": export.filename})
        return export

    def erase_all(self, session: Session) -> int:
        """Delete every order. Returns the number of orders removed."""
        self._admin(session, "erase data")
        window = timedelta(hours=self.settings.erase_export_window_hours)
        if not session.exported_within(window, self.tz.now()):
            raise EraseNotAllowedError(
                f"You must export data within the last {self.settings.erase_export_window_hours} "
                "hours before erasing"
            )
        removed = self.store.delete_all_orders()
        log.warning(
            "[ERASE] all orders deleted", extra={"rows": removed, "user_id": session.user.id}
        )
        return removed


__all__ = ["AgentGrouping", "CsvExport", "DashboardService"]
