"""
Exception hierarchy for the sales dashboard.

Analytics functions never raise on record data; these errors belong to the
host layer (store, sessions, dashboard service).
"""

from __future__ import annotations

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class DashboardError(Exception):
    """Base class for all dashboard errors."""


class InvalidCredentialsError(DashboardError):
    """
    Sign-in failed.

    The message never says whether the email was unknown or the password was
    wrong, so callers cannot enumerate registered users.
    """

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class SessionExpiredError(DashboardError):
    """The session has expired or was signed out."""


class AuthorizationError(DashboardError):
    """The session user's role or ownership does not permit the action."""


class EraseNotAllowedError(DashboardError):
    """Bulk erase requested without a recent successful export."""


class OrderNotFoundError(DashboardError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order '{order_id}' not found")
        self.order_id = order_id


class DuplicateOrderQuoteIdError(DashboardError):
    def __init__(self, order_quote_id: str) -> None:
        super().__init__(f"Order/Quote ID '{order_quote_id}' already exists")
        self.order_quote_id = order_quote_id


class UnknownAgentError(DashboardError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent '{agent_id}' does not exist")
        self.agent_id = agent_id


class StoreError(DashboardError):
    """The record store failed; wraps the driver exception."""


__all__ = [
    "INVALID_CREDENTIALS_MESSAGE",
    "DashboardError",
    "InvalidCredentialsError",
    "SessionExpiredError",
    "AuthorizationError",
    "EraseNotAllowedError",
    "OrderNotFoundError",
    "DuplicateOrderQuoteIdError",
    "UnknownAgentError",
    "StoreError",
]
