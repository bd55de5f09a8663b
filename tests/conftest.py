"""
Pytest configuration for the sales dashboard.

Provides fixtures for:
- A fixed clock and a fixed-offset business timezone
- Order factories and a seeded in-memory record store
- Signed-in admin and agent sessions
- Database connection management for integration tests
"""

from __future__ import annotations

import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Generator

import psycopg
import pytest

from sales_dashboard.analytics.timezone import TimezoneNormalizer
from sales_dashboard.auth import AuthService, InMemoryCredentialProvider, Session
from sales_dashboard.config import Settings
from sales_dashboard.domain.models import Order, OrderStatus, User, UserRole
from sales_dashboard.infrastructure.store import InMemoryStore
from sales_dashboard.service import DashboardService

FIXED_NOW = datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)
CST = timezone(timedelta(hours=-6), "CST")
PASSWORD = "correct horse battery staple"


class MutableClock:
    """Clock whose current instant tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def password() -> str:
    return PASSWORD


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def tz(clock: MutableClock) -> TimezoneNormalizer:
    """Business zone pinned to UTC-6 with no DST."""
    return TimezoneNormalizer(zone=CST, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        business_timezone="America/Chicago",
        business_timezone_label="Central Time",
        page_size=25,
        erase_export_window_hours=24,
        session_ttl_minutes=60,
    )


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """
    Factory for Order records with sensible defaults. Every call gets a fresh
    id, order_quote_id, and a created_at one minute after the previous one.
    """
    counter = itertools.count(1)

    def factory(**overrides: Any) -> Order:
        n = next(counter)
        stamp = FIXED_NOW - timedelta(days=30) + timedelta(minutes=n)
        values = {
            "id": f"order-{n}",
            "order_quote_id": f"Q-2024-{n:06d}",
            "date": stamp,
            "status": OrderStatus.QUOTE,
            "agent_id": "agent-jane",
            "agent_name": "Jane",
            "total_amount": "1000.00",
            "broker_fee": "100.00",
            "created_at": stamp,
            "updated_at": stamp,
        }
        values.update(overrides)
        return Order(**values)

    return factory


@pytest.fixture
def admin_user() -> User:
    return User(
        id="admin-1",
        email="admin@example.com",
        name="Admin",
        role=UserRole.ADMIN,
        created_at=FIXED_NOW,
    )


@pytest.fixture
def jane() -> User:
    return User(id="agent-jane", email="jane@example.com", name="Jane", created_at=FIXED_NOW)


@pytest.fixture
def bob() -> User:
    return User(id="agent-bob", email="bob@example.com", name="Bob", created_at=FIXED_NOW)


@pytest.fixture
def store(clock: MutableClock, admin_user: User, jane: User, bob: User) -> InMemoryStore:
    store = InMemoryStore(clock=clock)
    for user in (admin_user, jane, bob):
        store.add_user(user)
    return store


@pytest.fixture
def credentials(admin_user: User, jane: User, bob: User) -> InMemoryCredentialProvider:
    provider = InMemoryCredentialProvider(iterations=1000)
    for user in (admin_user, jane, bob):
        provider.register(user.email, PASSWORD)
    return provider


@pytest.fixture
def auth(
    credentials: InMemoryCredentialProvider, store: InMemoryStore, clock: MutableClock
) -> AuthService:
    return AuthService(credentials, store, clock=clock, session_ttl=timedelta(minutes=60))


@pytest.fixture
def admin_session(auth: AuthService, admin_user: User) -> Session:
    return auth.sign_in(admin_user.email, PASSWORD)


@pytest.fixture
def jane_session(auth: AuthService, jane: User) -> Session:
    return auth.sign_in(jane.email, PASSWORD)


@pytest.fixture
def bob_session(auth: AuthService, bob: User) -> Session:
    return auth.sign_in(bob.email, PASSWORD)


@pytest.fixture
def service(store: InMemoryStore, tz: TimezoneNormalizer, settings: Settings) -> DashboardService:
    return DashboardService(store, tz=tz, settings=settings)


# Integration fixtures


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "sales_dashboard"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return test_settings.build_dsn()


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the users/orders schema exists by running db/init.sql.

    The script is idempotent.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


def _truncate(db_connection: psycopg.Connection) -> None:
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.orders, public.users CASCADE;")
    db_connection.commit()


@pytest.fixture(scope="function")
def clean_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty both tables before and after each test function.
    """
    _truncate(db_connection)
    yield
    _truncate(db_connection)


@pytest.fixture(scope="function")
def seeded_db_small(
    db_connection: psycopg.Connection,
    clean_tables,
    test_dsn: str,
) -> int:
    """
    Seed a small dataset (3 agents, 100 orders) via the generator's COPY path.

    Returns the number of orders seeded.
    """
    from scripts.generate_data import _copy_into_db, _generate_orders_csv, _generate_users_csv

    with tempfile.TemporaryDirectory() as tmpdir:
        users_csv = Path(tmpdir) / "users.csv"
        orders_csv = Path(tmpdir) / "orders.csv"
        agents = _generate_users_csv(users_csv, agents=3, seed=42)
        _generate_orders_csv(orders_csv, agents, rows=100, batch_size=50, seed=42)
        _copy_into_db(test_dsn, users_csv, orders_csv)

    with db_connection.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM public.orders;")
        count = cur.fetchone()[0]

    return count
