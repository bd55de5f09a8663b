from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from sales_dashboard.analytics.agents import aggregate_by_agent, aggregate_by_agent_id
from sales_dashboard.analytics.export import export_filename, to_csv, write_csv
from sales_dashboard.analytics.filtering import (
    SORT_KEYS,
    OrderFilter,
    OrderTableState,
    SortDirection,
    sort_orders,
)
from sales_dashboard.analytics.metrics import aggregate
from sales_dashboard.analytics.timezone import TimezoneNormalizer
from sales_dashboard.config import get_settings
from sales_dashboard.domain.models import Order, OrderStatus, generate_order_quote_id
from sales_dashboard.errors import DashboardError
from sales_dashboard.infrastructure.store import InMemoryStore, PostgresStore, RecordStore
from sales_dashboard.reporter import print_agent_stats, print_metrics, print_orders_page
from sales_dashboard.utils.logging import configure_logging, get_logger

app = typer.Typer(help="Sales dashboard CLI: metrics, agent analytics, orders, and CSV export.")
log = get_logger(__name__)

InputOption = typer.Option(
    None,
    "--input",
    "-i",
    help="JSON snapshot with users/orders; when omitted, orders are read from Postgres.",
)
AgentIdOption = typer.Option(
    None,
    "--agent-id",
    help="Restrict to one agent's orders (the agent view). Default is the admin view.",
)
FromOption = typer.Option(None, "--from", help="Inclusive lower bound on order date.")
ToOption = typer.Option(None, "--to", help="Inclusive upper bound on order date.")


def _setup() -> TimezoneNormalizer:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return TimezoneNormalizer()


def _store(input_path: Optional[Path]) -> RecordStore:
    if input_path is not None:
        return InMemoryStore.from_snapshot(input_path)
    return PostgresStore()


def _load_orders(input_path: Optional[Path], agent_id: Optional[str]) -> List[Order]:
    return _store(input_path).list_orders(agent_id=agent_id)


def _bound(tz: TimezoneNormalizer, text: Optional[str]) -> Optional[datetime]:
    """Command-line dates are business-timezone wall clock."""
    if not text:
        return None
    try:
        return tz.parse_wall_clock(text)
    except ValueError:
        raise typer.BadParameter(f"'{text}' is not YYYY-MM-DD or YYYY-MM-DDTHH:MM") from None


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"env={settings.app_env} | "
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"tz={settings.business_timezone} ({settings.business_timezone_label}) "
        f"page_size={settings.page_size} "
        f"erase_window={settings.erase_export_window_hours}h"
    )


@app.command()
def metrics(
    input_path: Optional[Path] = InputOption,
    agent_id: Optional[str] = AgentIdOption,
) -> None:
    """
    Show dashboard KPIs.
    """
    _setup()
    print_metrics(aggregate(_load_orders(input_path, agent_id)))


@app.command()
def agents(
    from_date: Optional[str] = FromOption,
    to_date: Optional[str] = ToOption,
    by: str = typer.Option("name", "--by", help="Group by agent 'name' (as shown) or 'id'."),
    tie_break: bool = typer.Option(
        False, "--tie-break", help="Order equal-revenue agents by name."
    ),
    input_path: Optional[Path] = InputOption,
) -> None:
    """
    Show per-agent performance ranked by revenue.
    """
    tz = _setup()
    if by not in ("name", "id"):
        raise typer.BadParameter("--by must be 'name' or 'id'")
    orders = _load_orders(input_path, None)
    aggregator = aggregate_by_agent_id if by == "id" else aggregate_by_agent
    stats = aggregator(orders, _bound(tz, from_date), _bound(tz, to_date), tie_break)
    print_agent_stats(stats)


@app.command()
def orders(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Match ID or agent name."),
    status: List[OrderStatus] = typer.Option([], "--status", "-s", help="Repeatable."),
    agent: List[str] = typer.Option([], "--agent", "-a", help="Repeatable agent name filter."),
    from_date: Optional[str] = FromOption,
    to_date: Optional[str] = ToOption,
    sort: str = typer.Option("created_at", "--sort", help=f"One of: {', '.join(SORT_KEYS)}."),
    desc: bool = typer.Option(True, "--desc/--asc", help="Sort direction."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
    input_path: Optional[Path] = InputOption,
    agent_id: Optional[str] = AgentIdOption,
) -> None:
    """
    List orders with filters, sorting, and pagination.
    """
    tz = _setup()
    if sort not in SORT_KEYS:
        raise typer.BadParameter(f"--sort must be one of: {', '.join(SORT_KEYS)}")
    all_orders = _load_orders(input_path, agent_id)
    criteria = OrderFilter(
        search_text=search,
        statuses=frozenset(status),
        agents=frozenset(agent),
        from_date=_bound(tz, from_date),
        to_date=_bound(tz, to_date),
    )
    state = OrderTableState(
        criteria=criteria,
        sort_field=sort,
        sort_direction=SortDirection.DESC if desc else SortDirection.ASC,
        page=page,
        page_size=page_size or get_settings().page_size,
    )
    print_orders_page(
        state.apply(all_orders), tz, total_orders=len(all_orders), filtered=criteria.is_active
    )


@app.command("quote-id")
def quote_id() -> None:
    """
    Suggest a new Order/Quote ID.
    """
    tz = _setup()
    typer.echo(generate_order_quote_id(tz.now()))


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="CSV path; defaults to sales-data-<date>.csv in the cwd."
    ),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort before export (ascending)."),
    input_path: Optional[Path] = InputOption,
    agent_id: Optional[str] = AgentIdOption,
) -> None:
    """
    Export orders to CSV.
    """
    tz = _setup()
    rows = _load_orders(input_path, agent_id)
    if sort:
        if sort not in SORT_KEYS:
            raise typer.BadParameter(f"--sort must be one of: {', '.join(SORT_KEYS)}")
        rows = sort_orders(rows, sort, SortDirection.ASC)
    target = write_csv(to_csv(rows, tz), output or Path(export_filename(tz)))
    log.info("[EXPORT]", extra={"rows": len(rows), "path": str(target)})
    typer.echo(f"Exported {len(rows)} orders to {target}")


def main() -> None:
    try:
        app()
    except DashboardError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
