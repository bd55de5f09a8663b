from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from sales_dashboard.analytics.agents import total_revenue
from sales_dashboard.analytics.filtering import Page
from sales_dashboard.analytics.timezone import TimezoneNormalizer
from sales_dashboard.domain.models import AgentStats, Metrics, OrderStatus

STATUS_STYLES = {
    OrderStatus.QUOTE: "blue",
    OrderStatus.IN_PROCESS: "yellow",
    OrderStatus.DISPATCHED: "cyan",
    OrderStatus.CANCELED: "red",
    OrderStatus.COMPLETED: "green",
}


def _money(value: Decimal | int) -> str:
    return f"${value:,.2f}"


def _rate(value: float) -> str:
    return f"{value:.1f}%"


def print_metrics(metrics: Metrics, console: Optional[Console] = None) -> None:
    """
    Render dashboard KPIs as a two-column rich table.
    """
    console = console or Console()

    table = Table(title="Sales Dashboard Metrics", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="bold")

    table.add_row("Total Leads", f"{metrics.total_leads:,}")
    table.add_row("Quotes", f"{metrics.total_quotes:,}")
    table.add_row("In Process", f"{metrics.in_process:,}")
    table.add_row("Dispatched", f"{metrics.dispatched:,}")
    table.add_row("Completed", f"{metrics.completed:,}")
    table.add_row("Canceled", f"{metrics.canceled:,}")
    table.add_section()
    table.add_row("Total Bookings", f"{metrics.total_bookings:,}")
    table.add_row("Conversion Rate", _rate(metrics.conversion_rate))
    table.add_row("Dispatch Rate", _rate(metrics.dispatch_rate))
    table.add_row("Cancellation Rate", _rate(metrics.cancellation_rate))
    table.add_section()
    table.add_row("Total Broker Fee (dispatched)", _money(metrics.total_broker_fee))
    table.add_row("Avg Broker Fee (dispatched)", _money(metrics.avg_broker_fee))

    console.print(table)


def print_agent_stats(stats: List[AgentStats], console: Optional[Console] = None) -> None:
    """
    Render the agent leaderboard. Rows arrive already ranked by revenue.
    """
    console = console or Console()

    if not stats:
        console.print("[yellow]No agent data available.[/yellow]")
        return

    table = Table(
        title="Agent Performance",
        box=box.ROUNDED,
        caption=f"Sorted by Revenue (descending) | Total {_money(total_revenue(stats))}",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Agent", style="cyan", no_wrap=True)
    table.add_column("Leads", justify="right", style="magenta")
    table.add_column("Quotes", justify="right")
    table.add_column("In Process", justify="right")
    table.add_column("Dispatched", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("Canceled", justify="right", style="red")
    table.add_column("Revenue", justify="right", style="bold green")
    table.add_column("Avg Order", justify="right", style="green")
    table.add_column("Conversion", justify="right", style="yellow")

    for rank, s in enumerate(stats, start=1):
        table.add_row(
            str(rank),
            s.agent_name,
            f"{s.total_leads:,}",
            f"{s.total_quotes:,}",
            f"{s.in_process_orders:,}",
            f"{s.dispatched_orders:,}",
            f"{s.completed_orders:,}",
            f"{s.canceled_orders:,}",
            _money(s.total_revenue),
            _money(s.avg_order_value),
            _rate(s.conversion_rate),
        )

    console.print(table)


def print_orders_page(
    page: Page,
    tz: TimezoneNormalizer,
    total_orders: Optional[int] = None,
    filtered: bool = False,
    console: Optional[Console] = None,
) -> None:
    """
    Render one page of the orders table with a "Showing x-y of n" footer.
    """
    console = console or Console()

    if page.total_items == 0:
        hint = "Try adjusting your filters." if filtered else "Add your first order to get started."
        console.print(f"[yellow]No orders found. {hint}[/yellow]")
        return
    if not page.items:
        console.print(
            f"[yellow]Page {page.page} is past the last page "
            f"({page.total_pages} of {page.total_items} entries).[/yellow]"
        )
        return

    table = Table(title="Orders & Quotes", box=box.ROUNDED)
    table.add_column("Order/Quote ID", style="cyan", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Status")
    table.add_column("Agent", style="magenta")
    table.add_column("Total Amount", justify="right")
    table.add_column("Broker Fee", justify="right", style="green")

    for order in page.items:
        style = STATUS_STYLES[order.status]
        table.add_row(
            order.order_quote_id,
            tz.format_short(order.date),
            f"[{style}]{order.status.label}[/{style}]",
            order.agent_name,
            f"${order.total_amount}",
            f"${order.broker_fee}",
        )

    console.print(table)

    if page.total_pages > 1:
        footer = (
            f"Showing {page.start_index + 1}-{page.end_index} of {page.total_items} entries"
            f" | Page {page.page} of {page.total_pages}"
        )
    else:
        footer = f"Showing {page.total_items} of {total_orders or page.total_items} entries"
    if filtered:
        footer += " (filtered)"
    console.print(f"[dim]{footer}[/dim]")


__all__ = ["print_agent_stats", "print_metrics", "print_orders_page"]
