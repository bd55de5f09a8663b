"""
CSV export of order collections.

Every field is quoted, and embedded double quotes are doubled per RFC 4180 so
any field content survives a round trip through a standard CSV reader. Rows
keep input order; sort before exporting if order matters.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, List, Optional

from sales_dashboard.analytics.timezone import TimezoneNormalizer
from sales_dashboard.config import get_settings
from sales_dashboard.domain.models import Order

EXPORT_FILENAME_PREFIX = "sales-data"


def export_headers(zone_label: Optional[str] = None) -> List[str]:
    label = zone_label or get_settings().business_timezone_label
    return [
        "Order/Quote ID",
        f"Date ({label})",
        "Status",
        "Agent Name",
        "Total Amount",
        "Broker Fee",
        "Created At",
    ]


def order_row(order: Order, tz: TimezoneNormalizer) -> List[str]:
    """Status is the raw enum value; money fields are the raw stored strings."""
    return [
        order.order_quote_id,
        tz.format_display(order.date),
        order.status.value,
        order.agent_name,
        order.total_amount,
        order.broker_fee,
        tz.format_display(order.created_at),
    ]


def to_csv(
    orders: Iterable[Order],
    tz: Optional[TimezoneNormalizer] = None,
    zone_label: Optional[str] = None,
) -> str:
    """Serialize orders to CSV text: one header row plus one row per order."""
    tz = tz or TimezoneNormalizer()
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(export_headers(zone_label))
    writer.writerows(order_row(order, tz) for order in orders)
    return buffer.getvalue()


def export_filename(tz: Optional[TimezoneNormalizer] = None) -> str:
    """``sales-data-YYYY-MM-DD.csv`` for the current business-zone date."""
    tz = tz or TimezoneNormalizer()
    return f"{EXPORT_FILENAME_PREFIX}-{tz.today()}.csv"


def write_csv(content: str, path: Path | str) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as f:
        f.write(content)
    return target


__all__ = ["export_filename", "export_headers", "order_row", "to_csv", "write_csv"]
