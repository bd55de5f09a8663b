"""
Data generation and loading script for the sales dashboard.

Implements deterministic pseudo-random users and orders, CSV emission, and
Postgres COPY loading. Users are written first with fixed ids so every order's
agent_id satisfies the foreign key.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psycopg
import typer

from sales_dashboard.infrastructure.db_factory import build_dsn, get_sync_connection

app = typer.Typer(help="Generate synthetic users and orders and load into Postgres (CSV + COPY).")

USER_COLUMNS = ["id", "email", "name", "role", "created_at"]
ORDER_COLUMNS = [
    "id",
    "order_quote_id",
    "date",
    "status",
    "agent_id",
    "agent_name",
    "total_amount",
    "broker_fee",
    "created_at",
    "updated_at",
]

AGENT_NAMES = [
    "Jane Cooper",
    "Marcus Reed",
    "Priya Patel",
    "Diego Alvarez",
    "Hannah Kim",
    "Omar Haddad",
    "Lena Fischer",
    "Tom Walsh",
]

STATUS_WEIGHTS = {
    "quote": 35,
    "in_process": 15,
    "dispatched": 25,
    "canceled": 10,
    "completed": 15,
}

DATE_SPREAD_DAYS = 180


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _stable_id(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def _generate_users_csv(csv_path: Path, agents: int, seed: int) -> list[tuple[str, str]]:
    """
    Write one admin plus ``agents`` agent users. Returns ``(id, name)`` for
    the agents, in generation order.
    """
    rng = random.Random(seed)
    now = datetime.now(UTC).isoformat()
    generated: list[tuple[str, str]] = []

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(USER_COLUMNS)
        writer.writerow([_stable_id(rng), "admin@example.com", "Admin", "admin", now])
        for i in range(agents):
            base = AGENT_NAMES[i % len(AGENT_NAMES)]
            name = base if i < len(AGENT_NAMES) else f"{base} {i // len(AGENT_NAMES) + 1}"
            email = name.lower().replace(" ", ".") + "@example.com"
            user_id = _stable_id(rng)
            writer.writerow([user_id, email, name, "agent", now])
            generated.append((user_id, name))
    return generated


def _generate_orders_csv(
    csv_path: Path,
    agents: list[tuple[str, str]],
    rows: int,
    batch_size: int,
    seed: int,
) -> None:
    rng = random.Random(seed)
    now = datetime.now(UTC)
    statuses = list(STATUS_WEIGHTS)
    weights = list(STATUS_WEIGHTS.values())

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(ORDER_COLUMNS)

        buffer: list[list[str]] = []
        for i in range(rows):
            agent_id, agent_name = rng.choice(agents)
            date = now - timedelta(seconds=rng.randint(0, DATE_SPREAD_DAYS * 86_400))
            created_at = date + timedelta(minutes=rng.randint(0, 120))
            total_amount = round(rng.uniform(500, 10_000), 2)
            broker_fee = round(total_amount * rng.uniform(0.08, 0.2), 2)
            buffer.append(
                [
                    _stable_id(rng),
                    f"Q-{date.year}-{i + 1:06d}",
                    date.isoformat(),
                    rng.choices(statuses, weights=weights)[0],
                    agent_id,
                    agent_name,
                    f"{total_amount:.2f}",
                    f"{broker_fee:.2f}",
                    created_at.isoformat(),
                    created_at.isoformat(),
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_csv(cur: psycopg.Cursor, table: str, columns: list[str], csv_path: Path) -> None:
    statement = (
        f"COPY public.{table} ({', '.join(columns)}) FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
    )
    with cur.copy(statement) as copy:
        with csv_path.open("r", encoding="utf-8") as f:
            for line in f:
                copy.write(line)


def _copy_into_db(dsn: str, users_csv: Path, orders_csv: Path) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            _copy_csv(cur, "users", USER_COLUMNS, users_csv)
            _copy_csv(cur, "orders", ORDER_COLUMNS, orders_csv)
        conn.commit()


@app.command()
def main(
    rows: int = typer.Option(
        1_000,
        "--rows",
        "-r",
        help="Number of orders to generate.",
    ),
    agents: int = typer.Option(
        6,
        "--agents",
        "-a",
        min=1,
        help="Number of agent users to generate (one admin is always added).",
    ),
    batch_size: int = typer.Option(
        500,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for users.csv and orders.csv (if omitted, a temp dir is used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSVs; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic users and orders and optionally load them using COPY.
    """
    start = time.perf_counter()
    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)
    else:
        output_dir = Path(tempfile.mkdtemp(prefix="sales_dashboard_csv_"))
    users_csv = output_dir / "users.csv"
    orders_csv = output_dir / "orders.csv"

    typer.echo(f"Generating {agents} agents and {rows:,} orders -> {output_dir} (seed={seed})")
    agent_rows = _generate_users_csv(users_csv, agents=agents, seed=seed)
    _generate_orders_csv(orders_csv, agent_rows, rows=rows, batch_size=batch_size, seed=seed)
    typer.echo(f"CSV generation completed in {time.perf_counter() - start:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSVs into Postgres via COPY...")
    _copy_into_db(_build_dsn(dsn), users_csv, orders_csv)
    typer.echo(f"Load completed in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
