"""
Schema bootstrap for the Postgres ledger backend.

Creates the key/value table the PostgresLedgerBackend reads and writes.
With --drop, the table is dropped first (all ledger entries are lost).
"""

from __future__ import annotations

import sys

import psycopg
import typer

from fareledger.config import get_settings
from fareledger.infrastructure.postgres_backend import build_dsn, create_table_sql

app = typer.Typer(help="Create the Postgres ledger table.")


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _create_schema(dsn: str, table: str, drop: bool = False) -> None:
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            if drop:
                cur.execute(f"DROP TABLE IF EXISTS {table}")
            cur.execute(create_table_sql(table))
        conn.commit()


@app.command()
def main(
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    table: str | None = typer.Option(
        None,
        "--table",
        help="Ledger table name (default from LEDGER_TABLE).",
    ),
    drop: bool = typer.Option(
        False,
        "--drop",
        help="Drop the table before creating it.",
    ),
) -> None:
    """
    Create (or recreate) the ledger table.
    """
    table_name = table or get_settings().ledger_table
    if not table_name.replace("_", "").isalnum():
        typer.echo(f"Invalid table name '{table_name}'.", err=True)
        raise typer.Exit(code=2)
    _create_schema(_build_dsn(dsn), table_name, drop=drop)
    typer.echo(f"Ledger table '{table_name}' ready{' (recreated)' if drop else ''}.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
