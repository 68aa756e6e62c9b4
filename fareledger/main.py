from __future__ import annotations

import asyncio
import json
import sys

import typer

from fareledger.config import get_settings
from fareledger.domain.models import FlightQuery
from fareledger.errors import ValidationError
from fareledger.infrastructure.ledger_client import LocalSigner
from fareledger.orchestrator import FareLedger, available_backends, build_fare_ledger
from fareledger.reporter import print_event, print_records, print_stats
from fareledger.utils.logging import configure_logging

app = typer.Typer(help="Fare ledger CLI: submit encrypted flight queries and track their prices.")


def _ledger() -> FareLedger:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    signer = LocalSigner(settings.principal) if settings.principal else None
    return build_fare_ledger(settings, signer=signer)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"backend={settings.ledger_backend} table={settings.ledger_table} "
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"principal={settings.principal or '(read-only)'} "
        f"price_band={settings.price_min}-{settings.price_max} "
        f"timeout={settings.ledger_timeout_seconds}s"
    )


@app.command()
def backends() -> None:
    """
    List available ledger backends.
    """
    typer.echo("Available backends: " + ", ".join(available_backends()))


@app.command("list")
def list_queries(
    mine: bool = typer.Option(False, "--mine", help="Only show queries owned by LEDGER_PRINCIPAL."),
    as_json: bool = typer.Option(False, "--json", help="Emit records and errors as JSON."),
) -> None:
    """
    Re-synchronize from the ledger and list every query.
    """

    async def _run():
        ledger = _ledger()
        try:
            return ledger, await ledger.load_all()
        finally:
            await ledger.close()

    ledger, result = asyncio.run(_run())
    if mine:
        result.records = [r for r in result.records if r.is_owned_by(ledger.principal)]

    if as_json:
        payload = {
            "records": [
                {"key": r.key, **r.model_dump(mode="json", by_alias=True)} for r in result.records
            ],
            "errors": [{"key": e.key, "reason": e.reason} for e in result.errors],
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    print_records(result, ledger.codec, principal=ledger.principal)


@app.command()
def stats() -> None:
    """
    Show counts and price bounds over the current ledger snapshot.
    """

    async def _run():
        ledger = _ledger()
        try:
            result = await ledger.load_all()
        finally:
            await ledger.close()
        return ledger.aggregate(result.records)

    print_stats(asyncio.run(_run()))


@app.command()
def submit(
    origin: str = typer.Option(..., "--origin", "-o", help="Departure airport or city."),
    destination: str = typer.Option(..., "--destination", "-d", help="Arrival airport or city."),
    departure_date: str = typer.Option(..., "--date", help="Departure date (YYYY-MM-DD)."),
    passengers: int = typer.Option(1, "--passengers", "-p", help="Number of travellers."),
    no_wait: bool = typer.Option(
        False, "--no-wait", help="Return once the pending record is stored."
    ),
) -> None:
    """
    Encode and submit a flight query, then follow it through analysis.
    """
    query = FlightQuery(
        origin=origin,
        destination=destination,
        departure_date=departure_date,
        passengers=passengers,
    )

    async def _run():
        ledger = _ledger()
        try:
            submission = await ledger.submit(query, on_status=print_event)
            if not no_wait:
                await submission.wait()
            return submission
        finally:
            if no_wait:
                await ledger.client.close()
            else:
                await ledger.close()

    try:
        submission = asyncio.run(_run())
    except ValidationError as exc:
        typer.echo(f"Invalid query: {exc}", err=True)
        raise typer.Exit(code=2)
    if submission.failed:
        raise typer.Exit(code=1)
    if no_wait:
        typer.echo(
            f"Stored {submission.key} as pending; analysis was not awaited in this session."
        )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
