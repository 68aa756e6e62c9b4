from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fareledger.codec import OpaqueCodec, decode_price
from fareledger.domain.models import LoadResult, PriceStats, QueryRecord, StatusEvent
from fareledger.errors import DecodeError

_STAGE_STYLES = {
    "failed": "bold red",
    "done": "bold green",
    "persisted_completed": "green",
}


def _short(blob: str, width: int = 18) -> str:
    return blob if len(blob) <= width else blob[: width - 1] + "…"


def _price_cell(record: QueryRecord, codec: OpaqueCodec) -> str:
    if not record.is_completed:
        return "[dim]pending[/dim]"
    try:
        return f"{decode_price(codec, record.encoded_price):,}"
    except DecodeError:
        return "[red]undecodable[/red]"


def print_records(
    result: LoadResult,
    codec: OpaqueCodec,
    principal: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render loaded records as a rich table, followed by any collected load errors.

    Rows owned by `principal` are highlighted.
    """
    console = console or Console()

    if not result.available:
        console.print("[red]Ledger is not available.[/red]")
        return

    if not result.records:
        console.print("[yellow]No queries found.[/yellow]")
    else:
        table = Table(
            title="Encrypted Flight Queries",
            box=box.ROUNDED,
            caption="Newest first",
        )
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Route", style="magenta")
        table.add_column("Departure", style="blue")
        table.add_column("Status", justify="center")
        table.add_column("Price", justify="right", style="bold green")
        table.add_column("Owner", style="yellow")
        table.add_column("Encrypted Query", style="dim")

        for record in result.records:
            status = (
                "[green]completed[/green]" if record.is_completed else "[yellow]pending[/yellow]"
            )
            owner = escape(_short(record.owner or "-", 12))
            if record.is_owned_by(principal):
                owner = f"[bold]{owner} (you)[/bold]"
            table.add_row(
                record.key,
                escape(f"{record.origin} → {record.destination}"),
                escape(record.departure_date),
                status,
                _price_cell(record, codec),
                owner,
                _short(record.encoded_query),
            )
        console.print(table)

    for error in result.errors:
        target = error.key if error.key is not None else "ledger"
        console.print(f"[red]! {escape(target)}: {escape(error.reason)}[/red]")


def print_stats(stats: PriceStats, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Price Statistics", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_row("Total queries", str(stats.count))
    table.add_row("Completed", str(stats.completed_count))
    table.add_row("Pending", str(stats.pending_count))
    table.add_row("Min price", f"{stats.min:,}")
    table.add_row("Max price", f"{stats.max:,}")
    table.add_row("Avg price", f"{stats.avg:,}")
    console.print(table)


def print_event(event: StatusEvent, console: Optional[Console] = None) -> None:
    console = console or Console()
    style = _STAGE_STYLES.get(event.stage.value, "cyan")
    console.print(f"[{style}]{event.stage.value:>20}[/{style}]  {escape(event.message)}")
