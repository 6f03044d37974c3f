"""Settle auctions whose bidding window has closed."""

from __future__ import annotations

import click
from rich.table import Table

from .context import build_cli_context, console, db_option


@click.command(name="settle")
@db_option
def settle(db_path: str | None) -> None:
    """Record winners for every ended, unsettled auction."""

    results = build_cli_context(db_path).settlement_service().settle_ended()
    if not results:
        console.print("[yellow]Nothing to settle.[/yellow]")
        return

    table = Table(title="Settled auctions")
    table.add_column("Auction", justify="right")
    table.add_column("Sold")
    table.add_column("Winner", justify="right")
    table.add_column("Winning bid", justify="right")
    for result in results:
        table.add_row(
            str(result.auction_id),
            "yes" if result.is_sold else "no",
            str(result.winner_id) if result.winner_id is not None else "-",
            f"₹{result.winning_bid:,.2f}" if result.winning_bid is not None else "-",
        )
    console.print(table)
