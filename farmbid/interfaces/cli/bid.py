"""CLI entry point for placing a bid on a live auction."""

from __future__ import annotations

import click

from farmbid.domain.errors import FarmBidError

from .context import build_cli_context, console, db_option, fail


@click.command(name="bid")
@db_option
@click.argument("auction_id", type=int)
@click.argument("amount", type=float)
@click.option("--bidder-id", type=int, required=True, help="User id of the bidder.")
@click.option("--mobile", "mobile_number", required=True, help="Contact mobile number.")
@click.pass_context
def bid(
    ctx: click.Context,
    db_path: str | None,
    auction_id: int,
    amount: float,
    bidder_id: int,
    mobile_number: str,
) -> None:
    """Bid AMOUNT on auction AUCTION_ID."""

    service = build_cli_context(db_path).bidding_service()
    try:
        receipt = service.place_bid(auction_id, bidder_id, amount, mobile_number)
    except FarmBidError as exc:
        fail(ctx, exc)
        return

    console.print(
        f"[green]Bid of ₹{receipt.bid.amount:,.2f} placed on auction "
        f"{receipt.auction_id}.[/green]"
    )
    console.print(
        f"Bids: {receipt.bid_count}  Next minimum: ₹{receipt.minimum_acceptable_bid:,.2f}"
    )
