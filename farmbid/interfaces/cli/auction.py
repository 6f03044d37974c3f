"""Auction CLI: list, inspect and create livestock auctions."""

from __future__ import annotations

import mimetypes
from pathlib import Path

import click
from rich.table import Table

from farmbid.domain.errors import FarmBidError
from farmbid.domain.lifecycle import AuctionQuery, SortField, SortOrder, StatusFilter
from farmbid.domain.models import LivestockType
from farmbid.infrastructure.db import get_list_limit
from farmbid.infrastructure.persistence import ImageUpload

from .context import build_cli_context, console, context_from, db_option, fail


@click.group()
@db_option
@click.pass_context
def auction(ctx: click.Context, db_path: str | None) -> None:
    """Browse and create livestock auctions."""

    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = build_cli_context(db_path)


@auction.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in StatusFilter]),
    default=StatusFilter.ALL.value,
    show_default=True,
)
@click.option(
    "--type",
    "livestock_type",
    type=click.Choice([t.value for t in LivestockType]),
    default=None,
    help="Only show this kind of livestock.",
)
@click.option("--search", default=None, help="Free-text search over title, breed, ...")
@click.option(
    "--sort-by",
    type=click.Choice([f.value for f in SortField]),
    default=SortField.END_DATE.value,
    show_default=True,
)
@click.option("--desc", is_flag=True, default=False, help="Sort descending.")
@click.option("--limit", type=int, default=None, help="Maximum number of auctions.")
@click.pass_context
def list_cmd(
    ctx: click.Context,
    status: str,
    livestock_type: str | None,
    search: str | None,
    sort_by: str,
    desc: bool,
    limit: int | None,
) -> None:
    """List auctions matching the given filters."""

    query = AuctionQuery(
        livestock_type=LivestockType(livestock_type) if livestock_type else None,
        search=search,
        status=StatusFilter(status),
        sort_by=SortField(sort_by),
        order=SortOrder.DESC if desc else SortOrder.ASC,
        limit=limit or get_list_limit(),
    )
    auctions = context_from(ctx).auction_service().list_auctions(query)
    if not auctions:
        console.print("[yellow]No auctions found.[/yellow]")
        return

    table = Table(title="Auctions")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Type")
    table.add_column("Phase")
    table.add_column("Current bid", justify="right")
    table.add_column("Bids", justify="right")
    table.add_column("Ends")
    for item in auctions:
        table.add_row(
            str(item.id),
            item.title,
            item.livestock_type,
            item.phase,
            f"₹{item.current_bid:,.2f}",
            str(item.bid_count),
            item.end_date,
        )
    console.print(table)


@auction.command("show")
@click.argument("auction_id", type=int)
@click.pass_context
def show_cmd(ctx: click.Context, auction_id: int) -> None:
    """Show one auction with its bid history."""

    try:
        detail = context_from(ctx).auction_service().get_auction(auction_id)
    except FarmBidError as exc:
        fail(ctx, exc)
        return

    console.print(f"[bold]{detail.title}[/bold] ({detail.livestock_type}, {detail.breed})")
    seller = detail.seller_name or f"user {detail.seller_id}"
    if detail.seller_farm_name:
        seller = f"{seller} of {detail.seller_farm_name}"
    console.print(f"Seller: {seller}")
    console.print(f"Phase: {detail.phase}  Window: {detail.start_date} → {detail.end_date}")
    console.print(
        f"Current bid: ₹{detail.current_bid:,.2f}  "
        f"Next minimum: ₹{detail.minimum_acceptable_bid:,.2f}"
    )
    if not detail.bids:
        console.print("[yellow]No bids yet.[/yellow]")
        return
    table = Table(title="Bids")
    table.add_column("#", justify="right")
    table.add_column("Bidder")
    table.add_column("Amount", justify="right")
    table.add_column("Time")
    for index, bid in enumerate(detail.bids, start=1):
        bidder = bid.bidder_name or str(bid.bidder_id)
        table.add_row(str(index), bidder, f"₹{bid.amount:,.2f}", bid.bid_time)
    console.print(table)


@auction.command("create")
@click.option("--seller-id", type=int, required=True, help="User id of the seller.")
@click.option("--title", required=True)
@click.option("--description", required=True)
@click.option(
    "--type",
    "livestock_type",
    type=click.Choice([t.value for t in LivestockType]),
    required=True,
)
@click.option("--breed", required=True)
@click.option("--age", type=int, required=True, help="Age in months.")
@click.option("--weight", type=float, required=True, help="Weight in kg.")
@click.option("--starting-bid", type=float, required=True)
@click.option("--increment", "min_bid_increment", type=float, default=None)
@click.option("--start", "start_date", required=True, help="ISO-8601 start time (UTC).")
@click.option("--end", "end_date", required=True, help="ISO-8601 end time (UTC).")
@click.option(
    "--image",
    "image_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Image file (repeat 1-5 times).",
)
@click.pass_context
def create_cmd(
    ctx: click.Context,
    seller_id: int,
    title: str,
    description: str,
    livestock_type: str,
    breed: str,
    age: int,
    weight: float,
    starting_bid: float,
    min_bid_increment: float | None,
    start_date: str,
    end_date: str,
    image_paths: tuple[Path, ...],
) -> None:
    """Create an auction on behalf of a seller."""

    data = {
        "title": title,
        "description": description,
        "livestock_type": livestock_type,
        "breed": breed,
        "age": age,
        "weight": weight,
        "starting_bid": starting_bid,
        "start_date": start_date,
        "end_date": end_date,
    }
    if min_bid_increment is not None:
        data["min_bid_increment"] = min_bid_increment
    uploads = [
        ImageUpload(
            filename=path.name,
            content=path.read_bytes(),
            content_type=mimetypes.guess_type(path.name)[0],
        )
        for path in image_paths
    ]
    try:
        created = context_from(ctx).auction_service().create_auction(seller_id, data, uploads)
    except FarmBidError as exc:
        fail(ctx, exc)
        return

    console.print(
        f"[green]Created auction [bold]{created.id}[/bold]: {created.title}[/green]"
    )
