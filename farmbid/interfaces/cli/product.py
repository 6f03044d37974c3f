"""Product CLI: browse listings and record purchases."""

from __future__ import annotations

import click
from rich.table import Table

from farmbid.domain.errors import FarmBidError
from farmbid.domain.models import ProductCategory

from .context import build_cli_context, console, context_from, db_option, fail


@click.group()
@db_option
@click.pass_context
def product(ctx: click.Context, db_path: str | None) -> None:
    """Browse and buy fixed-price products."""

    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = build_cli_context(db_path)


@product.command("list")
@click.option(
    "--category",
    type=click.Choice([c.value for c in ProductCategory]),
    default=None,
)
@click.option("--search", default=None)
@click.option("--all", "include_unavailable", is_flag=True, help="Include sold-out listings.")
@click.pass_context
def list_cmd(
    ctx: click.Context,
    category: str | None,
    search: str | None,
    include_unavailable: bool,
) -> None:
    """List products."""

    products = context_from(ctx).product_service().list_products(
        category=ProductCategory(category) if category else None,
        search=search,
        available_only=not include_unavailable,
    )
    if not products:
        console.print("[yellow]No products found.[/yellow]")
        return

    table = Table(title="Products")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Price", justify="right")
    table.add_column("Stock", justify="right")
    for item in products:
        table.add_row(
            str(item.id),
            item.name,
            item.category,
            f"₹{item.price:,.2f}/{item.unit}",
            f"{item.quantity} {item.unit}" if item.is_available else "sold out",
        )
    console.print(table)


@product.command("purchase")
@click.argument("product_id", type=int)
@click.argument("quantity", type=int)
@click.option("--buyer-id", type=int, required=True, help="User id of the buyer.")
@click.pass_context
def purchase_cmd(ctx: click.Context, product_id: int, quantity: int, buyer_id: int) -> None:
    """Buy QUANTITY units of PRODUCT_ID."""

    try:
        result = context_from(ctx).product_service().purchase(product_id, buyer_id, quantity)
    except FarmBidError as exc:
        fail(ctx, exc)
        return

    console.print(
        f"[green]Purchased {result.quantity} {result.unit} for "
        f"₹{result.total_price:,.2f}.[/green]"
    )
    if result.seller_phone:
        console.print(f"Contact the seller at {result.seller_phone} to arrange payment.")
    console.print(f"Remaining stock: {result.remaining_quantity} {result.unit}")
