"""User management CLI for FarmBid."""

from __future__ import annotations

import click

from farmbid.domain.errors import FarmBidError

from .context import build_cli_context, console, context_from, db_option, fail


@click.group()
@db_option
@click.pass_context
def user(ctx: click.Context, db_path: str | None) -> None:
    """Manage marketplace users."""

    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = build_cli_context(db_path)


@user.command("add")
@click.argument("name")
@click.option("--phone", default=None, help="Contact phone number.")
@click.option("--email", default=None, help="Email address (unique).")
@click.option("--farm-name", default=None, help="Name of the user's farm.")
@click.pass_context
def add_cmd(
    ctx: click.Context,
    name: str,
    phone: str | None,
    email: str | None,
    farm_name: str | None,
) -> None:
    """Register a user called NAME and print their API token."""

    service = context_from(ctx).user_service()
    try:
        registered = service.register(
            {"name": name, "phone": phone, "email": email, "farm_name": farm_name}
        )
    except FarmBidError as exc:
        fail(ctx, exc)
        return

    console.print(
        f"[green]Registered user [bold]{registered.user.name}[/bold] "
        f"(id {registered.user.id})[/green]"
    )
    console.print(f"Token (shown once): {registered.token}")
