"""Shared helpers for composing CLI command contexts.

This module centralises common CLI wiring such as resolving configuration
paths and building the services a command needs with the project defaults
applied.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ContextManager

import click
from rich.console import Console

from farmbid.domain.errors import FarmBidError
from farmbid.infrastructure.db import (
    get_bidding_config,
    get_connection,
    get_path_config,
)
from farmbid.infrastructure.persistence import LocalMediaStore
from farmbid.services import (
    AuctionService,
    BiddingService,
    ProductService,
    SettlementService,
    UserService,
)

console = Console()


@dataclass(frozen=True)
class CLIContext:
    """Container for CLI dependencies and configuration paths."""

    db_path: Path
    paths: dict[str, Path]
    connection_factory: Callable[[], ContextManager[sqlite3.Connection]]

    def auction_service(self) -> AuctionService:
        return AuctionService(
            self.connection_factory,
            media_store=LocalMediaStore(self.paths["uploads_dir"]),
        )

    def bidding_service(self) -> BiddingService:
        return BiddingService(self.connection_factory, config=get_bidding_config())

    def product_service(self) -> ProductService:
        return ProductService(self.connection_factory)

    def settlement_service(self) -> SettlementService:
        return SettlementService(self.connection_factory)

    def user_service(self) -> UserService:
        return UserService(self.connection_factory)


def build_cli_context(db_path: str | Path | None = None) -> CLIContext:
    """Build the CLI context with resolved configuration paths and connection factory."""

    paths = get_path_config()
    resolved_db_path = (
        Path(db_path).expanduser() if db_path is not None else paths["db_path"]
    )

    def connection_factory() -> ContextManager[sqlite3.Connection]:
        return get_connection(resolved_db_path)

    return CLIContext(
        db_path=resolved_db_path, paths=paths, connection_factory=connection_factory
    )


def context_from(ctx: click.Context) -> CLIContext:
    """Return the CLIContext stored by a group, building the default if absent."""

    ctx.ensure_object(dict)
    if "cli_context" not in ctx.obj:
        ctx.obj["cli_context"] = build_cli_context()
    return ctx.obj["cli_context"]


def fail(ctx: click.Context, exc: FarmBidError) -> None:
    """Print a domain error in red and exit with status 1."""

    console.print(f"[red]{exc.message}[/red]")
    errors = getattr(exc, "errors", None) or []
    for error in errors if len(errors) > 1 else []:
        console.print(f"[red]  {error['field']}: {error['message']}[/red]")
    ctx.exit(1)


db_option = click.option(
    "--db",
    "db_path",
    default=None,
    help="Path to the SQLite database (defaults to config.json paths.db_path).",
)
