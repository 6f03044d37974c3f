"""Entry point for running the FarmBid CLI.

This module defines a top-level Click group that aggregates all subcommands
defined in the ``farmbid.interfaces.cli`` package. Executing
``python -m farmbid.interfaces.cli`` (or the ``farmbid`` console script)
invokes this group.
"""

import logging

import click

from farmbid.infrastructure.observability import configure_logging

from .auction import auction
from .bid import bid
from .product import product
from .settle import settle
from .user import user


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """FarmBid marketplace command-line interface."""
    configure_logging(level=logging.DEBUG if verbose else logging.WARNING)


cli.add_command(user)
cli.add_command(auction)
cli.add_command(bid)
cli.add_command(settle)
cli.add_command(product)


if __name__ == "__main__":
    cli()
