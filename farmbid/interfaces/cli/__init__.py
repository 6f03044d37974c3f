"""CLI interface for FarmBid.

This package is the home for all Click commands.
"""

from .__main__ import cli
from .auction import auction
from .bid import bid
from .product import product
from .settle import settle
from .user import user

__all__ = ["auction", "bid", "cli", "product", "settle", "user"]
