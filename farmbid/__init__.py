"""
FarmBid package initializer.

This package provides the marketplace backend for farm goods: fixed-price
product listings and time-boxed livestock auctions with bid admission.

The package exposes a ``__version__`` attribute indicating the installed
version of FarmBid. The version is read from pyproject.toml via
importlib.metadata – this is the single source of truth.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("farmbid")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
