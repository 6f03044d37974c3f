"""Domain layer for FarmBid.

This package groups the pure business rules (auction lifecycle, bid
arithmetic, product stock) and shared models that do not concern
infrastructure or interface details.
"""

from . import contact, errors, lifecycle, models

__all__ = ["contact", "errors", "lifecycle", "models"]
