"""Domain models package.

This package contains domain model classes for FarmBid.
"""

from .auction import (
    DEFAULT_MIN_BID_INCREMENT,
    MAX_IMAGES,
    Auction,
    Bid,
    HealthStatus,
    LivestockType,
    Location,
)
from .notification import NotificationKind, NotificationMessage
from .product import Product, ProductCategory, ProductUnit
from .user import User

__all__ = [
    "DEFAULT_MIN_BID_INCREMENT",
    "MAX_IMAGES",
    "Auction",
    "Bid",
    "HealthStatus",
    "LivestockType",
    "Location",
    "NotificationKind",
    "NotificationMessage",
    "Product",
    "ProductCategory",
    "ProductUnit",
    "User",
]
