"""Service layer modules for FarmBid."""

from .auctions import AuctionService  # noqa: F401
from .bidding import BiddingService  # noqa: F401
from .identity import TokenIdentityProvider, UserService  # noqa: F401
from .notifications import NotificationService, SqliteNotificationSink  # noqa: F401
from .products import ProductService  # noqa: F401
from .reporting import StatsService  # noqa: F401
from .settlement import SettlementService  # noqa: F401

__all__ = [
    "AuctionService",
    "BiddingService",
    "NotificationService",
    "ProductService",
    "SettlementService",
    "SqliteNotificationSink",
    "StatsService",
    "TokenIdentityProvider",
    "UserService",
]
