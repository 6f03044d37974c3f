from .auctions import AuctionRepository, ConcurrentModificationError
from .notifications import NotificationRepository
from .products import ProductRepository
from .users import DuplicateUserError, UserRepository

__all__ = [
    "AuctionRepository",
    "ConcurrentModificationError",
    "DuplicateUserError",
    "NotificationRepository",
    "ProductRepository",
    "UserRepository",
]
