"""Shared FastAPI dependencies for FarmBid application components."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends, Header

from farmbid.domain.errors import OperationDisabled, Unauthenticated
from farmbid.domain.models import User
from farmbid.infrastructure.db import (
    get_bidding_config,
    get_path_config,
    is_http_settlement_enabled,
)
from farmbid.infrastructure.persistence import LocalMediaStore, MediaStore
from farmbid.services import (
    AuctionService,
    BiddingService,
    NotificationService,
    ProductService,
    SettlementService,
    StatsService,
    TokenIdentityProvider,
    UserService,
)

__all__ = [
    # Factory functions
    "get_db_path",
    "get_media_store",
    "get_auction_service",
    "get_bidding_service",
    "get_identity_provider",
    "get_current_user",
    "get_notification_service",
    "get_product_service",
    "get_settlement_service",
    "get_settlement_sweep_enabled",
    "get_stats_service",
    "get_user_service",
    # Annotated dependency types
    "AuctionServiceDep",
    "BiddingServiceDep",
    "CurrentUserDep",
    "NotificationServiceDep",
    "ProductServiceDep",
    "SettlementServiceDep",
    "StatsServiceDep",
    "UserServiceDep",
]


def get_db_path() -> Path:
    """Database location from ``config.json``; tests override this."""
    return get_path_config()["db_path"]


def get_media_store() -> MediaStore:
    return LocalMediaStore.from_config()


DbPathDep = Annotated[Path, Depends(get_db_path)]


def get_auction_service(
    db_path: DbPathDep,
    media_store: Annotated[MediaStore, Depends(get_media_store)],
) -> AuctionService:
    return AuctionService.from_sqlite_path(str(db_path), media_store=media_store)


def get_bidding_service(db_path: DbPathDep) -> BiddingService:
    return BiddingService.from_sqlite_path(str(db_path), config=get_bidding_config())


def get_product_service(db_path: DbPathDep) -> ProductService:
    return ProductService.from_sqlite_path(str(db_path))


def get_notification_service(db_path: DbPathDep) -> NotificationService:
    return NotificationService.from_sqlite_path(str(db_path))


def get_settlement_sweep_enabled() -> bool:
    """HTTP-triggered settlement is off unless config.json enables it."""
    return is_http_settlement_enabled()


def get_settlement_service(
    db_path: DbPathDep,
    enabled: Annotated[bool, Depends(get_settlement_sweep_enabled)],
) -> SettlementService:
    if not enabled:
        raise OperationDisabled(
            "Settlement over HTTP is disabled; run `farmbid settle` instead"
        )
    return SettlementService.from_sqlite_path(str(db_path))


def get_stats_service(db_path: DbPathDep) -> StatsService:
    return StatsService.from_sqlite_path(str(db_path))


def get_user_service(db_path: DbPathDep) -> UserService:
    return UserService.from_sqlite_path(str(db_path))


def get_identity_provider(db_path: DbPathDep) -> TokenIdentityProvider:
    return TokenIdentityProvider.from_sqlite_path(str(db_path))


def get_current_user(
    identity: Annotated[TokenIdentityProvider, Depends(get_identity_provider)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve ``Authorization: Bearer <token>`` to the calling user."""
    if not authorization:
        raise Unauthenticated("Access denied. No token provided.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Invalid token.")
    return identity.verify(token)


# Annotated dependency types
AuctionServiceDep = Annotated[AuctionService, Depends(get_auction_service)]
BiddingServiceDep = Annotated[BiddingService, Depends(get_bidding_service)]
ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
SettlementServiceDep = Annotated[SettlementService, Depends(get_settlement_service)]
StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
