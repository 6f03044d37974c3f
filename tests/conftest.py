from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import pytest

from farmbid.domain.models import Auction, LivestockType, Product, ProductCategory, ProductUnit
from farmbid.infrastructure.db import ensure_schema, get_connection, utcnow
from farmbid.infrastructure.db.repositories import (
    AuctionRepository,
    ProductRepository,
    UserRepository,
)
from farmbid.infrastructure.observability import get_registry
from farmbid.services.identity import hash_token


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    get_registry().reset()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "farmbid.db"


@pytest.fixture
def connection_factory(db_path: Path):
    def factory():
        return get_connection(db_path)

    with factory() as conn:
        ensure_schema(conn)
    return factory


@pytest.fixture
def make_user(connection_factory) -> Callable[..., int]:
    """Insert a user and return its id. The bearer token is ``token-<id>``."""
    counter = itertools.count(1)

    def _make(name: str = "Farmer", phone: str | None = "9876543210") -> int:
        n = next(counter)
        with connection_factory() as conn:
            return UserRepository(conn).add(
                f"{name} {n}",
                token_hash=hash_token(f"token-{n}"),
                phone=phone,
                email=f"user{n}@example.com",
            )

    return _make


@pytest.fixture
def make_auction(connection_factory) -> Callable[..., int]:
    """Insert an auction directly, bypassing the future-start rule."""

    def _make(
        seller_id: int,
        *,
        starting_bid: float = 1000.0,
        min_bid_increment: float = 100.0,
        start: datetime | None = None,
        end: datetime | None = None,
        is_active: bool = True,
        title: str = "Jersey heifer",
        livestock_type: LivestockType = LivestockType.COW,
        breed: str = "Jersey",
    ) -> int:
        now = utcnow()
        auction = Auction(
            seller_id=seller_id,
            title=title,
            description="Healthy two year old heifer, fully vaccinated.",
            livestock_type=livestock_type,
            breed=breed,
            age=24,
            weight=350.0,
            starting_bid=starting_bid,
            min_bid_increment=min_bid_increment,
            start_date=start or now - timedelta(hours=1),
            end_date=end or now + timedelta(hours=1),
            is_active=is_active,
            images=["cow.jpg"],
        )
        with connection_factory() as conn:
            return AuctionRepository(conn).create(auction)

    return _make


@pytest.fixture
def make_product(connection_factory) -> Callable[..., int]:
    def _make(seller_id: int, *, quantity: int = 10, price: float = 40.0) -> int:
        product = Product(
            seller_id=seller_id,
            name="Basmati rice",
            description="Aged basmati from the 2025 harvest",
            category=ProductCategory.GRAINS,
            price=price,
            quantity=quantity,
            unit=ProductUnit.KG,
        )
        with connection_factory() as conn:
            return ProductRepository(conn).create(product)

    return _make


@pytest.fixture
def load_auction(connection_factory) -> Callable[[int], Auction]:
    def _load(auction_id: int) -> Auction:
        with connection_factory() as conn:
            auction = AuctionRepository(conn).get(auction_id)
        assert auction is not None
        return auction

    return _load
