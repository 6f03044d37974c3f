"""Auction domain model with bid admission arithmetic."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

DEFAULT_MIN_BID_INCREMENT = 100.0
MAX_IMAGES = 5


class LivestockType(str, Enum):
    """Kinds of animals that can be auctioned."""

    COW = "Cow"
    HORSE = "Horse"
    BUFFALO = "Buffalo"
    SHEEP = "Sheep"
    GOAT = "Goat"
    PIG = "Pig"
    CHICKEN = "Chicken"
    DUCK = "Duck"
    OTHER = "Other"


class HealthStatus(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Location:
    city: str | None = None
    state: str | None = None

    def __str__(self) -> str:
        return ", ".join(p for p in (self.city, self.state) if p)


@dataclass(frozen=True)
class Bid:
    """A single accepted bid. Bids are never mutated once stored."""

    bidder_id: int
    amount: float
    bid_time: datetime
    mobile_number: str

    def to_dict(self) -> dict[str, object]:
        return {
            "bidder_id": self.bidder_id,
            "amount": self.amount,
            "bid_time": self.bid_time.isoformat(),
            "mobile_number": self.mobile_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bid":
        bid_time = _parse_datetime(data.get("bid_time"))
        if bid_time is None:
            raise ValueError(f"Bid is missing a valid bid_time: {data!r}")
        return cls(
            bidder_id=int(data["bidder_id"]),
            amount=float(data["amount"]),
            bid_time=bid_time,
            mobile_number=str(data.get("mobile_number", "")),
        )


@dataclass
class Auction:
    """Domain model representing a livestock auction.

    Descriptive fields are fixed once the auction starts. The bid history is
    an append-only tuple; ``with_bid`` is the only way to produce a new bid
    state, and it keeps ``current_bid`` equal to the latest accepted amount.
    """

    seller_id: int
    title: str
    description: str
    livestock_type: LivestockType
    breed: str
    age: int
    weight: float
    starting_bid: float
    start_date: datetime
    end_date: datetime
    id: int | None = None
    health_status: HealthStatus = HealthStatus.GOOD
    images: list[str] = field(default_factory=list)
    current_bid: float | None = None
    min_bid_increment: float = DEFAULT_MIN_BID_INCREMENT
    location: Location = field(default_factory=Location)
    is_active: bool = True
    is_sold: bool = False
    winner_id: int | None = None
    views: int = 0
    bids: tuple[Bid, ...] = ()
    version: int = 0
    settled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.current_bid is None:
            self.current_bid = (
                self.bids[-1].amount if self.bids else self.starting_bid
            )

    @property
    def bid_count(self) -> int:
        return len(self.bids)

    @property
    def highest_bid(self) -> Bid | None:
        """Return the bid with the highest amount, or None without bids."""
        if not self.bids:
            return None
        return max(self.bids, key=lambda bid: bid.amount)

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def minimum_acceptable_bid(self) -> float:
        """Lowest amount the next bid may have.

        The first bid may equal the starting bid; every later bid must clear
        the highest bid by at least ``min_bid_increment``.
        """
        highest = self.highest_bid
        if highest is None:
            return self.starting_bid
        return highest.amount + self.min_bid_increment

    def with_bid(self, bid: Bid) -> "Auction":
        """Return a copy with ``bid`` appended and the version bumped."""
        return replace(
            self,
            bids=self.bids + (bid,),
            current_bid=bid.amount,
            version=self.version + 1,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Auction":
        """Create an Auction from a dictionary (e.g., from database row)."""
        images = data.get("images") or []
        if isinstance(images, str):
            images = json.loads(images)
        raw_bids = data.get("bids") or []
        if isinstance(raw_bids, str):
            raw_bids = json.loads(raw_bids)

        start_date = _parse_datetime(data.get("start_date"))
        end_date = _parse_datetime(data.get("end_date"))
        if start_date is None or end_date is None:
            raise ValueError("Auction row is missing start_date/end_date")

        return cls(
            id=data.get("id"),
            seller_id=int(data["seller_id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            livestock_type=LivestockType(data["livestock_type"]),
            breed=data.get("breed", ""),
            age=int(data.get("age") or 0),
            weight=float(data.get("weight") or 0.0),
            health_status=HealthStatus(data.get("health_status") or "Good"),
            images=list(images),
            starting_bid=float(data["starting_bid"]),
            current_bid=(
                float(data["current_bid"])
                if data.get("current_bid") is not None
                else None
            ),
            min_bid_increment=float(
                data.get("min_bid_increment") or DEFAULT_MIN_BID_INCREMENT
            ),
            start_date=start_date,
            end_date=end_date,
            location=Location(
                city=data.get("location_city"), state=data.get("location_state")
            ),
            is_active=bool(data.get("is_active", True)),
            is_sold=bool(data.get("is_sold", False)),
            winner_id=data.get("winner_id"),
            views=int(data.get("views") or 0),
            bids=tuple(Bid.from_dict(b) for b in raw_bids),
            version=int(data.get("version") or 0),
            settled_at=_parse_datetime(data.get("settled_at")),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


__all__ = [
    "DEFAULT_MIN_BID_INCREMENT",
    "MAX_IMAGES",
    "Auction",
    "Bid",
    "HealthStatus",
    "LivestockType",
    "Location",
]
