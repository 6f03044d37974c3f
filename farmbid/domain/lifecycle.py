"""Auction lifecycle: phase classification and listing queries.

Phases are derived from wall-clock time and are never stored. The same
boundaries drive bid admission, edit/delete permission and the listing
filters, so an auction can never be live for bidding while listed as ended.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from farmbid.domain.models import Auction, LivestockType


class AuctionPhase(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    ENDED = "ended"


class StatusFilter(str, Enum):
    LIVE = "live"
    UPCOMING = "upcoming"
    ENDED = "ended"
    ALL = "all"


class SortField(str, Enum):
    END_DATE = "end_date"
    START_DATE = "start_date"
    STARTING_BID = "starting_bid"
    CURRENT_BID = "current_bid"
    CREATED_AT = "created_at"
    VIEWS = "views"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def phase(auction: "Auction", now: datetime) -> AuctionPhase:
    """Classify an auction at ``now``.

    A deactivated auction is always ENDED, whatever its window says.
    """
    if not auction.is_active:
        return AuctionPhase.ENDED
    if now < auction.start_date:
        return AuctionPhase.UPCOMING
    if now <= auction.end_date:
        return AuctionPhase.LIVE
    return AuctionPhase.ENDED


def is_live(auction: "Auction", now: datetime) -> bool:
    """The sole gate for bid admission."""
    return phase(auction, now) is AuctionPhase.LIVE


def is_editable(auction: "Auction", now: datetime) -> bool:
    """Sellers may edit or delete an auction only before it starts."""
    return now < auction.start_date


def matches_status(auction: "Auction", status: StatusFilter, now: datetime) -> bool:
    if status is StatusFilter.ALL:
        return True
    return phase(auction, now).value == status.value


@dataclass(frozen=True)
class AuctionQuery:
    """Filter, sort and cap parameters for auction listings."""

    livestock_type: "LivestockType | None" = None
    search: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    status: StatusFilter = StatusFilter.ALL
    sort_by: SortField = SortField.END_DATE
    order: SortOrder = SortOrder.ASC
    limit: int = 20


__all__ = [
    "AuctionPhase",
    "AuctionQuery",
    "SortField",
    "SortOrder",
    "StatusFilter",
    "is_editable",
    "is_live",
    "matches_status",
    "phase",
]
