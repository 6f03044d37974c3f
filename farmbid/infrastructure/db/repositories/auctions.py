from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional

from farmbid.domain.lifecycle import AuctionQuery, SortField, SortOrder, StatusFilter
from farmbid.domain.models import Auction

from ..connection import iso_utcnow, to_iso
from .base import LIKE_ESCAPE, BaseRepository, contains_pattern


class ConcurrentModificationError(Exception):
    """Raised when an auction changed between the read and the bid write."""


# Fields a seller may change before the auction starts. ``bids`` and
# ``current_bid`` are deliberately absent: only ``append_bid`` writes them.
_UPDATABLE_COLUMNS = (
    "title",
    "description",
    "livestock_type",
    "breed",
    "age",
    "weight",
    "health_status",
    "images",
    "starting_bid",
    "min_bid_increment",
    "start_date",
    "end_date",
    "location_city",
    "location_state",
    "is_active",
)

_SORT_COLUMNS = {
    SortField.END_DATE: "end_date",
    SortField.START_DATE: "start_date",
    SortField.STARTING_BID: "starting_bid",
    SortField.CURRENT_BID: "current_bid",
    SortField.CREATED_AT: "created_at",
    SortField.VIEWS: "views",
    SortField.TITLE: "title",
}


def _to_column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return value


def _bids_json(auction: Auction) -> str:
    return json.dumps([bid.to_dict() for bid in auction.bids])


def status_clause(status: StatusFilter, now: datetime) -> tuple[str, tuple[Any, ...]]:
    """SQL predicate matching ``farmbid.domain.lifecycle.phase`` boundaries."""
    now_iso = to_iso(now)
    if status is StatusFilter.LIVE:
        return (
            "is_active = 1 AND start_date <= ? AND end_date >= ?",
            (now_iso, now_iso),
        )
    if status is StatusFilter.UPCOMING:
        return "is_active = 1 AND start_date > ?", (now_iso,)
    if status is StatusFilter.ENDED:
        return "(is_active = 0 OR end_date < ?)", (now_iso,)
    return "1=1", ()


class AuctionRepository(BaseRepository):
    """Auction record store.

    Each auction is a single row with its bids embedded as a JSON array, so
    appending a bid is one compare-and-swap ``UPDATE`` on the ``version``
    column.
    """

    def create(self, auction: Auction) -> int:
        now_iso = iso_utcnow()
        auction_id = self._execute_insert(
            """
            INSERT INTO auctions (
                seller_id, title, description, livestock_type, breed, age, weight,
                health_status, images, starting_bid, current_bid, min_bid_increment,
                start_date, end_date, location_city, location_state, is_active,
                is_sold, winner_id, views, bids, bid_count, version,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                auction.seller_id,
                auction.title,
                auction.description,
                auction.livestock_type.value,
                auction.breed,
                auction.age,
                auction.weight,
                auction.health_status.value,
                json.dumps(auction.images),
                auction.starting_bid,
                auction.current_bid,
                auction.min_bid_increment,
                to_iso(auction.start_date),
                to_iso(auction.end_date),
                auction.location.city,
                auction.location.state,
                int(auction.is_active),
                int(auction.is_sold),
                auction.winner_id,
                auction.views,
                _bids_json(auction),
                auction.bid_count,
                auction.version,
                now_iso,
                now_iso,
            ),
        )
        self._commit()
        return auction_id

    def get(self, auction_id: int) -> Optional[Auction]:
        row = self._fetch_one_as_dict(
            "SELECT * FROM auctions WHERE id = ?", (auction_id,)
        )
        return Auction.from_dict(row) if row else None

    def increment_views(self, auction_id: int) -> None:
        """Bump the view counter. Not versioned; lost updates are acceptable."""
        self._execute("UPDATE auctions SET views = views + 1 WHERE id = ?", (auction_id,))
        self._commit()

    def update(
        self, auction_id: int, changes: Mapping[str, Any], *, now: datetime
    ) -> bool:
        """Apply seller edits while the auction has not started.

        Returns False when the auction is missing or already started.
        """
        unknown = set(changes) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update auction columns: {sorted(unknown)}")
        if not changes:
            return self._fetch_scalar(
                "SELECT 1 FROM auctions WHERE id = ? AND start_date > ?",
                (auction_id, to_iso(now)),
            ) is not None

        updates = [f"{column} = ?" for column in changes]
        params: List[Any] = [_to_column_value(value) for value in changes.values()]
        if "starting_bid" in changes:
            # Keep current_bid mirroring the starting bid while there are no bids.
            updates.append("current_bid = CASE WHEN bid_count = 0 THEN ? ELSE current_bid END")
            params.append(changes["starting_bid"])
        updates.extend(["version = version + 1", "updated_at = ?"])
        params.extend([iso_utcnow(), auction_id, to_iso(now)])

        cur = self._execute(
            f"UPDATE auctions SET {', '.join(updates)} WHERE id = ? AND start_date > ?",
            tuple(params),
        )
        self._commit()
        return cur.rowcount > 0

    def delete(self, auction_id: int, *, now: datetime) -> bool:
        """Delete an auction that has not started yet."""
        cur = self._execute(
            "DELETE FROM auctions WHERE id = ? AND start_date > ?",
            (auction_id, to_iso(now)),
        )
        self._commit()
        return cur.rowcount > 0

    def append_bid(self, auction: Auction, *, expected_version: int) -> None:
        """Persist ``auction`` (already carrying the new bid) if nobody raced us.

        Raises:
            ConcurrentModificationError: the stored version is no longer
                ``expected_version`` (another bid or edit landed first).
        """
        if auction.id is None:
            raise ValueError("Cannot append a bid to an unsaved auction")
        if auction.version != expected_version + 1:
            raise ValueError("Auction state must be exactly one version ahead")

        cur = self._execute(
            """
            UPDATE auctions
            SET bids = ?, current_bid = ?, bid_count = ?, version = ?, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (
                _bids_json(auction),
                auction.current_bid,
                auction.bid_count,
                auction.version,
                iso_utcnow(),
                auction.id,
                expected_version,
            ),
        )
        if cur.rowcount == 0:
            self.conn.rollback()
            raise ConcurrentModificationError(
                f"Auction {auction.id} changed since version {expected_version}"
            )
        self._commit()

    def search(self, query: AuctionQuery, now: datetime) -> List[Auction]:
        clause, params = status_clause(query.status, now)
        where = [clause]
        values: List[Any] = list(params)

        if query.livestock_type is not None:
            where.append("livestock_type = ?")
            values.append(query.livestock_type.value)
        if query.search:
            needle = contains_pattern(query.search)
            where.append(
                "(" + " OR ".join(
                    f"LOWER({column}) LIKE ? ESCAPE '{LIKE_ESCAPE}'"
                    for column in ("title", "description", "livestock_type", "breed")
                ) + ")"
            )
            values.extend([needle] * 4)
        if query.min_price is not None:
            where.append("starting_bid >= ?")
            values.append(query.min_price)
        if query.max_price is not None:
            where.append("starting_bid <= ?")
            values.append(query.max_price)

        column = _SORT_COLUMNS[query.sort_by]
        direction = "DESC" if query.order is SortOrder.DESC else "ASC"
        values.append(query.limit)
        rows = self._fetch_all_as_dicts(
            f"""
            SELECT * FROM auctions
            WHERE {' AND '.join(where)}
            ORDER BY {column} {direction}, id {direction}
            LIMIT ?
            """,
            tuple(values),
        )
        return [Auction.from_dict(row) for row in rows]

    def list_by_seller(self, seller_id: int) -> List[Auction]:
        rows = self._fetch_all_as_dicts(
            "SELECT * FROM auctions WHERE seller_id = ? ORDER BY created_at DESC, id DESC",
            (seller_id,),
        )
        return [Auction.from_dict(row) for row in rows]

    def list_by_bidder(self, bidder_id: int) -> List[Auction]:
        rows = self._fetch_all_as_dicts(
            """
            SELECT * FROM auctions a
            WHERE EXISTS (
                SELECT 1 FROM json_each(a.bids)
                WHERE json_extract(json_each.value, '$.bidder_id') = ?
            )
            ORDER BY a.created_at DESC, a.id DESC
            """,
            (bidder_id,),
        )
        return [Auction.from_dict(row) for row in rows]

    def list_unsettled_ended(self, now: datetime) -> List[Auction]:
        rows = self._fetch_all_as_dicts(
            """
            SELECT * FROM auctions
            WHERE settled_at IS NULL AND end_date < ?
            ORDER BY end_date, id
            """,
            (to_iso(now),),
        )
        return [Auction.from_dict(row) for row in rows]

    def mark_settled(
        self,
        auction_id: int,
        *,
        winner_id: int | None,
        is_sold: bool,
        settled_at: datetime,
    ) -> bool:
        """Record the outcome once; returns False if already settled."""
        cur = self._execute(
            """
            UPDATE auctions
            SET winner_id = ?, is_sold = ?, settled_at = ?, updated_at = ?
            WHERE id = ? AND settled_at IS NULL
            """,
            (winner_id, int(is_sold), to_iso(settled_at), iso_utcnow(), auction_id),
        )
        self._commit()
        return cur.rowcount > 0

    def count_live(self, now: datetime) -> int:
        clause, params = status_clause(StatusFilter.LIVE, now)
        return int(self._fetch_scalar(f"SELECT COUNT(*) FROM auctions WHERE {clause}", params) or 0)

    def count_bids(self) -> int:
        return int(self._fetch_scalar("SELECT COALESCE(SUM(bid_count), 0) FROM auctions") or 0)
