"""Auction listing, creation and seller-side maintenance."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Sequence

from farmbid.domain.errors import (
    AuctionNotFound,
    AuctionWindowViolation,
    NotOwnerError,
    UserNotFound,
    ValidationError,
)
from farmbid.domain.lifecycle import AuctionQuery, is_editable
from farmbid.domain.models import MAX_IMAGES, Auction, Location, User
from farmbid.infrastructure.db import utcnow
from farmbid.infrastructure.db.config import MAX_LIST_LIMIT
from farmbid.infrastructure.db.repositories import AuctionRepository, UserRepository
from farmbid.infrastructure.observability import log_context
from farmbid.infrastructure.persistence import ImageUpload, LocalMediaStore, MediaStore
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import (
    AuctionCreateDTO,
    AuctionDetailDTO,
    AuctionUpdateDTO,
    AuctionViewDTO,
    parse_model,
)

# Columns that may legitimately be cleared by an update.
_NULLABLE_FIELDS = {"location_city", "location_state"}


def load_participants(conn, auctions: Iterable[Auction]) -> dict[int, User]:
    """Sellers, winners and bidders of ``auctions``, keyed by user id."""
    user_ids: set[int] = set()
    for auction in auctions:
        user_ids.add(auction.seller_id)
        if auction.winner_id is not None:
            user_ids.add(auction.winner_id)
        user_ids.update(bid.bidder_id for bid in auction.bids)
    return UserRepository(conn).get_many(user_ids)


class AuctionService(BaseService):
    """Use cases around the auction record outside of bid admission."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        media_store: MediaStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(connection_factory)
        self._media_store = media_store
        self._clock = clock

    @property
    def media_store(self) -> MediaStore:
        if self._media_store is None:
            self._media_store = LocalMediaStore.from_config()
        return self._media_store

    def create_auction(
        self,
        seller_id: int,
        data: AuctionCreateDTO | Mapping[str, Any],
        images: Sequence[ImageUpload],
    ) -> AuctionDetailDTO:
        dto = parse_model(AuctionCreateDTO, data)
        now = self._clock()
        if dto.start_date <= now:
            raise ValidationError.for_field("start_date", "Start date must be in the future")
        if not images:
            raise ValidationError.for_field("images", "At least one image is required")
        if len(images) > MAX_IMAGES:
            raise ValidationError.for_field(
                "images", f"Maximum {MAX_IMAGES} images allowed"
            )
        # Nothing is written until every upload is known to be acceptable.
        for upload in images:
            self.media_store.validate(upload)

        def _create(conn) -> tuple[Auction, dict[int, User]]:
            users = UserRepository(conn).get_many([seller_id])
            if seller_id not in users:
                raise UserNotFound(seller_id)
            references: list[str] = []
            try:
                for upload in images:
                    references.append(self.media_store.store(upload))
                auction = Auction(
                    seller_id=seller_id,
                    title=dto.title,
                    description=dto.description,
                    livestock_type=dto.livestock_type,
                    breed=dto.breed,
                    age=dto.age,
                    weight=dto.weight,
                    health_status=dto.health_status,
                    images=references,
                    starting_bid=dto.starting_bid,
                    min_bid_increment=dto.min_bid_increment,
                    start_date=dto.start_date,
                    end_date=dto.end_date,
                    location=Location(city=dto.location_city, state=dto.location_state),
                )
                auction_id = AuctionRepository(conn).create(auction)
            except Exception:
                self._discard_images(references)
                raise
            return replace(auction, id=auction_id), users

        with log_context(seller_id=seller_id):
            auction, users = self._with_connection(_create)
            self._logger.info("Created auction %s: %s", auction.id, auction.title)
        return AuctionDetailDTO.from_domain(auction, now, users)

    def _discard_images(self, references: Sequence[str]) -> None:
        for reference in references:
            try:
                self.media_store.delete(reference)
            except OSError as exc:
                self._logger.warning("Could not remove orphaned image %s: %s", reference, exc)

    def get_auction(self, auction_id: int, *, count_view: bool = True) -> AuctionDetailDTO:
        def _get(conn) -> tuple[Auction, dict[int, User]]:
            repo = AuctionRepository(conn)
            if count_view:
                repo.increment_views(auction_id)
            auction = repo.get(auction_id)
            if auction is None:
                raise AuctionNotFound(auction_id)
            return auction, load_participants(conn, [auction])

        auction, users = self._with_connection(_get)
        return AuctionDetailDTO.from_domain(auction, self._clock(), users)

    def _load_for_change(
        self, repo: AuctionRepository, auction_id: int, caller_id: int, action: str, now: datetime
    ) -> Auction:
        auction = repo.get(auction_id)
        if auction is None:
            raise AuctionNotFound(auction_id)
        # The window check comes first: a started auction is frozen for everyone.
        if not is_editable(auction, now):
            raise AuctionWindowViolation(auction_id, action)
        if auction.seller_id != caller_id:
            raise NotOwnerError("auction", auction_id)
        return auction

    def update_auction(
        self,
        auction_id: int,
        caller_id: int,
        changes: AuctionUpdateDTO | Mapping[str, Any],
    ) -> AuctionDetailDTO:
        dto = parse_model(AuctionUpdateDTO, changes)
        fields = {
            key: value
            for key, value in dto.changes().items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        now = self._clock()

        def _update(conn) -> tuple[Auction, dict[int, User]]:
            repo = AuctionRepository(conn)
            current = self._load_for_change(repo, auction_id, caller_id, "update", now)
            start = fields.get("start_date", current.start_date)
            end = fields.get("end_date", current.end_date)
            if "start_date" in fields and start <= now:
                raise ValidationError.for_field(
                    "start_date", "Start date must be in the future"
                )
            if end <= start:
                raise ValidationError.for_field(
                    "end_date", "End date must be after start date"
                )
            if not repo.update(auction_id, fields, now=now):
                raise AuctionWindowViolation(auction_id, "update")
            updated = repo.get(auction_id)
            if updated is None:
                raise AuctionNotFound(auction_id)
            return updated, load_participants(conn, [updated])

        with log_context(auction_id=auction_id, seller_id=caller_id):
            auction, users = self._with_connection(_update)
            self._logger.info("Updated auction fields: %s", ", ".join(sorted(fields)) or "-")
        return AuctionDetailDTO.from_domain(auction, now, users)

    def delete_auction(self, auction_id: int, caller_id: int) -> None:
        now = self._clock()

        def _delete(conn) -> None:
            repo = AuctionRepository(conn)
            self._load_for_change(repo, auction_id, caller_id, "delete", now)
            if not repo.delete(auction_id, now=now):
                raise AuctionWindowViolation(auction_id, "delete")

        with log_context(auction_id=auction_id, seller_id=caller_id):
            self._with_connection(_delete)
            self._logger.info("Deleted auction")

    def list_auctions(self, query: AuctionQuery | None = None) -> list[AuctionViewDTO]:
        query = query or AuctionQuery()
        if query.limit > MAX_LIST_LIMIT or query.limit < 1:
            query = replace(query, limit=min(max(query.limit, 1), MAX_LIST_LIMIT))
        now = self._clock()

        def _search(conn) -> tuple[list[Auction], dict[int, User]]:
            auctions = AuctionRepository(conn).search(query, now)
            return auctions, load_participants(conn, auctions)

        auctions, users = self._with_connection(_search)
        return [AuctionViewDTO.from_domain(auction, now, users) for auction in auctions]

    def list_seller_auctions(self, seller_id: int) -> list[AuctionViewDTO]:
        now = self._clock()

        def _list(conn) -> tuple[list[Auction], dict[int, User]]:
            auctions = AuctionRepository(conn).list_by_seller(seller_id)
            return auctions, load_participants(conn, auctions)

        auctions, users = self._with_connection(_list)
        return [AuctionViewDTO.from_domain(auction, now, users) for auction in auctions]
