"""Bid admission for live auctions.

A bid is admitted against the freshest stored state of its auction. The
append is a compare-and-swap on the auction's ``version``: when another bid
(or a seller edit) lands first, the whole admission is re-run against the
reloaded auction, so the minimum acceptable bid is always computed from the
state the bid is actually appended to.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import Callable

from farmbid.domain.contact import normalize_mobile_number
from farmbid.domain.errors import (
    AuctionNotFound,
    AuctionNotLive,
    BidTooLow,
    FarmBidError,
    SelfBidError,
    StorageUnavailable,
    ValidationError,
)
from farmbid.domain.lifecycle import is_live, phase
from farmbid.domain.models import Auction, Bid, User
from farmbid.infrastructure.db import BiddingConfig, StorageTransientError, utcnow
from farmbid.infrastructure.db.repositories import (
    AuctionRepository,
    ConcurrentModificationError,
)
from farmbid.infrastructure.observability import (
    Timer,
    log_context,
    record_bid,
    record_storage_retry,
    trace_span,
)
from farmbid.infrastructure.observability.metrics import BID_ADMISSION_DURATION
from farmbid.services.auctions import load_participants
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import AuctionViewDTO, BidDTO, BidReceiptDTO
from farmbid.services.notifications import (
    NotificationSink,
    SqliteNotificationSink,
    build_bid_notification,
    emit,
)


class BiddingService(BaseService):
    """Admits bids on live auctions and reports bid history."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        notifier: NotificationSink | None = None,
        config: BiddingConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(connection_factory)
        self._notifier = (
            notifier if notifier is not None else SqliteNotificationSink(connection_factory)
        )
        self._config = config or BiddingConfig()
        self._clock = clock
        self._sleep = sleep

    def place_bid(
        self,
        auction_id: int,
        bidder_id: int,
        amount: float,
        mobile_number: str,
    ) -> BidReceiptDTO:
        """Admit a bid or raise the reason it was rejected.

        Raises:
            ValidationError: non-positive amount or unusable mobile number.
            AuctionNotFound: no auction with ``auction_id``.
            AuctionNotLive: the auction is upcoming, ended or deactivated.
            SelfBidError: the bidder is the seller.
            BidTooLow: ``amount`` is below the minimum acceptable bid.
            StorageUnavailable: storage kept conflicting or failing.
        """
        with log_context(auction_id=auction_id, bidder_id=bidder_id):
            try:
                mobile = self._validate(amount, mobile_number)
                with trace_span(
                    "place_bid", auction_id=auction_id, bidder_id=bidder_id
                ), Timer(BID_ADMISSION_DURATION, help_text="Bid admission latency"):
                    auction, bid = self._admit(auction_id, bidder_id, float(amount), mobile)
            except FarmBidError as exc:
                record_bid(exc.code)
                self._logger.warning("Bid of %s rejected: %s", amount, exc.message)
                raise

            record_bid("accepted")
            self._logger.info(
                "Accepted bid of %.2f (bid #%d)", bid.amount, auction.bid_count
            )
            emit(self._notifier, build_bid_notification(auction, bid))

        return BidReceiptDTO(
            auction_id=auction_id,
            bid=BidDTO.from_domain(bid),
            current_bid=auction.current_bid,
            minimum_acceptable_bid=auction.minimum_acceptable_bid(),
            bid_count=auction.bid_count,
        )

    def _validate(self, amount: float, mobile_number: str) -> str:
        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise ValidationError.for_field("amount", "Bid amount must be positive")
        try:
            return normalize_mobile_number(mobile_number)
        except ValueError as exc:
            raise ValidationError.for_field("mobile_number", str(exc)) from exc

    def _admit(
        self, auction_id: int, bidder_id: int, amount: float, mobile: str
    ) -> tuple[Auction, Bid]:
        max_attempts = self._config.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                return self._with_connection(
                    lambda conn: self._try_admit(
                        AuctionRepository(conn), auction_id, bidder_id, amount, mobile
                    )
                )
            except ConcurrentModificationError:
                record_storage_retry("conflict")
                self._logger.debug("Version conflict on attempt %d, reloading", attempt)
            except StorageTransientError as exc:
                record_storage_retry("transient")
                self._logger.debug("Storage busy on attempt %d: %s", attempt, exc)
                if attempt < max_attempts:
                    self._sleep(self._config.retry_backoff_seconds * attempt)
        self._logger.error("Giving up on bid after %d attempts", max_attempts)
        raise StorageUnavailable()

    def _try_admit(
        self,
        repo: AuctionRepository,
        auction_id: int,
        bidder_id: int,
        amount: float,
        mobile: str,
    ) -> tuple[Auction, Bid]:
        now = self._clock()
        auction = repo.get(auction_id)
        if auction is None:
            raise AuctionNotFound(auction_id)
        if not is_live(auction, now):
            raise AuctionNotLive(auction_id, phase(auction, now).value)
        if bidder_id == auction.seller_id:
            raise SelfBidError()

        minimum = auction.minimum_acceptable_bid()
        if amount < minimum:
            raise BidTooLow(amount, minimum)

        bid = Bid(bidder_id=bidder_id, amount=amount, bid_time=now, mobile_number=mobile)
        updated = auction.with_bid(bid)
        repo.append_bid(updated, expected_version=auction.version)
        return updated, bid

    def list_bids(self, auction_id: int) -> list[BidDTO]:
        """Return the bid history in the order bids were admitted."""

        def _load(conn) -> tuple[Auction, dict[int, User]]:
            auction = AuctionRepository(conn).get(auction_id)
            if auction is None:
                raise AuctionNotFound(auction_id)
            return auction, load_participants(conn, [auction])

        auction, users = self._with_connection(_load)
        return [BidDTO.from_domain(bid, users) for bid in auction.bids]

    def list_bidder_auctions(self, bidder_id: int) -> list[AuctionViewDTO]:
        now = self._clock()

        def _list(conn) -> tuple[list[Auction], dict[int, User]]:
            auctions = AuctionRepository(conn).list_by_bidder(bidder_id)
            return auctions, load_participants(conn, auctions)

        auctions, users = self._with_connection(_list)
        return [AuctionViewDTO.from_domain(auction, now, users) for auction in auctions]
