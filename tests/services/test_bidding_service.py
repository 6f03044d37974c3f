from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from farmbid.domain.errors import (
    AuctionNotFound,
    AuctionNotLive,
    BidTooLow,
    SelfBidError,
    StorageUnavailable,
    ValidationError,
)
from farmbid.domain.models import Bid, NotificationKind
from farmbid.infrastructure.db import BiddingConfig, StorageTransientError, utcnow
from farmbid.infrastructure.db.repositories import (
    AuctionRepository,
    ConcurrentModificationError,
)
from farmbid.infrastructure.observability import get_registry
from farmbid.infrastructure.observability.metrics import BIDS, NOTIFICATIONS
from farmbid.services.bidding import BiddingService
from farmbid.services.notifications import NotificationService, RecordingNotificationSink

MOBILE = "9876543210"


class FailingSink:
    def enqueue(self, message) -> None:
        raise RuntimeError("queue is down")


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def service(connection_factory, sink) -> BiddingService:
    return BiddingService(connection_factory, notifier=sink)


def test_increment_scenario(service, sink, make_user, make_auction, load_auction) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller, starting_bid=1000.0, min_bid_increment=100.0)

    first = service.place_bid(auction_id, bidder, 1000.0, MOBILE)
    assert first.current_bid == 1000.0
    assert first.minimum_acceptable_bid == 1100.0

    with pytest.raises(BidTooLow) as excinfo:
        service.place_bid(auction_id, bidder, 1050.0, MOBILE)
    assert excinfo.value.minimum_acceptable == 1100.0
    assert excinfo.value.to_payload()["minimum_acceptable"] == 1100.0

    second = service.place_bid(auction_id, bidder, 1100.0, MOBILE)
    assert second.current_bid == 1100.0
    assert second.bid_count == 2

    stored = load_auction(auction_id)
    assert [b.amount for b in stored.bids] == [1000.0, 1100.0]
    assert stored.current_bid == max(b.amount for b in stored.bids)
    assert len(sink.messages) == 2
    assert sink.messages[0].recipient_id == seller
    assert sink.messages[0].kind is NotificationKind.BID


def test_first_bid_below_starting_bid_is_rejected(service, make_user, make_auction) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller, starting_bid=1000.0)

    with pytest.raises(BidTooLow) as excinfo:
        service.place_bid(auction_id, bidder, 999.0, MOBILE)

    assert excinfo.value.minimum_acceptable == 1000.0


def test_seller_cannot_bid_on_own_auction(service, sink, make_user, make_auction) -> None:
    seller = make_user()
    auction_id = make_auction(seller)

    with pytest.raises(SelfBidError):
        service.place_bid(auction_id, seller, 1_000_000.0, MOBILE)
    assert sink.messages == []


@pytest.mark.parametrize("window", ["upcoming", "ended", "inactive"])
def test_bids_outside_live_window_are_rejected(service, make_user, make_auction, load_auction, window) -> None:
    seller, bidder = make_user(), make_user()
    now = utcnow()
    hour = timedelta(hours=1)
    if window == "upcoming":
        auction_id = make_auction(seller, start=now + hour, end=now + 2 * hour)
    elif window == "ended":
        auction_id = make_auction(seller, start=now - 2 * hour, end=now - hour)
    else:
        auction_id = make_auction(seller, is_active=False)

    with pytest.raises(AuctionNotLive) as excinfo:
        service.place_bid(auction_id, bidder, 5000.0, MOBILE)

    assert excinfo.value.code == "not_live"
    assert load_auction(auction_id).bids == ()


def test_unknown_auction(service, make_user) -> None:
    with pytest.raises(AuctionNotFound):
        service.place_bid(404, make_user(), 1000.0, MOBILE)


@pytest.mark.parametrize(
    "amount, mobile, field",
    [(0.0, MOBILE, "amount"), (-5.0, MOBILE, "amount"), (1000.0, "12ab", "mobile_number")],
)
def test_input_validation(service, make_user, make_auction, amount, mobile, field) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller)

    with pytest.raises(ValidationError) as excinfo:
        service.place_bid(auction_id, bidder, amount, mobile)

    assert excinfo.value.errors[0]["field"] == field


def test_notification_failure_does_not_undo_bid(connection_factory, make_user, make_auction, load_auction) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller)
    service = BiddingService(connection_factory, notifier=FailingSink())

    receipt = service.place_bid(auction_id, bidder, 1000.0, MOBILE)

    assert receipt.bid_count == 1
    assert load_auction(auction_id).current_bid == 1000.0
    failures = get_registry().counter(NOTIFICATIONS).get({"kind": "bid", "outcome": "failed"})
    assert failures == 1


def test_default_sink_stores_notification_for_seller(connection_factory, make_user, make_auction) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller, title="Sahiwal cow")

    BiddingService(connection_factory).place_bid(auction_id, bidder, 1000.0, MOBILE)

    notes = NotificationService(connection_factory).list_notifications(seller)
    assert len(notes) == 1
    assert notes[0].title == "New Bid Placed"
    assert "Sahiwal cow" in notes[0].body
    assert notes[0].payload["auction_id"] == auction_id


def test_version_conflict_is_retried_against_fresh_state(
    connection_factory, sink, make_user, make_auction, load_auction, monkeypatch
) -> None:
    seller, rival, bidder = make_user(), make_user(), make_user()
    auction_id = make_auction(seller)
    original = AuctionRepository.append_bid
    calls = {"n": 0}

    def racing_append(self, auction, *, expected_version):
        calls["n"] += 1
        if calls["n"] == 1:
            # A rival bid lands between our read and our write.
            fresh = self.get(auction.id)
            rival_state = fresh.with_bid(
                Bid(bidder_id=rival, amount=1000.0, bid_time=utcnow(), mobile_number=MOBILE)
            )
            original(self, rival_state, expected_version=fresh.version)
        return original(self, auction, expected_version=expected_version)

    monkeypatch.setattr(AuctionRepository, "append_bid", racing_append)
    service = BiddingService(connection_factory, notifier=sink)

    with pytest.raises(BidTooLow) as excinfo:
        service.place_bid(auction_id, bidder, 1000.0, MOBILE)

    assert excinfo.value.minimum_acceptable == 1100.0
    stored = load_auction(auction_id)
    assert [b.bidder_id for b in stored.bids] == [rival]


def test_persistent_storage_failure_surfaces_as_unavailable(
    connection_factory, sink, make_user, make_auction, monkeypatch
) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller)
    sleeps: list[float] = []

    def locked(self, auction, *, expected_version):
        raise StorageTransientError("database is locked")

    monkeypatch.setattr(AuctionRepository, "append_bid", locked)
    service = BiddingService(
        connection_factory,
        notifier=sink,
        config=BiddingConfig(max_attempts=3, retry_backoff_seconds=0.5),
        sleep=sleeps.append,
    )

    with pytest.raises(StorageUnavailable) as excinfo:
        service.place_bid(auction_id, bidder, 1000.0, MOBILE)

    assert excinfo.value.status_code == 500
    assert excinfo.value.to_payload() == {"code": "server_error", "message": "Server error"}
    assert sleeps == [0.5, 1.0]
    assert sink.messages == []


def test_exhausted_conflicts_surface_as_unavailable(
    connection_factory, sink, make_user, make_auction, monkeypatch
) -> None:
    seller, bidder = make_user(), make_user()
    auction_id = make_auction(seller)

    def always_conflict(self, auction, *, expected_version):
        raise ConcurrentModificationError("changed")

    monkeypatch.setattr(AuctionRepository, "append_bid", always_conflict)
    service = BiddingService(
        connection_factory, notifier=sink, config=BiddingConfig(max_attempts=2)
    )

    with pytest.raises(StorageUnavailable):
        service.place_bid(auction_id, bidder, 1000.0, MOBILE)


def test_concurrent_equal_bids_admit_exactly_one(db_path, connection_factory, make_user, make_auction, load_auction) -> None:
    seller = make_user()
    bidders = [make_user(), make_user()]
    auction_id = make_auction(seller, starting_bid=1000.0, min_bid_increment=100.0)
    service = BiddingService.from_sqlite_path(str(db_path), notifier=RecordingNotificationSink())
    barrier = threading.Barrier(len(bidders))
    outcomes: list[str] = []
    lock = threading.Lock()

    def submit(bidder_id: int) -> None:
        barrier.wait()
        try:
            service.place_bid(auction_id, bidder_id, 1000.0, MOBILE)
            result = "accepted"
        except BidTooLow:
            result = "too_low"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=submit, args=(b,)) for b in bidders]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["accepted", "too_low"]
    assert load_auction(auction_id).bid_count == 1
    counter = get_registry().counter(BIDS)
    assert counter.get({"outcome": "accepted"}) == 1
    assert counter.get({"outcome": "bid_too_low"}) == 1


def test_list_bids_and_bidder_auctions(service, make_user, make_auction) -> None:
    seller, alice, bob = make_user(), make_user(), make_user()
    auction_id = make_auction(seller)
    make_auction(seller, title="Other auction")
    service.place_bid(auction_id, alice, 1000.0, MOBILE)
    service.place_bid(auction_id, bob, 1200.0, "+91 98765 43210")

    bids = service.list_bids(auction_id)
    assert [(b.bidder_id, b.amount) for b in bids] == [(alice, 1000.0), (bob, 1200.0)]
    assert bids[1].mobile_number == "+919876543210"
    assert [b.bidder_name for b in bids] == ["Farmer 2", "Farmer 3"]

    mine = service.list_bidder_auctions(alice)
    assert [a.id for a in mine] == [auction_id]
    assert mine[0].is_live is True
    assert mine[0].minimum_acceptable_bid == 1300.0
    assert mine[0].seller_name == "Farmer 1"
