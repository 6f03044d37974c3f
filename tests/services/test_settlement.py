from __future__ import annotations

from datetime import timedelta

from farmbid.domain.models import NotificationKind
from farmbid.infrastructure.db import utcnow
from farmbid.infrastructure.observability import get_registry
from farmbid.infrastructure.observability.metrics import SETTLEMENTS
from farmbid.services.auctions import AuctionService
from farmbid.services.bidding import BiddingService
from farmbid.services.notifications import RecordingNotificationSink
from farmbid.services.reporting import StatsService
from farmbid.services.settlement import SettlementService


def test_sweep_settles_closed_auctions_once(connection_factory, make_user, make_auction, load_auction) -> None:
    seller, alice, bob = make_user(), make_user(), make_user()
    now = utcnow()
    with_bids = make_auction(seller, starting_bid=1000.0)
    without_bids = make_auction(seller)
    still_running = make_auction(seller, end=now + timedelta(days=3))

    bidding = BiddingService(connection_factory, notifier=RecordingNotificationSink())
    bidding.place_bid(with_bids, alice, 1000.0, "9876543210")
    bidding.place_bid(with_bids, bob, 1500.0, "9123456789")

    sink = RecordingNotificationSink()
    service = SettlementService(connection_factory, notifier=sink)
    later = now + timedelta(hours=2)

    results = {r.auction_id: r for r in service.settle_ended(later)}

    assert set(results) == {with_bids, without_bids}
    assert results[with_bids].is_sold is True
    assert results[with_bids].winner_id == bob
    assert results[with_bids].winning_bid == 1500.0
    assert results[without_bids].is_sold is False
    assert results[without_bids].winner_id is None

    sold = load_auction(with_bids)
    assert sold.is_sold is True
    assert sold.winner_id == bob
    assert sold.is_settled
    assert not load_auction(still_running).is_settled

    detail = AuctionService(connection_factory).get_auction(with_bids, count_view=False)
    assert detail.is_settled is True
    assert detail.winner_name == "Farmer 3"
    assert detail.bids[-1].bidder_name == "Farmer 3"

    assert [m.kind for m in sink.messages] == [NotificationKind.AUCTION_END] * 2
    assert all(m.recipient_id == seller for m in sink.messages)
    assert any("9123456789" in m.body for m in sink.messages)

    assert service.settle_ended(later) == []
    counter = get_registry().counter(SETTLEMENTS)
    assert counter.get({"outcome": "sold"}) == 1
    assert counter.get({"outcome": "unsold"}) == 1


def test_nothing_to_settle_while_live(connection_factory, make_user, make_auction) -> None:
    make_auction(make_user())

    assert SettlementService(connection_factory).settle_ended() == []


def test_platform_stats(connection_factory, make_user, make_auction, make_product) -> None:
    seller, farmer, bidder = make_user(), make_user(), make_user()
    now = utcnow()
    live = make_auction(seller)
    make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=2))
    make_product(farmer, quantity=5)
    make_product(farmer, quantity=0)
    BiddingService(connection_factory, notifier=RecordingNotificationSink()).place_bid(
        live, bidder, 1000.0, "9876543210"
    )

    stats = StatsService(connection_factory).platform_stats()

    assert stats.sellers == 2
    assert stats.available_products == 1
    assert stats.live_auctions == 1
    assert stats.total_bids == 1
