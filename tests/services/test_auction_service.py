from __future__ import annotations

import sqlite3
from datetime import timedelta

import pytest

from farmbid.domain.errors import (
    AuctionNotFound,
    AuctionWindowViolation,
    NotOwnerError,
    UserNotFound,
    ValidationError,
)
from farmbid.domain.lifecycle import AuctionQuery, StatusFilter
from farmbid.infrastructure.db import utcnow
from farmbid.infrastructure.db.repositories import AuctionRepository
from farmbid.infrastructure.persistence import ImageUpload, LocalMediaStore
from farmbid.services.auctions import AuctionService

PNG = ImageUpload("cow.png", b"\x89PNG fake image bytes", "image/png")


@pytest.fixture
def media_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def service(connection_factory, media_dir) -> AuctionService:
    return AuctionService(connection_factory, media_store=LocalMediaStore(media_dir))


def _payload(**overrides):
    now = utcnow()
    data = {
        "title": "Murrah buffalo",
        "description": "Four year old Murrah buffalo, 12 litres a day.",
        "livestock_type": "Buffalo",
        "breed": "Murrah",
        "age": 48,
        "weight": 520,
        "starting_bid": 45000,
        "start_date": now + timedelta(hours=1),
        "end_date": now + timedelta(days=2),
        "location_city": "Karnal",
        "location_state": "Haryana",
    }
    data.update(overrides)
    return data


def test_create_auction_stores_images_and_mirrors_starting_bid(service, make_user, media_dir) -> None:
    seller = make_user()

    created = service.create_auction(seller, _payload(), [PNG, PNG])

    assert created.id is not None
    assert created.phase == "upcoming"
    assert created.is_live is False
    assert created.current_bid == 45000.0
    assert created.min_bid_increment == 100.0
    assert created.bids == []
    assert len(created.images) == 2
    for name in created.images:
        assert name.endswith(".png")
        assert (media_dir / name).read_bytes() == PNG.content


def test_create_auction_requires_future_start(service, make_user) -> None:
    seller = make_user()
    now = utcnow()

    with pytest.raises(ValidationError) as excinfo:
        service.create_auction(
            seller,
            _payload(start_date=now - timedelta(minutes=5), end_date=now + timedelta(hours=1)),
            [PNG],
        )

    assert excinfo.value.errors == [
        {"field": "start_date", "message": "Start date must be in the future"}
    ]


def test_create_auction_rejects_inverted_window(service, make_user) -> None:
    now = utcnow()
    with pytest.raises(ValidationError):
        service.create_auction(
            make_user(),
            _payload(start_date=now + timedelta(days=2), end_date=now + timedelta(days=1)),
            [PNG],
        )


@pytest.mark.parametrize(
    "images, message",
    [([], "At least one image is required"), ([PNG] * 6, "Maximum 5 images allowed")],
)
def test_create_auction_image_count(service, make_user, images, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        service.create_auction(make_user(), _payload(), images)
    assert excinfo.value.message == message


def test_create_auction_rejects_non_image_upload(service, make_user) -> None:
    with pytest.raises(ValidationError) as excinfo:
        service.create_auction(
            make_user(), _payload(), [ImageUpload("notes.txt", b"hello", "text/plain")]
        )
    assert excinfo.value.errors[0]["field"] == "images"


def test_create_auction_field_errors(service, make_user) -> None:
    with pytest.raises(ValidationError) as excinfo:
        service.create_auction(make_user(), _payload(title="Cow", starting_bid=-1), [PNG])

    fields = {error["field"] for error in excinfo.value.errors}
    assert fields == {"title", "starting_bid"}


def test_create_auction_unknown_seller(service) -> None:
    with pytest.raises(UserNotFound):
        service.create_auction(999, _payload(), [PNG])


def test_rejected_upload_stores_nothing(service, make_user, media_dir) -> None:
    notes = ImageUpload("notes.txt", b"hello", "text/plain")

    with pytest.raises(ValidationError):
        service.create_auction(make_user(), _payload(), [PNG, notes])

    assert not media_dir.exists() or list(media_dir.iterdir()) == []


def test_failed_insert_removes_stored_images(service, make_user, media_dir, monkeypatch) -> None:
    seller = make_user()

    def fail_create(self, auction):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(AuctionRepository, "create", fail_create)

    with pytest.raises(sqlite3.OperationalError):
        service.create_auction(seller, _payload(), [PNG, PNG])

    assert list(media_dir.iterdir()) == []


def test_auction_views_name_the_seller(service, make_user, make_auction) -> None:
    seller = make_user("Ravi")
    auction_id = make_auction(seller)

    detail = service.get_auction(auction_id)
    listed = service.list_auctions(AuctionQuery())

    assert detail.seller_name == "Ravi 1"
    assert detail.winner_name is None
    assert detail.is_settled is False
    assert [a.seller_name for a in listed] == ["Ravi 1"]


def test_get_auction_counts_views(service, make_user, make_auction) -> None:
    auction_id = make_auction(make_user())

    service.get_auction(auction_id)
    detail = service.get_auction(auction_id)
    assert detail.views == 2
    assert service.get_auction(auction_id, count_view=False).views == 2

    with pytest.raises(AuctionNotFound):
        service.get_auction(12345)


def test_update_before_start(service, make_user, make_auction) -> None:
    seller = make_user()
    now = utcnow()
    auction_id = make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=5))

    updated = service.update_auction(
        auction_id, seller, {"title": "Jersey heifer, 2nd calving", "starting_bid": 1500}
    )

    assert updated.title == "Jersey heifer, 2nd calving"
    assert updated.starting_bid == 1500.0
    assert updated.current_bid == 1500.0
    assert updated.minimum_acceptable_bid == 1500.0


def test_update_rejects_bad_window(service, make_user, make_auction) -> None:
    seller = make_user()
    now = utcnow()
    auction_id = make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=5))

    with pytest.raises(ValidationError) as excinfo:
        service.update_auction(auction_id, seller, {"end_date": now + timedelta(minutes=30)})
    assert excinfo.value.errors[0]["field"] == "end_date"

    with pytest.raises(ValidationError) as excinfo:
        service.update_auction(auction_id, seller, {"start_date": now - timedelta(minutes=1)})
    assert excinfo.value.errors[0]["field"] == "start_date"


def test_only_the_seller_may_change_an_auction(service, make_user, make_auction) -> None:
    seller, stranger = make_user(), make_user()
    now = utcnow()
    auction_id = make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=5))

    with pytest.raises(NotOwnerError):
        service.update_auction(auction_id, stranger, {"breed": "Sahiwal"})
    with pytest.raises(NotOwnerError):
        service.delete_auction(auction_id, stranger)


def test_started_auction_is_frozen(service, make_user, make_auction, load_auction) -> None:
    seller, stranger = make_user(), make_user()
    auction_id = make_auction(seller)

    with pytest.raises(AuctionWindowViolation) as excinfo:
        service.update_auction(auction_id, seller, {"breed": "Sahiwal"})
    assert excinfo.value.message == "Cannot update auction that has already started"

    with pytest.raises(AuctionWindowViolation):
        service.delete_auction(auction_id, seller)
    with pytest.raises(AuctionWindowViolation):
        service.update_auction(auction_id, stranger, {"breed": "Sahiwal"})
    with pytest.raises(AuctionWindowViolation):
        service.delete_auction(auction_id, stranger)

    assert load_auction(auction_id).breed == "Jersey"


def test_delete_before_start(service, make_user, make_auction) -> None:
    seller = make_user()
    now = utcnow()
    auction_id = make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=5))

    service.delete_auction(auction_id, seller)

    with pytest.raises(AuctionNotFound):
        service.get_auction(auction_id)


def test_list_auctions_filters_by_phase_and_clamps_limit(service, make_user, make_auction) -> None:
    seller = make_user()
    now = utcnow()
    live = make_auction(seller)
    make_auction(seller, start=now + timedelta(hours=1), end=now + timedelta(hours=2))

    listed = service.list_auctions(AuctionQuery(status=StatusFilter.LIVE, limit=10_000))
    assert [a.id for a in listed] == [live]
    assert listed[0].phase == "live"

    assert len(service.list_auctions(AuctionQuery(status=StatusFilter.ALL, limit=0))) == 1


def test_list_seller_auctions(service, make_user, make_auction) -> None:
    seller, other = make_user(), make_user()
    first = make_auction(seller)
    second = make_auction(seller)
    make_auction(other)

    assert {a.id for a in service.list_seller_auctions(seller)} == {first, second}
