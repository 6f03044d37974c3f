from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from farmbid.app.api import app
from farmbid.app.dependencies import (
    get_db_path,
    get_media_store,
    get_settlement_sweep_enabled,
)
from farmbid.infrastructure.db import to_iso, utcnow
from farmbid.infrastructure.persistence import LocalMediaStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR fake image"


@pytest.fixture
def client(db_path, tmp_path):
    app.dependency_overrides[get_db_path] = lambda: db_path
    app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(tmp_path / "uploads")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _register(client: TestClient, name: str, phone: str = "9876543210") -> tuple[int, dict]:
    response = client.post("/users", json={"name": name, "phone": phone})
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "FarmBid API"


def test_register_and_whoami(client):
    user_id, headers = _register(client, "Meena", "+91 98765-43210")

    response = client.get("/me", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "id": user_id,
        "name": "Meena",
        "phone": "+919876543210",
        "email": None,
        "farm_name": None,
    }


def test_missing_and_bad_tokens(client):
    missing = client.get("/me")
    assert missing.status_code == 401
    assert missing.json() == {
        "code": "unauthenticated",
        "message": "Access denied. No token provided.",
    }

    bad = client.get("/me", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid token."


def test_request_validation_is_400(client):
    response = client.post("/users", json={"name": "Meena", "phone": "12"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["errors"][0]["field"] == "phone"


def test_create_auction_over_multipart(client):
    _, headers = _register(client, "Seller")
    now = utcnow()

    response = client.post(
        "/auctions",
        headers=headers,
        data={
            "title": "Gir cow in milk",
            "description": "Third lactation Gir cow giving 14 litres a day.",
            "livestock_type": "Cow",
            "breed": "Gir",
            "age": "60",
            "weight": "410",
            "starting_bid": "55000",
            "start_date": to_iso(now + timedelta(hours=1)),
            "end_date": to_iso(now + timedelta(days=1)),
            "location_city": "",
        },
        files=[("images", ("gir.png", PNG_BYTES, "image/png"))],
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["phase"] == "upcoming"
    assert body["current_bid"] == 55000.0
    assert body["location_city"] is None
    assert len(body["images"]) == 1

    upcoming = client.get("/auctions", params={"status": "upcoming"})
    assert [a["id"] for a in upcoming.json()] == [body["id"]]
    assert client.get("/auctions", params={"status": "live"}).json() == []


def test_create_auction_without_images(client):
    _, headers = _register(client, "Seller")
    now = utcnow()

    response = client.post(
        "/auctions",
        headers=headers,
        data={
            "title": "Gir cow in milk",
            "description": "Third lactation Gir cow giving 14 litres a day.",
            "livestock_type": "Cow",
            "breed": "Gir",
            "age": "60",
            "weight": "410",
            "starting_bid": "55000",
            "start_date": to_iso(now + timedelta(hours=1)),
            "end_date": to_iso(now + timedelta(days=1)),
        },
    )

    assert response.status_code == 400
    assert response.json()["message"] == "At least one image is required"


def test_bidding_flow(client, make_auction):
    seller_id, seller_headers = _register(client, "Seller")
    _, bidder_headers = _register(client, "Bidder", "9123456789")
    auction_id = make_auction(seller_id, starting_bid=1000.0, min_bid_increment=100.0)
    url = f"/auctions/{auction_id}/bids"

    first = client.post(url, headers=bidder_headers, json={"amount": 1000, "mobile_number": "9123456789"})
    assert first.status_code == 201, first.text
    assert first.json()["minimum_acceptable_bid"] == 1100.0

    low = client.post(url, headers=bidder_headers, json={"amount": 1050, "mobile_number": "9123456789"})
    assert low.status_code == 400
    assert low.json()["code"] == "bid_too_low"
    assert low.json()["minimum_acceptable"] == 1100.0

    own = client.post(url, headers=seller_headers, json={"amount": 5000, "mobile_number": "9876543210"})
    assert own.status_code == 400
    assert own.json()["code"] == "self_bid"

    unauthenticated = client.post(url, json={"amount": 5000, "mobile_number": "9123456789"})
    assert unauthenticated.status_code == 401

    malformed = client.post(url, headers=bidder_headers, json={"amount": "lots", "mobile_number": "9123456789"})
    assert malformed.status_code == 400
    assert malformed.json()["code"] == "validation_error"

    history = client.get(url).json()
    assert [b["amount"] for b in history] == [1000.0]
    assert history[0]["bidder_name"] == "Bidder"

    detail = client.get(f"/auctions/{auction_id}").json()
    assert detail["bid_count"] == 1
    assert detail["is_live"] is True
    assert detail["seller_id"] == seller_id
    assert detail["seller_name"] == "Seller"
    assert detail["bids"][0]["bidder_name"] == "Bidder"
    listed = client.get("/auctions", params={"status": "live"}).json()
    assert listed[0]["seller_name"] == "Seller"

    mine = client.get("/me/bids", headers=bidder_headers).json()
    assert [a["id"] for a in mine] == [auction_id]

    notes = client.get("/notifications", headers=seller_headers).json()
    assert [n["title"] for n in notes] == ["New Bid Placed"]
    read = client.post(f"/notifications/{notes[0]['id']}/read", headers=seller_headers)
    assert read.status_code == 204
    assert client.get("/notifications", headers=seller_headers, params={"unread_only": True}).json() == []


def test_auction_detail_names_the_farm(client, make_auction):
    response = client.post("/users", json={"name": "Gurpreet", "farm_name": "Green Acres Dairy"})
    seller_id = response.json()["user"]["id"]
    auction_id = make_auction(seller_id)

    detail = client.get(f"/auctions/{auction_id}").json()

    assert detail["seller_name"] == "Gurpreet"
    assert detail["seller_farm_name"] == "Green Acres Dairy"
    assert detail["winner_name"] is None


def test_bid_on_upcoming_auction(client, make_auction):
    seller_id, _ = _register(client, "Seller")
    _, bidder_headers = _register(client, "Bidder")
    now = utcnow()
    auction_id = make_auction(seller_id, start=now + timedelta(hours=1), end=now + timedelta(hours=2))

    response = client.post(
        f"/auctions/{auction_id}/bids",
        headers=bidder_headers,
        json={"amount": 5000, "mobile_number": "9123456789"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "code": "not_live",
        "message": "Auction is not live",
        "auction_id": auction_id,
        "phase": "upcoming",
    }


def test_auction_owner_checks(client, make_auction):
    seller_id, seller_headers = _register(client, "Seller")
    _, other_headers = _register(client, "Other")
    now = utcnow()
    upcoming = make_auction(seller_id, start=now + timedelta(hours=1), end=now + timedelta(hours=2))
    live = make_auction(seller_id)

    forbidden = client.patch(f"/auctions/{upcoming}", headers=other_headers, json={"breed": "Sahiwal"})
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "forbidden"

    edited = client.patch(f"/auctions/{upcoming}", headers=seller_headers, json={"breed": "Sahiwal"})
    assert edited.status_code == 200
    assert edited.json()["breed"] == "Sahiwal"

    frozen = client.delete(f"/auctions/{live}", headers=seller_headers)
    assert frozen.status_code == 400
    assert frozen.json()["code"] == "window_violation"

    assert client.delete(f"/auctions/{upcoming}", headers=seller_headers).status_code == 204
    assert client.get(f"/auctions/{upcoming}").status_code == 404


def test_product_purchase_flow(client):
    _, seller_headers = _register(client, "Seller")
    _, buyer_headers = _register(client, "Buyer", "9123456789")

    created = client.post(
        "/products",
        headers=seller_headers,
        json={"name": "Desi ghee", "category": "Dairy", "price": 700, "quantity": 3, "unit": "kg"},
    )
    assert created.status_code == 201, created.text
    product_id = created.json()["id"]

    too_many = client.post(f"/products/{product_id}/purchase", headers=buyer_headers, json={"quantity": 5})
    assert too_many.status_code == 400
    assert too_many.json()["code"] == "insufficient_stock"

    bought = client.post(f"/products/{product_id}/purchase", headers=buyer_headers, json={"quantity": 3})
    assert bought.status_code == 200
    assert bought.json()["remaining_quantity"] == 0
    assert bought.json()["seller_phone"] == "9876543210"

    assert client.get("/products").json() == []
    assert client.get(f"/products/{product_id}").json()["is_available"] is False

    stranger = client.patch(f"/products/{product_id}/quantity", headers=buyer_headers, json={"quantity": 9})
    assert stranger.status_code == 403


def test_stats_settle_and_metrics(client, make_auction):
    seller_id, seller_headers = _register(client, "Seller")
    make_auction(seller_id)
    now = utcnow()
    make_auction(seller_id, start=now - timedelta(hours=3), end=now - timedelta(hours=2))

    stats = client.get("/stats").json()
    assert stats == {"sellers": 1, "available_products": 0, "live_auctions": 1, "total_bids": 0}

    app.dependency_overrides[get_settlement_sweep_enabled] = lambda: False
    assert client.post("/admin/settle").status_code == 401
    disabled = client.post("/admin/settle", headers=seller_headers)
    assert disabled.status_code == 403
    assert disabled.json()["code"] == "disabled"

    app.dependency_overrides[get_settlement_sweep_enabled] = lambda: True
    settled = client.post("/admin/settle", headers=seller_headers).json()
    assert len(settled) == 1
    assert settled[0]["is_sold"] is False

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "api_requests_total" in metrics.text
    assert "auction_settlements_total" in metrics.text
