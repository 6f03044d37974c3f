from __future__ import annotations

import pytest

from farmbid.domain.errors import (
    InsufficientStock,
    NotAvailable,
    NotOwnerError,
    ProductNotFound,
    UserNotFound,
    ValidationError,
)
from farmbid.domain.models import NotificationKind, ProductCategory
from farmbid.infrastructure.observability import get_registry
from farmbid.infrastructure.observability.metrics import PURCHASES
from farmbid.services.notifications import RecordingNotificationSink
from farmbid.services.products import ProductService


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def service(connection_factory, sink) -> ProductService:
    return ProductService(connection_factory, notifier=sink)


def test_purchase_decrements_stock_and_notifies_seller(service, sink, make_user, make_product) -> None:
    seller, buyer = make_user("Ravi"), make_user("Asha")
    product_id = make_product(seller, quantity=10, price=40.0)

    result = service.purchase(product_id, buyer, 4)

    assert result.remaining_quantity == 6
    assert result.is_available is True
    assert result.total_price == 160.0
    assert result.seller_name == "Ravi 1"
    assert result.seller_phone == "9876543210"
    [message] = sink.messages
    assert message.kind is NotificationKind.PURCHASE
    assert message.recipient_id == seller
    assert message.title == "New Purchase"
    assert message.body == "Asha 2 purchased 4 kg of Basmati rice"


def test_oversell_is_rejected_without_touching_stock(service, sink, make_user, make_product) -> None:
    seller, buyer = make_user(), make_user()
    product_id = make_product(seller, quantity=3)

    with pytest.raises(InsufficientStock) as excinfo:
        service.purchase(product_id, buyer, 4)

    assert excinfo.value.to_payload()["available"] == 3
    assert excinfo.value.message == "Only 3 kg available. Requested: 4 kg"
    assert service.get_product(product_id).quantity == 3
    assert sink.messages == []
    assert get_registry().counter(PURCHASES).get({"outcome": "insufficient_stock"}) == 1


def test_selling_out_marks_product_unavailable(service, make_user, make_product) -> None:
    seller, buyer = make_user(), make_user()
    product_id = make_product(seller, quantity=2)

    result = service.purchase(product_id, buyer, 2)
    assert result.remaining_quantity == 0
    assert result.is_available is False

    with pytest.raises(NotAvailable):
        service.purchase(product_id, buyer, 1)

    assert service.list_products() == []
    assert [p.id for p in service.list_products(available_only=False)] == [product_id]


def test_purchase_input_checks(service, make_user, make_product) -> None:
    seller, buyer = make_user(), make_user()
    product_id = make_product(seller)

    with pytest.raises(ValidationError):
        service.purchase(product_id, buyer, 0)
    with pytest.raises(ProductNotFound):
        service.purchase(999, buyer, 1)
    with pytest.raises(UserNotFound):
        service.purchase(product_id, 999, 1)


def test_create_and_search_products(service, make_user) -> None:
    seller = make_user()
    created = service.create_product(
        seller,
        {
            "name": "Alphonso mangoes",
            "description": "Ratnagiri Alphonso, hand picked",
            "category": "Fruits",
            "price": 600,
            "quantity": 20,
            "unit": "dozen",
            "is_organic": True,
        },
    )

    assert created.is_available is True
    assert created.unit == "dozen"
    found = service.list_products(category=ProductCategory.FRUITS, search="alphonso")
    assert [p.id for p in found] == [created.id]
    assert service.list_products(max_price=100) == []


def test_product_search_wildcards_match_literally(service, make_user, make_product) -> None:
    make_product(make_user())

    assert service.list_products(search="%") == []
    assert [p.name for p in service.list_products(search="rice")] == ["Basmati rice"]


def test_create_product_validation(service, make_user) -> None:
    with pytest.raises(ValidationError) as excinfo:
        service.create_product(
            make_user(),
            {"name": "Milk", "category": "Dairy", "price": -2, "quantity": 5, "unit": "litre"},
        )
    assert excinfo.value.errors[0]["field"] == "price"


def test_quantity_update_is_owner_only(service, make_user, make_product) -> None:
    seller, stranger = make_user(), make_user()
    product_id = make_product(seller, quantity=0)

    with pytest.raises(NotOwnerError):
        service.update_quantity(product_id, stranger, 5)

    restocked = service.update_quantity(product_id, seller, 5)
    assert restocked.quantity == 5
    assert restocked.is_available is True

    emptied = service.update_quantity(product_id, seller, 0)
    assert emptied.is_available is False


def test_delete_product(service, make_user, make_product) -> None:
    seller, stranger = make_user(), make_user()
    product_id = make_product(seller)

    with pytest.raises(NotOwnerError):
        service.delete_product(product_id, stranger)

    service.delete_product(product_id, seller)
    with pytest.raises(ProductNotFound):
        service.get_product(product_id)
