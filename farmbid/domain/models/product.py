"""Product domain model for fixed-price listings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum

from farmbid.domain.errors import InsufficientStock, NotAvailable

from .auction import Location


class ProductCategory(str, Enum):
    GRAINS = "Grains"
    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"
    DAIRY = "Dairy"
    POULTRY = "Poultry"
    PROCESSED = "Processed"
    ORGANIC = "Organic"
    OTHER = "Other"


class ProductUnit(str, Enum):
    KG = "kg"
    POUND = "pound"
    DOZEN = "dozen"
    PIECE = "piece"
    LITRE = "litre"
    GALLON = "gallon"
    BAG = "bag"


@dataclass
class Product:
    """A seller-owned listing sold by quantity at a fixed price.

    Stock never goes negative; a listing flips to unavailable when its
    quantity reaches zero.
    """

    seller_id: int
    name: str
    description: str
    category: ProductCategory
    price: float
    quantity: int
    unit: ProductUnit
    id: int | None = None
    images: list[str] = field(default_factory=list)
    location: Location = field(default_factory=Location)
    is_organic: bool = False
    is_available: bool = True
    views: int = 0

    def check_purchase(self, quantity: int) -> None:
        """Raise if ``quantity`` cannot be bought from the current stock."""
        if not self.is_available:
            raise NotAvailable(self.id)
        if quantity > self.quantity:
            raise InsufficientStock(quantity, self.quantity, self.unit.value)

    def after_purchase(self, quantity: int) -> tuple[int, bool]:
        """Return the (quantity, is_available) pair left after a purchase."""
        self.check_purchase(quantity)
        remaining = self.quantity - quantity
        return remaining, remaining > 0

    def total_price(self, quantity: int) -> float:
        return self.price * quantity

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        images = data.get("images") or []
        if isinstance(images, str):
            images = json.loads(images)
        return cls(
            id=data.get("id"),
            seller_id=int(data["seller_id"]),
            name=data.get("name", ""),
            description=data.get("description", ""),
            category=ProductCategory(data["category"]),
            price=float(data["price"]),
            quantity=int(data["quantity"]),
            unit=ProductUnit(data["unit"]),
            images=list(images),
            location=Location(
                city=data.get("location_city"), state=data.get("location_state")
            ),
            is_organic=bool(data.get("is_organic", False)),
            is_available=bool(data.get("is_available", True)),
            views=int(data.get("views") or 0),
        )


__all__ = ["Product", "ProductCategory", "ProductUnit"]
