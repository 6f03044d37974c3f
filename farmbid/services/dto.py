"""
Centralized DTOs and input/output models for FarmBid services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from farmbid.domain.contact import normalize_mobile_number
from farmbid.domain.errors import ValidationError
from farmbid.domain.lifecycle import is_live, phase
from farmbid.domain.models import (
    DEFAULT_MIN_BID_INCREMENT,
    Auction,
    Bid,
    HealthStatus,
    LivestockType,
    Product,
    ProductCategory,
    ProductUnit,
    User,
)
from farmbid.infrastructure.db.connection import to_iso

M = TypeVar("M", bound=BaseModel)


def parse_model(model: type[M], data: Any) -> M:
    """Validate ``data`` into ``model``, raising the domain ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "body",
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        raise ValidationError(errors, message=errors[0]["message"]) from exc


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _name_of(users: Mapping[int, User] | None, user_id: int | None) -> str | None:
    user = (users or {}).get(user_id) if user_id is not None else None
    return user.name if user else None


# --- User DTOs ---
class UserCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    farm_name: str | None = None

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str | None) -> str | None:
        return normalize_mobile_number(value) if value else None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str | None) -> str | None:
        return value.lower() if value else None


class UserDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    farm_name: str | None = None

    @classmethod
    def from_domain(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            email=user.email,
            farm_name=user.farm_name,
        )


class RegisteredUserDTO(BaseModel):
    """A freshly registered user together with their bearer token."""

    model_config = ConfigDict(extra="forbid")

    user: UserDTO
    token: str


# --- Auction DTOs ---
class AuctionCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    livestock_type: LivestockType
    breed: str = Field(min_length=1, max_length=50)
    age: int = Field(ge=0)
    weight: float = Field(ge=0)
    health_status: HealthStatus = HealthStatus.GOOD
    starting_bid: float = Field(ge=0)
    min_bid_increment: float = Field(default=DEFAULT_MIN_BID_INCREMENT, gt=0)
    start_date: datetime
    end_date: datetime
    location_city: str | None = None
    location_state: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_window(self) -> "AuctionCreateDTO":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class AuctionUpdateDTO(BaseModel):
    """Partial update; only fields that were sent are applied."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=5, max_length=100)
    description: str | None = Field(default=None, min_length=20, max_length=2000)
    livestock_type: LivestockType | None = None
    breed: str | None = Field(default=None, min_length=1, max_length=50)
    age: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    health_status: HealthStatus | None = None
    starting_bid: float | None = Field(default=None, ge=0)
    min_bid_increment: float | None = Field(default=None, gt=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    location_city: str | None = None
    location_state: str | None = None
    is_active: bool | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BidDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bidder_id: int
    bidder_name: str | None = None
    amount: float
    bid_time: str
    mobile_number: str

    @classmethod
    def from_domain(cls, bid: Bid, users: Mapping[int, User] | None = None) -> "BidDTO":
        return cls(
            bidder_id=bid.bidder_id,
            bidder_name=_name_of(users, bid.bidder_id),
            amount=bid.amount,
            bid_time=to_iso(bid.bid_time),
            mobile_number=bid.mobile_number,
        )


class BidCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    amount: float = Field(gt=0)
    mobile_number: str

    @field_validator("mobile_number")
    @classmethod
    def _check_mobile(cls, value: str) -> str:
        return normalize_mobile_number(value)


class BidReceiptDTO(BaseModel):
    """Outcome of an admitted bid."""

    model_config = ConfigDict(extra="forbid")

    auction_id: int
    bid: BidDTO
    current_bid: float
    minimum_acceptable_bid: float
    bid_count: int


class AuctionViewDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    seller_id: int
    seller_name: str | None = None
    seller_farm_name: str | None = None
    title: str
    description: str
    livestock_type: str
    breed: str
    age: int
    weight: float
    health_status: str
    images: list[str] = Field(default_factory=list)
    starting_bid: float
    current_bid: float
    min_bid_increment: float
    minimum_acceptable_bid: float
    start_date: str
    end_date: str
    location_city: str | None = None
    location_state: str | None = None
    is_active: bool
    is_sold: bool
    winner_id: int | None = None
    winner_name: str | None = None
    is_settled: bool = False
    views: int
    bid_count: int
    phase: str
    is_live: bool

    @classmethod
    def _fields_from_domain(
        cls, auction: Auction, now: datetime, users: Mapping[int, User] | None
    ) -> dict[str, Any]:
        seller = (users or {}).get(auction.seller_id)
        return {
            "id": auction.id,
            "seller_id": auction.seller_id,
            "seller_name": seller.name if seller else None,
            "seller_farm_name": seller.farm_name if seller else None,
            "title": auction.title,
            "description": auction.description,
            "livestock_type": auction.livestock_type.value,
            "breed": auction.breed,
            "age": auction.age,
            "weight": auction.weight,
            "health_status": auction.health_status.value,
            "images": list(auction.images),
            "starting_bid": auction.starting_bid,
            "current_bid": auction.current_bid,
            "min_bid_increment": auction.min_bid_increment,
            "minimum_acceptable_bid": auction.minimum_acceptable_bid(),
            "start_date": to_iso(auction.start_date),
            "end_date": to_iso(auction.end_date),
            "location_city": auction.location.city,
            "location_state": auction.location.state,
            "is_active": auction.is_active,
            "is_sold": auction.is_sold,
            "winner_id": auction.winner_id,
            "winner_name": _name_of(users, auction.winner_id),
            "is_settled": auction.is_settled,
            "views": auction.views,
            "bid_count": auction.bid_count,
            "phase": phase(auction, now).value,
            "is_live": is_live(auction, now),
        }

    @classmethod
    def from_domain(
        cls, auction: Auction, now: datetime, users: Mapping[int, User] | None = None
    ) -> "AuctionViewDTO":
        """Build the view; ``users`` resolves participant names when given."""
        return cls(**cls._fields_from_domain(auction, now, users))


class AuctionDetailDTO(AuctionViewDTO):
    bids: list[BidDTO] = Field(default_factory=list)

    @classmethod
    def from_domain(
        cls, auction: Auction, now: datetime, users: Mapping[int, User] | None = None
    ) -> "AuctionDetailDTO":
        return cls(
            **cls._fields_from_domain(auction, now, users),
            bids=[BidDTO.from_domain(bid, users) for bid in auction.bids],
        )


# --- Product DTOs ---
class ProductCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=2000)
    category: ProductCategory
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    unit: ProductUnit
    images: list[str] = Field(default_factory=list, max_length=5)
    location_city: str | None = None
    location_state: str | None = None
    is_organic: bool = False


class ProductViewDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    seller_id: int
    name: str
    description: str
    category: str
    price: float
    quantity: int
    unit: str
    images: list[str] = Field(default_factory=list)
    location_city: str | None = None
    location_state: str | None = None
    is_organic: bool
    is_available: bool
    views: int

    @classmethod
    def from_domain(cls, product: Product) -> "ProductViewDTO":
        return cls(
            id=product.id,
            seller_id=product.seller_id,
            name=product.name,
            description=product.description,
            category=product.category.value,
            price=product.price,
            quantity=product.quantity,
            unit=product.unit.value,
            images=list(product.images),
            location_city=product.location.city,
            location_state=product.location.state,
            is_organic=product.is_organic,
            is_available=product.is_available,
            views=product.views,
        )


class PurchaseRequestDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class QuantityUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(ge=0)


class PurchaseResultDTO(BaseModel):
    """Confirmation returned to the buyer; payment is arranged by phone."""

    model_config = ConfigDict(extra="forbid")

    product_id: int
    quantity: int
    unit: str
    total_price: float
    remaining_quantity: int
    is_available: bool
    seller_name: str | None = None
    seller_phone: str | None = None


# --- Notification DTOs ---
class NotificationDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    recipient_id: int
    kind: str
    title: str
    body: str
    payload: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: str


# --- Settlement & reporting DTOs ---
class SettlementResultDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    auction_id: int
    is_sold: bool
    winner_id: int | None = None
    winning_bid: float | None = None


class PlatformStatsDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sellers: int
    available_products: int
    live_auctions: int
    total_bids: int
