"""Error taxonomy shared by the domain, services and interfaces.

Every error carries a stable machine-readable ``code`` and the HTTP status it
maps to, plus any structured detail a client needs to re-prompt the user
(e.g. the minimum acceptable bid).
"""

from __future__ import annotations

from typing import Any


class FarmBidError(Exception):
    """Base class for all caller-facing FarmBid errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.detail}


# --- 404 ---------------------------------------------------------------------


class NotFoundError(FarmBidError):
    code = "not_found"
    status_code = 404


class AuctionNotFound(NotFoundError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(f"Auction {auction_id} not found", auction_id=auction_id)


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found", product_id=product_id)


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found", user_id=user_id)


class NotificationNotFound(NotFoundError):
    def __init__(self, notification_id: int) -> None:
        super().__init__(
            f"Notification {notification_id} not found",
            notification_id=notification_id,
        )


# --- 400 ---------------------------------------------------------------------


class ValidationError(FarmBidError):
    """Malformed or missing input; ``errors`` lists one entry per field."""

    code = "validation_error"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None) -> None:
        super().__init__(message or "Invalid input", errors=errors)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)


class AuctionNotLive(FarmBidError):
    code = "not_live"

    def __init__(self, auction_id: int, phase: str) -> None:
        super().__init__("Auction is not live", auction_id=auction_id, phase=phase)


class SelfBidError(FarmBidError):
    code = "self_bid"

    def __init__(self) -> None:
        super().__init__("You cannot bid on your own auction")


class BidTooLow(FarmBidError):
    code = "bid_too_low"

    def __init__(self, amount: float, minimum_acceptable: float) -> None:
        super().__init__(
            f"Bid must be at least ₹{minimum_acceptable:.2f}",
            amount=amount,
            minimum_acceptable=minimum_acceptable,
        )
        self.minimum_acceptable = minimum_acceptable


class AuctionWindowViolation(FarmBidError):
    code = "window_violation"

    def __init__(self, auction_id: int, action: str) -> None:
        super().__init__(
            f"Cannot {action} auction that has already started",
            auction_id=auction_id,
        )


class NotAvailable(FarmBidError):
    code = "not_available"

    def __init__(self, product_id: int | None) -> None:
        super().__init__(
            "Product is not available for purchase", product_id=product_id
        )


class InsufficientStock(FarmBidError):
    code = "insufficient_stock"

    def __init__(self, requested: int, available: int, unit: str) -> None:
        super().__init__(
            f"Only {available} {unit} available. Requested: {requested} {unit}",
            requested=requested,
            available=available,
        )


# --- 401 / 403 ---------------------------------------------------------------


class Unauthenticated(FarmBidError):
    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Invalid or missing token") -> None:
        super().__init__(message)


class NotOwnerError(FarmBidError):
    code = "forbidden"
    status_code = 403

    def __init__(self, resource: str, resource_id: int) -> None:
        super().__init__(f"Not authorized to modify this {resource}")
        self.resource = resource
        self.resource_id = resource_id


class OperationDisabled(FarmBidError):
    code = "disabled"
    status_code = 403

    def __init__(self, message: str) -> None:
        super().__init__(message)


# --- 500 ---------------------------------------------------------------------


class StorageUnavailable(FarmBidError):
    """Persistence kept failing after bounded retries; no detail is leaked."""

    code = "server_error"
    status_code = 500

    def __init__(self) -> None:
        super().__init__("Server error")


__all__ = [
    "AuctionNotFound",
    "AuctionNotLive",
    "AuctionWindowViolation",
    "BidTooLow",
    "FarmBidError",
    "InsufficientStock",
    "NotAvailable",
    "NotFoundError",
    "NotificationNotFound",
    "NotOwnerError",
    "OperationDisabled",
    "ProductNotFound",
    "SelfBidError",
    "StorageUnavailable",
    "Unauthenticated",
    "UserNotFound",
    "ValidationError",
]
