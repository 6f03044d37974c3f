"""Seller notifications emitted after bids, purchases and settlements.

Notifications are best-effort: they are built from already-committed state
and handed to a ``NotificationSink``. A failing sink never undoes the bid or
purchase that triggered it.
"""

from __future__ import annotations

from typing import Protocol

from farmbid.domain.errors import NotificationNotFound
from farmbid.domain.models import (
    Auction,
    Bid,
    NotificationKind,
    NotificationMessage,
    Product,
    User,
)
from farmbid.infrastructure.db.repositories import NotificationRepository
from farmbid.infrastructure.observability import (
    get_logger,
    log_exception,
    record_notification,
)
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import NotificationDTO

logger = get_logger(__name__)


class NotificationSink(Protocol):
    def enqueue(self, message: NotificationMessage) -> None:
        ...


def build_bid_notification(auction: Auction, bid: Bid) -> NotificationMessage:
    return NotificationMessage(
        recipient_id=auction.seller_id,
        kind=NotificationKind.BID,
        title="New Bid Placed",
        body=f'A new bid of ₹{bid.amount:.2f} has been placed on your auction "{auction.title}"',
        payload={
            "auction_id": auction.id,
            "bidder_id": bid.bidder_id,
            "amount": bid.amount,
            "mobile_number": bid.mobile_number,
        },
    )


def build_purchase_notification(
    product: Product, buyer: User, quantity: int
) -> NotificationMessage:
    return NotificationMessage(
        recipient_id=product.seller_id,
        kind=NotificationKind.PURCHASE,
        title="New Purchase",
        body=f"{buyer.name} purchased {quantity} {product.unit.value} of {product.name}",
        payload={
            "product_id": product.id,
            "buyer_id": buyer.id,
            "buyer_phone": buyer.phone,
            "quantity": quantity,
            "amount": product.total_price(quantity),
        },
    )


def build_auction_end_notification(auction: Auction) -> NotificationMessage:
    winning = auction.highest_bid
    if winning is None:
        body = f'Your auction "{auction.title}" ended without bids.'
    else:
        body = (
            f'Your auction "{auction.title}" ended. Winning bid: '
            f"₹{winning.amount:,.2f} (contact {winning.mobile_number})."
        )
    return NotificationMessage(
        recipient_id=auction.seller_id,
        kind=NotificationKind.AUCTION_END,
        title="Auction Ended",
        body=body,
        payload={
            "auction_id": auction.id,
            "winner_id": winning.bidder_id if winning else None,
            "amount": winning.amount if winning else None,
        },
    )


def emit(sink: NotificationSink | None, message: NotificationMessage) -> bool:
    """Hand ``message`` to ``sink``; failures are logged and counted, not raised."""
    if sink is None:
        return False
    try:
        sink.enqueue(message)
    except Exception as exc:
        record_notification(message.kind.value, "failed")
        log_exception(
            logger,
            "Failed to enqueue notification",
            exc,
            recipient_id=message.recipient_id,
            kind=message.kind.value,
        )
        return False
    record_notification(message.kind.value, "enqueued")
    return True


class SqliteNotificationSink:
    """Writes notifications to the ``notifications`` outbox table."""

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    def enqueue(self, message: NotificationMessage) -> None:
        with self._connection_factory() as conn:
            NotificationRepository(conn).add(message)


class RecordingNotificationSink:
    """Keeps messages in memory; handy for tests and dry runs."""

    def __init__(self) -> None:
        self.messages: list[NotificationMessage] = []

    def enqueue(self, message: NotificationMessage) -> None:
        self.messages.append(message)


class NotificationService(BaseService):
    """Reads and acknowledges a user's stored notifications."""

    def list_notifications(
        self, recipient_id: int, *, unread_only: bool = False, limit: int = 50
    ) -> list[NotificationDTO]:
        def _list(conn) -> list[NotificationDTO]:
            rows = NotificationRepository(conn).list_for_recipient(
                recipient_id, unread_only=unread_only, limit=limit
            )
            return [NotificationDTO(**row) for row in rows]

        return self._with_connection(_list)

    def mark_read(self, notification_id: int, recipient_id: int) -> None:
        updated = self._with_connection(
            lambda conn: NotificationRepository(conn).mark_read(
                notification_id, recipient_id
            )
        )
        if not updated:
            raise NotificationNotFound(notification_id)

__all__ = [
    "NotificationService",
    "NotificationSink",
    "RecordingNotificationSink",
    "SqliteNotificationSink",
    "build_auction_end_notification",
    "build_bid_notification",
    "build_purchase_notification",
    "emit",
]
