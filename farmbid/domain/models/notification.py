"""Messages handed to the notification collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    PURCHASE = "purchase"
    BID = "bid"
    AUCTION_END = "auction_end"
    SYSTEM = "system"


@dataclass(frozen=True)
class NotificationMessage:
    recipient_id: int
    kind: NotificationKind
    title: str
    body: str
    payload: dict[str, Any] = field(default_factory=dict)


__all__ = ["NotificationKind", "NotificationMessage"]
