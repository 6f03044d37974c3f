"""End-of-auction settlement.

Once an auction's window has closed, the highest bidder becomes the winner
and the seller is told how it went. Settlement runs as an explicit sweep
(``farmbid settle`` or ``POST /admin/settle``) and is idempotent: the
``settled_at`` stamp guards against settling an auction twice.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from farmbid.domain.models import NotificationMessage
from farmbid.infrastructure.db import utcnow
from farmbid.infrastructure.db.repositories import AuctionRepository
from farmbid.infrastructure.observability import record_settlement, trace_span
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import SettlementResultDTO
from farmbid.services.notifications import (
    NotificationSink,
    SqliteNotificationSink,
    build_auction_end_notification,
    emit,
)


class SettlementService(BaseService):
    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        notifier: NotificationSink | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(connection_factory)
        self._notifier = (
            notifier if notifier is not None else SqliteNotificationSink(connection_factory)
        )
        self._clock = clock

    def settle_ended(self, now: datetime | None = None) -> list[SettlementResultDTO]:
        """Settle every auction whose window closed before ``now``."""
        now = now or self._clock()

        def _settle(conn) -> list[tuple[SettlementResultDTO, NotificationMessage]]:
            repo = AuctionRepository(conn)
            settled = []
            for auction in repo.list_unsettled_ended(now):
                winning = auction.highest_bid
                winner_id = winning.bidder_id if winning else None
                if not repo.mark_settled(
                    auction.id,
                    winner_id=winner_id,
                    is_sold=winning is not None,
                    settled_at=now,
                ):
                    # Another sweep got there first.
                    continue
                result = SettlementResultDTO(
                    auction_id=auction.id,
                    is_sold=winning is not None,
                    winner_id=winner_id,
                    winning_bid=winning.amount if winning else None,
                )
                settled.append((result, build_auction_end_notification(auction)))
            return settled

        with trace_span("settle_ended"):
            settled = self._with_connection(_settle)

        for result, message in settled:
            record_settlement("sold" if result.is_sold else "unsold")
            self._logger.info(
                "Settled auction %s (sold=%s, winner=%s)",
                result.auction_id,
                result.is_sold,
                result.winner_id,
            )
            emit(self._notifier, message)
        return [result for result, _ in settled]
