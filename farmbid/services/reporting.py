"""Platform-wide counters shown on the landing page."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from farmbid.infrastructure.db import utcnow
from farmbid.infrastructure.db.repositories import (
    AuctionRepository,
    ProductRepository,
    UserRepository,
)
from farmbid.infrastructure.observability import traced
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import PlatformStatsDTO


class StatsService(BaseService):
    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(connection_factory)
        self._clock = clock

    @traced("platform_stats")
    def platform_stats(self, now: datetime | None = None) -> PlatformStatsDTO:
        now = now or self._clock()

        def _stats(conn) -> PlatformStatsDTO:
            auctions = AuctionRepository(conn)
            return PlatformStatsDTO(
                sellers=UserRepository(conn).count_sellers(),
                available_products=ProductRepository(conn).count_available(),
                live_auctions=auctions.count_live(now),
                total_bids=auctions.count_bids(),
            )

        return self._with_connection(_stats)
