"""MarketApplicationService — read side of the market module.

Lists and details only; markets are written by the prediction service
(aggregates) and the oracle engine (lifecycle), never from here.
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError
from src.pm_market.application.schemas import (
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

ALL_STATUSES = "ALL"


def status_filter(status: str | None) -> str | None:
    """Query value -> SQL filter. None means OPEN; ALL disables the filter."""
    if status is None:
        return MarketStatus.OPEN.value
    if status.upper() == ALL_STATUSES:
        return None
    return MarketStatus(status.upper()).value


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._clock = clock

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)

        # One extra row tells us whether another page exists.
        rows = await self._repo.list_markets(
            db, status_filter(status), category, cursor_ts, cursor_id, limit + 1
        )
        page = rows[:limit]
        has_more = len(rows) > limit
        return MarketListResponse(
            items=[MarketListItem.from_domain(m) for m in page],
            next_cursor=cursor_encode(page[-1]) if has_more and page else None,
            has_more=has_more,
        )

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        detail = MarketDetail.from_domain(market)
        detail.accepting_predictions = (
            market.status == MarketStatus.OPEN and not market.is_past_lock(self._clock())
        )
        return detail
