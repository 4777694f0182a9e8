# src/pm_market/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock (or the in-memory fake) that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.pricing import Probabilities, StakeAggregates
from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def get_market_for_update(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        """SELECT ... FOR UPDATE — the per-market serialization point."""
        ...

    async def list_due_for_lock(self, db: AsyncSession, now: datetime) -> list[Market]: ...

    async def list_due_for_resolve(
        self, db: AsyncSession, now: datetime
    ) -> list[Market]: ...

    async def list_by_status(self, db: AsyncSession, status: str) -> list[Market]: ...

    async def transition_status(
        self,
        db: AsyncSession,
        market_id: str,
        expected: str,
        target: str,
        resolution_outcome: str | None = None,
        resolution_value: str | None = None,
        resolution_evidence_id: str | None = None,
    ) -> bool:
        """Single conditional UPDATE ... WHERE status = :expected.

        Returns False when another writer already moved the market on.
        """
        ...

    async def update_aggregates(
        self,
        db: AsyncSession,
        market_id: str,
        aggregates: StakeAggregates,
        probabilities: Probabilities,
    ) -> None: ...

    async def count_by_status(self, db: AsyncSession) -> dict[str, int]: ...

    async def count_pending_lock(self, db: AsyncSession, now: datetime) -> int: ...

    async def count_pending_resolve(self, db: AsyncSession, now: datetime) -> int: ...
