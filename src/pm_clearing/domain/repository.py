"""Repository Protocol for settlement records."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.domain.settlement import SettlementPlan


class SettlementRepositoryProtocol(Protocol):
    async def insert_settlement(
        self,
        db: AsyncSession,
        market_id: str,
        plan: SettlementPlan,
        evidence_log_id: str | None,
    ) -> str | None:
        """INSERT ... ON CONFLICT (market_id) DO NOTHING.

        Returns the new id, or None if the market already has a record.
        """
        ...
