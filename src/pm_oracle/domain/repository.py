"""Repository Protocol for the evidence audit log."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_oracle.domain.evidence import ResolutionResult


class EvidenceRepositoryProtocol(Protocol):
    async def insert_evidence(
        self, db: AsyncSession, market_id: str, result: ResolutionResult
    ) -> str:
        """Append one immutable evidence row; returns its id."""
        ...
