"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock (or the in-memory fake) that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import UserReputation


class UserRepositoryProtocol(Protocol):
    async def get_user(
        self, db: AsyncSession, user_id: str
    ) -> UserReputation | None: ...

    async def lock_stake(
        self, db: AsyncSession, user_id: str, stake: float
    ) -> UserReputation | None:
        """Atomically lock `stake` if available RepScore covers it.

        Also bumps total_predictions / total_staked. Returns None when the
        available balance is insufficient (no row updated).
        """
        ...

    async def release_stake(
        self,
        db: AsyncSession,
        user_id: str,
        stake: float,
        rep_delta: float,
        won: float = 0.0,
        correct: bool = False,
    ) -> UserReputation | None:
        """Unlock `stake`, apply `rep_delta` (clamped at 0) and outcome stats."""
        ...
