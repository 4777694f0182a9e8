"""Repository Protocol — dependency inversion for testability."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_prediction.domain.models import Prediction


class PredictionRepositoryProtocol(Protocol):
    async def get_prediction(
        self, db: AsyncSession, prediction_id: str
    ) -> Prediction | None: ...

    async def sum_user_stake(
        self, db: AsyncSession, market_id: str, user_id: str
    ) -> float:
        """Total stake the user has ever placed on this market, sold ones included."""
        ...

    async def insert_prediction(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: str,
        position: str,
        stake_amount: float,
        credibility: float,
        weighted_stake: float,
    ) -> Prediction: ...

    async def mark_exited(
        self,
        db: AsyncSession,
        prediction_id: str,
        exit_type: str,
        payout_amount: float,
        rep_score_delta: float,
    ) -> bool:
        """Conditional UPDATE ... WHERE is_settled = false.

        Returns False if the prediction was already settled by another path.
        """
        ...

    async def list_unsettled(self, db: AsyncSession, market_id: str) -> list[Prediction]: ...
