"""PredictionRepository — concrete implementation of PredictionRepositoryProtocol.

Ids are generated by the database (gen_random_uuid) and returned on INSERT.
Transaction ownership: the CALLER (prediction service or settlement processor) commits.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_prediction.domain.models import Prediction

_PREDICTION_COLUMNS = """
    id, market_id, user_id, position, stake_amount,
    credibility_at_prediction, weighted_stake,
    is_settled, exit_type, payout_amount, rep_score_delta,
    created_at, settled_at
"""

_GET_PREDICTION_SQL = text(f"""
    SELECT {_PREDICTION_COLUMNS}
    FROM predictions
    WHERE id = :prediction_id
""")

_SUM_USER_STAKE_SQL = text("""
    SELECT COALESCE(SUM(stake_amount), 0)
    FROM predictions
    WHERE market_id = :market_id AND user_id = :user_id
""")

_INSERT_PREDICTION_SQL = text(f"""
    INSERT INTO predictions
        (market_id, user_id, position, stake_amount,
         credibility_at_prediction, weighted_stake)
    VALUES
        (:market_id, :user_id, :position, :stake_amount,
         :credibility, :weighted_stake)
    RETURNING {_PREDICTION_COLUMNS}
""")

_MARK_EXITED_SQL = text("""
    UPDATE predictions
    SET is_settled = true,
        exit_type = :exit_type,
        payout_amount = :payout_amount,
        rep_score_delta = :rep_score_delta,
        settled_at = NOW()
    WHERE id = :prediction_id AND is_settled = false
    RETURNING id
""")

_LIST_UNSETTLED_SQL = text(f"""
    SELECT {_PREDICTION_COLUMNS}
    FROM predictions
    WHERE market_id = :market_id AND is_settled = false
    ORDER BY created_at, id
""")


def _row_to_prediction(row: Any) -> Prediction:
    return Prediction(
        id=str(row.id),
        market_id=row.market_id,
        user_id=row.user_id,
        position=row.position,
        stake_amount=float(row.stake_amount),
        credibility_at_prediction=float(row.credibility_at_prediction),
        weighted_stake=float(row.weighted_stake),
        is_settled=bool(row.is_settled),
        exit_type=row.exit_type,
        payout_amount=float(row.payout_amount) if row.payout_amount is not None else None,
        rep_score_delta=(
            float(row.rep_score_delta) if row.rep_score_delta is not None else None
        ),
        created_at=row.created_at,
        settled_at=row.settled_at,
    )


class PredictionRepository:
    async def get_prediction(
        self, db: AsyncSession, prediction_id: str
    ) -> Prediction | None:
        row = (
            await db.execute(_GET_PREDICTION_SQL, {"prediction_id": prediction_id})
        ).fetchone()
        return _row_to_prediction(row) if row else None

    async def sum_user_stake(
        self, db: AsyncSession, market_id: str, user_id: str
    ) -> float:
        result = await db.execute(
            _SUM_USER_STAKE_SQL, {"market_id": market_id, "user_id": user_id}
        )
        return float(result.scalar_one())

    async def insert_prediction(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: str,
        position: str,
        stake_amount: float,
        credibility: float,
        weighted_stake: float,
    ) -> Prediction:
        row = (
            await db.execute(
                _INSERT_PREDICTION_SQL,
                {
                    "market_id": market_id,
                    "user_id": user_id,
                    "position": position,
                    "stake_amount": stake_amount,
                    "credibility": credibility,
                    "weighted_stake": weighted_stake,
                },
            )
        ).fetchone()
        return _row_to_prediction(row)

    async def mark_exited(
        self,
        db: AsyncSession,
        prediction_id: str,
        exit_type: str,
        payout_amount: float,
        rep_score_delta: float,
    ) -> bool:
        row = (
            await db.execute(
                _MARK_EXITED_SQL,
                {
                    "prediction_id": prediction_id,
                    "exit_type": exit_type,
                    "payout_amount": payout_amount,
                    "rep_score_delta": rep_score_delta,
                },
            )
        ).fetchone()
        return row is not None

    async def list_unsettled(self, db: AsyncSession, market_id: str) -> list[Prediction]:
        rows = (await db.execute(_LIST_UNSETTLED_SQL, {"market_id": market_id})).fetchall()
        return [_row_to_prediction(row) for row in rows]
