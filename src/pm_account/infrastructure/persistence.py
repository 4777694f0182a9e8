"""UserRepository — concrete implementation of UserRepositoryProtocol.

All RepScore-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows from lock_stake means the available balance was insufficient.

Transaction ownership: the CALLER (application service or oracle engine) commits.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import UserReputation

_USER_COLUMNS = """
    id, rep_score, locked_rep_score, ethos_credibility, tier,
    total_predictions, correct_predictions, total_staked, total_won,
    created_at, updated_at
"""

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")

_LOCK_STAKE_SQL = text(f"""
    UPDATE users
    SET locked_rep_score  = locked_rep_score + :stake,
        total_predictions = total_predictions + 1,
        total_staked      = total_staked + :stake,
        updated_at = NOW()
    WHERE id = :user_id
      AND rep_score - locked_rep_score >= :stake
    RETURNING {_USER_COLUMNS}
""")

_RELEASE_STAKE_SQL = text(f"""
    UPDATE users
    SET rep_score           = GREATEST(0, rep_score + :rep_delta),
        locked_rep_score    = GREATEST(0, locked_rep_score - :stake),
        correct_predictions = correct_predictions + :correct,
        total_won           = total_won + :won,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING {_USER_COLUMNS}
""")


def _row_to_user(row: object) -> UserReputation:
    return UserReputation(
        id=row.id,  # type: ignore[attr-defined]
        rep_score=float(row.rep_score),  # type: ignore[attr-defined]
        locked_rep_score=float(row.locked_rep_score),  # type: ignore[attr-defined]
        ethos_credibility=float(row.ethos_credibility),  # type: ignore[attr-defined]
        tier=row.tier,  # type: ignore[attr-defined]
        total_predictions=row.total_predictions,  # type: ignore[attr-defined]
        correct_predictions=row.correct_predictions,  # type: ignore[attr-defined]
        total_staked=float(row.total_staked),  # type: ignore[attr-defined]
        total_won=float(row.total_won),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class UserRepository:
    async def get_user(self, db: AsyncSession, user_id: str) -> UserReputation | None:
        row = (await db.execute(_GET_USER_SQL, {"user_id": user_id})).fetchone()
        return _row_to_user(row) if row else None

    async def lock_stake(
        self, db: AsyncSession, user_id: str, stake: float
    ) -> UserReputation | None:
        row = (
            await db.execute(_LOCK_STAKE_SQL, {"user_id": user_id, "stake": stake})
        ).fetchone()
        return _row_to_user(row) if row else None

    async def release_stake(
        self,
        db: AsyncSession,
        user_id: str,
        stake: float,
        rep_delta: float,
        won: float = 0.0,
        correct: bool = False,
    ) -> UserReputation | None:
        row = (
            await db.execute(
                _RELEASE_STAKE_SQL,
                {
                    "user_id": user_id,
                    "stake": stake,
                    "rep_delta": rep_delta,
                    "won": won,
                    "correct": 1 if correct else 0,
                },
            )
        ).fetchone()
        return _row_to_user(row) if row else None
