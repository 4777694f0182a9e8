"""SettlementRepository — one audit row per market, keyed by UNIQUE(market_id)."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.domain.settlement import SettlementPlan

_INSERT_SETTLEMENT_SQL = text("""
    INSERT INTO settlements
        (market_id, outcome, total_pool, winners_pool, losers_pool,
         total_predictions, winning_predictions, evidence_log_id)
    VALUES
        (:market_id, :outcome, :total_pool, :winners_pool, :losers_pool,
         :total_predictions, :winning_predictions, :evidence_log_id)
    ON CONFLICT (market_id) DO NOTHING
    RETURNING id
""")


class SettlementRepository:
    async def insert_settlement(
        self,
        db: AsyncSession,
        market_id: str,
        plan: SettlementPlan,
        evidence_log_id: str | None,
    ) -> str | None:
        row = (
            await db.execute(
                _INSERT_SETTLEMENT_SQL,
                {
                    "market_id": market_id,
                    "outcome": plan.outcome,
                    "total_pool": plan.total_pool,
                    "winners_pool": plan.winners_pool,
                    "losers_pool": plan.losers_pool,
                    "total_predictions": plan.total_predictions,
                    "winning_predictions": plan.winning_predictions,
                    "evidence_log_id": evidence_log_id,
                },
            )
        ).fetchone()
        return str(row.id) if row else None
