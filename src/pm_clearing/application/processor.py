"""SettlementProcessor — apply a settlement plan to a RESOLVED market.

Runs inside the caller's transaction and never commits. The caller holds
no lock beforehand; the processor takes the market row lock itself so that
a concurrent sell cannot slip a prediction out between planning and payout.

Idempotency layers:
  1. market status must still be RESOLVED (conditional status UPDATE)
  2. each prediction exits via UPDATE ... WHERE is_settled = false
  3. settlements.market_id is UNIQUE (ON CONFLICT DO NOTHING)
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.repository import UserRepositoryProtocol
from src.pm_account.infrastructure.persistence import UserRepository
from src.pm_clearing.domain.repository import SettlementRepositoryProtocol
from src.pm_clearing.domain.settlement import (
    SettlementPlan,
    plan_refund,
    plan_settlement,
)
from src.pm_clearing.infrastructure.persistence import SettlementRepository
from src.pm_common.enums import ExitType, MarketStatus, ResolutionOutcome
from src.pm_common.errors import InvalidStatusTransitionError, MarketNotFoundError
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_prediction.domain.repository import PredictionRepositoryProtocol
from src.pm_prediction.infrastructure.persistence import PredictionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementOutcome:
    market_id: str
    status: str
    settled_predictions: int
    winning_predictions: int
    settlement_id: str | None
    skipped: bool = False


class SettlementProcessor:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        prediction_repo: PredictionRepositoryProtocol | None = None,
        user_repo: UserRepositoryProtocol | None = None,
        settlement_repo: SettlementRepositoryProtocol | None = None,
    ) -> None:
        self._markets = market_repo or MarketRepository()
        self._predictions = prediction_repo or PredictionRepository()
        self._users = user_repo or UserRepository()
        self._settlements = settlement_repo or SettlementRepository()

    async def settle(self, db: AsyncSession, market_id: str) -> SettlementOutcome:
        market = await self._markets.get_market_for_update(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.status != MarketStatus.RESOLVED:
            logger.info("Market %s already %s, skipping settlement", market_id, market.status)
            return SettlementOutcome(
                market_id=market_id,
                status=market.status,
                settled_predictions=0,
                winning_predictions=0,
                settlement_id=None,
                skipped=True,
            )

        predictions = await self._predictions.list_unsettled(db, market_id)
        outcome = market.resolution_outcome
        refund = outcome is None or outcome == ResolutionOutcome.INVALID
        target = MarketStatus.CANCELLED if refund else MarketStatus.SETTLED

        if refund:
            plan = plan_refund(predictions)
        else:
            plan = plan_settlement(
                outcome, predictions, market.total_stake_yes, market.total_stake_no
            )

        settled, winners = await self._apply(db, plan)

        settlement_id = None
        if not refund and plan.payouts:
            settlement_id = await self._settlements.insert_settlement(
                db, market_id, plan, market.resolution_evidence_id
            )

        moved = await self._markets.transition_status(
            db, market_id, MarketStatus.RESOLVED.value, target.value
        )
        if not moved:
            raise InvalidStatusTransitionError(market_id, market.status, target.value)

        logger.info(
            "Market %s %s: %d predictions, %d winners",
            market_id,
            target.value.lower(),
            settled,
            winners,
        )
        return SettlementOutcome(
            market_id=market_id,
            status=target.value,
            settled_predictions=settled,
            winning_predictions=winners,
            settlement_id=settlement_id,
        )

    async def _apply(self, db: AsyncSession, plan: SettlementPlan) -> tuple[int, int]:
        settled = winners = 0
        for payout in plan.payouts:
            exited = await self._predictions.mark_exited(
                db, payout.prediction_id, payout.exit_type, payout.payout, payout.rep_delta
            )
            if not exited:
                # Sold or settled concurrently; its stake is already released.
                continue
            await self._users.release_stake(
                db,
                payout.user_id,
                payout.stake,
                payout.rep_delta,
                won=payout.payout if payout.exit_type == ExitType.SETTLED else 0.0,
                correct=payout.is_winner,
            )
            settled += 1
            if payout.is_winner:
                winners += 1
        return settled, winners
