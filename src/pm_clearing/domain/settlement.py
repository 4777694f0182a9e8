"""Settlement planning — payouts and reputation deltas for a resolved market.

Pure functions over the market's stored stake aggregates and its unsettled
predictions. Applying a plan (and its idempotency) is the processor's job.

Winner (position == outcome, winners_pool > 0):
    payout = stake + stake / winners_pool × losers_pool
    delta  = round(5 × max(1, credibility_at_prediction / 1000))
Loser (or winner of an empty pool):
    payout = 0, delta = -3 regardless of stake size
INVALID:
    payout = stake, delta = 0
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from src.pm_common.enums import ExitType, Position, ResolutionOutcome
from src.pm_prediction.domain.models import Prediction

WINNER_BASE_REWARD = 5
LOSER_PENALTY = -3


@dataclass(frozen=True)
class PredictionPayout:
    prediction_id: str
    user_id: str
    stake: float
    payout: float
    rep_delta: float
    is_winner: bool
    exit_type: str


@dataclass(frozen=True)
class SettlementPlan:
    outcome: str
    total_pool: float
    winners_pool: float
    losers_pool: float
    payouts: tuple[PredictionPayout, ...]

    @property
    def total_predictions(self) -> int:
        return len(self.payouts)

    @property
    def winning_predictions(self) -> int:
        return sum(1 for p in self.payouts if p.is_winner)


def winner_rep_reward(credibility: float) -> int:
    """Credibility scales the reward up, never down. Rounds half up."""
    return math.floor(WINNER_BASE_REWARD * max(1.0, credibility / 1000) + 0.5)


def plan_settlement(
    outcome: str,
    predictions: Sequence[Prediction],
    total_stake_yes: float,
    total_stake_no: float,
) -> SettlementPlan:
    """Split the losing side's pool among winners pro rata by raw stake."""
    winning = Position(outcome)
    if winning == Position.YES:
        winners_pool, losers_pool = total_stake_yes, total_stake_no
    else:
        winners_pool, losers_pool = total_stake_no, total_stake_yes

    payouts = []
    for p in predictions:
        is_winner = p.position == winning
        if is_winner and winners_pool > 0:
            payout = p.stake_amount + (p.stake_amount / winners_pool) * losers_pool
            delta: float = winner_rep_reward(p.credibility_at_prediction)
        else:
            payout = 0.0
            delta = LOSER_PENALTY
        payouts.append(
            PredictionPayout(
                prediction_id=p.id,
                user_id=p.user_id,
                stake=p.stake_amount,
                payout=payout,
                rep_delta=delta,
                is_winner=is_winner,
                exit_type=ExitType.SETTLED.value,
            )
        )

    return SettlementPlan(
        outcome=winning.value,
        total_pool=total_stake_yes + total_stake_no,
        winners_pool=winners_pool,
        losers_pool=losers_pool,
        payouts=tuple(payouts),
    )


def plan_refund(predictions: Sequence[Prediction]) -> SettlementPlan:
    """INVALID outcome: every stake comes back, nobody's reputation moves."""
    total = sum(p.stake_amount for p in predictions)
    return SettlementPlan(
        outcome=ResolutionOutcome.INVALID.value,
        total_pool=total,
        winners_pool=0.0,
        losers_pool=0.0,
        payouts=tuple(
            PredictionPayout(
                prediction_id=p.id,
                user_id=p.user_id,
                stake=p.stake_amount,
                payout=p.stake_amount,
                rep_delta=0.0,
                is_winner=False,
                exit_type=ExitType.REFUNDED.value,
            )
            for p in predictions
        ),
    )
