"""Pydantic schemas for pm_account API."""

from pydantic import BaseModel

from src.pm_account.domain.models import UserReputation
from src.pm_account.domain.tiers import effective_tier, max_stake_for_tier


class ReputationResponse(BaseModel):
    user_id: str
    rep_score: float
    locked_rep_score: float
    available_rep_score: float
    ethos_credibility: float
    tier: str
    max_stake_per_market: float
    total_predictions: int
    correct_predictions: int
    accuracy: float | None
    total_staked: float
    total_won: float

    @classmethod
    def from_domain(cls, user: UserReputation) -> "ReputationResponse":
        tier = effective_tier(user.tier, user.ethos_credibility)
        return cls(
            user_id=user.id,
            rep_score=user.rep_score,
            locked_rep_score=user.locked_rep_score,
            available_rep_score=user.available_rep_score,
            ethos_credibility=user.ethos_credibility,
            tier=tier.value,
            max_stake_per_market=max_stake_for_tier(tier),
            total_predictions=user.total_predictions,
            correct_predictions=user.correct_predictions,
            accuracy=user.accuracy,
            total_staked=user.total_staked,
            total_won=user.total_won,
        )
