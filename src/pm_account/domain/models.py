"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserReputation:
    id: str
    rep_score: float
    locked_rep_score: float        # portion currently staked in open predictions
    ethos_credibility: float       # external, refreshed by the identity sync job
    tier: str | None               # stored tier wins over the derived one
    total_predictions: int = 0
    correct_predictions: int = 0
    total_staked: float = 0.0
    total_won: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available_rep_score(self) -> float:
        return self.rep_score - self.locked_rep_score

    @property
    def accuracy(self) -> float | None:
        """Correct calls over all predictions placed."""
        if self.total_predictions == 0:
            return None
        return self.correct_predictions / self.total_predictions
