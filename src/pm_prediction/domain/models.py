"""Domain models for pm_prediction — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Prediction:
    id: str
    market_id: str
    user_id: str
    position: str
    stake_amount: float
    credibility_at_prediction: float  # snapshot, never refreshed
    weighted_stake: float             # stake × (1 + credibility/1000) at creation
    is_settled: bool = False
    exit_type: str | None = None
    payout_amount: float | None = None
    rep_score_delta: float | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None
