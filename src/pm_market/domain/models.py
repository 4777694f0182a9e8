"""Domain models for pm_market — pure dataclasses plus the status state machine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.pm_amm.domain.pricing import StakeAggregates
from src.pm_common.enums import MarketStatus

# Monotonic lifecycle. OPEN -> RESOLVED exists only for manual resolution;
# CANCELLED is reached from RESOLVED when the outcome is INVALID.
ALLOWED_TRANSITIONS: dict[MarketStatus, frozenset[MarketStatus]] = {
    MarketStatus.OPEN: frozenset({MarketStatus.LOCKED, MarketStatus.RESOLVED}),
    MarketStatus.LOCKED: frozenset({MarketStatus.RESOLVED}),
    MarketStatus.RESOLVED: frozenset({MarketStatus.SETTLED, MarketStatus.CANCELLED}),
    MarketStatus.SETTLED: frozenset(),
    MarketStatus.CANCELLED: frozenset(),
}

# Statuses from which an operator may force a resolution.
MANUALLY_RESOLVABLE = frozenset({MarketStatus.OPEN, MarketStatus.LOCKED})


def can_transition(current: str, target: str) -> bool:
    return MarketStatus(target) in ALLOWED_TRANSITIONS[MarketStatus(current)]


@dataclass
class Market:
    id: str
    title: str
    description: str | None
    category: str | None
    oracle_type: str
    oracle_config: dict[str, Any]
    locks_at: datetime
    resolves_at: datetime | None
    status: str
    resolution_outcome: str | None = None
    resolution_value: str | None = None
    resolution_evidence_id: str | None = None
    resolved_at: datetime | None = None
    settled_at: datetime | None = None
    total_stake_yes: float = 0.0
    total_stake_no: float = 0.0
    total_weighted_stake_yes: float = 0.0
    total_weighted_stake_no: float = 0.0
    virtual_stake_yes: float = 1000.0
    virtual_stake_no: float = 1000.0
    raw_probability_yes: float = 0.5
    weighted_probability_yes: float = 0.5
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def aggregates(self) -> StakeAggregates:
        return StakeAggregates(
            stake_yes=self.total_stake_yes,
            stake_no=self.total_stake_no,
            weighted_yes=self.total_weighted_stake_yes,
            weighted_no=self.total_weighted_stake_no,
            virtual_yes=self.virtual_stake_yes,
            virtual_no=self.virtual_stake_no,
        )

    def is_past_lock(self, now: datetime) -> bool:
        return now >= self.locks_at

