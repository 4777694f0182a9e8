"""Credibility tiers and the per-market stake cap each one grants."""

from dataclasses import dataclass

from src.pm_common.enums import CredibilityTier


@dataclass(frozen=True)
class TierConfig:
    tier: CredibilityTier
    min_credibility: int
    max_stake_per_market: float


# Ascending by min_credibility.
TIER_TABLE: tuple[TierConfig, ...] = (
    TierConfig(CredibilityTier.UNTRUSTED, 0, 10),
    TierConfig(CredibilityTier.QUESTIONABLE, 800, 20),
    TierConfig(CredibilityTier.NEUTRAL, 1200, 40),
    TierConfig(CredibilityTier.KNOWN, 1400, 70),
    TierConfig(CredibilityTier.ESTABLISHED, 1600, 100),
    TierConfig(CredibilityTier.REPUTABLE, 1800, 150),
    TierConfig(CredibilityTier.EXEMPLARY, 2000, 200),
    TierConfig(CredibilityTier.DISTINGUISHED, 2200, 300),
    TierConfig(CredibilityTier.REVERED, 2400, 400),
    TierConfig(CredibilityTier.RENOWNED, 2600, 500),
)

_BY_TIER: dict[CredibilityTier, TierConfig] = {cfg.tier: cfg for cfg in TIER_TABLE}
_KNOWN_TIERS = frozenset(t.value for t in CredibilityTier)


def tier_from_credibility(credibility: float) -> CredibilityTier:
    result = TIER_TABLE[0].tier
    for cfg in TIER_TABLE:
        if credibility >= cfg.min_credibility:
            result = cfg.tier
    return result


def effective_tier(stored_tier: str | None, credibility: float) -> CredibilityTier:
    """Stored tier if it names a known tier, else the tier derived from credibility."""
    if stored_tier in _KNOWN_TIERS:
        return CredibilityTier(stored_tier)
    return tier_from_credibility(credibility)


def max_stake_for_tier(tier: CredibilityTier) -> float:
    return _BY_TIER[tier].max_stake_per_market
