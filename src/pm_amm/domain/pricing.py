"""AMM pricing — probability recompute and position-exit valuation.

Pure functions, no I/O. Two lenses are priced side by side:

  raw       — stake-weighted:       P(YES) = (S_yes + V_yes) / (S_yes + V_yes + S_no + V_no)
  weighted  — credibility-weighted: same formula over weighted stakes

Virtual liquidity V is the house's neutral prior. It is added unweighted to
both lenses so an empty market sits at 0.5 and early stakes move it gently.

Aggregates are the source of truth and only ever change by signed deltas
(+stake on placement, -stake on sell). Probabilities are always recomputed
from the post-delta aggregates, never adjusted incrementally.
"""

from dataclasses import dataclass, replace

from src.pm_common.enums import Position

MAX_SLIPPAGE_RATIO = 0.05       # price impact never exceeds 5% of base value
MIN_EFFECTIVE_LIQUIDITY = 100.0  # slippage denominator floor


@dataclass(frozen=True)
class Probabilities:
    raw_prob_yes: float
    weighted_prob_yes: float


@dataclass(frozen=True)
class StakeAggregates:
    stake_yes: float = 0.0
    stake_no: float = 0.0
    weighted_yes: float = 0.0
    weighted_no: float = 0.0
    virtual_yes: float = 0.0
    virtual_no: float = 0.0

    @property
    def total_liquidity(self) -> float:
        """Real (non-virtual) stake on both sides."""
        return self.stake_yes + self.stake_no

    @property
    def virtual_liquidity(self) -> float:
        return self.virtual_yes + self.virtual_no

    def stake_on(self, position: Position) -> float:
        return self.stake_yes if position == Position.YES else self.stake_no

    def apply_delta(
        self, position: Position, stake_delta: float, weighted_delta: float
    ) -> "StakeAggregates":
        """Signed update of one side's running totals, floored at 0."""
        if position == Position.YES:
            return replace(
                self,
                stake_yes=max(0.0, self.stake_yes + stake_delta),
                weighted_yes=max(0.0, self.weighted_yes + weighted_delta),
            )
        return replace(
            self,
            stake_no=max(0.0, self.stake_no + stake_delta),
            weighted_no=max(0.0, self.weighted_no + weighted_delta),
        )

    def probabilities(self) -> Probabilities:
        return recompute_probabilities(
            self.stake_yes,
            self.stake_no,
            self.weighted_yes,
            self.weighted_no,
            self.virtual_yes,
            self.virtual_no,
        )


def _share(yes: float, no: float) -> float:
    total = yes + no
    if total <= 0:
        return 0.5
    return yes / total


def recompute_probabilities(
    total_stake_yes: float,
    total_stake_no: float,
    total_weighted_yes: float,
    total_weighted_no: float,
    virtual_yes: float,
    virtual_no: float,
) -> Probabilities:
    """Full recompute of both lenses from aggregates + virtual liquidity.

    Defaults to 0.5 when a lens has a zero denominator.
    """
    raw = _share(total_stake_yes + virtual_yes, total_stake_no + virtual_no)
    weighted = _share(total_weighted_yes + virtual_yes, total_weighted_no + virtual_no)
    return Probabilities(raw_prob_yes=raw, weighted_prob_yes=weighted)


def update_probabilities_after_sell(
    aggregates: StakeAggregates,
    position: Position,
    stake: float,
    weighted_stake: float,
) -> tuple[StakeAggregates, Probabilities]:
    """Remove a sold prediction from its side and reprice."""
    updated = aggregates.apply_delta(position, -stake, -weighted_stake)
    return updated, updated.probabilities()


def weighted_stake_for(stake: float, credibility: float) -> float:
    """Credibility-adjusted stake, snapshotted on the prediction at creation."""
    return stake * (1 + credibility / 1000)


# ---------------------------------------------------------------------------
# Exit valuation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SellValue:
    base_value: float
    price_impact: float
    fee: float
    net_value: float
    profit_loss: float
    profit_loss_percent: float
    effective_slippage_percent: float


def calculate_sell_value(
    position: Position,
    stake: float,
    current_prob_yes: float,
    total_liquidity: float,
    virtual_liquidity: float,
    fee: float = 0.005,
) -> SellValue:
    """Value of unwinding a position before lock.

    base   = stake × P(position)
    impact = base × min(stake / max(effective_liquidity, 100), 5%)
    fee    = base × fee_rate
    net    = max(0, base − fee − impact)

    effective_liquidity is the larger of real and virtual liquidity, so thin
    early markets are priced against the seed pool rather than a near-zero one.
    """
    position_prob = current_prob_yes if position == Position.YES else 1 - current_prob_yes
    # Written as 0.5 + drift so the "moved in your favour" framing stays explicit.
    probability_multiplier = 0.5 + (position_prob - 0.5)
    base_value = stake * probability_multiplier

    effective_liquidity = max(total_liquidity, virtual_liquidity)
    slippage_ratio = stake / max(effective_liquidity, MIN_EFFECTIVE_LIQUIDITY)
    capped_slippage = min(slippage_ratio, MAX_SLIPPAGE_RATIO)

    price_impact = base_value * capped_slippage
    fee_amount = base_value * fee
    net_value = max(0.0, base_value - fee_amount - price_impact)

    profit_loss = net_value - stake
    if stake > 0:
        profit_loss_percent = profit_loss / stake * 100
        effective_slippage_percent = (fee_amount + price_impact) / stake * 100
    else:
        profit_loss_percent = 0.0
        effective_slippage_percent = 0.0

    return SellValue(
        base_value=base_value,
        price_impact=price_impact,
        fee=fee_amount,
        net_value=net_value,
        profit_loss=profit_loss,
        profit_loss_percent=profit_loss_percent,
        effective_slippage_percent=effective_slippage_percent,
    )


def calculate_sell_rep_delta(original_stake: float, net_value: float) -> float:
    """RepScore change on exit: positive for profit, negative for loss."""
    return net_value - original_stake


def is_high_slippage(sell_value: SellValue, threshold_percent: float) -> bool:
    return sell_value.effective_slippage_percent > threshold_percent
