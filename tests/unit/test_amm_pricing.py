"""Unit tests for pm_amm.domain.pricing — probabilities and exit valuation."""

import pytest

from src.pm_amm.domain.pricing import (
    MAX_SLIPPAGE_RATIO,
    StakeAggregates,
    calculate_sell_rep_delta,
    calculate_sell_value,
    is_high_slippage,
    recompute_probabilities,
    update_probabilities_after_sell,
    weighted_stake_for,
)
from src.pm_common.enums import Position


class TestRecomputeProbabilities:
    def test_empty_market_is_even(self) -> None:
        probs = recompute_probabilities(0, 0, 0, 0, 1000, 1000)
        assert probs.raw_prob_yes == 0.5
        assert probs.weighted_prob_yes == 0.5

    def test_zero_denominator_defaults_to_half(self) -> None:
        probs = recompute_probabilities(0, 0, 0, 0, 0, 0)
        assert probs.raw_prob_yes == 0.5
        assert probs.weighted_prob_yes == 0.5

    def test_virtual_liquidity_dampens_first_stake(self) -> None:
        probs = recompute_probabilities(100, 0, 200, 0, 1000, 1000)
        assert probs.raw_prob_yes == pytest.approx(1100 / 2100)
        assert probs.weighted_prob_yes == pytest.approx(1200 / 2200)

    def test_without_virtual_liquidity_one_side_is_certain(self) -> None:
        probs = recompute_probabilities(50, 0, 50, 0, 0, 0)
        assert probs.raw_prob_yes == 1.0

    def test_credibility_shifts_weighted_lens_only(self) -> None:
        # Equal raw stake, but the YES staker is far more credible.
        probs = recompute_probabilities(100, 100, 300, 100, 1000, 1000)
        assert probs.raw_prob_yes == pytest.approx(0.5)
        assert probs.weighted_prob_yes > 0.5


class TestStakeAggregates:
    def test_apply_delta_yes(self) -> None:
        aggs = StakeAggregates(virtual_yes=1000, virtual_no=1000)
        out = aggs.apply_delta(Position.YES, 100, 150)
        assert out.stake_yes == 100
        assert out.weighted_yes == 150
        assert out.stake_no == 0
        assert aggs.stake_yes == 0  # frozen, original untouched

    def test_apply_delta_clamps_at_zero(self) -> None:
        aggs = StakeAggregates(stake_no=10, weighted_no=12)
        out = aggs.apply_delta(Position.NO, -50, -60)
        assert out.stake_no == 0
        assert out.weighted_no == 0

    def test_liquidity_properties(self) -> None:
        aggs = StakeAggregates(30, 20, 40, 25, 1000, 1000)
        assert aggs.total_liquidity == 50
        assert aggs.virtual_liquidity == 2000
        assert aggs.stake_on(Position.YES) == 30
        assert aggs.stake_on(Position.NO) == 20

    def test_sell_round_trip_restores_prior(self) -> None:
        start = StakeAggregates(virtual_yes=1000, virtual_no=1000)
        placed = start.apply_delta(Position.YES, 100, 250)
        after, probs = update_probabilities_after_sell(placed, Position.YES, 100, 250)
        assert after == start
        assert probs.raw_prob_yes == 0.5
        assert probs.weighted_prob_yes == 0.5


class TestWeightedStake:
    @pytest.mark.parametrize(
        "stake,cred,expected",
        [(100, 0, 100), (100, 1000, 200), (100, 1500, 250), (10, 2800, 38)],
    )
    def test_formula(self, stake: float, cred: float, expected: float) -> None:
        assert weighted_stake_for(stake, cred) == pytest.approx(expected)


class TestCalculateSellValue:
    def test_reference_case(self) -> None:
        v = calculate_sell_value(Position.YES, 100, 0.6, 100, 2000, fee=0.005)
        assert v.base_value == pytest.approx(60)
        assert v.price_impact == pytest.approx(3)  # 100/2000 = 5%
        assert v.fee == pytest.approx(0.3)
        assert v.net_value == pytest.approx(56.7)
        assert v.profit_loss == pytest.approx(-43.3)
        assert v.profit_loss_percent == pytest.approx(-43.3)
        assert v.effective_slippage_percent == pytest.approx(3.3)

    def test_no_position_uses_complement(self) -> None:
        v = calculate_sell_value(Position.NO, 100, 0.6, 0, 2000, fee=0)
        assert v.base_value == pytest.approx(40)

    def test_slippage_capped(self) -> None:
        v = calculate_sell_value(Position.YES, 1000, 0.5, 0, 0, fee=0)
        assert v.price_impact == pytest.approx(v.base_value * MAX_SLIPPAGE_RATIO)

    def test_real_liquidity_used_when_larger(self) -> None:
        v = calculate_sell_value(Position.YES, 100, 0.5, 10000, 2000, fee=0)
        assert v.price_impact == pytest.approx(50 * 0.01)

    def test_net_never_negative(self) -> None:
        v = calculate_sell_value(Position.YES, 100, 0.0, 0, 2000)
        assert v.net_value == 0.0
        assert v.profit_loss == -100

    def test_zero_stake_has_zero_percentages(self) -> None:
        v = calculate_sell_value(Position.YES, 0, 0.5, 0, 2000)
        assert v.profit_loss_percent == 0.0
        assert v.effective_slippage_percent == 0.0

    def test_high_slippage_threshold(self) -> None:
        v = calculate_sell_value(Position.YES, 100, 0.6, 100, 2000, fee=0.005)
        assert is_high_slippage(v, 2.0) is True
        assert is_high_slippage(v, 5.0) is False


class TestSellRepDelta:
    def test_loss(self) -> None:
        assert calculate_sell_rep_delta(100, 56.7) == pytest.approx(-43.3)

    def test_profit(self) -> None:
        assert calculate_sell_rep_delta(100, 110) == pytest.approx(10)
