"""Unit tests for PredictionService — placement, sell preview and sell."""

import math
from datetime import timedelta

import pytest

from src.pm_amm.domain.pricing import recompute_probabilities
from src.pm_common.errors import (
    InsufficientRepScoreError,
    InvalidStakeError,
    MarketLockedError,
    MarketNotFoundError,
    MarketNotOpenError,
    PredictionAlreadySettledError,
    PredictionNotFoundError,
    PredictionNotOwnedError,
    StakeCapExceededError,
    UserNotFoundError,
)
from src.pm_prediction.application.service import PredictionService
from tests.unit.fakes import (
    NOW,
    FakeMarketRepo,
    FakePredictionRepo,
    FakeSession,
    FakeUserRepo,
    Store,
)


@pytest.fixture
def store() -> Store:
    s = Store()
    s.add_user("alice", rep=100, cred=1000)      # QUESTIONABLE, cap 20
    s.add_user("bob", rep=500, cred=1650)        # ESTABLISHED, cap 100
    s.add_market("mkt-1")
    return s


@pytest.fixture
def svc(store: Store) -> PredictionService:
    return PredictionService(
        prediction_repo=FakePredictionRepo(store),
        market_repo=FakeMarketRepo(store),
        user_repo=FakeUserRepo(store),
        clock=lambda: NOW,
    )


class TestPlacePrediction:
    async def test_places_and_updates_market(self, svc: PredictionService, store: Store) -> None:
        db = FakeSession()

        resp = await svc.place_prediction(db, "mkt-1", "alice", "YES", 10)

        assert resp.prediction.stake_amount == 10
        assert resp.prediction.weighted_stake == pytest.approx(20)
        assert resp.prediction.credibility_at_prediction == 1000
        assert resp.prediction.is_settled is False
        expected = recompute_probabilities(10, 0, 20, 0, 1000, 1000)
        assert resp.market.raw_probability_yes == pytest.approx(expected.raw_prob_yes)
        assert resp.market.weighted_probability_yes == pytest.approx(expected.weighted_prob_yes)
        market = store.markets["mkt-1"]
        assert market.total_stake_yes == 10
        assert market.total_weighted_stake_yes == pytest.approx(20)
        user = store.users["alice"]
        assert user.locked_rep_score == 10
        assert user.total_predictions == 1
        assert user.total_staked == 10
        assert db.commits == 1

    async def test_weighted_lens_leans_toward_credible_side(
        self, svc: PredictionService, store: Store
    ) -> None:
        await svc.place_prediction(FakeSession(), "mkt-1", "alice", "NO", 20)
        resp = await svc.place_prediction(FakeSession(), "mkt-1", "bob", "YES", 20)
        assert resp.market.raw_probability_yes == pytest.approx(0.5)
        assert resp.market.weighted_probability_yes > 0.5

    @pytest.mark.parametrize("stake", [0, -5, math.nan, math.inf])
    async def test_rejects_non_positive_stake(self, svc: PredictionService, stake: float) -> None:
        with pytest.raises(InvalidStakeError) as exc:
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", stake)
        assert exc.value.code == 4005

    async def test_unknown_user(self, svc: PredictionService) -> None:
        with pytest.raises(UserNotFoundError):
            await svc.place_prediction(FakeSession(), "mkt-1", "ghost", "YES", 1)

    async def test_unknown_market(self, svc: PredictionService) -> None:
        with pytest.raises(MarketNotFoundError):
            await svc.place_prediction(FakeSession(), "nope", "alice", "YES", 1)

    async def test_market_not_open(self, svc: PredictionService, store: Store) -> None:
        store.markets["mkt-1"].status = "LOCKED"
        with pytest.raises(MarketNotOpenError):
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 1)

    async def test_past_lock_time(self, svc: PredictionService, store: Store) -> None:
        store.markets["mkt-1"].locks_at = NOW - timedelta(seconds=1)
        with pytest.raises(MarketLockedError):
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 1)

    async def test_single_stake_over_cap(self, svc: PredictionService) -> None:
        with pytest.raises(StakeCapExceededError) as exc:
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 21)
        assert exc.value.tier == "QUESTIONABLE"
        assert exc.value.max_stake == 20

    async def test_cumulative_stake_over_cap(self, svc: PredictionService, store: Store) -> None:
        await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 15)
        db = FakeSession()

        with pytest.raises(StakeCapExceededError) as exc:
            await svc.place_prediction(db, "mkt-1", "alice", "NO", 6)

        assert exc.value.existing == 15
        assert db.rollbacks == 1
        assert store.users["alice"].locked_rep_score == 15

    async def test_insufficient_rep(self, svc: PredictionService, store: Store) -> None:
        store.users["alice"].locked_rep_score = 95
        with pytest.raises(InsufficientRepScoreError) as exc:
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 10)
        assert "available 5" in exc.value.message
        assert store.predictions == {}


class TestPreviewSell:
    async def test_preview(self, svc: PredictionService, store: Store) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "bob", "YES", 100)

        preview = await svc.preview_sell(FakeSession(), placed.prediction.id)

        market = store.markets["mkt-1"]
        assert preview.current_probability == pytest.approx(market.raw_probability_yes)
        assert preview.can_sell is True
        assert preview.market_status == "OPEN"
        assert preview.sell_value.base_value == pytest.approx(100 * market.raw_probability_yes)
        assert preview.warning is not None
        assert preview.warning.startswith("High slippage warning")
        assert store.predictions[placed.prediction.id].is_settled is False

    async def test_small_stake_has_no_warning(self, svc: PredictionService) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "NO", 5)
        preview = await svc.preview_sell(FakeSession(), placed.prediction.id)
        assert preview.warning is None

    async def test_cannot_sell_after_lock(self, svc: PredictionService, store: Store) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 5)
        store.markets["mkt-1"].status = "LOCKED"
        preview = await svc.preview_sell(FakeSession(), placed.prediction.id)
        assert preview.can_sell is False

    async def test_not_found(self, svc: PredictionService) -> None:
        with pytest.raises(PredictionNotFoundError):
            await svc.preview_sell(FakeSession(), "pred-404")


class TestSell:
    async def test_sell_releases_stake_and_reprices(
        self, svc: PredictionService, store: Store
    ) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "bob", "YES", 50)
        pid = placed.prediction.id
        db = FakeSession()

        resp = await svc.sell(db, pid, "bob")

        net = resp.sell_value.net_value
        assert resp.rep_score_delta == pytest.approx(net - 50)
        assert resp.market.total_stake_yes == 0
        assert resp.market.raw_probability_yes == pytest.approx(0.5)
        assert resp.market.weighted_probability_yes == pytest.approx(0.5)
        prediction = store.predictions[pid]
        assert prediction.is_settled is True
        assert prediction.exit_type == "SOLD"
        assert prediction.payout_amount == pytest.approx(net)
        user = store.users["bob"]
        assert user.rep_score == pytest.approx(500 + net - 50)
        assert user.locked_rep_score == 0
        assert db.commits == 1

    async def test_not_owned(self, svc: PredictionService) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 5)
        with pytest.raises(PredictionNotOwnedError):
            await svc.sell(FakeSession(), placed.prediction.id, "bob")

    async def test_not_found(self, svc: PredictionService) -> None:
        with pytest.raises(PredictionNotFoundError):
            await svc.sell(FakeSession(), "pred-404", "alice")

    async def test_double_sell(self, svc: PredictionService) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 5)
        await svc.sell(FakeSession(), placed.prediction.id, "alice")
        with pytest.raises(PredictionAlreadySettledError):
            await svc.sell(FakeSession(), placed.prediction.id, "alice")

    async def test_market_locked_by_time(self, svc: PredictionService, store: Store) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 5)
        store.markets["mkt-1"].locks_at = NOW
        db = FakeSession()

        with pytest.raises(MarketLockedError):
            await svc.sell(db, placed.prediction.id, "alice")
        assert db.rollbacks == 1
        assert store.predictions[placed.prediction.id].is_settled is False

    async def test_sold_stake_still_counts_toward_cap(
        self, svc: PredictionService
    ) -> None:
        placed = await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 15)
        await svc.sell(FakeSession(), placed.prediction.id, "alice")
        with pytest.raises(StakeCapExceededError):
            await svc.place_prediction(FakeSession(), "mkt-1", "alice", "YES", 10)
