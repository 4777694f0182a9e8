"""Unit tests for settlement planning and the settlement processor."""

import pytest

from src.pm_clearing.application.processor import SettlementProcessor
from src.pm_clearing.domain.settlement import (
    LOSER_PENALTY,
    plan_refund,
    plan_settlement,
    winner_rep_reward,
)
from src.pm_prediction.domain.models import Prediction
from tests.unit.fakes import (
    FakeMarketRepo,
    FakePredictionRepo,
    FakeSession,
    FakeSettlementRepo,
    FakeUserRepo,
    Store,
)


def _pred(pid: str, position: str, stake: float, cred: float = 0.0, user: str | None = None) -> Prediction:
    return Prediction(
        id=pid, market_id="mkt-1", user_id=user or f"u-{pid}", position=position,
        stake_amount=stake, credibility_at_prediction=cred,
        weighted_stake=stake * (1 + cred / 1000),
    )


class TestWinnerReward:
    @pytest.mark.parametrize(
        "cred,reward",
        [(0, 5), (999, 5), (1000, 5), (1100, 6), (1500, 8), (2000, 10), (2800, 14)],
    )
    def test_rounding_half_up(self, cred: float, reward: int) -> None:
        assert winner_rep_reward(cred) == reward


class TestPlanSettlement:
    def test_pro_rata_payouts(self) -> None:
        preds = [_pred("a", "YES", 100), _pred("b", "YES", 200, cred=2000), _pred("c", "NO", 100)]
        plan = plan_settlement("YES", preds, total_stake_yes=300, total_stake_no=100)

        by_id = {p.prediction_id: p for p in plan.payouts}
        assert by_id["a"].payout == pytest.approx(100 + 100 / 300 * 100)
        assert by_id["b"].payout == pytest.approx(200 + 200 / 300 * 100)
        assert by_id["c"].payout == 0
        assert by_id["a"].rep_delta == 5
        assert by_id["b"].rep_delta == 10
        assert by_id["c"].rep_delta == LOSER_PENALTY
        assert plan.total_pool == 400
        assert plan.winners_pool == 300
        assert plan.losers_pool == 100
        assert plan.total_predictions == 3
        assert plan.winning_predictions == 2

    def test_payouts_conserve_pool(self) -> None:
        preds = [_pred("a", "NO", 7), _pred("b", "NO", 13), _pred("c", "YES", 31)]
        plan = plan_settlement("NO", preds, total_stake_yes=31, total_stake_no=20)
        assert sum(p.payout for p in plan.payouts) == pytest.approx(plan.total_pool)

    def test_loser_penalty_ignores_stake_size(self) -> None:
        plan = plan_settlement("NO", [_pred("a", "YES", 1), _pred("b", "YES", 500)], 501, 0)
        assert [p.rep_delta for p in plan.payouts] == [-3, -3]

    def test_empty_winning_pool_pays_nothing(self) -> None:
        plan = plan_settlement("YES", [_pred("a", "NO", 50)], total_stake_yes=0, total_stake_no=50)
        assert plan.payouts[0].payout == 0
        assert plan.winning_predictions == 0

    def test_exit_type_settled(self) -> None:
        plan = plan_settlement("YES", [_pred("a", "YES", 5)], 5, 0)
        assert plan.payouts[0].exit_type == "SETTLED"
        assert plan.payouts[0].payout == 5


class TestPlanRefund:
    def test_stakes_returned(self) -> None:
        plan = plan_refund([_pred("a", "YES", 10), _pred("b", "NO", 25)])
        assert plan.outcome == "INVALID"
        assert [p.payout for p in plan.payouts] == [10, 25]
        assert all(p.rep_delta == 0 for p in plan.payouts)
        assert all(p.exit_type == "REFUNDED" for p in plan.payouts)
        assert plan.total_pool == 35
        assert plan.winning_predictions == 0


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


def _setup(outcome: str | None = "YES") -> tuple[Store, SettlementProcessor]:
    store = Store()
    store.add_user("alice", rep=100, locked=100, cred=1500)
    store.add_user("bob", rep=100, locked=50)
    store.add_market(
        "mkt-1", status="RESOLVED", resolution_outcome=outcome, resolution_evidence_id="ev-1",
        total_stake_yes=100, total_stake_no=50,
    )
    store.predictions["p1"] = _pred("p1", "YES", 100, cred=1500, user="alice")
    store.predictions["p2"] = _pred("p2", "NO", 50, user="bob")
    processor = SettlementProcessor(
        market_repo=FakeMarketRepo(store),
        prediction_repo=FakePredictionRepo(store),
        user_repo=FakeUserRepo(store),
        settlement_repo=FakeSettlementRepo(store),
    )
    return store, processor


class TestSettlementProcessor:
    async def test_settles_yes_market(self) -> None:
        store, processor = _setup("YES")

        outcome = await processor.settle(FakeSession(), "mkt-1")

        assert outcome.status == "SETTLED"
        assert outcome.settled_predictions == 2
        assert outcome.winning_predictions == 1
        assert outcome.settlement_id == "stl-1"
        alice, bob = store.users["alice"], store.users["bob"]
        assert alice.rep_score == 108          # round(5 × 1.5) = 8
        assert alice.locked_rep_score == 0
        assert alice.correct_predictions == 1
        assert alice.total_won == pytest.approx(150)
        assert bob.rep_score == 97
        assert bob.locked_rep_score == 0
        assert bob.total_won == 0
        assert store.markets["mkt-1"].status == "SETTLED"
        assert store.markets["mkt-1"].settled_at is not None
        _, plan, evidence_id = store.settlements["mkt-1"]
        assert evidence_id == "ev-1"
        assert plan.total_pool == 150

    async def test_invalid_outcome_refunds_and_cancels(self) -> None:
        store, processor = _setup("INVALID")

        outcome = await processor.settle(FakeSession(), "mkt-1")

        assert outcome.status == "CANCELLED"
        assert outcome.settlement_id is None
        assert store.settlements == {}
        assert store.users["alice"].rep_score == 100
        assert store.users["alice"].locked_rep_score == 0
        assert store.users["bob"].locked_rep_score == 0
        assert store.users["alice"].total_won == 0
        assert store.users["bob"].total_won == 0
        assert store.predictions["p1"].exit_type == "REFUNDED"
        assert store.predictions["p1"].payout_amount == 100
        assert store.markets["mkt-1"].status == "CANCELLED"

    async def test_missing_outcome_treated_as_invalid(self) -> None:
        store, processor = _setup(None)
        outcome = await processor.settle(FakeSession(), "mkt-1")
        assert outcome.status == "CANCELLED"

    async def test_no_predictions_settles_without_record(self) -> None:
        store, processor = _setup("NO")
        store.predictions.clear()

        outcome = await processor.settle(FakeSession(), "mkt-1")

        assert outcome.status == "SETTLED"
        assert outcome.settled_predictions == 0
        assert store.settlements == {}

    async def test_second_settle_is_noop(self) -> None:
        store, processor = _setup("YES")
        await processor.settle(FakeSession(), "mkt-1")
        rep_after_first = store.users["alice"].rep_score

        outcome = await processor.settle(FakeSession(), "mkt-1")

        assert outcome.skipped is True
        assert outcome.settled_predictions == 0
        assert store.users["alice"].rep_score == rep_after_first
        assert len(store.settlements) == 1

    async def test_already_exited_prediction_untouched(self) -> None:
        store, processor = _setup("YES")
        store.predictions["p2"].is_settled = True
        store.predictions["p2"].exit_type = "SOLD"

        outcome = await processor.settle(FakeSession(), "mkt-1")

        assert outcome.settled_predictions == 1
        assert store.users["bob"].rep_score == 100
        assert store.users["bob"].locked_rep_score == 50
        assert store.predictions["p2"].exit_type == "SOLD"

    async def test_processor_does_not_commit(self) -> None:
        _, processor = _setup("YES")
        session = FakeSession()
        await processor.settle(session, "mkt-1")
        assert session.commits == 0
