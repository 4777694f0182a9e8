"""Unit tests for OracleEngine — lock / resolve / settle over in-memory repositories."""

from datetime import timedelta

import pytest

from src.pm_clearing.application.processor import SettlementProcessor
from src.pm_common.errors import MarketNotFoundError, MarketNotResolvableError
from src.pm_oracle.application.engine import OracleEngine
from src.pm_oracle.application.resolver import OracleResolver
from src.pm_oracle.domain.evidence import Reading
from src.pm_prediction.domain.models import Prediction
from tests.unit.fakes import (
    NOW,
    FakeEvidenceRepo,
    FakeMarketRepo,
    FakePredictionRepo,
    FakeSessionFactory,
    FakeSettlementRepo,
    FakeUserRepo,
    Store,
)


class StaticPriceSource:
    name = "static"

    def __init__(self, value: float | None) -> None:
        self.value = value
        self.calls = 0

    async def get_price(self, asset: str) -> Reading | None:
        self.calls += 1
        return None if self.value is None else Reading(self.value, NOW.isoformat())


class ExplodingResolver:
    async def resolve(self, oracle_type, raw_config):
        raise RuntimeError("resolver unavailable")


class SessionAwareResolver:
    """Records whether any DB session was open while the data sources were queried."""

    def __init__(self, inner: OracleResolver) -> None:
        self.inner = inner
        self.factory: FakeSessionFactory | None = None
        self.session_open: list[bool] = []

    async def resolve(self, oracle_type, raw_config):
        self.session_open.append(self.factory.any_active)
        return await self.inner.resolve(oracle_type, raw_config)


def _engine(store: Store, price: float | None = 120000, resolver=None):
    markets = FakeMarketRepo(store)
    source = StaticPriceSource(price)
    engine = OracleEngine(
        session_factory=FakeSessionFactory(),
        resolver=resolver or OracleResolver(
            price_sources=[source], metric_sources=[], count_sources=[], clock=lambda: NOW
        ),
        market_repo=markets,
        evidence_repo=FakeEvidenceRepo(store),
        settlement_processor=SettlementProcessor(
            market_repo=markets,
            prediction_repo=FakePredictionRepo(store),
            user_repo=FakeUserRepo(store),
            settlement_repo=FakeSettlementRepo(store),
        ),
        clock=lambda: NOW,
    )
    return engine, source, markets


def _due_market(store: Store, market_id: str, status: str = "LOCKED"):
    return store.add_market(
        market_id,
        status=status,
        locks_at=NOW - timedelta(days=2),
        resolves_at=NOW - timedelta(hours=1),
    )


def _stake(store: Store, pid: str, user: str, position: str, stake: float, market_id: str = "mkt-1"):
    store.predictions[pid] = Prediction(
        id=pid, market_id=market_id, user_id=user, position=position,
        stake_amount=stake, credibility_at_prediction=0, weighted_stake=stake,
    )
    market = store.markets[market_id]
    if position == "YES":
        market.total_stake_yes += stake
    else:
        market.total_stake_no += stake


class TestRun:
    async def test_locks_due_markets_only(self) -> None:
        store = Store()
        store.add_market("due", locks_at=NOW - timedelta(minutes=1), resolves_at=NOW + timedelta(days=1))
        store.add_market("later", locks_at=NOW + timedelta(minutes=1))
        engine, _, _ = _engine(store)

        result = await engine.run()

        assert result.locked == ["due"]
        assert store.markets["due"].status == "LOCKED"
        assert store.markets["later"].status == "OPEN"
        assert result.processed == 1

    async def test_full_pipeline_in_one_run(self) -> None:
        store = Store()
        store.add_user("alice", rep=100, locked=20)
        store.add_user("bob", rep=100, locked=10)
        _due_market(store, "mkt-1")
        _stake(store, "p1", "alice", "YES", 20)
        _stake(store, "p2", "bob", "NO", 10)
        engine, _, _ = _engine(store, price=120000)

        result = await engine.run()

        assert result.resolved == ["mkt-1"]
        assert result.settled == ["mkt-1"]
        assert result.errors == []
        assert result.processed == 2
        market = store.markets["mkt-1"]
        assert market.status == "SETTLED"
        assert market.resolution_outcome == "YES"
        assert market.resolution_value == "120000"
        assert market.resolution_evidence_id == "ev-1"
        assert store.users["alice"].rep_score == 105
        assert store.users["alice"].total_won == pytest.approx(30)
        assert store.users["bob"].rep_score == 97
        assert store.settlements["mkt-1"][2] == "ev-1"

    async def test_second_run_changes_nothing(self) -> None:
        store = Store()
        store.add_user("alice", rep=100, locked=20)
        _due_market(store, "mkt-1")
        _stake(store, "p1", "alice", "YES", 20)
        engine, source, _ = _engine(store)
        await engine.run()
        snapshot = (store.users["alice"].rep_score, len(store.evidence), len(store.settlements))

        result = await engine.run()

        assert result.processed == 0
        assert source.calls == 1
        assert (store.users["alice"].rep_score, len(store.evidence), len(store.settlements)) == snapshot

    async def test_no_data_cancels_and_refunds(self) -> None:
        store = Store()
        store.add_user("alice", rep=100, locked=20)
        _due_market(store, "mkt-1")
        _stake(store, "p1", "alice", "YES", 20)
        engine, _, _ = _engine(store, price=None)

        result = await engine.run()

        assert result.settled == ["mkt-1"]
        market = store.markets["mkt-1"]
        assert market.status == "CANCELLED"
        assert market.resolution_outcome == "INVALID"
        assert market.resolution_value == "No valid price data available"
        assert store.users["alice"].rep_score == 100
        assert store.users["alice"].locked_rep_score == 0
        assert store.settlements == {}

    async def test_resolver_failure_leaves_market_locked(self) -> None:
        store = Store()
        _due_market(store, "mkt-1")
        engine, _, _ = _engine(store, resolver=ExplodingResolver())

        result = await engine.run()

        assert result.resolved == []
        assert [(e.market_id, e.error) for e in result.errors] == [("mkt-1", "resolver unavailable")]
        assert store.markets["mkt-1"].status == "LOCKED"
        assert store.evidence == {}

    async def test_one_failing_market_does_not_block_others(self) -> None:
        store = Store()
        store.add_market("bad", locks_at=NOW - timedelta(minutes=5))
        store.add_market("good", locks_at=NOW - timedelta(minutes=5))
        engine, _, markets = _engine(store)
        markets.fail_transition_for.add("bad")

        result = await engine.run()

        assert result.locked == ["good"]
        assert [e.market_id for e in result.errors] == ["bad"]

    async def test_skips_markets_returned_before_their_time(self) -> None:
        class EagerMarketRepo(FakeMarketRepo):
            async def list_due_for_lock(self, db, now):
                return await self.list_by_status(db, "OPEN")

            async def list_due_for_resolve(self, db, now):
                return await self.list_by_status(db, "LOCKED")

        store = Store()
        store.add_market("early", locks_at=NOW + timedelta(minutes=1))
        store.add_market(
            "pending", status="LOCKED", locks_at=NOW - timedelta(days=1),
            resolves_at=NOW + timedelta(hours=1),
        )
        engine, source, _ = _engine(store)
        engine._markets = EagerMarketRepo(store)

        result = await engine.run()

        assert result.locked == []
        assert result.resolved == []
        assert store.markets["early"].status == "OPEN"
        assert store.markets["pending"].status == "LOCKED"
        assert source.calls == 0

    async def test_each_market_commits_separately(self) -> None:
        store = Store()
        store.add_market("a", locks_at=NOW - timedelta(minutes=5))
        store.add_market("b", locks_at=NOW - timedelta(minutes=5))
        engine, _, _ = _engine(store)

        await engine.run()

        assert engine._session_factory.commits == 2


class TestStatus:
    async def test_counts(self) -> None:
        store = Store()
        store.add_market("o1")
        store.add_market("o2", locks_at=NOW - timedelta(minutes=1))
        _due_market(store, "l1")
        store.add_market("r1", status="RESOLVED")
        store.add_market("s1", status="SETTLED")
        engine, _, _ = _engine(store)

        status = await engine.status()

        assert status.open == 2
        assert status.locked == 1
        assert status.resolved == 1
        assert status.settled == 1
        assert status.cancelled == 0
        assert status.pending_lock == 1
        assert status.pending_resolve == 1
        assert status.needs_processing is True

    async def test_idle(self) -> None:
        store = Store()
        store.add_market("o1")
        engine, _, _ = _engine(store)
        assert (await engine.status()).needs_processing is False


class TestManualResolution:
    async def test_preview_writes_nothing(self) -> None:
        store = Store()
        store.add_market("mkt-1")
        engine, _, _ = _engine(store, price=90000)

        preview = await engine.preview_resolution("mkt-1")

        assert preview.result.outcome == "NO"
        assert preview.evidence_id is None
        assert preview.can_resolve is False
        assert store.evidence == {}
        assert store.markets["mkt-1"].status == "OPEN"

    async def test_preview_any_status(self) -> None:
        store = Store()
        store.add_market("mkt-1", status="SETTLED")
        engine, _, _ = _engine(store)
        preview = await engine.preview_resolution("mkt-1")
        assert preview.market.status == "SETTLED"

    async def test_resolve_open_market(self) -> None:
        store = Store()
        store.add_market("mkt-1")
        engine, _, _ = _engine(store, price=150000)

        resolution = await engine.resolve_market_manually("mkt-1")

        assert resolution.evidence_id == "ev-1"
        assert resolution.result.outcome == "YES"
        assert store.markets["mkt-1"].status == "RESOLVED"
        assert store.markets["mkt-1"].resolution_evidence_id == "ev-1"
        assert resolution.market.status == "RESOLVED"

    @pytest.mark.parametrize("status", ["RESOLVED", "SETTLED", "CANCELLED"])
    async def test_rejects_non_resolvable(self, status: str) -> None:
        store = Store()
        store.add_market("mkt-1", status=status)
        engine, source, _ = _engine(store)

        with pytest.raises(MarketNotResolvableError):
            await engine.resolve_market_manually("mkt-1")
        assert source.calls == 0

    async def test_unknown_market(self) -> None:
        engine, _, _ = _engine(Store())
        with pytest.raises(MarketNotFoundError):
            await engine.resolve_market_manually("ghost")
        with pytest.raises(MarketNotFoundError):
            await engine.preview_resolution("ghost")


class TestNoSessionHeldDuringResolution:
    def _engine(self, store: Store):
        resolver = SessionAwareResolver(
            OracleResolver(
                price_sources=[StaticPriceSource(150000)], metric_sources=[], count_sources=[],
                clock=lambda: NOW,
            )
        )
        engine, _, _ = _engine(store, resolver=resolver)
        resolver.factory = engine._session_factory
        return engine, resolver

    async def test_manual_resolution(self) -> None:
        store = Store()
        store.add_market("mkt-1")
        engine, resolver = self._engine(store)

        resolution = await engine.resolve_market_manually("mkt-1")

        assert resolver.session_open == [False]
        assert resolution.market.status == "RESOLVED"
        # Read and persist each get their own session.
        assert len(engine._session_factory.sessions) == 2
        assert engine._session_factory.sessions[0].commits == 0

    async def test_scheduled_resolution(self) -> None:
        store = Store()
        _due_market(store, "mkt-1")
        engine, resolver = self._engine(store)

        result = await engine.run()

        assert resolver.session_open == [False]
        assert result.resolved == ["mkt-1"]
