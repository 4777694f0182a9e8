"""OracleEngine — drives markets through OPEN -> LOCKED -> RESOLVED -> SETTLED.

One run() executes three phases in order: lock, resolve, settle. Every market
gets its own session and transaction, so one failing market never rolls back
another. A market resolved in this run is settled in the same run.

Data sources are queried before any write is issued. A market stays LOCKED
if its resolution cannot be persisted and is retried on the next run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.application.processor import SettlementProcessor
from src.pm_common.database import SessionFactory, async_session_factory
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError, MarketNotResolvableError
from src.pm_market.domain.models import MANUALLY_RESOLVABLE, Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_oracle.application.resolver import OracleResolver, can_resolve, should_lock
from src.pm_oracle.domain.evidence import ResolutionResult, format_reading
from src.pm_oracle.domain.repository import EvidenceRepositoryProtocol
from src.pm_oracle.infrastructure.persistence import EvidenceRepository

logger = logging.getLogger(__name__)


@dataclass
class EngineError:
    market_id: str
    error: str


@dataclass
class OracleEngineResult:
    locked: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    settled: list[str] = field(default_factory=list)
    errors: list[EngineError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.locked) + len(self.resolved) + len(self.settled)


@dataclass(frozen=True)
class OracleStatus:
    open: int
    locked: int
    resolved: int
    settled: int
    cancelled: int
    pending_lock: int
    pending_resolve: int

    @property
    def needs_processing(self) -> bool:
        return self.pending_lock > 0 or self.pending_resolve > 0 or self.resolved > 0


@dataclass(frozen=True)
class MarketResolution:
    """A resolution computed for one market, persisted or not."""

    market: Market
    result: ResolutionResult
    evidence_id: str | None = None
    can_resolve: bool = False


class OracleEngine:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        resolver: OracleResolver | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        evidence_repo: EvidenceRepositoryProtocol | None = None,
        settlement_processor: SettlementProcessor | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._resolver = resolver or OracleResolver()
        self._markets = market_repo or MarketRepository()
        self._evidence = evidence_repo or EvidenceRepository()
        self._settlement = settlement_processor or SettlementProcessor(
            market_repo=self._markets
        )
        self._clock = clock

    async def aclose(self) -> None:
        await self._resolver.aclose()

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self) -> OracleEngineResult:
        result = OracleEngineResult()
        try:
            await self._lock_phase(result)
            await self._resolve_phase(result)
            await self._settle_phase(result)
        except Exception as exc:
            logger.exception("Oracle engine run aborted")
            result.errors.append(EngineError(market_id="engine", error=str(exc)))

        logger.info(
            "Oracle run: %d locked, %d resolved, %d settled, %d errors",
            len(result.locked),
            len(result.resolved),
            len(result.settled),
            len(result.errors),
        )
        return result

    async def _lock_phase(self, result: OracleEngineResult) -> None:
        now = self._clock()
        async with self._session_factory() as db:
            due = await self._markets.list_due_for_lock(db, now)

        for market in due:
            if not should_lock(market.locks_at, now):
                continue
            try:
                async with self._session_factory() as db:
                    moved = await self._markets.transition_status(
                        db, market.id, MarketStatus.OPEN.value, MarketStatus.LOCKED.value
                    )
                    await db.commit()
            except Exception as exc:
                logger.exception("Failed to lock market %s", market.id)
                result.errors.append(EngineError(market_id=market.id, error=str(exc)))
                continue
            if moved:
                logger.info("Locked market %s - %s", market.id, market.title)
                result.locked.append(market.id)

    async def _resolve_phase(self, result: OracleEngineResult) -> None:
        now = self._clock()
        async with self._session_factory() as db:
            due = await self._markets.list_due_for_resolve(db, now)

        for market in due:
            if not can_resolve(market.resolves_at, now):
                continue
            try:
                resolution = await self._resolver.resolve(
                    market.oracle_type, market.oracle_config
                )
                async with self._session_factory() as db:
                    evidence_id = await self._persist_resolution(
                        db, market, MarketStatus.LOCKED.value, resolution
                    )
            except Exception as exc:
                logger.exception("Failed to resolve market %s", market.id)
                result.errors.append(EngineError(market_id=market.id, error=str(exc)))
                continue
            if evidence_id is not None:
                logger.info(
                    "Resolved market %s -> %s (%s)",
                    market.id,
                    resolution.outcome,
                    resolution.evidence.extracted_value,
                )
                result.resolved.append(market.id)

    async def _settle_phase(self, result: OracleEngineResult) -> None:
        async with self._session_factory() as db:
            resolved = await self._markets.list_by_status(db, MarketStatus.RESOLVED.value)

        for market in resolved:
            try:
                async with self._session_factory() as db:
                    try:
                        outcome = await self._settlement.settle(db, market.id)
                        await db.commit()
                    except Exception:
                        await db.rollback()
                        raise
            except Exception as exc:
                logger.exception("Failed to settle market %s", market.id)
                result.errors.append(EngineError(market_id=market.id, error=str(exc)))
                continue
            if not outcome.skipped:
                result.settled.append(market.id)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def status(self) -> OracleStatus:
        now = self._clock()
        async with self._session_factory() as db:
            counts = await self._markets.count_by_status(db)
            pending_lock = await self._markets.count_pending_lock(db, now)
            pending_resolve = await self._markets.count_pending_resolve(db, now)
        return OracleStatus(
            open=counts.get(MarketStatus.OPEN.value, 0),
            locked=counts.get(MarketStatus.LOCKED.value, 0),
            resolved=counts.get(MarketStatus.RESOLVED.value, 0),
            settled=counts.get(MarketStatus.SETTLED.value, 0),
            cancelled=counts.get(MarketStatus.CANCELLED.value, 0),
            pending_lock=pending_lock,
            pending_resolve=pending_resolve,
        )

    # ------------------------------------------------------------------
    # Single-market operations
    # ------------------------------------------------------------------

    async def preview_resolution(self, market_id: str) -> MarketResolution:
        """Dry run: query the data sources for any market, persist nothing."""
        async with self._session_factory() as db:
            market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)

        resolution = await self._resolver.resolve(market.oracle_type, market.oracle_config)
        return MarketResolution(
            market=market,
            result=resolution,
            can_resolve=can_resolve(market.resolves_at, self._clock()),
        )

    async def resolve_market_manually(self, market_id: str) -> MarketResolution:
        """Operator override: resolve an OPEN or LOCKED market now."""
        async with self._session_factory() as db:
            market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if MarketStatus(market.status) not in MANUALLY_RESOLVABLE:
            raise MarketNotResolvableError(market_id, market.status)

        logger.info("Manually resolving market %s - %s", market.id, market.title)
        resolution = await self._resolver.resolve(market.oracle_type, market.oracle_config)

        async with self._session_factory() as db:
            evidence_id = await self._persist_resolution(db, market, market.status, resolution)
            if evidence_id is not None:
                market = await self._markets.get_market(db, market_id) or market

        if evidence_id is None:
            # Status moved between the read and the write.
            raise MarketNotResolvableError(market_id, market.status)
        return MarketResolution(market=market, result=resolution, evidence_id=evidence_id)

    async def _persist_resolution(
        self,
        db: AsyncSession,
        market: Market,
        expected_status: str,
        resolution: ResolutionResult,
    ) -> str | None:
        """Evidence row + conditional transition to RESOLVED, committed together.

        Returns the evidence id, or None (rolled back) when the market was no
        longer in `expected_status`.
        """
        try:
            evidence_id = await self._evidence.insert_evidence(db, market.id, resolution)
            moved = await self._markets.transition_status(
                db,
                market.id,
                expected_status,
                MarketStatus.RESOLVED.value,
                resolution_outcome=resolution.outcome,
                resolution_value=format_reading(resolution.evidence.extracted_value),
                resolution_evidence_id=evidence_id,
            )
            if not moved:
                await db.rollback()
                return None
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return evidence_id
