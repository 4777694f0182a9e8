"""OracleResolver — oracle type + config -> YES / NO / INVALID with hashed evidence.

resolve() never raises. Config problems, missing data, adapter timeouts and
adapter crashes all become an INVALID result whose evidence says why.

Consensus per oracle type:
  price_close       median-index of the sorted valid readings
  metric_threshold  first valid reading (protocol lookup wins over chain)
  count_threshold   first valid reading
"""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from functools import partial
from typing import Any

from config.settings import settings
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import ResolutionOutcome
from src.pm_common.errors import InvalidOracleConfigError
from src.pm_oracle.domain.config import (
    KNOWN_ORACLE_TYPES,
    CountThresholdConfig,
    MetricThresholdConfig,
    PriceCloseConfig,
    parse_oracle_config,
)
from src.pm_oracle.domain.evidence import (
    EvidenceSnapshot,
    Reading,
    ResolutionResult,
    SourceReading,
    hash_evidence,
)
from src.pm_oracle.sources.base import CountSource, MetricSource, PriceSource
from src.pm_oracle.sources.coingecko import CoinGeckoPriceSource
from src.pm_oracle.sources.defillama import DefiLlamaTVLSource
from src.pm_oracle.sources.ethos import EthosProfileCountSource

logger = logging.getLogger(__name__)


def should_lock(locks_at: datetime, now: datetime | None = None) -> bool:
    return (now or utc_now()) >= locks_at


def can_resolve(resolves_at: datetime | None, now: datetime | None = None) -> bool:
    if resolves_at is None:
        return False
    return (now or utc_now()) >= resolves_at


def _decide(condition: bool) -> str:
    return ResolutionOutcome.YES.value if condition else ResolutionOutcome.NO.value


class OracleResolver:
    def __init__(
        self,
        price_sources: Sequence[PriceSource] | None = None,
        metric_sources: Sequence[MetricSource] | None = None,
        count_sources: Sequence[CountSource] | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._price_sources: list[PriceSource] = (
            list(price_sources) if price_sources is not None else [CoinGeckoPriceSource()]
        )
        self._metric_sources: list[MetricSource] = (
            list(metric_sources) if metric_sources is not None else [DefiLlamaTVLSource()]
        )
        self._count_sources: list[CountSource] = (
            list(count_sources) if count_sources is not None else [EthosProfileCountSource()]
        )
        self._timeout = timeout if timeout is not None else settings.ORACLE_SOURCE_TIMEOUT_SECONDS
        self._clock = clock

    async def aclose(self) -> None:
        """Close the adapters' HTTP clients."""
        for src in (*self._price_sources, *self._metric_sources, *self._count_sources):
            close = getattr(src, "aclose", None)
            if close is not None:
                await close()

    async def resolve(
        self, oracle_type: str, raw_config: dict[str, Any] | None
    ) -> ResolutionResult:
        timestamp = self._clock().isoformat()
        config_record = {**(raw_config or {}), "type": oracle_type}

        if oracle_type not in KNOWN_ORACLE_TYPES:
            return self._invalid(
                f"Unknown oracle type: {oracle_type}", timestamp, oracle_type, config_record
            )

        try:
            config = parse_oracle_config(oracle_type, raw_config)
        except InvalidOracleConfigError as exc:
            logger.warning("Rejected %s config %r: %s", oracle_type, raw_config, exc.detail)
            return self._invalid(exc.message, timestamp, oracle_type, config_record)

        if isinstance(config, PriceCloseConfig):
            return await self._resolve_price_close(config, timestamp)
        if isinstance(config, MetricThresholdConfig):
            return await self._resolve_metric_threshold(config, timestamp)
        return await self._resolve_count_threshold(config, timestamp)

    # ------------------------------------------------------------------
    # Per-type resolvers
    # ------------------------------------------------------------------

    async def _resolve_price_close(
        self, config: PriceCloseConfig, timestamp: str
    ) -> ResolutionResult:
        sources = [
            await self._query(
                src.name, partial(src.get_price, config.asset), timestamp, "Failed to fetch price"
            )
            for src in self._price_sources
        ]
        valid = sorted(s.value for s in sources if s.is_valid)  # type: ignore[type-var]
        if not valid:
            return self._invalid(
                "No valid price data available", timestamp, config.type,
                config.to_evidence(), sources,
            )

        extracted = valid[len(valid) // 2]
        if config.comparison == "above":
            decision = _decide(extracted >= config.target_price)
        else:
            decision = _decide(extracted <= config.target_price)
        return self._result(timestamp, config.type, sources, extracted, decision, config.to_evidence())

    async def _resolve_metric_threshold(
        self, config: MetricThresholdConfig, timestamp: str
    ) -> ResolutionResult:
        sources: list[SourceReading] = []
        for src in self._metric_sources:
            if config.protocol:
                call = partial(src.get_protocol_tvl, config.protocol)
            else:
                call = partial(src.get_chain_tvl, config.chain)
            sources.append(await self._query(src.name, call, timestamp, "Failed to fetch TVL"))

        valid = [s.value for s in sources if s.is_valid]
        if not valid:
            return self._invalid(
                "No valid TVL data available", timestamp, config.type,
                config.to_evidence(), sources,
            )

        extracted = valid[0]
        decision = _decide(extracted >= config.target_value)  # type: ignore[operator]
        return self._result(timestamp, config.type, sources, extracted, decision, config.to_evidence())

    async def _resolve_count_threshold(
        self, config: CountThresholdConfig, timestamp: str
    ) -> ResolutionResult:
        sources: list[SourceReading] = []
        for src in self._count_sources:
            reading = await self._query(
                src.name, src.get_profile_count, timestamp, "Failed to fetch profile count"
            )
            if reading.is_valid and reading.value == 0:
                reading = dataclasses.replace(
                    reading, error="Profile count returned 0 - may be an error"
                )
            sources.append(reading)

        valid = [s.value for s in sources if s.is_valid]
        if not valid:
            return self._invalid(
                "No valid profile count available", timestamp, config.type,
                config.to_evidence(), sources,
            )

        extracted = valid[0]
        decision = _decide(extracted >= config.target_count)  # type: ignore[operator]
        return self._result(timestamp, config.type, sources, extracted, decision, config.to_evidence())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _query(
        self,
        source_name: str,
        call: Callable[[], Awaitable[Reading | None]],
        timestamp: str,
        failure: str,
    ) -> SourceReading:
        """Run one adapter call under the per-source timeout."""
        try:
            reading = await asyncio.wait_for(call(), timeout=self._timeout)
        except TimeoutError:
            logger.warning("%s timed out after %.1fs", source_name, self._timeout)
            return SourceReading(
                source=source_name, value=None, timestamp=timestamp,
                error=f"{failure}: timed out after {self._timeout:g}s",
            )
        except Exception as exc:  # adapter bugs must not escape resolve()
            logger.warning("%s raised during fetch", source_name, exc_info=True)
            return SourceReading(
                source=source_name, value=None, timestamp=timestamp,
                error=f"{failure}: {exc!r}",
            )

        if reading is None:
            return SourceReading(source=source_name, value=None, timestamp=timestamp, error=failure)
        return SourceReading(
            source=source_name, value=reading.value, timestamp=reading.timestamp, raw=reading.raw
        )

    @staticmethod
    def _result(
        timestamp: str,
        oracle_type: str,
        sources: list[SourceReading],
        extracted: float | str,
        decision: str,
        config: dict[str, Any],
    ) -> ResolutionResult:
        evidence = EvidenceSnapshot(
            timestamp=timestamp,
            oracle_type=oracle_type,
            sources=tuple(sources),
            extracted_value=extracted,
            decision=decision,
            config=config,
        )
        return ResolutionResult(
            outcome=decision, evidence=evidence, evidence_hash=hash_evidence(evidence)
        )

    def _invalid(
        self,
        reason: str,
        timestamp: str,
        oracle_type: str,
        config: dict[str, Any],
        sources: list[SourceReading] | None = None,
    ) -> ResolutionResult:
        return self._result(
            timestamp, oracle_type, sources or [], reason,
            ResolutionOutcome.INVALID.value, config,
        )
