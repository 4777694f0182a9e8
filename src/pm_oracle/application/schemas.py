"""Pydantic response schemas for the oracle endpoints."""

from typing import Any

from pydantic import BaseModel

from src.pm_common.datetime_utils import to_iso
from src.pm_oracle.application.engine import (
    MarketResolution,
    OracleEngineResult,
    OracleStatus,
)
from src.pm_oracle.domain.evidence import ResolutionResult, canonical_number


class SourceOut(BaseModel):
    source: str
    value: float | None
    timestamp: str
    error: str | None = None


class ResolutionOut(BaseModel):
    outcome: str
    extracted_value: Any
    evidence_hash: str
    timestamp: str
    sources: list[SourceOut]
    config: dict[str, Any]

    @classmethod
    def from_domain(cls, r: ResolutionResult) -> "ResolutionOut":
        ev = r.evidence
        return cls(
            outcome=r.outcome,
            extracted_value=canonical_number(ev.extracted_value),
            evidence_hash=r.evidence_hash,
            timestamp=ev.timestamp,
            sources=[
                SourceOut(source=s.source, value=s.value, timestamp=s.timestamp, error=s.error)
                for s in ev.sources
            ],
            config=ev.config,
        )


class ResolutionMarketOut(BaseModel):
    id: str
    title: str
    status: str
    locks_at: str | None
    resolves_at: str | None


class ResolutionPreviewResponse(BaseModel):
    preview: bool = True
    can_resolve: bool
    market: ResolutionMarketOut
    resolution: ResolutionOut

    @classmethod
    def from_domain(cls, mr: MarketResolution) -> "ResolutionPreviewResponse":
        return cls(
            can_resolve=mr.can_resolve,
            market=_market_out(mr),
            resolution=ResolutionOut.from_domain(mr.result),
        )


class ManualResolveResponse(BaseModel):
    market: ResolutionMarketOut
    evidence_id: str | None
    resolution: ResolutionOut

    @classmethod
    def from_domain(cls, mr: MarketResolution) -> "ManualResolveResponse":
        return cls(
            market=_market_out(mr),
            evidence_id=mr.evidence_id,
            resolution=ResolutionOut.from_domain(mr.result),
        )


def _market_out(mr: MarketResolution) -> ResolutionMarketOut:
    m = mr.market
    return ResolutionMarketOut(
        id=m.id,
        title=m.title,
        status=m.status,
        locks_at=to_iso(m.locks_at),
        resolves_at=to_iso(m.resolves_at),
    )


class EngineErrorOut(BaseModel):
    market_id: str
    error: str


class OracleRunResponse(BaseModel):
    processed: int
    locked: list[str]
    resolved: list[str]
    settled: list[str]
    errors: list[EngineErrorOut]

    @classmethod
    def from_domain(cls, r: OracleEngineResult) -> "OracleRunResponse":
        return cls(
            processed=r.processed,
            locked=r.locked,
            resolved=r.resolved,
            settled=r.settled,
            errors=[EngineErrorOut(market_id=e.market_id, error=e.error) for e in r.errors],
        )


class OracleStatusResponse(BaseModel):
    open: int
    locked: int
    resolved: int
    settled: int
    cancelled: int
    pending_lock: int
    pending_resolve: int
    needs_processing: bool

    @classmethod
    def from_domain(cls, s: OracleStatus) -> "OracleStatusResponse":
        return cls(
            open=s.open,
            locked=s.locked,
            resolved=s.resolved,
            settled=s.settled,
            cancelled=s.cancelled,
            pending_lock=s.pending_lock,
            pending_resolve=s.pending_resolve,
            needs_processing=s.needs_processing,
        )
