"""Evidence snapshot and its content hash.

The hash covers only decision-relevant fields so any party holding the
extracted readings can reproduce it without the raw provider payloads:

    sha256(compact JSON of {timestamp, oracleType,
                            sources[{source, value, timestamp}],
                            extractedValue, decision})

Key order is fixed and integral floats serialise as integers (52000.0 -> 52000),
matching how a JSON encoder without a float/int distinction writes numbers.
"""

import hashlib
import json
import math
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Reading:
    """A single numeric reading returned by a data-source adapter."""

    value: float
    timestamp: str
    raw: Any = None


@dataclass(frozen=True)
class SourceReading:
    source: str
    value: float | None
    timestamp: str
    raw: Any = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.value is not None and math.isfinite(self.value)


@dataclass(frozen=True)
class EvidenceSnapshot:
    timestamp: str
    oracle_type: str
    sources: tuple[SourceReading, ...]
    extracted_value: float | str
    decision: str
    config: dict[str, Any] = field(default_factory=dict)

    def sources_payload(self) -> list[dict[str, Any]]:
        """Full per-source records (raw payload and errors included) for storage."""
        out = []
        for s in self.sources:
            item: dict[str, Any] = {
                "source": s.source,
                "value": canonical_number(s.value),
                "timestamp": s.timestamp,
                "rawResponse": s.raw,
            }
            if s.error is not None:
                item["error"] = s.error
            out.append(item)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "oracleType": self.oracle_type,
            "sources": self.sources_payload(),
            "extractedValue": canonical_number(self.extracted_value),
            "decision": self.decision,
            "config": self.config,
        }


@dataclass(frozen=True)
class ResolutionResult:
    outcome: str
    evidence: EvidenceSnapshot
    evidence_hash: str


def canonical_number(value: Any) -> Any:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def hash_evidence(evidence: EvidenceSnapshot) -> str:
    normalized = {
        "timestamp": evidence.timestamp,
        "oracleType": evidence.oracle_type,
        "sources": [
            {
                "source": s.source,
                "value": canonical_number(s.value),
                "timestamp": s.timestamp,
            }
            for s in evidence.sources
        ],
        "extractedValue": canonical_number(evidence.extracted_value),
        "decision": evidence.decision,
    }
    encoded = json.dumps(normalized, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def format_reading(value: float | str) -> str:
    """Stringified extracted value as stored in markets.resolution_value."""
    canonical = canonical_number(value)
    return canonical if isinstance(canonical, str) else str(canonical)
