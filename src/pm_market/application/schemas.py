"""Pydantic schemas for pm_market API responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.
"""

import base64
import json
from typing import Any

from pydantic import BaseModel

from src.pm_common.datetime_utils import to_iso
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": to_iso(last_market.created_at),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id); a malformed cursor restarts paging."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Market list item (lightweight: no oracle config or resolution audit fields)
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    title: str
    category: str | None
    status: str
    oracle_type: str
    locks_at: str | None
    resolves_at: str | None
    total_stake_yes: float
    total_stake_no: float
    raw_probability_yes: float
    weighted_probability_yes: float

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            title=m.title,
            category=m.category,
            status=m.status,
            oracle_type=m.oracle_type,
            locks_at=to_iso(m.locks_at),
            resolves_at=to_iso(m.resolves_at),
            total_stake_yes=m.total_stake_yes,
            total_stake_no=m.total_stake_no,
            raw_probability_yes=m.raw_probability_yes,
            weighted_probability_yes=m.weighted_probability_yes,
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Market detail (full fields, including oracle config and resolution fields)
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    title: str
    description: str | None
    category: str | None
    status: str
    oracle_type: str
    oracle_config: dict[str, Any]
    locks_at: str | None
    resolves_at: str | None
    resolution_outcome: str | None
    resolution_value: str | None
    resolution_evidence_id: str | None
    resolved_at: str | None
    settled_at: str | None
    total_stake_yes: float
    total_stake_no: float
    total_weighted_stake_yes: float
    total_weighted_stake_no: float
    virtual_stake_yes: float
    virtual_stake_no: float
    raw_probability_yes: float
    weighted_probability_yes: float
    # OPEN and before locks_at; filled in by the service, which owns the clock
    accepting_predictions: bool = False

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            title=m.title,
            description=m.description,
            category=m.category,
            status=m.status,
            oracle_type=m.oracle_type,
            oracle_config=m.oracle_config,
            locks_at=to_iso(m.locks_at),
            resolves_at=to_iso(m.resolves_at),
            resolution_outcome=m.resolution_outcome,
            resolution_value=m.resolution_value,
            resolution_evidence_id=m.resolution_evidence_id,
            resolved_at=to_iso(m.resolved_at),
            settled_at=to_iso(m.settled_at),
            total_stake_yes=m.total_stake_yes,
            total_stake_no=m.total_stake_no,
            total_weighted_stake_yes=m.total_weighted_stake_yes,
            total_weighted_stake_no=m.total_weighted_stake_no,
            virtual_stake_yes=m.virtual_stake_yes,
            virtual_stake_no=m.virtual_stake_no,
            raw_probability_yes=m.raw_probability_yes,
            weighted_probability_yes=m.weighted_probability_yes,
        )
