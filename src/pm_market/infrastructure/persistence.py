"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Status changes are single conditional UPDATEs (WHERE status = :expected), so
two overlapping oracle runs can never both move the same market.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_amm.domain.pricing import Probabilities, StakeAggregates
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import InvalidStatusTransitionError
from src.pm_market.domain.models import Market, can_transition

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, title, description, category, oracle_type, oracle_config,
    locks_at, resolves_at, status,
    resolution_outcome, resolution_value, resolution_evidence_id,
    resolved_at, settled_at,
    total_stake_yes, total_stake_no,
    total_weighted_stake_yes, total_weighted_stake_no,
    virtual_stake_yes, virtual_stake_no,
    raw_probability_yes, weighted_probability_yes,
    created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_GET_MARKET_FOR_UPDATE_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
    FOR UPDATE
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_DUE_FOR_LOCK_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status = 'OPEN' AND locks_at <= :now
    ORDER BY locks_at, id
""")

_DUE_FOR_RESOLVE_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status = 'LOCKED' AND resolves_at IS NOT NULL AND resolves_at <= :now
    ORDER BY resolves_at, id
""")

_BY_STATUS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status = :status
    ORDER BY updated_at, id
""")

_TRANSITION_SQL = text("""
    UPDATE markets
    SET status = CAST(:target AS TEXT),
        resolution_outcome = COALESCE(CAST(:outcome AS TEXT), resolution_outcome),
        resolution_value = COALESCE(CAST(:value AS TEXT), resolution_value),
        resolution_evidence_id = COALESCE(CAST(:evidence_id AS TEXT), resolution_evidence_id),
        resolved_at = CASE WHEN CAST(:target AS TEXT) = 'RESOLVED'
                           THEN NOW() ELSE resolved_at END,
        settled_at  = CASE WHEN CAST(:target AS TEXT) IN ('SETTLED', 'CANCELLED')
                           THEN NOW() ELSE settled_at END,
        updated_at = NOW()
    WHERE id = :market_id AND status = CAST(:expected AS TEXT)
    RETURNING id
""")

_UPDATE_AGGREGATES_SQL = text("""
    UPDATE markets
    SET total_stake_yes = :stake_yes,
        total_stake_no = :stake_no,
        total_weighted_stake_yes = :weighted_yes,
        total_weighted_stake_no = :weighted_no,
        raw_probability_yes = :raw_prob_yes,
        weighted_probability_yes = :weighted_prob_yes,
        updated_at = NOW()
    WHERE id = :market_id
""")

_COUNT_BY_STATUS_SQL = text("""
    SELECT status, COUNT(*) AS n
    FROM markets
    GROUP BY status
""")

_COUNT_PENDING_LOCK_SQL = text("""
    SELECT COUNT(*) FROM markets WHERE status = 'OPEN' AND locks_at <= :now
""")

_COUNT_PENDING_RESOLVE_SQL = text("""
    SELECT COUNT(*) FROM markets
    WHERE status = 'LOCKED' AND resolves_at IS NOT NULL AND resolves_at <= :now
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _json_field(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _virtual(value: Any) -> float:
    # Rows seeded before the column default existed carry NULL.
    if value is None:
        return settings.DEFAULT_VIRTUAL_LIQUIDITY
    return float(value)


def _row_to_market(row: Any) -> Market:
    return Market(
        id=row.id,
        title=row.title,
        description=row.description,
        category=row.category,
        oracle_type=row.oracle_type,
        oracle_config=_json_field(row.oracle_config),
        locks_at=row.locks_at,
        resolves_at=row.resolves_at,
        status=row.status,
        resolution_outcome=row.resolution_outcome,
        resolution_value=row.resolution_value,
        resolution_evidence_id=row.resolution_evidence_id,
        resolved_at=row.resolved_at,
        settled_at=row.settled_at,
        total_stake_yes=float(row.total_stake_yes),
        total_stake_no=float(row.total_stake_no),
        total_weighted_stake_yes=float(row.total_weighted_stake_yes),
        total_weighted_stake_no=float(row.total_weighted_stake_no),
        virtual_stake_yes=_virtual(row.virtual_stake_yes),
        virtual_stake_no=_virtual(row.virtual_stake_no),
        raw_probability_yes=float(row.raw_probability_yes),
        weighted_probability_yes=float(row.weighted_probability_yes),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None:
        row = (await db.execute(_GET_MARKET_SQL, {"market_id": market_id})).fetchone()
        return _row_to_market(row) if row else None

    async def get_market_for_update(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        row = (
            await db.execute(_GET_MARKET_FOR_UPDATE_SQL, {"market_id": market_id})
        ).fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "category": category,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def list_due_for_lock(self, db: AsyncSession, now: datetime) -> list[Market]:
        rows = (await db.execute(_DUE_FOR_LOCK_SQL, {"now": now})).fetchall()
        return [_row_to_market(row) for row in rows]

    async def list_due_for_resolve(
        self, db: AsyncSession, now: datetime
    ) -> list[Market]:
        rows = (await db.execute(_DUE_FOR_RESOLVE_SQL, {"now": now})).fetchall()
        return [_row_to_market(row) for row in rows]

    async def list_by_status(self, db: AsyncSession, status: str) -> list[Market]:
        rows = (await db.execute(_BY_STATUS_SQL, {"status": status})).fetchall()
        return [_row_to_market(row) for row in rows]

    async def transition_status(
        self,
        db: AsyncSession,
        market_id: str,
        expected: str,
        target: str,
        resolution_outcome: str | None = None,
        resolution_value: str | None = None,
        resolution_evidence_id: str | None = None,
    ) -> bool:
        if not can_transition(expected, target):
            raise InvalidStatusTransitionError(market_id, expected, target)
        row = (
            await db.execute(
                _TRANSITION_SQL,
                {
                    "market_id": market_id,
                    "expected": expected,
                    "target": target,
                    "outcome": resolution_outcome,
                    "value": resolution_value,
                    "evidence_id": resolution_evidence_id,
                },
            )
        ).fetchone()
        return row is not None

    async def update_aggregates(
        self,
        db: AsyncSession,
        market_id: str,
        aggregates: StakeAggregates,
        probabilities: Probabilities,
    ) -> None:
        await db.execute(
            _UPDATE_AGGREGATES_SQL,
            {
                "market_id": market_id,
                "stake_yes": aggregates.stake_yes,
                "stake_no": aggregates.stake_no,
                "weighted_yes": aggregates.weighted_yes,
                "weighted_no": aggregates.weighted_no,
                "raw_prob_yes": probabilities.raw_prob_yes,
                "weighted_prob_yes": probabilities.weighted_prob_yes,
            },
        )

    async def count_by_status(self, db: AsyncSession) -> dict[str, int]:
        counts = {status.value: 0 for status in MarketStatus}
        for row in (await db.execute(_COUNT_BY_STATUS_SQL)).fetchall():
            counts[row.status] = int(row.n)
        return counts

    async def count_pending_lock(self, db: AsyncSession, now: datetime) -> int:
        return int((await db.execute(_COUNT_PENDING_LOCK_SQL, {"now": now})).scalar_one())

    async def count_pending_resolve(self, db: AsyncSession, now: datetime) -> int:
        return int(
            (await db.execute(_COUNT_PENDING_RESOLVE_SQL, {"now": now})).scalar_one()
        )
