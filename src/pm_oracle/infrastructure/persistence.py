"""EvidenceRepository — append-only writes to evidence_logs.

JSON columns are bound as TEXT and cast server-side so the payload is parsed
by PostgreSQL rather than re-encoded by the driver's jsonb codec.
"""

import json
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_oracle.domain.evidence import ResolutionResult, format_reading

_INSERT_EVIDENCE_SQL = text("""
    INSERT INTO evidence_logs
        (market_id, oracle_type, sources_queried, extracted_value,
         decision, evidence_hash, config, fetched_at)
    VALUES
        (:market_id, :oracle_type, CAST(CAST(:sources AS TEXT) AS JSONB), :extracted_value,
         :decision, :evidence_hash, CAST(CAST(:config AS TEXT) AS JSONB), :fetched_at)
    RETURNING id
""")


class EvidenceRepository:
    async def insert_evidence(
        self, db: AsyncSession, market_id: str, result: ResolutionResult
    ) -> str:
        evidence = result.evidence
        row = (
            await db.execute(
                _INSERT_EVIDENCE_SQL,
                {
                    "market_id": market_id,
                    "oracle_type": evidence.oracle_type,
                    "sources": json.dumps(evidence.sources_payload(), default=str),
                    "extracted_value": format_reading(evidence.extracted_value),
                    "decision": evidence.decision,
                    "evidence_hash": result.evidence_hash,
                    "config": json.dumps(evidence.config, default=str),
                    "fetched_at": datetime.fromisoformat(evidence.timestamp),
                },
            )
        ).fetchone()
        return str(row.id)  # type: ignore[union-attr]
