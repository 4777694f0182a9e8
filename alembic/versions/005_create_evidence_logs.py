"""005: create evidence_logs table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE evidence_logs (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id),
            oracle_type         VARCHAR(32)     NOT NULL,
            sources_queried     JSONB           NOT NULL,
            extracted_value     TEXT            NOT NULL,
            decision            VARCHAR(10)     NOT NULL,
            evidence_hash       VARCHAR(64)     NOT NULL,
            config              JSONB           NOT NULL DEFAULT '{}'::jsonb,
            fetched_at          TIMESTAMPTZ     NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_evidence_decision CHECK (decision IN ('YES', 'NO', 'INVALID'))
        );
    """)
    op.execute("CREATE INDEX idx_evidence_logs_market ON evidence_logs (market_id, created_at);")
    op.execute("""
        ALTER TABLE markets
            ADD CONSTRAINT fk_markets_resolution_evidence
            FOREIGN KEY (resolution_evidence_id) REFERENCES evidence_logs(id);
    """)
    op.execute("COMMENT ON TABLE evidence_logs IS 'Append-only oracle evidence with reproducible SHA-256 hash';")


def downgrade() -> None:
    op.execute("ALTER TABLE markets DROP CONSTRAINT IF EXISTS fk_markets_resolution_evidence;")
    op.execute("DROP TABLE IF EXISTS evidence_logs CASCADE;")
