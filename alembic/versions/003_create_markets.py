"""003: create markets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                          VARCHAR(64)         PRIMARY KEY DEFAULT gen_random_uuid()::text,
            title                       TEXT                NOT NULL,
            description                 TEXT,
            category                    VARCHAR(64),
            oracle_type                 VARCHAR(32)         NOT NULL,
            oracle_config               JSONB               NOT NULL DEFAULT '{}'::jsonb,
            locks_at                    TIMESTAMPTZ         NOT NULL,
            resolves_at                 TIMESTAMPTZ,
            status                      VARCHAR(20)         NOT NULL DEFAULT 'OPEN',
            resolution_outcome          VARCHAR(10),
            resolution_value            TEXT,
            resolution_evidence_id      VARCHAR(64),
            resolved_at                 TIMESTAMPTZ,
            settled_at                  TIMESTAMPTZ,
            total_stake_yes             DOUBLE PRECISION    NOT NULL DEFAULT 0,
            total_stake_no              DOUBLE PRECISION    NOT NULL DEFAULT 0,
            total_weighted_stake_yes    DOUBLE PRECISION    NOT NULL DEFAULT 0,
            total_weighted_stake_no     DOUBLE PRECISION    NOT NULL DEFAULT 0,
            virtual_stake_yes           DOUBLE PRECISION    DEFAULT 1000,
            virtual_stake_no            DOUBLE PRECISION    DEFAULT 1000,
            raw_probability_yes         DOUBLE PRECISION    NOT NULL DEFAULT 0.5,
            weighted_probability_yes    DOUBLE PRECISION    NOT NULL DEFAULT 0.5,
            created_at                  TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('OPEN', 'LOCKED', 'RESOLVED', 'SETTLED', 'CANCELLED')
            ),
            CONSTRAINT ck_markets_oracle_type CHECK (
                oracle_type IN ('price_close', 'metric_threshold', 'count_threshold')
            ),
            CONSTRAINT ck_markets_resolution CHECK (
                resolution_outcome IS NULL OR resolution_outcome IN ('YES', 'NO', 'INVALID')
            ),
            CONSTRAINT ck_markets_schedule CHECK (resolves_at IS NULL OR resolves_at > locks_at),
            CONSTRAINT ck_markets_stakes_gte_0 CHECK (
                total_stake_yes >= 0 AND total_stake_no >= 0
                AND total_weighted_stake_yes >= 0 AND total_weighted_stake_no >= 0
            ),
            CONSTRAINT ck_markets_probability_range CHECK (
                raw_probability_yes BETWEEN 0 AND 1
                AND weighted_probability_yes BETWEEN 0 AND 1
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_locks_at ON markets (status, locks_at);")
    op.execute("CREATE INDEX idx_markets_status_resolves_at ON markets (status, resolves_at);")
    op.execute("CREATE INDEX idx_markets_created_at_id ON markets (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary market: oracle config, lifecycle status, stake aggregates and probabilities';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
