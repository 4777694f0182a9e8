"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                  VARCHAR(64)         PRIMARY KEY DEFAULT gen_random_uuid()::text,
            rep_score           DOUBLE PRECISION    NOT NULL DEFAULT 0,
            locked_rep_score    DOUBLE PRECISION    NOT NULL DEFAULT 0,
            ethos_credibility   DOUBLE PRECISION    NOT NULL DEFAULT 0,
            tier                VARCHAR(20),
            total_predictions   INT                 NOT NULL DEFAULT 0,
            correct_predictions INT                 NOT NULL DEFAULT 0,
            total_staked        DOUBLE PRECISION    NOT NULL DEFAULT 0,
            total_won           DOUBLE PRECISION    NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_rep_score_gte_0     CHECK (rep_score >= 0),
            CONSTRAINT ck_users_locked_gte_0        CHECK (locked_rep_score >= 0),
            CONSTRAINT ck_users_credibility_gte_0   CHECK (ethos_credibility >= 0),
            CONSTRAINT ck_users_correct_lte_total   CHECK (correct_predictions <= total_predictions)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'RepScore balance, locked stake, credibility snapshot and prediction stats';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
