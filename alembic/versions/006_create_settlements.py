"""006: create settlements table

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settlements (
            id                  VARCHAR(64)         PRIMARY KEY DEFAULT gen_random_uuid()::text,
            market_id           VARCHAR(64)         NOT NULL REFERENCES markets(id),
            outcome             VARCHAR(10)         NOT NULL,
            total_pool          DOUBLE PRECISION    NOT NULL,
            winners_pool        DOUBLE PRECISION    NOT NULL,
            losers_pool         DOUBLE PRECISION    NOT NULL,
            total_predictions   INT                 NOT NULL,
            winning_predictions INT                 NOT NULL,
            evidence_log_id     VARCHAR(64)         REFERENCES evidence_logs(id),
            processed_at        TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_settlements_market UNIQUE (market_id),
            CONSTRAINT ck_settlements_outcome CHECK (outcome IN ('YES', 'NO')),
            CONSTRAINT ck_settlements_winners_lte_total CHECK (winning_predictions <= total_predictions)
        );
    """)
    op.execute("COMMENT ON TABLE settlements IS 'One record per settled market; UNIQUE(market_id) is the idempotency key';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settlements CASCADE;")
