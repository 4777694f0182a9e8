"""004: create predictions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE predictions (
            id                          VARCHAR(64)         PRIMARY KEY DEFAULT gen_random_uuid()::text,
            market_id                   VARCHAR(64)         NOT NULL REFERENCES markets(id),
            user_id                     VARCHAR(64)         NOT NULL REFERENCES users(id),
            position                    VARCHAR(3)          NOT NULL,
            stake_amount                DOUBLE PRECISION    NOT NULL,
            credibility_at_prediction   DOUBLE PRECISION    NOT NULL,
            weighted_stake              DOUBLE PRECISION    NOT NULL,
            is_settled                  BOOLEAN             NOT NULL DEFAULT FALSE,
            exit_type                   VARCHAR(10),
            payout_amount               DOUBLE PRECISION,
            rep_score_delta             DOUBLE PRECISION,
            created_at                  TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            settled_at                  TIMESTAMPTZ,
            CONSTRAINT ck_predictions_position CHECK (position IN ('YES', 'NO')),
            CONSTRAINT ck_predictions_stake_gt_0 CHECK (stake_amount > 0),
            CONSTRAINT ck_predictions_exit_type CHECK (
                exit_type IS NULL OR exit_type IN ('SOLD', 'SETTLED', 'REFUNDED')
            ),
            CONSTRAINT ck_predictions_settled_consistency CHECK (
                (is_settled = FALSE AND exit_type IS NULL)
                OR (is_settled = TRUE AND exit_type IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_predictions_market_unsettled ON predictions (market_id) WHERE is_settled = FALSE;")
    op.execute("CREATE INDEX idx_predictions_market_user ON predictions (market_id, user_id);")
    op.execute("COMMENT ON TABLE predictions IS 'Stake on one side of a market with credibility snapshot and exit record';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS predictions CASCADE;")
