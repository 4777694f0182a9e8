"""SQLAlchemy ORM model for the predictions table.

Used for type reference only — persistence.py uses raw text() SQL.
Alembic migration 004_create_predictions.py is the authoritative DDL source.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Double, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class PredictionORM(Base):
    __tablename__ = "predictions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    market_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("markets.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    position: Mapped[str] = mapped_column(String(3), nullable=False)
    stake_amount: Mapped[float] = mapped_column(Double, nullable=False)
    credibility_at_prediction: Mapped[float] = mapped_column(Double, nullable=False)
    weighted_stake: Mapped[float] = mapped_column(Double, nullable=False)
    is_settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exit_type: Mapped[str | None] = mapped_column(String(10))
    payout_amount: Mapped[float | None] = mapped_column(Double)
    rep_score_delta: Mapped[float | None] = mapped_column(Double)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
