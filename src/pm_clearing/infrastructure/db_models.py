"""SQLAlchemy ORM model for the settlements table.

Used for type reference only — persistence.py uses raw text() SQL.
Alembic migration 006_create_settlements.py is the authoritative DDL source.
"""

from datetime import datetime

from sqlalchemy import DateTime, Double, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class SettlementORM(Base):
    __tablename__ = "settlements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    market_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("markets.id"), nullable=False, unique=True
    )
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    total_pool: Mapped[float] = mapped_column(Double, nullable=False)
    winners_pool: Mapped[float] = mapped_column(Double, nullable=False)
    losers_pool: Mapped[float] = mapped_column(Double, nullable=False)
    total_predictions: Mapped[int] = mapped_column(Integer, nullable=False)
    winning_predictions: Mapped[int] = mapped_column(Integer, nullable=False)
    evidence_log_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("evidence_logs.id")
    )
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
