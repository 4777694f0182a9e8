"""SQLAlchemy ORM model for the markets table.

Used for type reference only — persistence.py uses raw text() SQL.
Alembic migration 003_create_markets.py is the authoritative DDL source.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Double, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class MarketORM(Base):
    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(64))
    oracle_type: Mapped[str] = mapped_column(String(32), nullable=False)
    oracle_config: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    locks_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolves_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    resolution_outcome: Mapped[str | None] = mapped_column(String(10))
    resolution_value: Mapped[str | None] = mapped_column(Text)
    resolution_evidence_id: Mapped[str | None] = mapped_column(String(64))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    total_stake_yes: Mapped[float] = mapped_column(Double, nullable=False)
    total_stake_no: Mapped[float] = mapped_column(Double, nullable=False)
    total_weighted_stake_yes: Mapped[float] = mapped_column(Double, nullable=False)
    total_weighted_stake_no: Mapped[float] = mapped_column(Double, nullable=False)
    virtual_stake_yes: Mapped[float | None] = mapped_column(Double)
    virtual_stake_no: Mapped[float | None] = mapped_column(Double)
    raw_probability_yes: Mapped[float] = mapped_column(Double, nullable=False)
    weighted_probability_yes: Mapped[float] = mapped_column(Double, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
