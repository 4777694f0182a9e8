"""SQLAlchemy ORM model for the evidence_logs table.

Used for type reference only — persistence.py uses raw text() SQL.
Alembic migration 005_create_evidence_logs.py is the authoritative DDL source.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class EvidenceLogORM(Base):
    __tablename__ = "evidence_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    market_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("markets.id"), nullable=False
    )
    oracle_type: Mapped[str] = mapped_column(String(32), nullable=False)
    sources_queried: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False)
    extracted_value: Mapped[str] = mapped_column(Text, nullable=False)
    decision: Mapped[str] = mapped_column(String(10), nullable=False)
    evidence_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    config: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
