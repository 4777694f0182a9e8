"""SQLAlchemy ORM model for pm_account.

Maps to the users table created by Alembic migration 002.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import DateTime, Double, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    rep_score: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    locked_rep_score: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    ethos_credibility: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    total_predictions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_predictions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_staked: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    total_won: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
