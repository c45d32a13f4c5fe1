"""RecommendationCache ORM model: one row per (water body, day)."""

from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class RecommendationCacheModel(Base):
    __tablename__ = "recommendation_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    water_body_id: Mapped[str] = mapped_column(String(36), nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)  # "2026-03-15"
    recommendations: Mapped[str] = mapped_column(Text, nullable=False)  # JSON list
    conditions_snapshot: Mapped[str] = mapped_column(Text, nullable=False, default="{}")  # JSON
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("water_body_id", "date", name="uq_recommendation_cache_water_date"),
    )
