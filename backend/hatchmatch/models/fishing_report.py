"""FishingReport ORM model: aggregated fly-shop reports cached per water and day."""

from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class FishingReportModel(Base):
    __tablename__ = "fishing_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    water_body_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    water_body_name: Mapped[str] = mapped_column(Text, nullable=False)
    report_day: Mapped[str] = mapped_column(Text, nullable=False)  # "2026-03-15"
    report_date: Mapped[str | None] = mapped_column(Text, nullable=True)  # newest source date
    source_name: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON [{name, url}]
    extracted_flies: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list
    extracted_conditions: Mapped[str] = mapped_column(Text, nullable=False, default="{}")  # JSON
    effectiveness_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_fishing_report_water_day", "water_body_id", "water_body_name", "report_day"),
        Index("idx_fishing_report_expires", "expires_at"),
    )
