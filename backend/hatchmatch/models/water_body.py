"""WaterBody ORM model: immutable reference data for rivers, lakes and streams."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Float, DateTime, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

WATER_BODY_TYPES = ("river", "lake", "stream", "creek", "pond")


class WaterBodyModel(Base):
    __tablename__ = "water_bodies"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)  # river, lake, stream, creek, pond
    state: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    species: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_water_body_name", "name"),
    )
