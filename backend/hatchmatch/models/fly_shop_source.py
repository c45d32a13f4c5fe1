"""FlyShopSource ORM model: scrape targets with reliability tracking."""

from datetime import datetime, timezone

from sqlalchemy import Integer, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class FlyShopSourceModel(Base):
    """A fly-shop website known to publish reports for one or more waters.

    ``consecutive_failures >= 3`` implies ``is_active`` is False; only a
    recorded success brings a suspended source back.
    """

    __tablename__ = "fly_shop_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str] = mapped_column(Text, nullable=False)
    reports_url: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)
    waters_covered: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    consecutive_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_successful_scrape: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
