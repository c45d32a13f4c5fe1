"""Per-water, per-day cache of generated fly recommendations."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models.recommendation_cache import RecommendationCacheModel
from .clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)

RECOMMENDATION_CACHE_HOURS = 12


@dataclass
class CacheEntry:
    water_body_id: str
    date: str
    recommendations: list[dict[str, Any]]
    conditions_snapshot: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


def cache_date(value: datetime | date) -> str:
    """Key component for a day: ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


class RecommendationCache:
    def __init__(
        self,
        db: Session,
        now: Clock = utc_now,
        ttl_hours: int = RECOMMENDATION_CACHE_HOURS,
    ) -> None:
        self._db = db
        self._now = now
        self._ttl = timedelta(hours=ttl_hours)

    def today(self) -> str:
        return cache_date(self._now())

    def get(self, water_body_id: str, day: str) -> Optional[CacheEntry]:
        """The entry for (water, day), or None if absent or expired."""
        row = (
            self._db.query(RecommendationCacheModel)
            .filter_by(water_body_id=water_body_id, date=day)
            .first()
        )
        if row is None:
            return None
        if as_utc(row.expires_at) < self._now():
            logger.debug("Recommendation cache expired for %s on %s", water_body_id, day)
            return None
        return CacheEntry(
            water_body_id=row.water_body_id,
            date=row.date,
            recommendations=json.loads(row.recommendations or "[]"),
            conditions_snapshot=json.loads(row.conditions_snapshot or "{}"),
            created_at=as_utc(row.created_at) if row.created_at else None,
            expires_at=as_utc(row.expires_at),
        )

    def put(
        self,
        water_body_id: str,
        day: str,
        recommendations: list[dict[str, Any]],
        conditions_snapshot: dict[str, Any],
    ) -> CacheEntry:
        """Upsert on (water, day) with a fresh TTL; last writer wins."""
        now = self._now()
        expires_at = now + self._ttl
        row = (
            self._db.query(RecommendationCacheModel)
            .filter_by(water_body_id=water_body_id, date=day)
            .first()
        )
        if row is None:
            row = RecommendationCacheModel(water_body_id=water_body_id, date=day)
            self._db.add(row)
        row.recommendations = json.dumps(recommendations)
        row.conditions_snapshot = json.dumps(conditions_snapshot)
        row.created_at = now
        row.expires_at = expires_at
        self._db.commit()
        logger.debug("Cached %d recommendations for %s on %s", len(recommendations), water_body_id, day)
        return CacheEntry(
            water_body_id=water_body_id,
            date=day,
            recommendations=recommendations,
            conditions_snapshot=conditions_snapshot,
            created_at=now,
            expires_at=expires_at,
        )
