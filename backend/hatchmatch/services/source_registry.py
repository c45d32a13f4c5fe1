"""Registry of fly-shop report sources and their reliability.

Each source is a tiny two-state machine driven by the trailing failure
count: Active while ``consecutive_failures < 3``, Suspended otherwise.
There is no time-based recovery; a suspended source comes back only
through ``record_success`` (a manual call, or a later scrape of a freshly
discovered record).
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models.fly_shop_source import FlyShopSourceModel
from .clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)

# Consecutive failures after which a source is suspended.
FAILURE_THRESHOLD = 3


@dataclass
class FlyShopSource:
    """Detached view of a fly_shop_sources row."""
    id: int
    name: str
    website: str
    reports_url: str
    waters_covered: list[str] = field(default_factory=list)
    state: Optional[str] = None
    is_active: bool = True
    consecutive_failures: int = 0
    last_successful_scrape: Optional[datetime] = None


def _to_source(row: FlyShopSourceModel) -> FlyShopSource:
    return FlyShopSource(
        id=row.id,
        name=row.name,
        website=row.website,
        reports_url=row.reports_url,
        waters_covered=json.loads(row.waters_covered or "[]"),
        state=row.state,
        is_active=bool(row.is_active),
        consecutive_failures=row.consecutive_failures or 0,
        last_successful_scrape=(
            as_utc(row.last_successful_scrape) if row.last_successful_scrape else None
        ),
    )


class SourceRegistry:
    """Reads and mutates fly_shop_sources rows."""

    def __init__(
        self,
        db: Session,
        now: Clock = utc_now,
        failure_threshold: int = FAILURE_THRESHOLD,
    ) -> None:
        self._db = db
        self._now = now
        self._failure_threshold = failure_threshold

    def find_sources_covering(self, water_body_name: str) -> list[FlyShopSource]:
        """Active sources whose covered-waters list contains the exact name."""
        rows = (
            self._db.query(FlyShopSourceModel)
            .filter(FlyShopSourceModel.is_active.is_(True))
            .order_by(FlyShopSourceModel.id)
            .all()
        )
        sources = [_to_source(r) for r in rows]
        return [s for s in sources if water_body_name in s.waters_covered]

    def list_sources(self, water_body_name: Optional[str] = None) -> list[FlyShopSource]:
        """All sources, active or not, optionally limited to one water."""
        rows = self._db.query(FlyShopSourceModel).order_by(FlyShopSourceModel.id).all()
        sources = [_to_source(r) for r in rows]
        if water_body_name is not None:
            sources = [s for s in sources if water_body_name in s.waters_covered]
        return sources

    def get(self, source_id: int) -> Optional[FlyShopSource]:
        row = self._db.query(FlyShopSourceModel).filter_by(id=source_id).first()
        return _to_source(row) if row is not None else None

    def add_source(
        self,
        name: str,
        website: str,
        reports_url: str,
        waters_covered: list[str],
        state: Optional[str] = None,
    ) -> FlyShopSource:
        """Register a new active source."""
        row = FlyShopSourceModel(
            name=name,
            website=website,
            reports_url=reports_url,
            state=state,
            waters_covered=json.dumps(list(waters_covered)),
            is_active=True,
            consecutive_failures=0,
            created_at=self._now(),
        )
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        logger.info("Registered fly shop source %s (%s) for %s", name, reports_url, waters_covered)
        return _to_source(row)

    def record_success(self, source_id: int) -> Optional[FlyShopSource]:
        """Reset the failure counter and (re)activate the source."""
        row = self._db.query(FlyShopSourceModel).filter_by(id=source_id).first()
        if row is None:
            logger.warning("record_success: unknown source %s", source_id)
            return None
        was_suspended = not row.is_active
        row.consecutive_failures = 0
        row.is_active = True
        row.last_successful_scrape = self._now()
        self._db.commit()
        if was_suspended:
            logger.info("Source %s (%s) reactivated", row.id, row.name)
        return _to_source(row)

    def record_failure(self, source_id: int) -> Optional[FlyShopSource]:
        """Increment the failure counter, suspending the source at the threshold."""
        row = self._db.query(FlyShopSourceModel).filter_by(id=source_id).first()
        if row is None:
            logger.warning("record_failure: unknown source %s", source_id)
            return None
        row.consecutive_failures = (row.consecutive_failures or 0) + 1
        row.is_active = row.consecutive_failures < self._failure_threshold
        self._db.commit()
        if not row.is_active:
            logger.info(
                "Source %s (%s) deactivated after %d consecutive failures",
                row.id, row.name, row.consecutive_failures,
            )
        return _to_source(row)
