"""Merge per-source reports into one cached report per water body."""

import json
import logging
import textwrap
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from ..exceptions import ExtractionError, OracleError
from ..models.fishing_report import FishingReportModel
from .clock import Clock, as_utc, utc_now
from .oracle import Oracle, extract_json_object
from .report_extractor import StructuredReport

logger = logging.getLogger(__name__)

MAX_AGGREGATED_FLIES = 8
REPORT_CACHE_DAYS = 3


@dataclass
class AggregatedFishingReport:
    source_name: str
    sources: list[dict[str, str]] = field(default_factory=list)
    extracted_flies: list[str] = field(default_factory=list)
    extracted_conditions: dict[str, Any] = field(default_factory=dict)
    effectiveness_notes: str = ""
    report_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "sources": list(self.sources),
            "extracted_flies": list(self.extracted_flies),
            "extracted_conditions": dict(self.extracted_conditions),
            "effectiveness_notes": self.effectiveness_notes,
            "report_date": self.report_date.isoformat() if self.report_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregatedFishingReport":
        def _dt(value):
            return as_utc(datetime.fromisoformat(value)) if value else None

        return cls(
            source_name=data.get("source_name", ""),
            sources=list(data.get("sources") or []),
            extracted_flies=list(data.get("extracted_flies") or []),
            extracted_conditions=dict(data.get("extracted_conditions") or {}),
            effectiveness_notes=data.get("effectiveness_notes") or "",
            report_date=_dt(data.get("report_date")),
            created_at=_dt(data.get("created_at")),
            expires_at=_dt(data.get("expires_at")),
        )


def aggregate_flies_from_reports(
    reports: Iterable[StructuredReport],
    limit: int = MAX_AGGREGATED_FLIES,
) -> list[str]:
    """Union of fly names in first-seen order, without duplicates, capped at ``limit``."""
    seen: set[str] = set()
    flies: list[str] = []
    for report in reports:
        for fly in report.flies:
            if fly in seen:
                continue
            seen.add(fly)
            flies.append(fly)
            if len(flies) >= limit:
                return flies
    return flies


def format_source_name(count: int) -> str:
    """Human label for a number of contributing shops."""
    if count == 1:
        return "fly shop"
    return f"{count} fly shops"


def _newest_date(reports: list[StructuredReport]) -> Optional[datetime]:
    dates = [r.report_date for r in reports if r.report_date is not None]
    return max(dates) if dates else None


def _build_summary_prompt(reports: list[StructuredReport], water_body_name: str) -> str:
    summaries = "\n\n".join(
        f"{r.source_name}: {r.effectiveness} Flies: {', '.join(r.flies)}" for r in reports
    )
    return textwrap.dedent(
        """
        Summarize these {count} fishing reports for {water} into a single cohesive summary:

        {summaries}

        Return a JSON object with:
        - effectiveness: A 2-3 sentence summary combining the key insights from all reports

        Return ONLY JSON.
        """
    ).strip().format(count=len(reports), water=water_body_name, summaries=summaries)


class ReportAggregator:
    """Combines valid structured reports.

    The oracle is optional; without it (or when it fails) the narrative is
    the per-source narratives joined with a space.
    """

    def __init__(
        self,
        oracle: Optional[Oracle] = None,
        max_flies: int = MAX_AGGREGATED_FLIES,
    ) -> None:
        self._oracle = oracle
        self._max_flies = max_flies

    async def aggregate(
        self,
        reports: list[StructuredReport],
        water_body_name: str,
    ) -> AggregatedFishingReport:
        if not reports:
            raise ValueError("Cannot aggregate an empty report list")

        sources = [{"name": r.source_name, "url": r.url} for r in reports]

        if len(reports) == 1:
            only = reports[0]
            return AggregatedFishingReport(
                source_name=only.source_name or format_source_name(1),
                sources=sources,
                extracted_flies=list(only.flies),
                extracted_conditions=dict(only.conditions),
                effectiveness_notes=only.effectiveness,
                report_date=only.report_date,
            )

        return AggregatedFishingReport(
            source_name=format_source_name(len(reports)),
            sources=sources,
            extracted_flies=aggregate_flies_from_reports(reports, self._max_flies),
            # First report wins; conflicting values are not reconciled.
            extracted_conditions=dict(reports[0].conditions),
            effectiveness_notes=await self._summarize(reports, water_body_name),
            report_date=_newest_date(reports),
        )

    async def _summarize(self, reports: list[StructuredReport], water_body_name: str) -> str:
        fallback = " ".join(r.effectiveness for r in reports if r.effectiveness)
        if self._oracle is None:
            return fallback
        try:
            reply = await self._oracle.complete(
                _build_summary_prompt(reports, water_body_name), max_tokens=500,
            )
            summary = extract_json_object(reply).get("effectiveness")
        except (OracleError, ExtractionError) as exc:
            logger.warning("Report summary failed for %s, joining narratives: %s", water_body_name, exc)
            return fallback
        if not isinstance(summary, str) or not summary.strip():
            return fallback
        return summary.strip()


class FishingReportStore:
    """fishing_reports table access: one row per water and calendar day."""

    def __init__(
        self,
        db: Session,
        now: Clock = utc_now,
        cache_days: int = REPORT_CACHE_DAYS,
    ) -> None:
        self._db = db
        self._now = now
        self._cache_days = cache_days

    def _water_filter(self, query, water_body_id: Optional[str], water_body_name: str):
        if water_body_id:
            return query.filter(FishingReportModel.water_body_id == water_body_id)
        return query.filter(
            FishingReportModel.water_body_id.is_(None),
            FishingReportModel.water_body_name == water_body_name,
        )

    def get_current(
        self,
        water_body_id: Optional[str],
        water_body_name: str,
    ) -> Optional[AggregatedFishingReport]:
        """Newest unexpired report for the water, or None."""
        now = self._now()
        query = self._water_filter(self._db.query(FishingReportModel), water_body_id, water_body_name)
        rows = query.order_by(FishingReportModel.created_at.desc()).all()
        for row in rows:
            if as_utc(row.expires_at) > now:
                return _to_report(row)
        return None

    def upsert(
        self,
        water_body_id: Optional[str],
        water_body_name: str,
        report: AggregatedFishingReport,
    ) -> AggregatedFishingReport:
        """Replace today's row for the water wholesale; sets the expiry."""
        now = self._now()
        report_day = now.date().isoformat()
        expires_at = now + timedelta(days=self._cache_days)

        query = self._water_filter(self._db.query(FishingReportModel), water_body_id, water_body_name)
        row = query.filter(FishingReportModel.report_day == report_day).first()
        if row is None:
            row = FishingReportModel(
                water_body_id=water_body_id,
                water_body_name=water_body_name,
                report_day=report_day,
            )
            self._db.add(row)

        row.report_date = report.report_date.isoformat() if report.report_date else None
        row.source_name = report.source_name
        row.sources = json.dumps(report.sources)
        row.extracted_flies = json.dumps(report.extracted_flies)
        row.extracted_conditions = json.dumps(report.extracted_conditions)
        row.effectiveness_notes = report.effectiveness_notes
        row.created_at = now
        row.expires_at = expires_at
        self._db.commit()

        logger.info(
            "Cached fishing report for %s (%s) until %s",
            water_body_name, report.source_name, expires_at.isoformat(),
        )
        report.created_at = now
        report.expires_at = expires_at
        return report


def _to_report(row: FishingReportModel) -> AggregatedFishingReport:
    return AggregatedFishingReport(
        source_name=row.source_name,
        sources=json.loads(row.sources or "[]"),
        extracted_flies=json.loads(row.extracted_flies or "[]"),
        extracted_conditions=json.loads(row.extracted_conditions or "{}"),
        effectiveness_notes=row.effectiveness_notes or "",
        report_date=as_utc(datetime.fromisoformat(row.report_date)) if row.report_date else None,
        created_at=as_utc(row.created_at) if row.created_at else None,
        expires_at=as_utc(row.expires_at),
    )
