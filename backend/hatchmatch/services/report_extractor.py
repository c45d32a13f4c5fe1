"""Turn raw shop-page text into a structured, dated fishing report.

The oracle does the reading; this module decides whether what came back
is usable.  A report needs a resolvable date, must not be flagged as
generic seasonal advice and must be no older than ``max_age_days``.
"""

import logging
import re
import textwrap
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from ..exceptions import ExtractionError, OracleError
from .clock import Clock, as_utc, utc_now
from .oracle import Oracle, extract_json_object
from .report_fetcher import RawReport

logger = logging.getLogger(__name__)

MAX_REPORT_AGE_DAYS = 14

# The oracle only sees the head of the page text.
PROMPT_TEXT_CHARS = 3000

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MONTH_RE = re.compile(
    r"\b(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\b",
    re.IGNORECASE,
)
_DAY_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\b")
_YEAR_RE = re.compile(r"\b(\d{4})\b")
_SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")

_NO_REPORT_MARKERS = ("no fishing report found", "no current fishing report found")

REJECTED_STALE = "stale"


@dataclass
class StructuredReport:
    """One source's report after extraction.

    ``report_date`` is None whenever the report is unusable; ``rejection``
    then says why.
    """
    source_name: str = ""
    url: str = ""
    report_date: Optional[datetime] = None
    flies: list[str] = field(default_factory=list)
    conditions: dict[str, Any] = field(default_factory=dict)
    effectiveness: str = ""
    is_current: bool = False
    rejection: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.report_date is not None and self.is_current and self.rejection is None

    @property
    def has_useful_data(self) -> bool:
        if self.flies or self.conditions:
            return True
        notes = self.effectiveness.strip().lower()
        return bool(notes) and not any(m in notes for m in _NO_REPORT_MARKERS)


def parse_report_date(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO, m/d/y and month-name dates ("Jan 15, 2026"); None otherwise."""
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    slash = _SLASH_DATE_RE.match(text)
    if slash:
        month, day, year = (int(g) for g in slash.groups())
        if year < 100:
            year += 2000
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None

    month_match = _MONTH_RE.search(text)
    if month_match is None:
        return None
    month = _MONTHS[month_match.group(1)[:3].lower()]
    day_match = _DAY_RE.search(text)
    year_match = _YEAR_RE.search(text)
    if day_match is None or year_match is None:
        return None
    try:
        return datetime(
            int(year_match.group(1)), month, int(day_match.group(1)), tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def is_report_recent(
    report_date: Optional[datetime],
    now: datetime,
    max_age_days: int = MAX_REPORT_AGE_DAYS,
) -> bool:
    """True when the report is at most ``max_age_days`` old; a missing date never is."""
    if report_date is None:
        return False
    age_days = (as_utc(now) - as_utc(report_date)).total_seconds() / 86400
    return age_days <= max_age_days


def _build_prompt(text: str, water_body_name: str) -> str:
    return textwrap.dedent(
        """
        Extract a CURRENT fishing report from this fly shop website content for {water}.

        CRITICAL REQUIREMENTS:
        1. You MUST find a SPECIFIC DATE (like "January 28, 2026" or "1/28/26" or "Updated Jan 28")
        2. The report MUST describe CURRENT conditions, not general seasonal advice
        3. Look for language like "this week", "currently", "right now", "today", "recent conditions"
        4. REJECT generic/evergreen content that applies year-round (like "various hatches throughout the year")

        TEXT FROM WEBSITE:
        {text}

        Return a JSON object with:
        - reportDate: The SPECIFIC date found (e.g., "January 28, 2026") - REQUIRED, return null if no date found
        - flies: Array of SPECIFIC fly patterns currently working (not general recommendations)
        - conditions: Object with water_temp, water_clarity, water_level if CURRENT values mentioned
        - effectiveness: 1-2 sentence summary of CURRENT conditions (what's happening NOW)
        - isCurrentReport: true if this appears to be a recent dated report, false if it's generic seasonal info

        If the content is just general seasonal advice without a specific date and current conditions, return:
        {{"reportDate": null, "flies": [], "conditions": {{}}, "effectiveness": "No current fishing report found - only general information available.", "isCurrentReport": false}}

        Return ONLY valid JSON, no other text.
        """
    ).strip().format(water=water_body_name, text=text[:PROMPT_TEXT_CHARS])


def _clean_flies(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    flies = []
    for item in value:
        if isinstance(item, str) and item.strip():
            flies.append(item.strip())
    return flies


def _clean_conditions(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        return {}
    return {
        str(k): v for k, v in value.items()
        if v is not None and not (isinstance(v, str) and not v.strip())
    }


def _flagged_not_current(value: Any) -> bool:
    """True when the reply marks the content as not current; absent means unknown."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("", "false", "no", "0")
    return not value


class ReportExtractor:
    """Oracle-backed extraction plus the date and staleness gate."""

    def __init__(
        self,
        oracle: Oracle,
        now: Clock = utc_now,
        max_age_days: int = MAX_REPORT_AGE_DAYS,
    ) -> None:
        self._oracle = oracle
        self._now = now
        self._max_age_days = max_age_days

    async def extract(
        self,
        raw_text: str,
        water_body_name: str,
        date_hint: Optional[str] = None,
    ) -> StructuredReport:
        """Structured fields for ``raw_text``; an invalid report when unusable."""
        if not raw_text or not raw_text.strip():
            return StructuredReport(rejection="empty text")

        try:
            reply = await self._oracle.complete(_build_prompt(raw_text, water_body_name))
        except OracleError as exc:
            logger.warning("Report extraction oracle call failed for %s: %s", water_body_name, exc)
            return StructuredReport(rejection="oracle unavailable")

        try:
            parsed = extract_json_object(reply)
        except ExtractionError as exc:
            logger.warning("Unparseable extraction reply for %s: %s", water_body_name, exc)
            return StructuredReport(rejection="unparseable reply")

        raw_date = parsed.get("reportDate")
        if _flagged_not_current(parsed.get("isCurrentReport")) or not raw_date:
            logger.info("Content for %s is generic or undated, not a current report", water_body_name)
            return StructuredReport(rejection="not a current report")

        report_date = parse_report_date(str(raw_date)) or parse_report_date(date_hint)
        if report_date is None:
            logger.info("Could not resolve report date %r for %s", raw_date, water_body_name)
            return StructuredReport(rejection="unresolvable date")

        if not is_report_recent(report_date, self._now(), self._max_age_days):
            logger.info(
                "Report for %s dated %s is older than %d days, skipping",
                water_body_name, report_date.date(), self._max_age_days,
            )
            return StructuredReport(report_date=None, rejection=REJECTED_STALE)

        effectiveness = parsed.get("effectiveness")
        return StructuredReport(
            report_date=report_date,
            flies=_clean_flies(parsed.get("flies")),
            conditions=_clean_conditions(parsed.get("conditions")),
            effectiveness=effectiveness.strip() if isinstance(effectiveness, str) else "",
            is_current=True,
        )

    async def extract_raw(self, raw: RawReport, water_body_name: str) -> StructuredReport:
        """``extract`` for a fetched page, tagged with its source."""
        report = await self.extract(raw.text, water_body_name, date_hint=raw.date_text)
        report.source_name = raw.source_name
        report.url = raw.url
        return report
