"""Fishing-report request: cache, discover, scrape, extract, aggregate.

Single-source problems never surface as errors.  Each source that fails
to produce a usable report is charged a failure in the registry and the
run moves on.  A source whose latest report is merely old is left alone.
Only "no shops" and "no usable reports" reach the caller, and then as an
informational message.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from ..exceptions import ConfigurationError, HatchMatchError, WaterBodyNotFoundError
from .report_aggregator import AggregatedFishingReport, FishingReportStore, ReportAggregator
from .report_extractor import REJECTED_STALE, ReportExtractor, StructuredReport
from .report_fetcher import ReportFetcher
from .shop_discovery import ShopDiscovery
from .source_registry import FlyShopSource, SourceRegistry
from .water_bodies import WaterBodyRepository

logger = logging.getLogger(__name__)

NO_SHOPS_MESSAGE = "Could not find any fly shops with fishing reports for this water"
NO_REPORTS_MESSAGE = "No current fishing reports available (reports may be outdated)"


@dataclass
class FishingReportResult:
    report: Optional[AggregatedFishingReport]
    from_cache: bool = False
    sources_count: Optional[int] = None
    cache_expires: Optional[datetime] = None
    message: Optional[str] = None


class FishingReportService:
    def __init__(
        self,
        waters: WaterBodyRepository,
        registry: SourceRegistry,
        store: FishingReportStore,
        fetcher: ReportFetcher,
        extractor: ReportExtractor,
        aggregator: ReportAggregator,
        discovery: Optional[ShopDiscovery] = None,
    ) -> None:
        self._waters = waters
        self._registry = registry
        self._store = store
        self._fetcher = fetcher
        self._extractor = extractor
        self._aggregator = aggregator
        self._discovery = discovery

    async def get_report(
        self,
        water_body_id: Optional[str] = None,
        water_body_name: Optional[str] = None,
        force_refresh: bool = False,
    ) -> FishingReportResult:
        if not water_body_id and not water_body_name:
            raise ConfigurationError("water_body_id or water_body_name is required")

        name = water_body_name or ""
        state = ""
        city = ""
        if water_body_id:
            water = self._waters.find(water_body_id)
            if water is not None:
                name, state, city = water.name, water.state, water.city or ""
            elif not water_body_name:
                raise WaterBodyNotFoundError(f"Water body not found: {water_body_id}")
            else:
                # Unknown id with a usable name: key the cache by name.
                water_body_id = None

        if not force_refresh:
            cached = self._store.get_current(water_body_id, name)
            if cached is not None:
                logger.info("Fishing report cache hit for %s", name)
                return FishingReportResult(
                    report=cached,
                    from_cache=True,
                    sources_count=len(cached.sources),
                    cache_expires=cached.expires_at,
                )

        sources = await self._resolve_sources(name, state, city)
        if not sources:
            return FishingReportResult(report=None, message=NO_SHOPS_MESSAGE)

        reports: list[StructuredReport] = []
        for source in sources:
            report = await self._scrape_source(source, name)
            if report is None:
                self._registry.record_failure(source.id)
                continue
            if report.rejection == REJECTED_STALE:
                continue
            self._registry.record_success(source.id)
            reports.append(report)

        if not reports:
            return FishingReportResult(report=None, message=NO_REPORTS_MESSAGE)

        aggregated = await self._aggregator.aggregate(reports, name)
        aggregated = self._store.upsert(water_body_id, name, aggregated)
        return FishingReportResult(
            report=aggregated,
            from_cache=False,
            sources_count=len(reports),
            cache_expires=aggregated.expires_at,
        )

    async def _resolve_sources(self, name: str, state: str, city: str) -> list[FlyShopSource]:
        sources = self._registry.find_sources_covering(name)
        if sources or self._discovery is None:
            return sources

        logger.info("No registered sources for %s, discovering a fly shop", name)
        shop = await self._discovery.discover(name, state, city)
        if shop is None:
            return []
        source = self._registry.add_source(
            name=shop.name,
            website=shop.website,
            reports_url=shop.reports_url,
            waters_covered=[name],
            state=state or None,
        )
        return [source]

    async def _scrape_source(self, source: FlyShopSource, name: str) -> Optional[StructuredReport]:
        """A valid report from one source, a stale one, or None for any kind of failure."""
        try:
            raw = await self._fetcher.fetch(source, name)
            if raw is None:
                logger.warning("No content from %s for %s", source.name, name)
                return None
            report = await self._extractor.extract_raw(raw, name)
        except (HatchMatchError, httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Error scraping %s for %s: %s", source.name, name, exc)
            return None

        if report.rejection == REJECTED_STALE:
            logger.info("Latest report from %s is outdated", source.name)
            return report
        if not report.is_valid:
            logger.info("Discarding report from %s: %s", source.name, report.rejection)
            return None
        if not report.has_useful_data:
            logger.info("No useful data extracted from %s", source.name)
            return None
        return report
