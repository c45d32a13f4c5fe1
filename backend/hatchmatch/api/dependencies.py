"""Shared clients and service wiring for the web application.

The HTTP client and the oracle are process-wide and held in module-level
globals with set/get functions, so main.py can install them at startup
and tests can swap in fakes.  Services are built per request around the
request's database session.
"""

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..models.database import get_db
from ..services.clock import Clock, utc_now
from ..services.fishing_reports import FishingReportService
from ..services.oracle import Oracle, build_oracle
from ..services.recommendation_cache import RecommendationCache
from ..services.recommendations import RecommendationGenerator, RecommendationService
from ..services.report_aggregator import FishingReportStore, ReportAggregator
from ..services.report_extractor import ReportExtractor
from ..services.report_fetcher import ReportFetcher
from ..services.shop_discovery import ShopDiscovery
from ..services.source_registry import SourceRegistry
from ..services.water_bodies import WaterBodyRepository
from ..services.weather import WeatherClient

_http_client: httpx.AsyncClient | None = None
_oracle: Oracle | None = None


def set_http_client(client: httpx.AsyncClient | None) -> None:
    global _http_client
    _http_client = client


def get_http_client() -> httpx.AsyncClient:
    if _http_client is None:
        raise RuntimeError("HTTP client not initialised; is the web app running?")
    return _http_client


def set_oracle(oracle: Oracle | None) -> None:
    global _oracle
    _oracle = oracle


def get_oracle() -> Oracle:
    """The installed oracle, built from settings on first use.

    Raises ConfigurationError when no API key is configured.
    """
    global _oracle
    if _oracle is None:
        _oracle = build_oracle(settings)
    return _oracle


def get_clock() -> Clock:
    return utc_now


def build_fishing_report_service(
    db: Session,
    client: httpx.AsyncClient,
    oracle: Oracle,
    now: Clock = utc_now,
) -> FishingReportService:
    return FishingReportService(
        waters=WaterBodyRepository(db),
        registry=SourceRegistry(db, now=now),
        store=FishingReportStore(db, now=now, cache_days=settings.report_cache_days),
        fetcher=ReportFetcher(
            client,
            user_agent=settings.user_agent,
            timeout=settings.http_timeout_sec,
            min_link_score=settings.link_min_score,
            max_candidates=settings.link_max_candidates,
            min_content_chars=settings.min_content_chars,
            max_report_chars=settings.max_report_chars,
        ),
        extractor=ReportExtractor(oracle, now=now, max_age_days=settings.max_report_age_days),
        aggregator=ReportAggregator(oracle, max_flies=settings.max_aggregated_flies),
        discovery=ShopDiscovery(
            oracle, client, validation_timeout=settings.url_validation_timeout_sec,
        ),
    )


def build_recommendation_service(
    db: Session,
    client: httpx.AsyncClient,
    oracle: Oracle,
    now: Clock = utc_now,
) -> RecommendationService:
    generator = RecommendationGenerator(
        oracle,
        WeatherClient(client, now=now, enabled=settings.weather_enabled),
        reports=build_fishing_report_service(db, client, oracle, now),
        now=now,
        max_recommendations=settings.max_recommendations,
    )
    return RecommendationService(
        waters=WaterBodyRepository(db),
        cache=RecommendationCache(db, now=now, ttl_hours=settings.recommendation_cache_hours),
        generator=generator,
    )


def get_fishing_report_service(
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    oracle: Oracle = Depends(get_oracle),
    now: Clock = Depends(get_clock),
) -> FishingReportService:
    return build_fishing_report_service(db, client, oracle, now)


def get_recommendation_service(
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    oracle: Oracle = Depends(get_oracle),
    now: Clock = Depends(get_clock),
) -> RecommendationService:
    return build_recommendation_service(db, client, oracle, now)


def get_source_registry(
    db: Session = Depends(get_db),
    now: Clock = Depends(get_clock),
) -> SourceRegistry:
    return SourceRegistry(db, now=now)


def get_water_repository(db: Session = Depends(get_db)) -> WaterBodyRepository:
    return WaterBodyRepository(db)
