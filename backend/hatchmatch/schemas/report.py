"""Pydantic schemas for fishing-report endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class SourceRef(BaseModel):
    name: str
    url: str


class AggregatedFishingReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source_name: str
    sources: list[SourceRef] = []
    extracted_flies: list[str] = []
    extracted_conditions: dict[str, Any] = {}
    effectiveness_notes: str = ""
    report_date: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None


class FishingReportRequest(BaseModel):
    water_body_id: str | None = None
    water_body_name: str | None = None
    force_refresh: bool = False


class FishingReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report: AggregatedFishingReportOut | None = None
    from_cache: bool = False
    sources_count: int | None = None
    cache_expires: datetime | None = None
    message: str | None = None
