"""Pydantic schemas for recommendation and trip endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from .report import AggregatedFishingReportOut


class RecommendationRequest(BaseModel):
    water_body_id: str
    force_refresh: bool = False


class FlyRecommendationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fly_name: str
    fly_type: str
    confidence: int = Field(ge=1, le=100)
    reasoning: str = ""
    size: str = ""
    technique: str = ""
    image_url: str | None = None


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    recommendations: list[FlyRecommendationOut]
    conditions_summary: str
    fishing_report: AggregatedFishingReportOut | None = None
    from_cache: bool = False


class TripWaterIn(BaseModel):
    id: str
    name: str


class TripRecommendationRequest(BaseModel):
    waters: list[TripWaterIn] = []


class TripFlyRecommendationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fly_name: str
    fly_type: str
    size: str = ""
    confidence: int
    technique: str = ""
    reasoning: str = ""
    waters: list[str] = []
    image_url: str | None = None


class TripRecommendationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    recommendations: list[TripFlyRecommendationOut]
    failed_waters: list[str] = []
