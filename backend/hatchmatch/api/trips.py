"""POST /api/trips/recommendations - ranked flies across a multi-water trip."""

from fastapi import APIRouter, Depends

from ..schemas.recommendation import TripRecommendationRequest, TripRecommendationResponse
from ..services.recommendations import RecommendationService
from ..services.trip_aggregator import TripRecommendationAggregator, TripWater
from .dependencies import get_recommendation_service

router = APIRouter()


@router.post("/trips/recommendations", response_model=TripRecommendationResponse)
async def get_trip_recommendations(
    body: TripRecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Aggregate in one request; use /ws/trip-recommendations for progress updates."""
    aggregator = TripRecommendationAggregator(lambda water: service.fly_list(water.id))
    waters = [TripWater(id=w.id, name=w.name) for w in body.waters]
    return await aggregator.aggregate_trip(waters)
