"""POST /api/recommendations - fly recommendations for one water body."""

from fastapi import APIRouter, Depends

from ..schemas.recommendation import RecommendationRequest, RecommendationResponse
from ..services.recommendations import RecommendationService
from .dependencies import get_recommendation_service

router = APIRouter()


@router.post("/recommendations", response_model=RecommendationResponse)
async def get_recommendations(
    body: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    return await service.get_recommendations(body.water_body_id, body.force_refresh)
