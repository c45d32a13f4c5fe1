"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import fishing_reports, health, recommendations, sources, trips, waters

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(waters.router)
api_router.include_router(sources.router)
api_router.include_router(fishing_reports.router)
api_router.include_router(recommendations.router)
api_router.include_router(trips.router)
