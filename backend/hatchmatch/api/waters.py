"""GET/POST /api/waters - water-body reference data."""

from fastapi import APIRouter, Depends, Query

from ..schemas.water import WaterBodyCreate, WaterBodyOut
from ..services.water_bodies import WaterBodyRepository
from .dependencies import get_water_repository

router = APIRouter()


@router.get("/waters", response_model=list[WaterBodyOut])
def search_waters(
    query: str = Query(default=""),
    state: str | None = Query(default=None),
    waters: WaterBodyRepository = Depends(get_water_repository),
):
    """Search water bodies by name (case-insensitive substring), max 50."""
    return waters.search(query, state)


@router.get("/waters/{water_body_id}", response_model=WaterBodyOut)
def get_water(water_body_id: str, waters: WaterBodyRepository = Depends(get_water_repository)):
    return waters.get(water_body_id)


@router.post("/waters", response_model=WaterBodyOut, status_code=201)
def create_water(body: WaterBodyCreate, waters: WaterBodyRepository = Depends(get_water_repository)):
    return waters.create(**body.model_dump())
