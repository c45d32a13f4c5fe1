"""GET/POST /api/sources - fly-shop source registry."""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..schemas.source import FlyShopSourceCreate, FlyShopSourceOut
from ..services.source_registry import SourceRegistry
from .dependencies import get_source_registry

router = APIRouter()


@router.get("/sources", response_model=list[FlyShopSourceOut])
def list_sources(
    water: str | None = Query(default=None),
    registry: SourceRegistry = Depends(get_source_registry),
):
    """All registered sources, active or suspended, optionally for one water."""
    return registry.list_sources(water)


@router.post("/sources", response_model=FlyShopSourceOut, status_code=201)
def add_source(body: FlyShopSourceCreate, registry: SourceRegistry = Depends(get_source_registry)):
    return registry.add_source(
        name=body.name,
        website=body.website,
        reports_url=body.reports_url,
        waters_covered=body.waters_covered,
        state=body.state,
    )


@router.post("/sources/{source_id}/success", response_model=FlyShopSourceOut)
def record_success(source_id: int, registry: SourceRegistry = Depends(get_source_registry)):
    """Reset the failure count and reactivate a (possibly suspended) source."""
    source = registry.record_success(source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    return source


@router.post("/sources/{source_id}/failure", response_model=FlyShopSourceOut)
def record_failure(source_id: int, registry: SourceRegistry = Depends(get_source_registry)):
    source = registry.record_failure(source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    return source
