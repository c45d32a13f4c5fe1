"""POST /api/fishing-reports - cached or freshly scraped fly-shop report."""

from fastapi import APIRouter, Depends

from ..exceptions import ConfigurationError
from ..schemas.report import FishingReportRequest, FishingReportResponse
from ..services.fishing_reports import FishingReportService
from .dependencies import get_fishing_report_service

router = APIRouter()


@router.post("/fishing-reports", response_model=FishingReportResponse)
async def get_fishing_report(
    body: FishingReportRequest,
    service: FishingReportService = Depends(get_fishing_report_service),
):
    """Return the current report for a water, or a message when none is available."""
    if not body.water_body_id and not body.water_body_name:
        raise ConfigurationError("water_body_id or water_body_name is required")
    return await service.get_report(
        water_body_id=body.water_body_id,
        water_body_name=body.water_body_name,
        force_refresh=body.force_refresh,
    )
