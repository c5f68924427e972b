from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from typing import Optional

from smartcity.dependencies import get_traffic_service_api
from smartcity.models.traffic import AreaSummaryResponse, TrafficSummaryResponse
from smartcity.services.traffic_service import TrafficAggregationService

import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message})


@router.get(
    "/summary",
    response_model=TrafficSummaryResponse,
    summary="City-wide congestion summary",
    description="Samples a steps x steps grid over the bounding box and returns weighted congestion metrics with the top hotspots."
)
async def get_traffic_summary(
    bbox: Optional[str] = Query(None, description="south,west,north,east; defaults to the city center"),
    steps: Optional[str] = Query(None, description="Grid resolution, clamped to [3, 12] (default 7)"),
    traffic_service: TrafficAggregationService = Depends(get_traffic_service_api)
):
    """
    Partial results are normal: points that fail or miss the deadline are
    simply absent from `points` and `metrics.segments`.
    """
    try:
        box = traffic_service.parse_bbox(bbox)
        grid_steps = traffic_service.parse_steps(steps)
        return await traffic_service.get_summary(box, grid_steps)
    except Exception as e:
        logger.error(f"Traffic summary failed: {e}", exc_info=True)
        return _error_response(str(e) or "traffic summary failed")


@router.get(
    "/areas",
    response_model=AreaSummaryResponse,
    summary="Congestion by micro-district",
    description="Ranks named micro-districts (or a synthetic sector grid) by mean congestion."
)
async def get_traffic_areas(
    bbox: Optional[str] = Query(None, description="south,west,north,east; defaults to the city center"),
    traffic_service: TrafficAggregationService = Depends(get_traffic_service_api)
):
    try:
        box = traffic_service.parse_bbox(bbox)
        areas = await traffic_service.get_area_congestion(box)
        return AreaSummaryResponse(areas=areas)
    except Exception as e:
        logger.error(f"Traffic areas failed: {e}", exc_info=True)
        return _error_response(str(e) or "traffic areas failed")
