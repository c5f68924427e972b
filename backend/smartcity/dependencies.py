# backend/smartcity/dependencies.py

from .services.services import get_traffic_service
from .services.traffic_service import TrafficAggregationService

async def get_traffic_service_api() -> TrafficAggregationService:
    """Dependency to get the TrafficAggregationService instance."""
    traffic_service = get_traffic_service()
    if traffic_service is None:
        raise RuntimeError("TrafficAggregationService not initialized")
    return traffic_service
