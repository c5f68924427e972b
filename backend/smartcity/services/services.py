# backend/smartcity/services/services.py
import logging
from smartcity.services.traffic_service import TrafficAggregationService
from typing import Optional, Dict, Any
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_traffic_service_instance: Optional[TrafficAggregationService] = None

def initialize_services(config: Dict[str, Any]):
    global _traffic_service_instance
    logger.info("Initializing application services...")
    if _traffic_service_instance is None:
        try:
            _traffic_service_instance = TrafficAggregationService(config=config.get("traffic", {}))
        except Exception as e:
            logger.error(f"Failed to initialize TrafficAggregationService: {e}", exc_info=True)
            _traffic_service_instance = None
            raise
    logger.info("Application services initialized.")

def get_traffic_service() -> TrafficAggregationService:
    if _traffic_service_instance is None:
        logger.error("TrafficAggregationService accessed before initialization!")
        raise RuntimeError("TrafficAggregationService not initialized.")
    return _traffic_service_instance

async def shutdown_services():
    global _traffic_service_instance
    logger.info("Shutting down application services...")
    # HTTP sessions are per request, so there is nothing to close here
    _traffic_service_instance = None
    logger.info("Application services shut down.")

async def health_check() -> Dict[str, Any]:
    """Reports whether the aggregation service is wired and which providers it talks to."""
    healthy = _traffic_service_instance is not None
    services: Dict[str, Any] = {
        "traffic_aggregation": {
            "status": "Initialized" if healthy else "Not Initialized",
            "healthy": healthy,
        }
    }
    if healthy:
        services["traffic_aggregation"].update({
            "flow_provider": _traffic_service_instance.flow_client.base_url,
            "flow_api_key_configured": bool(_traffic_service_instance.flow_client.api_key),
            "area_provider": _traffic_service_instance.area_resolver.overpass_url,
        })
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }
