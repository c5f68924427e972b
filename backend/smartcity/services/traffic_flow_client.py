import aiohttp
import logging
from typing import Dict, Any, Optional

from smartcity.models.traffic import FlowSample
from smartcity.services.congestion import sample_from_payload
from smartcity.services.exceptions import FlowQueryError


class TrafficFlowClient:
    """
    Client for the TomTom flow-segment endpoint: one point in, current and
    free-flow speed out. No retries; callers decide what a failure means.
    """
    def __init__(self,
                 api_key: Optional[str],
                 base_url: str = "https://api.tomtom.com",
                 style: str = "relative",
                 zoom: int = 12,
                 unit: str = "KMPH"):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.style = style
        self.zoom = zoom
        self.unit = unit
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, provider_config: Dict[str, Any]) -> "TrafficFlowClient":
        return cls(
            api_key=provider_config.get("api_key"),
            base_url=provider_config.get("base_url", "https://api.tomtom.com"),
            style=provider_config.get("style", "relative"),
            zoom=int(provider_config.get("zoom", 12)),
            unit=provider_config.get("unit", "KMPH"),
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/traffic/services/4/flowSegmentData/{self.style}/{self.zoom}/json"

    async def fetch_flow(self, session: aiohttp.ClientSession, lat: float, lon: float) -> Dict[str, Any]:
        """Raw provider payload for a single point. Raises FlowQueryError on any failure."""
        params = {
            'point': f"{lat},{lon}",
            'unit': self.unit,
            'key': self.api_key or "",
        }
        try:
            async with session.get(self.endpoint, params=params) as response:
                if not 200 <= response.status < 300:
                    raise FlowQueryError(lat, lon, status=response.status)
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            self.logger.debug(f"Flow request failed at ({lat}, {lon}): {e}")
            raise FlowQueryError(lat, lon, reason=str(e)) from e

    async def query_point(self, session: aiohttp.ClientSession, lat: float, lon: float) -> FlowSample:
        data = await self.fetch_flow(session, lat, lon)
        return sample_from_payload(lat, lon, data if isinstance(data, dict) else {})
