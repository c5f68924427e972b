import aiohttp
import logging
from typing import Any, Dict, List

from smartcity.models.traffic import AreaCenter, BoundingBox
from smartcity.services.exceptions import AreaResolutionError

DEFAULT_NAME_PATTERN = "микрорайон|мкр|микроаудан"


class AreaResolver:
    """
    Looks up named micro-districts inside a bounding box through the Overpass API
    and returns their centroids.
    """
    def __init__(self,
                 overpass_url: str = "https://overpass-api.de/api/interpreter",
                 name_pattern: str = DEFAULT_NAME_PATTERN,
                 query_timeout_seconds: int = 25):
        self.overpass_url = overpass_url
        self.name_pattern = name_pattern
        self.query_timeout_seconds = query_timeout_seconds
        self.logger = logging.getLogger(__name__)

    def build_query(self, bbox: BoundingBox) -> str:
        south, west, north, east = bbox
        return (
            f"[out:json][timeout:{self.query_timeout_seconds}];\n"
            f'(nwr["name"~"{self.name_pattern}",i]({south},{west},{north},{east}););\n'
            "out center tags;"
        )

    async def resolve(self, session: aiohttp.ClientSession, bbox: BoundingBox) -> List[AreaCenter]:
        """Named centroids in the box; raises AreaResolutionError if the provider fails."""
        try:
            async with session.post(self.overpass_url, data={'data': self.build_query(bbox)}) as response:
                if response.status != 200:
                    raise AreaResolutionError(f"overpass {response.status}")
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise AreaResolutionError(f"Overpass request failed: {e}") from e

        centers = self.parse_elements(payload)
        self.logger.debug(f"Resolved {len(centers)} named areas in {list(bbox)}")
        return centers

    @staticmethod
    def parse_elements(payload: Dict[str, Any]) -> List[AreaCenter]:
        """Keeps elements with a name and numeric coordinates (way/relation centers or node positions)."""
        centers = []
        for element in (payload or {}).get("elements") or []:
            center = element.get("center") or {"lat": element.get("lat"), "lon": element.get("lon")}
            name = (element.get("tags") or {}).get("name") or ""
            lat, lon = center.get("lat"), center.get("lon")
            if not name or not _is_number(lat) or not _is_number(lon):
                continue
            centers.append(AreaCenter(name, float(lat), float(lon)))
        return centers


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
