# backend/smartcity/services/exceptions.py
from typing import Optional

class TrafficServiceError(Exception):
    """Base exception for traffic aggregation errors."""
    pass

class FlowQueryError(TrafficServiceError):
    """Raised when a single flow-segment query fails (non-2xx or transport error)."""
    def __init__(self, lat: float, lon: float, status: Optional[int] = None, reason: str = ""):
        self.lat = lat
        self.lon = lon
        self.status = status
        detail = f"flow {status}" if status is not None else f"flow request failed: {reason}"
        super().__init__(f"{detail} at ({lat:.5f}, {lon:.5f})")

class AreaResolutionError(TrafficServiceError):
    """Raised when the micro-district lookup provider fails."""
    pass
