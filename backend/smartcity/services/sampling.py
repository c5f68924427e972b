"""
Point generation for the traffic samplers.

Grid cells are laid out row-major from the south-west corner; every point is a
cell center so nothing lands on the bounding-box edge.
"""
import logging
import math
from typing import List, Optional, Sequence

from smartcity.models.traffic import AreaCenter, BoundingBox, SamplePoint

logger = logging.getLogger(__name__)

DEFAULT_BBOX = BoundingBox(43.56, 51.05, 43.74, 51.27)
DEFAULT_STEPS = 7
MIN_STEPS = 3
MAX_STEPS = 12
NEIGHBOUR_DELTA = 0.003


def parse_bbox(raw: Optional[str], default: Sequence[float] = DEFAULT_BBOX) -> BoundingBox:
    """
    Parses "south,west,north,east". Anything that is not four finite numbers
    falls back to `default`. Coordinate order is not checked.
    """
    fallback = BoundingBox(*default)
    if not raw or not raw.strip():
        return fallback
    parts = raw.split(",")
    if len(parts) != 4:
        logger.warning(f"Malformed bbox '{raw}' (expected 4 values), using default {list(fallback)}")
        return fallback
    try:
        values = [float(p) for p in parts]
    except ValueError:
        logger.warning(f"Malformed bbox '{raw}' (non-numeric), using default {list(fallback)}")
        return fallback
    if not all(math.isfinite(v) for v in values):
        logger.warning(f"Malformed bbox '{raw}' (non-finite), using default {list(fallback)}")
        return fallback
    return BoundingBox(*values)


def clamp_steps(raw: Optional[str], default: int = DEFAULT_STEPS,
                minimum: int = MIN_STEPS, maximum: int = MAX_STEPS) -> int:
    """Missing, zero, NaN or unparsable values mean `default`; anything else, infinities included, is clamped."""
    try:
        value = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value) or value == 0:
        value = default
    return int(max(minimum, min(maximum, value)))


def grid_points(bbox: BoundingBox, steps: int = DEFAULT_STEPS) -> List[SamplePoint]:
    """steps x steps cell centers covering the box."""
    south, west, north, east = bbox
    lat_step = (north - south) / steps
    lon_step = (east - west) / steps
    return [
        SamplePoint(south + (i + 0.5) * lat_step, west + (j + 0.5) * lon_step)
        for i in range(steps)
        for j in range(steps)
    ]


def grid_centers(bbox: BoundingBox, rows: int = 3, cols: int = 4, label: str = "Sector") -> List[AreaCenter]:
    """Synthetic areas used when no named micro-district resolves. Labels are 1-indexed."""
    south, west, north, east = bbox
    lat_step = (north - south) / rows
    lon_step = (east - west) / cols
    return [
        AreaCenter(f"{label} {r + 1}-{c + 1}", south + (r + 0.5) * lat_step, west + (c + 0.5) * lon_step)
        for r in range(rows)
        for c in range(cols)
    ]


def neighbourhood(center: AreaCenter, delta: float = NEIGHBOUR_DELTA) -> List[SamplePoint]:
    """The center plus its 8 neighbours: plus pattern first, then diagonals."""
    lat, lon = center.lat, center.lon
    return [
        SamplePoint(lat, lon),
        SamplePoint(lat + delta, lon),
        SamplePoint(lat - delta, lon),
        SamplePoint(lat, lon + delta),
        SamplePoint(lat, lon - delta),
        SamplePoint(lat + delta, lon + delta),
        SamplePoint(lat - delta, lon - delta),
        SamplePoint(lat + delta, lon - delta),
        SamplePoint(lat - delta, lon + delta),
    ]
