from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, NamedTuple
from datetime import datetime, timezone


class BoundingBox(NamedTuple):
    """Closed geographic rectangle. Order is trusted, not validated."""
    south: float
    west: float
    north: float
    east: float


class SamplePoint(NamedTuple):
    lat: float
    lon: float


class AreaCenter(NamedTuple):
    """Named micro-district centroid or a synthetic grid sector."""
    name: str
    lat: float
    lon: float


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlowSample(CamelModel):
    lat: float = Field(..., description="Latitude of the sampled point")
    lon: float = Field(..., description="Longitude of the sampled point")
    current_speed: float = Field(..., examples=[42.0], description="Current speed reported by the provider (km/h)")
    free_flow_speed: float = Field(..., examples=[60.0], description="Modeled unimpeded speed for the segment (km/h)")
    confidence: float = Field(..., examples=[0.95], description="Provider confidence in the reading (0..1)")
    congestion: float = Field(..., ge=0, le=1, examples=[0.3], description="1 - current/free-flow, clamped to [0, 1]")


class CongestionMetrics(CamelModel):
    segments: int = Field(..., ge=0, description="Number of samples that returned before the deadline")
    avg_current_speed: int = Field(..., description="Mean current speed over all samples, rounded (km/h)")
    avg_free_flow_speed: int = Field(..., description="Mean free-flow speed over all samples, rounded (km/h)")
    speed_drop_pct: float = Field(..., ge=0, description="1 - avgCurrent/avgFreeFlow, floored at 0")
    segments_used: int = Field(..., ge=0, description="Number of samples folded into the metrics")
    weight_sum: int = Field(..., ge=0, description="Rounded sum of capacity-and-confidence weights")
    method: str = Field("weighted_freeflow_confidence", description="Aggregation method identifier")
    congestion_pct: float = Field(..., ge=0, le=1, description="City-wide weighted congestion (0..1)")
    insufficient_data: bool = Field(False, description="True when no sample was collected; congestionPct then reads 0")
    top_hotspots: List[FlowSample] = Field(default_factory=list, description="Most congested samples, descending")


class TrafficSummaryResponse(CamelModel):
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Generation timestamp (UTC)")
    bbox: BoundingBox = Field(..., description="Sampled bounding box as [south, west, north, east]")
    steps: int = Field(..., ge=1, description="Grid resolution used (steps x steps points)")
    points: List[FlowSample] = Field(default_factory=list, description="Raw samples in completion order")
    metrics: CongestionMetrics


class AreaResult(CamelModel):
    name: str = Field(..., examples=["Sector 1-1"], description="Micro-district name or synthetic sector label")
    lat: float
    lon: float
    congestion: float = Field(..., ge=0, le=1, description="Mean congestion of the area's valid samples")


class AreaSummaryResponse(CamelModel):
    areas: List[AreaResult] = Field(default_factory=list, description="Areas sorted by congestion, descending")
