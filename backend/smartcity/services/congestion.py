import logging
import math
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from smartcity.models.traffic import AreaCenter, AreaResult, CongestionMetrics, FlowSample

logger = logging.getLogger(__name__)

MIN_CONFIDENCE_WEIGHT = 0.1
TOP_HOTSPOTS = 8
METHOD = "weighted_freeflow_confidence"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for positives, matching the dashboard's expectations. Non-finite reads as 0."""
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def _scaled(values: Sequence[float]) -> Tuple[np.ndarray, float]:
    """Divides by the largest magnitude so sums of huge finite values stay finite."""
    array = np.asarray(values, dtype=float)
    scale = float(np.max(np.abs(array))) if array.size else 0.0
    if scale == 0.0:
        return array, 1.0
    return array / scale, scale


def _mean(values: Sequence[float]) -> float:
    scaled, scale = _scaled(values)
    return float(np.mean(scaled)) * scale if scaled.size else 0.0


def _to_number(value: Any) -> float:
    """Lenient numeric read: missing or non-numeric fields count as 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def congestion_of(current_speed: float, free_flow_speed: float) -> float:
    """1 - current/free-flow clamped to [0, 1]; no free-flow baseline counts as fully congested."""
    if free_flow_speed > 0:
        return 1.0 - clamp(current_speed / free_flow_speed, 0.0, 1.0)
    return 1.0


def make_sample(lat: float, lon: float, current_speed: float, free_flow_speed: float,
                confidence: float) -> FlowSample:
    return FlowSample(
        lat=lat,
        lon=lon,
        current_speed=current_speed,
        free_flow_speed=free_flow_speed,
        confidence=confidence,
        congestion=congestion_of(current_speed, free_flow_speed),
    )


def sample_from_payload(lat: float, lon: float, payload: Dict[str, Any]) -> FlowSample:
    """Builds a FlowSample from a flowSegmentData response (enveloped or bare)."""
    flow = (payload or {}).get("flowSegmentData") or payload or {}
    current_speed = _to_number(flow.get("currentSpeed"))
    free_flow_speed = _to_number(flow.get("freeFlowSpeed"))
    # Infinite speeds would poison the weighted sums
    if not math.isfinite(current_speed):
        current_speed = 0.0
    if not math.isfinite(free_flow_speed):
        free_flow_speed = 0.0
    return make_sample(lat, lon, current_speed, free_flow_speed, _to_number(flow.get("confidence")))


def sample_weight(free_flow_speed: float, confidence: float) -> float:
    """Capacity (free-flow speed) times clamped confidence; non-finite confidence weighs fully."""
    confidence_factor = clamp(confidence, MIN_CONFIDENCE_WEIGHT, 1.0) if math.isfinite(confidence) else 1.0
    return max(1.0, free_flow_speed) * confidence_factor


def weighted_ratio(samples: Sequence[FlowSample]) -> Tuple[float, float]:
    """
    Returns (sum(ratio * w), sum(w)) over samples that have a free-flow baseline.
    Weighting by free-flow speed favours arterial roads over side streets.
    """
    usable = [s for s in samples if s.free_flow_speed > 0]
    if not usable:
        return 0.0, 0.0
    current = np.array([s.current_speed for s in usable], dtype=float)
    free_flow = np.array([s.free_flow_speed for s in usable], dtype=float)
    weights, scale = _scaled([sample_weight(s.free_flow_speed, s.confidence) for s in usable])
    ratios = np.clip(current / free_flow, 0.0, 1.0)
    return float(np.sum(ratios * weights)) * scale, float(np.sum(weights)) * scale


def rank_hotspots(samples: Iterable[FlowSample], top_k: int = TOP_HOTSPOTS) -> List[FlowSample]:
    usable = [s for s in samples if s.free_flow_speed > 0]
    return sorted(usable, key=lambda s: s.congestion, reverse=True)[:top_k]


def summarize_samples(samples: Sequence[FlowSample], top_k: int = TOP_HOTSPOTS) -> CongestionMetrics:
    """
    Reduces flow samples to the city-wide congestion metrics.

    When nothing came back (provider outage) the fallback arithmetic yields a
    ratio of 1 and therefore congestionPct 0, which reads like "no traffic".
    That value is kept as-is for existing clients; `insufficient_data` marks it.
    """
    count = len(samples)
    avg_current = _mean([s.current_speed for s in samples])
    avg_free_flow = _mean([s.free_flow_speed for s in samples])
    unweighted_ratio = avg_current / avg_free_flow if avg_free_flow > 0 else 1.0
    if not math.isfinite(unweighted_ratio):
        unweighted_ratio = 1.0

    ratio_sum, weight_sum = weighted_ratio(samples)
    ratio = ratio_sum / weight_sum if weight_sum > 0 else unweighted_ratio
    if not math.isfinite(ratio):
        ratio = unweighted_ratio

    return CongestionMetrics(
        segments=count,
        avg_current_speed=round_half_up(avg_current),
        avg_free_flow_speed=round_half_up(avg_free_flow),
        speed_drop_pct=max(0.0, 1.0 - unweighted_ratio),
        segments_used=count,
        weight_sum=round_half_up(weight_sum),
        method=METHOD,
        congestion_pct=clamp(1.0 - ratio, 0.0, 1.0),
        insufficient_data=count == 0,
        top_hotspots=rank_hotspots(samples, top_k),
    )


def summarize_areas(centers: Sequence[AreaCenter],
                    tagged_samples: Iterable[Tuple[int, FlowSample]]) -> List[AreaResult]:
    """
    Mean congestion per area over samples with a free-flow baseline.
    Areas without any valid sample still appear with congestion 0.
    """
    per_area: Dict[int, List[float]] = defaultdict(list)
    for area_index, sample in tagged_samples:
        if sample.free_flow_speed > 0:
            per_area[area_index].append(sample.congestion)

    results = []
    for index, center in enumerate(centers):
        values = per_area.get(index)
        congestion = float(np.mean(values)) if values else 0.0
        results.append(AreaResult(name=center.name, lat=center.lat, lon=center.lon,
                                  congestion=clamp(congestion, 0.0, 1.0)))
    results.sort(key=lambda a: a.congestion, reverse=True)
    return results
