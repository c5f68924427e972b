import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from smartcity.models.traffic import (
    AreaCenter,
    AreaResult,
    BoundingBox,
    FlowSample,
    SamplePoint,
    TrafficSummaryResponse,
)
from smartcity.services import congestion, sampling
from smartcity.services.area_resolver import AreaResolver, DEFAULT_NAME_PATTERN
from smartcity.services.traffic_flow_client import TrafficFlowClient
from smartcity.services.worker_pool import run_bounded

logger = logging.getLogger(__name__)


class TrafficAggregationService:
    """
    Samples a bounding box against the live flow provider and reduces the
    samples to city-wide metrics or per-area rankings.

    Each call opens its own HTTP session; nothing is shared between requests.
    """

    def __init__(self,
                 config: Dict[str, Any],
                 flow_client: Optional[TrafficFlowClient] = None,
                 area_resolver: Optional[AreaResolver] = None):
        self.config = config or {}
        self.summary_config = self.config.get("summary", {})
        self.areas_config = self.config.get("areas", {})
        self.default_bbox = BoundingBox(*self.config.get("default_bbox", sampling.DEFAULT_BBOX))

        provider_config = self.config.get("flow_provider", {})
        area_provider_config = self.config.get("area_provider", {})
        self.request_timeout = float(provider_config.get("request_timeout_seconds", 10.0))
        self.flow_client = flow_client or TrafficFlowClient.from_config(provider_config)
        self.area_resolver = area_resolver or AreaResolver(
            overpass_url=area_provider_config.get("overpass_url", "https://overpass-api.de/api/interpreter"),
            name_pattern=self.areas_config.get("name_pattern", DEFAULT_NAME_PATTERN),
            query_timeout_seconds=int(area_provider_config.get("query_timeout_seconds", 25)),
        )
        logger.info("TrafficAggregationService initialized.")

    # --- Request parsing helpers (used by the router) ---
    def parse_bbox(self, raw: Optional[str]) -> BoundingBox:
        return sampling.parse_bbox(raw, default=self.default_bbox)

    def parse_steps(self, raw: Optional[str]) -> int:
        return sampling.clamp_steps(
            raw,
            default=int(self.summary_config.get("default_steps", sampling.DEFAULT_STEPS)),
            minimum=int(self.summary_config.get("min_steps", sampling.MIN_STEPS)),
            maximum=int(self.summary_config.get("max_steps", sampling.MAX_STEPS)),
        )

    def _open_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.request_timeout))

    # --- Summary ---
    async def get_summary(self, bbox: BoundingBox, steps: int) -> TrafficSummaryResponse:
        points = sampling.grid_points(bbox, steps)
        concurrency = int(self.summary_config.get("concurrency", 6))
        deadline = float(self.summary_config.get("deadline_seconds", 8.0))
        started = time.monotonic()

        async with self._open_session() as session:
            async def sample(point: SamplePoint) -> FlowSample:
                return await self.flow_client.query_point(session, point.lat, point.lon)

            outcome = await run_bounded(points, sample, concurrency=concurrency, deadline=deadline)

        samples: List[FlowSample] = outcome.results
        logger.info(
            f"Traffic summary: {len(samples)}/{outcome.scheduled} points sampled "
            f"({outcome.failed} failed, deadline hit: {outcome.timed_out}) in {time.monotonic() - started:.2f}s"
        )
        if not samples:
            logger.warning(f"No flow samples collected for bbox {list(bbox)}; reporting insufficient data.")

        metrics = congestion.summarize_samples(samples, top_k=int(self.summary_config.get("top_hotspots", 8)))
        return TrafficSummaryResponse(bbox=bbox, steps=steps, points=samples, metrics=metrics)

    # --- Areas ---
    async def resolve_areas(self, session: aiohttp.ClientSession, bbox: BoundingBox,
                            timeout: float) -> List[AreaCenter]:
        """Named micro-districts, or the synthetic sector grid when none resolve."""
        centers: List[AreaCenter] = []
        try:
            centers = await asyncio.wait_for(self.area_resolver.resolve(session, bbox), timeout=max(timeout, 0.0))
        except asyncio.TimeoutError:
            logger.warning("Area resolution timed out; falling back to sector grid.")
        except Exception as e:
            logger.warning(f"Area resolution failed ({e}); falling back to sector grid.")
        if centers:
            return centers
        return sampling.grid_centers(
            bbox,
            rows=int(self.areas_config.get("grid_rows", 3)),
            cols=int(self.areas_config.get("grid_cols", 4)),
            label=self.areas_config.get("sector_label", "Sector"),
        )

    async def get_area_congestion(self, bbox: BoundingBox) -> List[AreaResult]:
        concurrency = int(self.areas_config.get("concurrency", 6))
        budget = float(self.areas_config.get("deadline_seconds", 12.0))
        delta = float(self.areas_config.get("neighbour_delta", sampling.NEIGHBOUR_DELTA))
        started = time.monotonic()

        async with self._open_session() as session:
            centers = await self.resolve_areas(session, bbox, timeout=budget)
            tagged_points: List[Tuple[int, SamplePoint]] = [
                (index, point)
                for index, center in enumerate(centers)
                for point in sampling.neighbourhood(center, delta)
            ]

            async def sample(item: Tuple[int, SamplePoint]) -> Tuple[int, FlowSample]:
                index, point = item
                return index, await self.flow_client.query_point(session, point.lat, point.lon)

            # Resolution and sampling share one wall-clock budget
            remaining = max(0.0, budget - (time.monotonic() - started))
            outcome = await run_bounded(tagged_points, sample, concurrency=concurrency, deadline=remaining)

        logger.info(
            f"Traffic areas: {len(centers)} areas, {len(outcome.results)}/{outcome.scheduled} points sampled "
            f"({outcome.failed} failed, deadline hit: {outcome.timed_out})"
        )
        return congestion.summarize_areas(centers, outcome.results)

