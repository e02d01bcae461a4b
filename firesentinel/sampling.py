"""
Seeded spatial sampling of fire and prediction locations.

Locations are biased toward a region's fire-prone zones and constrained to
its land polygon. All draws come from the string-seeded RNG, so a given
(region, seed) pair always yields the same coordinate.

Sampling never raises for a known region. When no valid point is found
the region center is returned and the outcome is marked as a fallback.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Literal

from firesentinel.catalog import GeographyCatalog, GeoPoint
from firesentinel.config import SamplingConfig
from firesentinel.rng import seeded_random

logger = logging.getLogger(__name__)

SampleSource = Literal["fire_prone_zone", "uniform", "region_center", "center_fallback"]


@dataclass(frozen=True)
class SamplingOutcome:
    """A sampled point and how it was obtained."""

    point: GeoPoint
    source: SampleSource
    attempts: int = 0

    @property
    def degraded(self) -> bool:
        """True when sampling gave up and used the region center."""
        return self.source == "center_fallback"


class SpatialSampler:
    """
    Draw seeded locations inside a region's land boundary.

    Parameters
    ----------
    catalog : GeographyCatalog
        Region, boundary and fire-prone zone tables.
    config : SamplingConfig, optional
        Zone bias, jitter width and maximum attempts.
    """

    def __init__(self, catalog: GeographyCatalog, config: SamplingConfig | None = None):
        self.catalog = catalog
        self.config = config or SamplingConfig()
        self._exhausted = 0
        self._lock = threading.Lock()

    @property
    def exhausted_count(self) -> int:
        """Number of samples that fell back to the region center."""
        return self._exhausted

    def sample_location(self, region_code: str, seed: str) -> GeoPoint:
        """Return a seeded point for ``region_code``."""
        return self.sample(region_code, seed).point

    def sample(self, region_code: str, seed: str) -> SamplingOutcome:
        """
        Sample a location and report how it was produced.

        Parameters
        ----------
        region_code : str
            Catalog region code.
        seed : str
            Seed string, e.g. ``"pred_CA_2024-01-01_0"``.

        Returns
        -------
        SamplingOutcome
            Point, source and number of uniform attempts used.

        Raises
        ------
        UnknownRegionError
            If the region is not in the catalog.
        """
        region = self.catalog.region(region_code)
        boundary = self.catalog.boundary(region_code)

        if boundary is None:
            return SamplingOutcome(region.center, "region_center")

        random1 = seeded_random(f"{seed}_loc1")
        random2 = seeded_random(f"{seed}_loc2")
        random3 = seeded_random(f"{seed}_loc3")

        zones = self.catalog.fire_prone_zones(region_code)
        if random1 < self.config.zone_bias and zones:
            zone = zones[math.floor(random2 * len(zones))]
            half = self.config.zone_jitter / 2
            lat = zone.lat + (random2 - 0.5) * 2 * half
            lng = zone.lng + (random3 - 0.5) * 2 * half
            if boundary.contains(lat, lng):
                return SamplingOutcome(GeoPoint(lat, lng), "fire_prone_zone")

        min_lat, min_lng, max_lat, max_lng = boundary.bounds
        for attempt in range(self.config.max_attempts):
            lat = min_lat + seeded_random(f"{seed}_{attempt}_lat") * (max_lat - min_lat)
            lng = min_lng + seeded_random(f"{seed}_{attempt}_lng") * (max_lng - min_lng)
            if boundary.contains(lat, lng):
                return SamplingOutcome(GeoPoint(lat, lng), "uniform", attempt + 1)

        with self._lock:
            self._exhausted += 1
        logger.warning(
            f"Sampling exhausted for {region_code} after "
            f"{self.config.max_attempts} attempts (seed={seed}); using region center"
        )
        return SamplingOutcome(region.center, "center_fallback", self.config.max_attempts)
