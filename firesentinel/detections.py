"""
Simulated satellite fire detections.

Produces FIRMS-style hotspot records for a region and day. Locations come
from the spatial sampler and every attribute is seeded, so the same region
and day always yield the same detections. Results are cached per region
code for the fire-detection TTL.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Literal

from firesentinel.cache import TTLCache
from firesentinel.catalog import GeographyCatalog
from firesentinel.config import SentinelConfig
from firesentinel.rng import seeded_random, seeded_uniform
from firesentinel.sampling import SpatialSampler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FireDetection:
    """One satellite hotspot."""

    id: str
    latitude: float
    longitude: float
    confidence: int      # percent
    brightness: float    # K
    frp: float           # MW
    timestamp: datetime
    satellite: str
    source: str
    acq_date: str
    acq_time: str
    track: int
    version: str
    bright_t31: float    # K
    daynight: Literal["D", "N"]

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class DetectionBatch:
    date: date
    detections: tuple[FireDetection, ...]


class FireDetectionService:
    """
    Seeded hotspot feed for one region at a time.

    Parameters
    ----------
    catalog : GeographyCatalog
        Region tables.
    sampler : SpatialSampler
        Location sampler.
    cache : TTLCache
        Cache shared with the rest of the process.
    config : SentinelConfig, optional
        Supplies the detection TTL.
    """

    def __init__(
        self,
        catalog: GeographyCatalog,
        sampler: SpatialSampler,
        cache: TTLCache,
        config: SentinelConfig | None = None,
    ):
        self.catalog = catalog
        self.sampler = sampler
        self.cache = cache
        self.config = config or SentinelConfig()

    def detection_count(self, region_code: str, on: date) -> int:
        """Between 15 and 64 detections per region and day."""
        return 15 + math.floor(seeded_random(f"fires_{region_code}_{on.isoformat()}") * 50)

    def get_detections(self, region_code: str, on: date | None = None) -> list[FireDetection]:
        """
        Return the detections for a region and day.

        Raises
        ------
        UnknownRegionError
            If the region is not in the catalog.
        """
        self.catalog.region(region_code)
        on = on or date.today()

        batch = self.cache.get_or_compute(
            region_code,
            self.config.cache.fire_detection_ttl,
            lambda: self._generate(region_code, on),
            accept=lambda cached: cached.date == on,
        )
        return list(batch.detections)

    def _generate(self, region_code: str, on: date) -> DetectionBatch:
        count = self.detection_count(region_code, on)
        detections = tuple(self._detection(region_code, on, i) for i in range(count))
        logger.info(f"Generated {len(detections)} fire detections for {region_code} on {on}")
        return DetectionBatch(on, detections)

    def _detection(self, region_code: str, on: date, index: int) -> FireDetection:
        seed = f"fire_{region_code}_{on.isoformat()}_{index}"
        point = self.sampler.sample_location(region_code, seed)

        brightness = float(300 + math.floor(seeded_random(f"{seed}_bright") * 150))
        hour = math.floor(seeded_random(f"{seed}_hour") * 24)
        minute = math.floor(seeded_random(f"{seed}_minute") * 60)
        acquired = datetime.combine(on, time(hour, minute), tzinfo=timezone.utc)
        satellite = "MODIS" if seeded_random(f"{seed}_sat") > 0.5 else "VIIRS"

        return FireDetection(
            id=f"fire_{region_code}_{on:%Y%m%d}_{index}",
            latitude=point.latitude,
            longitude=point.longitude,
            confidence=60 + math.floor(seeded_random(f"{seed}_conf") * 40),
            brightness=brightness,
            frp=seeded_uniform(f"{seed}_frp", 10.0, 510.0),
            timestamp=acquired,
            satellite=satellite,
            source="NASA_FIRMS",
            acq_date=on.isoformat(),
            acq_time=f"{hour:02d}:{minute:02d}",
            track=1 + math.floor(seeded_random(f"{seed}_track") * 3),
            version="6.1",
            bright_t31=brightness - 20 - math.floor(seeded_random(f"{seed}_t31") * 50),
            daynight="D" if 6 < hour < 20 else "N",
        )
