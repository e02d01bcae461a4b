"""
Weather inputs for firesentinel.

The prediction pipeline only needs a :class:`WeatherSnapshot` per location.
How it is obtained (a live API, a cache, a simulation) is behind the
:class:`WeatherSource` protocol. :class:`SeededWeatherSource` provides
reproducible synthetic weather for offline use and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from firesentinel.rng import seeded_uniform

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class WeatherSnapshot:
    """Weather conditions at one location and time."""

    temperature: float     # degrees Celsius
    humidity: float        # percent
    wind_speed: float      # mph
    wind_direction: float  # degrees
    pressure: float = 1013.0  # hPa
    rainfall: float = 0.0     # mm
    timestamp: datetime | None = None


class WeatherSource(Protocol):
    """Anything that can report the weather at a coordinate."""

    def fetch_weather(self, lat: float, lng: float) -> WeatherSnapshot:
        ...


# =============================================================================
# Seeded Weather
# =============================================================================


class SeededWeatherSource:
    """
    Deterministic synthetic weather keyed by coordinate.

    Values fall in typical fire-season ranges: 15-35 C, 20-80 % humidity,
    2-22 mph wind and 1000-1050 hPa pressure.

    Parameters
    ----------
    seed_prefix : str
        Prefix mixed into every seed, e.g. a date string.
    """

    def __init__(self, seed_prefix: str = "weather"):
        self.seed_prefix = seed_prefix

    def fetch_weather(self, lat: float, lng: float) -> WeatherSnapshot:
        base = f"{self.seed_prefix}_{lat:.4f}_{lng:.4f}"
        return WeatherSnapshot(
            temperature=seeded_uniform(f"{base}_temp", 15.0, 35.0),
            humidity=seeded_uniform(f"{base}_rh", 20.0, 80.0),
            wind_speed=seeded_uniform(f"{base}_ws", 2.0, 22.0),
            wind_direction=seeded_uniform(f"{base}_wd", 0.0, 360.0),
            pressure=seeded_uniform(f"{base}_p", 1000.0, 1050.0),
            rainfall=0.0,
            timestamp=datetime.now(timezone.utc),
        )
