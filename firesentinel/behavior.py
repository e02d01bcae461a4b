"""
FARSITE/FlamMap-style fire behavior simulation.

A closed-form approximation of the outputs of the US Forest Service fire
behavior tools. Given a fuel model, terrain and the conditions at the
nearest weather station, it estimates rate of spread, a 24-hour fire
perimeter, flame length, fireline intensity, crown fire activity,
evacuation rings and a combined 0-100 risk.

Notes
-----
Spread adjustment:

    wind     = (WS / 20) ** 0.5
    slope    = sin(slope_deg) ** 2
    moisture = max(0.1, 1 - (FM - 12) / 50)
    ROS      = ROS_base * wind * slope * moisture

Area after ``h`` hours (acres):

    A = pi * (ROS * 0.66 * h) ** 2 * 0.1
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import numpy as np
from shapely.geometry import Polygon

from firesentinel.catalog import FuelModel, GeographyCatalog, GeoPoint, WeatherStation
from firesentinel.config import BehaviorConfig
from firesentinel.errors import InvalidInputError
from firesentinel.urgency import EvacuationUrgency, urgency_from_behavior

logger = logging.getLogger(__name__)

MODEL_VERSION = "FARSITE-6.5.0/FlamMap-6.2.0"
EARTH_RADIUS_MILES = 3959.0

CrownFireActivity = Literal["none", "passive", "active"]

ZONE_NAMES = ("Immediate", "High Risk", "Medium Risk", "Low Risk")
ZONE_URGENCIES: tuple[EvacuationUrgency, ...] = ("critical", "high", "medium", "low")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class FireBehaviorInput:
    """Site description for one simulation."""

    location: GeoPoint
    fuel_model_id: str
    slope: float      # degrees
    aspect: float     # degrees
    elevation: float  # feet
    weather_station: WeatherStation | None = None
    fuel_moisture: float | None = None  # percent, overrides the fuel model


@dataclass(frozen=True)
class EvacuationZone:
    """Concentric evacuation ring around the projected perimeter."""

    zone: str
    distance: float  # miles
    coordinates: tuple[GeoPoint, ...]
    time_to_evacuate: float  # hours
    urgency: EvacuationUrgency


@dataclass(frozen=True)
class SmokeDispersion:
    """Downwind smoke plume estimate."""

    direction: float  # degrees
    distance: float   # miles
    concentration: Literal["low", "medium", "high"]


@dataclass(frozen=True)
class FuelMoistureClasses:
    """Dead and live fuel moisture (percent)."""

    dead_1h: float
    dead_10h: float
    dead_100h: float
    live_herbaceous: float
    live_woody: float


@dataclass(frozen=True)
class FlamMapOutput:
    """Point fire behavior (FlamMap-style)."""

    spread_rate: float          # chains/hour
    flame_length: float         # feet
    fireline_intensity: float   # BTU/ft/s
    heat_per_unit_area: float   # BTU/sq ft
    crown_fire_activity: CrownFireActivity
    fuel_moisture: FuelMoistureClasses
    topographic_position: str


@dataclass(frozen=True)
class FireBehaviorPrediction:
    """Simulator output tied to the inputs at creation time."""

    fire_perimeter: tuple[GeoPoint, ...]
    fire_area: float        # acres
    fire_intensity: float   # BTU/sq ft
    flame_length: float     # feet
    rate_of_spread: float   # chains/hour
    time_to_reach: float    # hours
    evacuation_zones: tuple[EvacuationZone, ...]
    smoke_dispersion: SmokeDispersion
    fuel_consumption: float  # tons/acre
    fire_behavior: FlamMapOutput
    combined_risk: int
    confidence: int
    evacuation_urgency: EvacuationUrgency
    recommendations: tuple[str, ...]
    fuel_model_id: str
    station_id: str
    model_version: str = MODEL_VERSION
    timestamp: datetime | None = None

    def perimeter_polygon(self) -> Polygon:
        """Perimeter as a shapely Polygon in (lng, lat) order."""
        return Polygon([(p.longitude, p.latitude) for p in self.fire_perimeter])


# =============================================================================
# Spread Equations
# =============================================================================


def wind_factor(wind_speed: float) -> float:
    """Wind adjustment, 1.0 at 20 mph."""
    return (wind_speed / 20.0) ** 0.5


def slope_factor(slope_deg: float) -> float:
    """Slope adjustment, 1.0 at 90 degrees and 0.0 on flat ground."""
    return math.sin(math.radians(slope_deg)) ** 2


def moisture_factor(fuel_moisture: float) -> float:
    """Moisture damping, 1.0 at 12 % and never below 0.1."""
    return max(0.1, 1.0 - (fuel_moisture - 12.0) / 50.0)


def adjusted_spread_rate(
    base_spread_rate: float,
    wind_speed: float,
    slope_deg: float,
    fuel_moisture: float,
) -> float:
    """Base spread rate scaled by wind, slope and moisture factors."""
    return (
        base_spread_rate
        * wind_factor(wind_speed)
        * slope_factor(slope_deg)
        * moisture_factor(fuel_moisture)
    )


def fire_area(spread_rate: float, hours: float) -> float:
    """Burned area (acres) after ``hours`` of spread."""
    radius = spread_rate * 0.66 * hours
    return math.pi * radius * radius * 0.1


def crown_fire_activity(flame_length: float) -> CrownFireActivity:
    """Crown fire class from flame length (ft)."""
    if flame_length > 8:
        return "active"
    if flame_length > 4:
        return "passive"
    return "none"


def topographic_position(slope_deg: float) -> str:
    """Coarse terrain class from slope."""
    if slope_deg < 5:
        return "flat"
    if slope_deg < 15:
        return "gentle"
    if slope_deg < 30:
        return "moderate"
    return "steep"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _ring(center: GeoPoint, radius_deg: float, n_points: int, rotation_deg: float) -> tuple[GeoPoint, ...]:
    angles = np.arange(n_points) / n_points * 2 * np.pi + np.radians(rotation_deg)
    lats = center.latitude + radius_deg * np.cos(angles)
    lngs = center.longitude + radius_deg * np.sin(angles)
    return tuple(GeoPoint(float(lat), float(lng)) for lat, lng in zip(lats, lngs))


# =============================================================================
# Simulator
# =============================================================================


class FireBehaviorSimulator:
    """
    Closed-form fire behavior simulator.

    Parameters
    ----------
    catalog : GeographyCatalog
        Source of fuel models and weather stations.
    config : BehaviorConfig, optional
        Simulation horizon, perimeter resolution and evacuation rings.
    """

    def __init__(self, catalog: GeographyCatalog, config: BehaviorConfig | None = None):
        self.catalog = catalog
        self.config = config or BehaviorConfig()

    def fuel_model(self, fuel_model_id: str) -> tuple[FuelModel, bool]:
        """Return the fuel model and whether it was found (else the default)."""
        model = self.catalog.fuel_model(fuel_model_id)
        if model is not None:
            return model, True

        default = self.catalog.fuel_model(self.config.default_fuel_model)
        if default is None:
            raise InvalidInputError(
                f"Default fuel model {self.config.default_fuel_model!r} missing from catalog"
            )
        logger.debug(f"Unknown fuel model {fuel_model_id!r}, using {default.id} ({default.name})")
        return default, False

    def nearest_station(self, lat: float, lng: float) -> WeatherStation | None:
        """Closest catalog weather station by great-circle distance."""
        stations = self.catalog.weather_stations
        if not stations:
            return None
        return min(stations, key=lambda s: haversine_miles(lat, lng, s.latitude, s.longitude))

    def simulate(self, inp: FireBehaviorInput) -> FireBehaviorPrediction:
        """
        Run the fire behavior simulation for one site.

        Parameters
        ----------
        inp : FireBehaviorInput
            Location, fuel, terrain and optional station/moisture overrides.

        Returns
        -------
        FireBehaviorPrediction
            Perimeter, behavior metrics, evacuation rings and risk.

        Raises
        ------
        InvalidInputError
            If slope is outside [0, 90], wind is negative, or no weather
            station is available.
        """
        if not 0.0 <= inp.slope <= 90.0:
            raise InvalidInputError(f"slope must be within [0, 90] degrees, got {inp.slope}")

        station = inp.weather_station or self.nearest_station(
            inp.location.latitude, inp.location.longitude
        )
        if station is None:
            raise InvalidInputError("No weather station available for simulation")
        if station.wind_speed < 0:
            raise InvalidInputError(f"wind speed must be non-negative, got {station.wind_speed}")

        fuel, fuel_found = self.fuel_model(inp.fuel_model_id)
        moisture = fuel.fuel_moisture if inp.fuel_moisture is None else inp.fuel_moisture

        spread = adjusted_spread_rate(fuel.fire_spread_rate, station.wind_speed, inp.slope, moisture)
        ratio = spread / fuel.fire_spread_rate

        # FARSITE: growth over the simulation horizon
        area = fire_area(spread, self.config.simulation_hours)
        radius_deg = math.sqrt(area / math.pi) * 0.01
        perimeter = _ring(inp.location, radius_deg, self.config.perimeter_points, station.wind_direction)

        flame_length = fuel.flame_length * ratio
        time_to_reach = self.config.reach_distance / (spread * 66) if spread > 0 else math.inf

        zones = tuple(
            EvacuationZone(
                zone=name,
                distance=distance,
                coordinates=_ring(
                    inp.location,
                    radius_deg + distance * 0.01,
                    self.config.perimeter_points,
                    station.wind_direction,
                ),
                time_to_evacuate=distance / (spread * 0.1) if spread > 0 else math.inf,
                urgency=urgency,
            )
            for name, distance, urgency in zip(
                ZONE_NAMES, self.config.evacuation_distances, ZONE_URGENCIES
            )
        )

        smoke = SmokeDispersion(
            direction=station.wind_direction,
            distance=station.wind_speed * 2,
            concentration="high" if spread > 20 else "medium" if spread > 10 else "low",
        )

        # FlamMap: point behavior
        flammap = FlamMapOutput(
            spread_rate=spread,
            flame_length=flame_length,
            fireline_intensity=flame_length * 300,
            heat_per_unit_area=fuel.heat_per_unit_area * ratio,
            crown_fire_activity=crown_fire_activity(flame_length),
            fuel_moisture=FuelMoistureClasses(
                dead_1h=moisture * 0.8,
                dead_10h=moisture * 1.2,
                dead_100h=moisture * 1.5,
                live_herbaceous=moisture * 2.0,
                live_woody=moisture * 1.8,
            ),
            topographic_position=topographic_position(inp.slope),
        )

        combined = self._combined_risk(spread, flammap)
        urgency = urgency_from_behavior(max(spread, flammap.spread_rate), max(flame_length, flammap.flame_length))

        weather_quality = 90
        fuel_quality = 85 if fuel_found else 50
        terrain_quality = 95 if inp.elevation > 0 else 70
        confidence = round_half_up((weather_quality + fuel_quality + terrain_quality) / 3)

        logger.debug(
            f"Simulated fuel {fuel.id} at ({inp.location.latitude:.3f}, {inp.location.longitude:.3f}): "
            f"ROS={spread:.2f} ch/h, flame={flame_length:.2f} ft, risk={combined}"
        )

        return FireBehaviorPrediction(
            fire_perimeter=perimeter,
            fire_area=area,
            fire_intensity=fuel.heat_per_unit_area * ratio,
            flame_length=flame_length,
            rate_of_spread=spread,
            time_to_reach=time_to_reach,
            evacuation_zones=zones,
            smoke_dispersion=smoke,
            fuel_consumption=fuel.fuel_load * 0.8,
            fire_behavior=flammap,
            combined_risk=combined,
            confidence=confidence,
            evacuation_urgency=urgency,
            recommendations=self._recommendations(spread, flammap, smoke, zones),
            fuel_model_id=fuel.id,
            station_id=station.id,
            timestamp=datetime.now(timezone.utc),
        )

    @staticmethod
    def _combined_risk(farsite_spread: float, flammap: FlamMapOutput) -> int:
        farsite_risk = min(100.0, farsite_spread * 5)
        flammap_risk = min(100.0, flammap.spread_rate * 5)
        intensity_risk = min(100.0, flammap.fireline_intensity / 100)
        return round_half_up(farsite_risk * 0.4 + flammap_risk * 0.4 + intensity_risk * 0.2)

    @staticmethod
    def _recommendations(
        spread: float,
        flammap: FlamMapOutput,
        smoke: SmokeDispersion,
        zones: tuple[EvacuationZone, ...],
    ) -> tuple[str, ...]:
        recs = []
        if spread > 20:
            recs.append("Immediate evacuation recommended - rapid fire spread detected")
        if flammap.crown_fire_activity == "active":
            recs.append("Crown fire activity detected - extreme caution required")
        if smoke.concentration == "high":
            recs.append("High smoke concentration - air quality concerns")
        if any(zone.urgency == "critical" for zone in zones):
            recs.append("Critical evacuation zones identified - immediate action required")
        if flammap.fuel_moisture.dead_1h < 10:
            recs.append("Extremely dry fuel conditions - high ignition risk")
        return tuple(recs)
