"""
Geography and fuel catalog for firesentinel.

This module holds the static tables the prediction pipeline keys off:
regions (US states) with their sub-regions, simplified land-boundary
polygons with water exclusions, fire-prone zones used to bias sampling,
the 13 standard fuel models and a set of weather stations.

The tables are loaded once from YAML (the bundled ``data/catalog.yaml`` by
default) and never mutated afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import yaml
from shapely.geometry import Polygon

from firesentinel.errors import UnknownRegionError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "catalog.yaml"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class GeoPoint:
    """A geographic coordinate in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class SubRegion:
    """Named area inside a region."""

    name: str
    lat: float
    lng: float


@dataclass(frozen=True)
class Region:
    """A monitored region (US state)."""

    code: str
    name: str
    center: GeoPoint
    zoom: int
    regions: tuple[SubRegion, ...] = ()


@dataclass(frozen=True)
class ExclusionRule:
    """
    Rectangular water cutout applied after polygon containment.

    A point is excluded when it lies strictly inside every bound that is
    set. Unset bounds are unbounded.
    """

    name: str
    min_lat: float | None = None
    max_lat: float | None = None
    min_lng: float | None = None
    max_lng: float | None = None

    def excludes(self, lat: float, lng: float) -> bool:
        """Return True if the point falls inside the cutout."""
        if self.min_lat is not None and not lat > self.min_lat:
            return False
        if self.max_lat is not None and not lat < self.max_lat:
            return False
        if self.min_lng is not None and not lng > self.min_lng:
            return False
        if self.max_lng is not None and not lng < self.max_lng:
            return False
        return True


@dataclass(frozen=True)
class LandBoundary:
    """Closed land polygon for a region plus its water exclusions."""

    region_code: str
    vertices: tuple[tuple[float, float], ...]  # (lat, lng) in ring order
    exclusions: tuple[ExclusionRule, ...] = ()

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return (min_lat, min_lng, max_lat, max_lng)."""
        arr = np.asarray(self.vertices, dtype=np.float64)
        return (
            float(arr[:, 0].min()),
            float(arr[:, 1].min()),
            float(arr[:, 0].max()),
            float(arr[:, 1].max()),
        )

    def to_polygon(self) -> Polygon:
        """Return the boundary as a shapely Polygon in (lng, lat) order."""
        return Polygon([(lng, lat) for lat, lng in self.vertices])

    def contains(self, lat: float, lng: float) -> bool:
        """
        Ray-casting point-in-polygon test followed by exclusion rules.

        Uses the vertex order as given (no normalization). Edge crossings
        are counted for a ray cast in the +lng direction.
        """
        if not _ray_cast(lat, lng, self.vertices):
            return False
        return not any(rule.excludes(lat, lng) for rule in self.exclusions)


@dataclass(frozen=True)
class FireProneZone:
    """Historically fire-prone location used to bias sampling."""

    lat: float
    lng: float
    name: str
    risk_multiplier: float = 1.0


@dataclass(frozen=True)
class FuelModel:
    """One of the 13 standard fire behavior fuel models."""

    id: str
    name: str
    description: str
    fuel_load: float         # tons/acre
    fuel_depth: float        # feet
    fuel_moisture: float     # percent
    fire_spread_rate: float  # chains/hour
    flame_length: float      # feet
    heat_per_unit_area: float  # BTU/sq ft


@dataclass(frozen=True)
class WeatherStation:
    """A (simulated) remote automated weather station."""

    id: str
    name: str
    latitude: float
    longitude: float
    elevation: float
    temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    precipitation: float = 0.0


# =============================================================================
# Point-in-Polygon
# =============================================================================


def _ray_cast(lat: float, lng: float, vertices: tuple[tuple[float, float], ...]) -> bool:
    """Edge-crossing parity test with x = lng, y = lat."""
    if len(vertices) < 3:
        return False

    ring = np.asarray(vertices, dtype=np.float64)
    yi, xi = ring[:, 0], ring[:, 1]
    yj, xj = np.roll(yi, 1), np.roll(xi, 1)

    straddles = (yi > lat) != (yj > lat)
    # Only evaluate the intersection where the edge straddles the ray,
    # which also keeps horizontal edges out of the division.
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
    crossings = straddles & (lng < x_cross)

    return bool(np.count_nonzero(crossings) % 2 == 1)


# =============================================================================
# Catalog
# =============================================================================


@dataclass
class GeographyCatalog:
    """Static region, boundary, zone, fuel and station tables."""

    regions: dict[str, Region]
    boundaries: dict[str, LandBoundary] = field(default_factory=dict)
    zones: dict[str, tuple[FireProneZone, ...]] = field(default_factory=dict)
    fuel_models: dict[str, FuelModel] = field(default_factory=dict)
    weather_stations: tuple[WeatherStation, ...] = ()

    @property
    def codes(self) -> list[str]:
        """Region codes in catalog order."""
        return list(self.regions)

    def region(self, code: str) -> Region:
        """Look up a region, raising UnknownRegionError if absent."""
        try:
            return self.regions[code]
        except KeyError:
            raise UnknownRegionError(code) from None

    def has_region(self, code: str) -> bool:
        return code in self.regions

    def boundary(self, code: str) -> LandBoundary | None:
        return self.boundaries.get(code)

    def fire_prone_zones(self, code: str) -> tuple[FireProneZone, ...]:
        return self.zones.get(code, ())

    def fuel_model(self, fuel_id: str) -> FuelModel | None:
        return self.fuel_models.get(str(fuel_id))

    def is_point_in_region(self, lat: float, lng: float, code: str) -> bool:
        """
        Test whether a point lies on land inside a region.

        Regions without a defined boundary (including unknown codes)
        return False.
        """
        boundary = self.boundaries.get(code)
        if boundary is None:
            return False
        return boundary.contains(lat, lng)


def is_point_in_region(lat: float, lng: float, code: str, catalog: GeographyCatalog) -> bool:
    """Module-level form of :meth:`GeographyCatalog.is_point_in_region`."""
    return catalog.is_point_in_region(lat, lng, code)


# =============================================================================
# Loading Functions
# =============================================================================


def load_catalog(path: str | Path | None = None) -> GeographyCatalog:
    """
    Load a geography catalog from YAML.

    Parameters
    ----------
    path : str or Path, optional
        Catalog file. The bundled catalog is used when not given.

    Returns
    -------
    GeographyCatalog
        Parsed catalog.

    Raises
    ------
    FileNotFoundError
        If the catalog file does not exist.
    ValueError
        If the file is empty or references undefined regions.
    """
    path = Path(path) if path is not None else DEFAULT_CATALOG_PATH

    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    logger.debug(f"Loading catalog from {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not raw:
        raise ValueError(f"Empty catalog file: {path}")

    catalog = catalog_from_dict(raw)
    logger.info(
        f"Catalog loaded: {len(catalog.regions)} regions, "
        f"{len(catalog.fuel_models)} fuel models"
    )
    return catalog


def catalog_from_dict(raw: dict[str, Any]) -> GeographyCatalog:
    """Build a catalog from a parsed YAML mapping."""
    regions: dict[str, Region] = {}
    for entry in raw.get("regions", []):
        code = str(entry["code"])
        regions[code] = Region(
            code=code,
            name=entry["name"],
            center=GeoPoint(float(entry["center"]["lat"]), float(entry["center"]["lng"])),
            zoom=int(entry.get("zoom", 6)),
            regions=tuple(
                SubRegion(sub["name"], float(sub["lat"]), float(sub["lng"]))
                for sub in entry.get("regions", [])
            ),
        )

    boundaries: dict[str, LandBoundary] = {}
    for code, entry in (raw.get("land_boundaries") or {}).items():
        if code not in regions:
            raise ValueError(f"Land boundary defined for unknown region: {code}")
        boundaries[code] = LandBoundary(
            region_code=code,
            vertices=tuple((float(lat), float(lng)) for lat, lng in entry["vertices"]),
            exclusions=tuple(ExclusionRule(**rule) for rule in entry.get("exclusions", [])),
        )

    zones: dict[str, tuple[FireProneZone, ...]] = {}
    for code, entries in (raw.get("fire_prone_zones") or {}).items():
        if code not in regions:
            raise ValueError(f"Fire-prone zones defined for unknown region: {code}")
        zones[code] = tuple(FireProneZone(**zone) for zone in entries)

    fuel_models = {
        str(entry["id"]): FuelModel(**{**entry, "id": str(entry["id"])})
        for entry in raw.get("fuel_models", [])
    }

    stations = tuple(WeatherStation(**entry) for entry in raw.get("weather_stations", []))

    return GeographyCatalog(
        regions=regions,
        boundaries=boundaries,
        zones=zones,
        fuel_models=fuel_models,
        weather_stations=stations,
    )
