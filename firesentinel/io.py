"""
Tabular and vector export for firesentinel.

Predictions and detections are flattened into pandas DataFrames for CSV
output, or into GeoDataFrames (WGS84 points) for GeoJSON, GeoPackage and
shapefile output. Simulated perimeters and evacuation rings export as
polygons.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import geopandas as gpd
import pandas as pd
from shapely.geometry import Point, Polygon

from firesentinel.behavior import FireBehaviorPrediction
from firesentinel.detections import FireDetection
from firesentinel.fusion import FusedPrediction

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"

VECTOR_SUFFIXES = {".shp", ".geojson", ".json", ".gpkg"}


# =============================================================================
# DataFrames
# =============================================================================


def predictions_to_frame(predictions: Sequence[FusedPrediction]) -> pd.DataFrame:
    """
    Flatten fused predictions into one row each.

    Factor and fire-behavior fields become prefixed columns
    (``factor_temperature``, ``fs_crown_fire_activity`` ...).
    """
    rows = []
    for pred in predictions:
        row: dict[str, Any] = {
            "id": pred.id,
            "region": pred.region,
            "date": pred.date,
            "index": pred.index,
            "latitude": pred.latitude,
            "longitude": pred.longitude,
            "risk_level": pred.risk_level,
            "probability": pred.probability,
            "confidence": pred.confidence,
            "predicted_date": pred.predicted_date,
            "evacuation_urgency": pred.evacuation_urgency,
            "degraded": pred.degraded,
            "fallback_reason": pred.fallback_reason,
            "sampling_source": pred.sampling_source,
        }
        for name, value in vars(pred.factors).items():
            row[f"factor_{name}"] = value
        fs = pred.forest_service_data
        if fs is not None:
            row["fs_spread_rate"] = fs.farsite_spread_rate
            row["fs_flame_length"] = fs.flammap_flame_length
            row["fs_crown_fire_activity"] = fs.crown_fire_activity
            row["fs_evacuation_urgency"] = fs.evacuation_urgency
        rows.append(row)

    return pd.DataFrame(rows)


def detections_to_frame(detections: Sequence[FireDetection]) -> pd.DataFrame:
    """One row per detection with every record field as a column."""
    return pd.DataFrame([d.to_dict() for d in detections])


def predictions_to_geodataframe(predictions: Sequence[FusedPrediction]) -> gpd.GeoDataFrame:
    """Predictions as WGS84 points."""
    df = predictions_to_frame(predictions)
    geometry = [Point(p.longitude, p.latitude) for p in predictions]
    return gpd.GeoDataFrame(df, geometry=geometry, crs=WGS84)


def detections_to_geodataframe(detections: Sequence[FireDetection]) -> gpd.GeoDataFrame:
    """Detections as WGS84 points."""
    df = detections_to_frame(detections)
    if "timestamp" in df:
        df["timestamp"] = df["timestamp"].astype(str)
    geometry = [Point(d.longitude, d.latitude) for d in detections]
    return gpd.GeoDataFrame(df, geometry=geometry, crs=WGS84)


def behavior_to_geodataframe(prediction: FireBehaviorPrediction) -> gpd.GeoDataFrame:
    """Fire perimeter and evacuation rings as WGS84 polygons."""
    records = [
        {
            "kind": "perimeter",
            "zone": None,
            "distance_mi": 0.0,
            "urgency": prediction.evacuation_urgency,
            "geometry": prediction.perimeter_polygon(),
        }
    ]
    for zone in prediction.evacuation_zones:
        records.append(
            {
                "kind": "evacuation",
                "zone": zone.zone,
                "distance_mi": zone.distance,
                "urgency": zone.urgency,
                "geometry": Polygon([(p.longitude, p.latitude) for p in zone.coordinates]),
            }
        )
    return gpd.GeoDataFrame(records, geometry="geometry", crs=WGS84)


# =============================================================================
# Writers
# =============================================================================


def write_csv(
    df: pd.DataFrame,
    path: str | Path,
    **kwargs: Any,
) -> None:
    """
    Write a DataFrame to CSV.

    Parameters
    ----------
    df : DataFrame
        Data to write.
    path : str or Path
        Output file path.
    **kwargs
        Additional arguments passed to df.to_csv.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Writing CSV: {path}")

    kwargs.setdefault("index", False)
    df.to_csv(path, **kwargs)


def write_vector(
    gdf: gpd.GeoDataFrame,
    path: str | Path,
    driver: str | None = None,
) -> None:
    """
    Write a GeoDataFrame to a vector file.

    The driver is inferred from the extension when not given.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Writing vector: {path}")

    if driver is None:
        driver_map = {
            ".shp": "ESRI Shapefile",
            ".geojson": "GeoJSON",
            ".json": "GeoJSON",
            ".gpkg": "GPKG",
        }
        driver = driver_map.get(path.suffix.lower(), "GeoJSON")

    gdf.to_file(path, driver=driver)


def write_predictions(predictions: Sequence[FusedPrediction], path: str | Path) -> Path:
    """Write predictions as CSV or a vector file depending on the extension."""
    path = Path(path)
    if path.suffix.lower() in VECTOR_SUFFIXES:
        write_vector(predictions_to_geodataframe(predictions), path)
    else:
        write_csv(predictions_to_frame(predictions), path)
    logger.info(f"Wrote {len(predictions)} predictions to {path}")
    return path


def write_detections(detections: Sequence[FireDetection], path: str | Path) -> Path:
    """Write detections as CSV or a vector file depending on the extension."""
    path = Path(path)
    if path.suffix.lower() in VECTOR_SUFFIXES:
        write_vector(detections_to_geodataframe(detections), path)
    else:
        write_csv(detections_to_frame(detections), path)
    logger.info(f"Wrote {len(detections)} detections to {path}")
    return path
