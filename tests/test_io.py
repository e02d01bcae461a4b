"""
Tests for tabular and vector export.
"""

from datetime import date

import geopandas as gpd
import pandas as pd
import pytest

from firesentinel.behavior import FireBehaviorInput, FireBehaviorSimulator
from firesentinel.cache import TTLCache
from firesentinel.catalog import GeoPoint
from firesentinel.detections import FireDetectionService
from firesentinel.fusion import FusionEngine
from firesentinel.io import (
    behavior_to_geodataframe,
    detections_to_frame,
    predictions_to_frame,
    predictions_to_geodataframe,
    write_detections,
    write_predictions,
)
from firesentinel.sampling import SpatialSampler

DAY = date(2024, 7, 15)


@pytest.fixture(scope="module")
def predictions():
    from firesentinel.config import default_config

    return FusionEngine.from_config(default_config()).get_predictions("NV", on=DAY)


@pytest.fixture
def detections(catalog, config):
    service = FireDetectionService(catalog, SpatialSampler(catalog, config.sampling), TTLCache(), config)
    return service.get_detections("NV", on=DAY)


class TestFrames:
    """DataFrame conversion."""

    def test_predictions_frame(self, predictions):
        df = predictions_to_frame(predictions)
        assert len(df) == len(predictions)
        assert list(df["probability"]) == [p.probability for p in predictions]
        for column in ("factor_temperature", "factor_drought", "fs_spread_rate", "fs_crown_fire_activity"):
            assert column in df.columns

    def test_predictions_geodataframe(self, predictions):
        gdf = predictions_to_geodataframe(predictions)
        assert gdf.crs.to_epsg() == 4326
        assert gdf.geometry.iloc[0].x == pytest.approx(predictions[0].longitude)
        assert gdf.geometry.iloc[0].y == pytest.approx(predictions[0].latitude)

    def test_detections_frame(self, detections):
        df = detections_to_frame(detections)
        assert len(df) == len(detections)
        assert {"id", "frp", "daynight", "acq_time"} <= set(df.columns)

    def test_behavior_geodataframe(self, catalog, config):
        result = FireBehaviorSimulator(catalog, config.behavior).simulate(
            FireBehaviorInput(
                location=GeoPoint(38.5, -121.5),
                fuel_model_id="4",
                slope=20.0,
                aspect=180.0,
                elevation=1000.0,
            )
        )
        gdf = behavior_to_geodataframe(result)
        assert list(gdf["kind"]) == ["perimeter"] + ["evacuation"] * 4
        areas = list(gdf.geometry.area)
        assert areas == sorted(areas)


class TestWriters:
    """File output."""

    def test_write_predictions_csv(self, predictions, tmp_path):
        path = write_predictions(predictions, tmp_path / "nested" / "nv.csv")
        df = pd.read_csv(path)
        assert len(df) == len(predictions)
        assert df["region"].eq("NV").all()

    def test_write_detections_geojson(self, detections, tmp_path):
        path = write_detections(detections, tmp_path / "nv.geojson")
        gdf = gpd.read_file(path)
        assert len(gdf) == len(detections)
        assert set(gdf.geom_type) == {"Point"}
