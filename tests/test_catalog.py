"""
Tests for the geography catalog and point-in-region classifier.
"""

import pytest
from shapely.geometry import Point

from firesentinel.catalog import (
    ExclusionRule,
    LandBoundary,
    _ray_cast,
    catalog_from_dict,
    is_point_in_region,
    load_catalog,
)
from firesentinel.errors import UnknownRegionError


class TestCatalogLoading:
    """Tests for loading the bundled catalog."""

    def test_regions(self, catalog):
        assert catalog.codes == ["CA", "TX", "FL", "OR", "WA", "AZ", "CO", "NV"]

    def test_region_record(self, catalog):
        ca = catalog.region("CA")
        assert ca.name == "California"
        assert ca.center.latitude == pytest.approx(36.7783)
        assert ca.center.longitude == pytest.approx(-119.4179)
        assert len(ca.regions) == 5

    def test_every_region_has_boundary_and_zones(self, catalog):
        for code in catalog.codes:
            assert catalog.boundary(code) is not None
            assert len(catalog.fire_prone_zones(code)) > 0

    def test_thirteen_fuel_models(self, catalog):
        assert len(catalog.fuel_models) == 13
        chaparral = catalog.fuel_model("4")
        assert chaparral.name == "Chaparral"
        assert chaparral.fire_spread_rate == 15.0
        assert chaparral.flame_length == 6.0

    def test_fuel_model_accepts_int(self, catalog):
        assert catalog.fuel_model(4).id == "4"

    def test_unknown_region_raises(self, catalog):
        with pytest.raises(UnknownRegionError) as excinfo:
            catalog.region("ZZ")
        assert excinfo.value.code == "ZZ"
        assert isinstance(excinfo.value, KeyError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_catalog(path)

    def test_boundary_for_unknown_region_rejected(self):
        raw = {
            "regions": [{"code": "AA", "name": "A", "center": {"lat": 0, "lng": 0}}],
            "land_boundaries": {"BB": {"vertices": [[0, 0], [1, 0], [1, 1]]}},
        }
        with pytest.raises(ValueError):
            catalog_from_dict(raw)


class TestPointInRegion:
    """Tests for the ray-casting classifier."""

    def test_california_center_inside(self, catalog):
        assert catalog.is_point_in_region(36.7783, -119.4179, "CA")

    def test_outside_bounding_box(self, catalog):
        assert not catalog.is_point_in_region(45.0, -119.0, "CA")
        assert not catalog.is_point_in_region(36.0, -125.0, "CA")

    def test_unknown_region_fails_closed(self, catalog):
        assert not catalog.is_point_in_region(36.7, -119.4, "ZZ")

    def test_module_level_function(self, catalog):
        assert is_point_in_region(31.0, -100.0, "TX", catalog)

    def test_florida_mainland(self, catalog):
        assert catalog.is_point_in_region(28.5, -81.5, "FL")

    def test_florida_atlantic_excluded(self, catalog):
        """Points east of -80.2 are ocean even inside the polygon."""
        assert _ray_cast(27.2, -80.15, catalog.boundary("FL").vertices)
        assert not catalog.is_point_in_region(27.2, -80.15, "FL")

    def test_florida_lake_okeechobee_excluded(self, catalog):
        assert not catalog.is_point_in_region(26.9, -80.9, "FL")

    def test_florida_keys_excluded(self, catalog):
        assert not catalog.is_point_in_region(25.3, -81.0, "FL")

    def test_matches_shapely(self):
        """Ray casting agrees with shapely away from the edges."""
        boundary = LandBoundary(
            region_code="XX",
            vertices=((0.0, 0.0), (0.0, 4.0), (4.0, 4.0), (4.0, 3.0), (1.0, 3.0), (1.0, 0.0)),
        )
        polygon = boundary.to_polygon()
        steps = [0.25 + 0.5 * i for i in range(8)]
        for lat in steps:
            for lng in steps:
                assert boundary.contains(lat, lng) == polygon.contains(Point(lng, lat))

    def test_vertex_order_is_respected(self):
        """A concave polygon is handled without normalization."""
        boundary = LandBoundary(
            region_code="XX",
            vertices=((0.0, 0.0), (0.0, 4.0), (4.0, 4.0), (4.0, 3.0), (1.0, 3.0), (1.0, 0.0)),
        )
        assert boundary.contains(0.5, 2.0)
        assert boundary.contains(3.5, 3.5)
        assert not boundary.contains(2.0, 1.0)

    def test_bounds(self, catalog):
        assert catalog.boundary("CA").bounds == (32.5, -124.4, 42.0, -114.1)


class TestExclusionRule:
    """Tests for rectangular cutouts."""

    def test_strict_bounds(self):
        rule = ExclusionRule(name="box", min_lat=1.0, max_lat=2.0)
        assert rule.excludes(1.5, 0.0)
        assert not rule.excludes(1.0, 0.0)
        assert not rule.excludes(2.0, 0.0)

    def test_unset_bounds_unbounded(self):
        rule = ExclusionRule(name="east", min_lng=-80.2)
        assert rule.excludes(-90.0, -80.0)
        assert not rule.excludes(0.0, -81.0)
