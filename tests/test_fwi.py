"""
Tests for the fire-weather index estimates.
"""

import pytest

from firesentinel.fwi import (
    estimate_brightness,
    estimate_dc,
    estimate_dmc,
    estimate_ffmc,
    estimate_fire_intensity,
    estimate_frp,
    estimate_indices,
    estimate_isi,
)


class TestMoistureCodes:
    """Tests for FFMC, DMC and DC."""

    def test_reference_conditions(self):
        """At 20 C, 50 % RH and no rain each code equals its base."""
        assert estimate_ffmc(20.0, 50.0, 0.0) == pytest.approx(85.0)
        assert estimate_dmc(20.0, 50.0, 0.0) == pytest.approx(50.0)
        assert estimate_dc(20.0, 50.0, 0.0) == pytest.approx(300.0)

    def test_ffmc_linear_terms(self):
        assert estimate_ffmc(30.0, 40.0, 1.0) == pytest.approx(85.0 + 5.0 + 3.0 - 2.0)

    def test_ffmc_clamped(self):
        assert estimate_ffmc(100.0, 0.0, 0.0) == 100.0
        assert estimate_ffmc(-50.0, 100.0, 50.0) == 0.0

    def test_dmc_clamped(self):
        assert estimate_dmc(-100.0, 100.0, 50.0) == 0.0

    def test_dc_clamped(self):
        assert estimate_dc(-100.0, 100.0, 50.0) == 0.0
        assert estimate_dc(150.0, 0.0, 0.0) == 1000.0

    def test_rain_lowers_codes(self):
        assert estimate_ffmc(25.0, 40.0, 5.0) < estimate_ffmc(25.0, 40.0, 0.0)
        assert estimate_dmc(25.0, 40.0, 5.0) < estimate_dmc(25.0, 40.0, 0.0)


class TestSpreadIndex:
    """Tests for ISI."""

    def test_isi(self):
        assert estimate_isi(10.0, 85.0) == pytest.approx(13.5)

    def test_isi_clamped(self):
        assert estimate_isi(200.0, 100.0) == 50.0

    def test_indices_bundle(self):
        idx = estimate_indices(20.0, 50.0, 0.0, 10.0)
        assert idx.ffmc == pytest.approx(85.0)
        assert idx.isi == pytest.approx(13.5)


class TestProxies:
    """Tests for brightness, FRP and intensity estimates."""

    def test_brightness(self):
        assert estimate_brightness(20.0, 50.0) == pytest.approx(300.0)
        assert estimate_brightness(30.0, 30.0) == pytest.approx(390.0)

    def test_frp_non_negative(self):
        assert estimate_frp(10.0, 0.0) == 0.0
        assert estimate_frp(25.0, 10.0) == pytest.approx(50.0)

    def test_fire_intensity(self):
        assert estimate_fire_intensity(25.0, 10.0, 40.0) == pytest.approx(50.0)
        assert estimate_fire_intensity(0.0, 0.0, 100.0) == 0.0
