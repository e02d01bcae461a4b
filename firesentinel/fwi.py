"""
Approximate fire-weather indices for firesentinel.

These are simple linear estimates of the Canadian Fire Weather Index
components (FFMC, DMC, DC, ISI) derived from temperature, humidity and
rainfall. They are feature inputs for the ML ensemble, not an
implementation of the real FWI System.

Each estimate starts from a base constant, applies temperature, humidity
and rainfall offsets, and is clamped to a fixed range.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


# =============================================================================
# FWI Estimate Data Class
# =============================================================================


@dataclass(frozen=True)
class FireWeatherIndices:
    """Container for estimated fire-weather indices."""

    ffmc: float  # Fine Fuel Moisture Code (0-100)
    dmc: float   # Duff Moisture Code (0-800)
    dc: float    # Drought Code (0-1000)
    isi: float   # Initial Spread Index (0-50)


# =============================================================================
# Moisture Codes
# =============================================================================


def estimate_ffmc(temperature: float, humidity: float, rainfall: float) -> float:
    """
    Estimate the Fine Fuel Moisture Code.

    Parameters
    ----------
    temperature : float
        Air temperature (degrees Celsius).
    humidity : float
        Relative humidity (percent).
    rainfall : float
        Rainfall (mm).

    Returns
    -------
    float
        FFMC estimate clamped to [0, 100].
    """
    ffmc = 85.0
    ffmc += (temperature - 20.0) * 0.5
    ffmc -= (humidity - 50.0) * 0.3
    ffmc -= rainfall * 2.0
    return float(np.clip(ffmc, 0.0, 100.0))


def estimate_dmc(temperature: float, humidity: float, rainfall: float) -> float:
    """Estimate the Duff Moisture Code, clamped to [0, 800]."""
    dmc = 50.0
    dmc += (temperature - 20.0) * 2.0
    dmc -= (humidity - 50.0) * 0.5
    dmc -= rainfall * 5.0
    return float(np.clip(dmc, 0.0, 800.0))


def estimate_dc(temperature: float, humidity: float, rainfall: float) -> float:
    """Estimate the Drought Code, clamped to [0, 1000]."""
    dc = 300.0
    dc += (temperature - 20.0) * 10.0
    dc -= (humidity - 50.0) * 2.0
    dc -= rainfall * 20.0
    return float(np.clip(dc, 0.0, 1000.0))


def estimate_isi(wind_speed: float, ffmc: float) -> float:
    """Estimate the Initial Spread Index, clamped to [0, 50]."""
    return float(np.clip(wind_speed * 0.5 + ffmc * 0.1, 0.0, 50.0))


def estimate_indices(
    temperature: float,
    humidity: float,
    rainfall: float,
    wind_speed: float,
) -> FireWeatherIndices:
    """Estimate all four indices from one set of weather inputs."""
    ffmc = estimate_ffmc(temperature, humidity, rainfall)
    return FireWeatherIndices(
        ffmc=ffmc,
        dmc=estimate_dmc(temperature, humidity, rainfall),
        dc=estimate_dc(temperature, humidity, rainfall),
        isi=estimate_isi(wind_speed, ffmc),
    )


# =============================================================================
# Satellite-style Proxies
# =============================================================================


def estimate_brightness(temperature: float, humidity: float) -> float:
    """Estimated brightness temperature (K)."""
    return 300.0 + (temperature - 20.0) * 5.0 - (humidity - 50.0) * 2.0


def estimate_frp(temperature: float, wind_speed: float) -> float:
    """Estimated fire radiative power (MW), never negative."""
    return max(0.0, (temperature - 15.0) * 2.0 + wind_speed * 3.0)


def estimate_fire_intensity(temperature: float, wind_speed: float, humidity: float) -> float:
    """Estimated fire intensity index, never negative."""
    return max(0.0, (temperature - 20.0) * 5.0 + wind_speed * 2.0 - (humidity - 50.0) * 0.5)
