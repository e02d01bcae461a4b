"""
Weather-driven heuristic fire risk.

This module computes a composite 0-100 risk score from a weather factor and
four externally supplied factors (vegetation, topography, human activity,
fire history), maps it to a risk level with fixed recommendations, and
turns elevated assessments into alerts.

Notes
-----
    weather = (T / 35 + (100 - RH) / 100 + WS / 25) / 3 * 100
    score   = 0.3 weather + 0.25 vegetation + 0.2 topography
              + 0.15 human + 0.1 historical
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal

from firesentinel.catalog import GeoPoint
from firesentinel.config import RiskConfig
from firesentinel.errors import InvalidInputError
from firesentinel.weather import WeatherSnapshot

logger = logging.getLogger(__name__)

RiskLevel = Literal["low", "medium", "high", "critical"]
AlertType = Literal["fire_detected", "high_risk", "weather_warning", "evacuation", "air_quality"]

RISK_LEVELS: tuple[RiskLevel, ...] = ("low", "medium", "high", "critical")

RECOMMENDATIONS: dict[RiskLevel, tuple[str, ...]] = {
    "low": (
        "Monitor weather conditions",
        "Maintain defensible space",
    ),
    "medium": (
        "Increase vigilance",
        "Check fire restrictions",
        "Prepare evacuation plan",
    ),
    "high": (
        "Avoid outdoor burning",
        "Stay alert for evacuation orders",
        "Keep emergency kit ready",
    ),
    "critical": (
        "Immediate evacuation may be necessary",
        "Monitor emergency channels",
        "Follow all evacuation orders",
    ),
}


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RiskFactors:
    """Individual 0-100 risk contributions."""

    weather: float
    vegetation: float
    topography: float
    human: float
    historical: float


@dataclass(frozen=True)
class RiskAssessment:
    """Heuristic risk at a location, valid until ``valid_until``."""

    risk_level: RiskLevel
    score: float
    factors: RiskFactors
    recommendations: tuple[str, ...]
    valid_until: datetime
    location: GeoPoint | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """True while the assessment is inside its validity window."""
        now = now or datetime.now(timezone.utc)
        return now < self.valid_until


@dataclass(frozen=True)
class Alert:
    """A user-facing alert raised from a risk assessment."""

    id: str
    type: AlertType
    severity: RiskLevel
    title: str
    message: str
    location: GeoPoint
    address: str
    timestamp: datetime
    expires_at: datetime
    action_required: bool
    affected_radius: float  # km
    recommendations: tuple[str, ...] = field(default_factory=tuple)


# =============================================================================
# Risk Computation
# =============================================================================


def weather_factor(temperature: float, humidity: float, wind_speed: float) -> float:
    """
    Weather contribution to fire risk.

    Increases with temperature and wind speed, decreases with humidity.
    Not clamped; extreme weather can exceed 100.
    """
    return (temperature / 35.0 + (100.0 - humidity) / 100.0 + wind_speed / 25.0) / 3.0 * 100.0


def classify_risk(score: float) -> RiskLevel:
    """Map a 0-100 score to a risk level (<25 low, <50 medium, <75 high)."""
    if score < 25:
        return "low"
    if score < 50:
        return "medium"
    if score < 75:
        return "high"
    return "critical"


def _check_factor(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 100.0:
        raise InvalidInputError(f"{name} factor must be within [0, 100], got {value}")
    return value


def assess_risk(
    location: GeoPoint | None,
    weather: WeatherSnapshot,
    vegetation: float = 0.0,
    topography: float = 0.0,
    human: float = 0.0,
    historical: float = 0.0,
    now: datetime | None = None,
    config: RiskConfig | None = None,
) -> RiskAssessment:
    """
    Assess fire risk from weather and site factors.

    Parameters
    ----------
    location : GeoPoint or None
        Location being assessed (recorded on the result).
    weather : WeatherSnapshot
        Current conditions.
    vegetation, topography, human, historical : float
        Site factors in [0, 100].
    now : datetime, optional
        Reference time for the validity window.
    config : RiskConfig, optional
        Weights and validity window.

    Returns
    -------
    RiskAssessment
        Score, level, factors and recommendations.

    Raises
    ------
    InvalidInputError
        If a site factor lies outside [0, 100].
    """
    config = config or RiskConfig()
    w = config.weights

    factors = RiskFactors(
        weather=weather_factor(weather.temperature, weather.humidity, weather.wind_speed),
        vegetation=_check_factor("vegetation", vegetation),
        topography=_check_factor("topography", topography),
        human=_check_factor("human", human),
        historical=_check_factor("historical", historical),
    )

    score = (
        factors.weather * w.weather
        + factors.vegetation * w.vegetation
        + factors.topography * w.topography
        + factors.human * w.human
        + factors.historical * w.historical
    )
    score = min(100.0, max(0.0, score))
    level = classify_risk(score)

    now = now or datetime.now(timezone.utc)

    return RiskAssessment(
        risk_level=level,
        score=score,
        factors=factors,
        recommendations=RECOMMENDATIONS[level],
        valid_until=now + timedelta(hours=config.validity_hours),
        location=location,
    )


# =============================================================================
# Alerts
# =============================================================================

_ALERT_TEMPLATES: dict[RiskLevel, tuple[str, str, bool, float]] = {
    "medium": (
        "Medium Fire Risk Alert",
        "Increased fire risk detected in your area. Stay vigilant and follow fire safety guidelines.",
        False,
        10.0,
    ),
    "high": (
        "High Fire Risk Warning",
        "High fire risk conditions detected. Avoid outdoor burning and be prepared for potential evacuations.",
        True,
        15.0,
    ),
    "critical": (
        "Critical Fire Risk - Immediate Action Required",
        "Critical fire risk conditions. Follow all evacuation orders and monitor emergency channels closely.",
        True,
        25.0,
    ),
}


def generate_alert(
    assessment: RiskAssessment,
    location: GeoPoint | None = None,
    address: str = "",
    now: datetime | None = None,
    config: RiskConfig | None = None,
) -> Alert | None:
    """
    Build an alert for a medium-or-worse assessment.

    Low-risk assessments produce no alert. The alert type is
    ``weather_warning`` when the weather factor is the largest contribution
    and ``high_risk`` otherwise.
    """
    if assessment.risk_level == "low":
        return None

    config = config or RiskConfig()
    location = location or assessment.location
    if location is None:
        raise InvalidInputError("An alert needs a location")

    title, message, action_required, radius = _ALERT_TEMPLATES[assessment.risk_level]

    f = assessment.factors
    w = config.weights
    contributions = {
        "weather": f.weather * w.weather,
        "vegetation": f.vegetation * w.vegetation,
        "topography": f.topography * w.topography,
        "human": f.human * w.human,
        "historical": f.historical * w.historical,
    }
    dominant = max(contributions, key=contributions.get)
    alert_type: AlertType = "weather_warning" if dominant == "weather" else "high_risk"

    now = now or datetime.now(timezone.utc)
    alert_id = (
        f"alert_{assessment.risk_level}_{location.latitude:.4f}_{location.longitude:.4f}_"
        f"{now:%Y%m%dT%H%M%S}"
    )

    logger.debug(f"Raising {assessment.risk_level} alert {alert_id} ({alert_type})")

    return Alert(
        id=alert_id,
        type=alert_type,
        severity=assessment.risk_level,
        title=title,
        message=message,
        location=location,
        address=address,
        timestamp=now,
        expires_at=now + timedelta(hours=config.alert_expiry_hours),
        action_required=action_required,
        affected_radius=radius,
        recommendations=assessment.recommendations,
    )
