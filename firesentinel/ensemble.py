"""
ML ensemble fire predictor.

Five independently trained sub-models (wildfire risk, fire spread,
ignition probability, fire intensity, evacuation urgency) sit behind a
uniform ``predict(features) -> float`` contract. The ensemble builds each
model's feature vector from a shared base feature set, runs the models and
fuses their outputs into one prediction whose confidence reflects how
closely the models agree.

Trained weights are loaded from YAML into a :class:`ModelRegistry`. Any
object with a ``predict`` method can be registered in place of the bundled
:class:`LinearModel`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Protocol, Sequence

import numpy as np
import yaml

from firesentinel.errors import InvalidInputError, ModelUnavailableError
from firesentinel.fwi import (
    estimate_brightness,
    estimate_fire_intensity,
    estimate_frp,
    estimate_indices,
)
from firesentinel.urgency import EvacuationUrgency, urgency_from_score

logger = logging.getLogger(__name__)

DEFAULT_MODELS_PATH = Path(__file__).parent / "data" / "models.yaml"
MODEL_VERSION = "3.0.0"

ModelKind = Literal["risk", "spread", "ignition", "intensity", "evacuation"]

MODEL_NAMES: dict[ModelKind, str] = {
    "risk": "wildfire-risk",
    "spread": "fire-spread",
    "ignition": "ignition-probability",
    "intensity": "fire-intensity",
    "evacuation": "evacuation-urgency",
}

BASE_FEATURES: tuple[str, ...] = (
    "latitude",
    "longitude",
    "temperature",
    "humidity",
    "wind_speed",
    "wind_direction",
    "pressure",
    "rainfall",
    "ffmc",
    "dmc",
    "dc",
    "isi",
    "brightness",
    "frp",
    "seasonal_risk",
    "drought_index",
    "fire_intensity",
)

FEATURE_LAYOUT: dict[ModelKind, tuple[str, ...]] = {
    "risk": BASE_FEATURES,
    "spread": (
        "wind_speed", "wind_direction", "temperature", "humidity",
        "ffmc", "dmc", "dc", "isi",
    ),
    "ignition": (
        "temperature", "humidity", "wind_speed", "ffmc",
        "dmc", "dc", "seasonal_risk", "drought_index",
    ),
    "intensity": (
        "brightness", "frp", "temperature", "wind_speed",
        "ffmc", "dc", "fire_intensity",
    ),
    "evacuation": (
        "fire_intensity", "wind_speed", "temperature",
        "humidity", "seasonal_risk", "drought_index",
    ),
}


# =============================================================================
# Models
# =============================================================================


class RiskModel(Protocol):
    """Anything that maps a feature vector to a scalar."""

    def predict(self, features: Sequence[float]) -> float:
        ...


class LinearModel:
    """
    Standardized linear model with optional logistic output.

    ``y = act(w . ((x - mean) / scale) + b)``

    Parameters
    ----------
    weights : sequence of float
        One weight per feature.
    bias : float
        Intercept.
    mean, scale : sequence of float, optional
        Per-feature standardization. Defaults to zero mean and unit scale.
    activation : {"sigmoid", "identity"}
        Output activation.
    """

    def __init__(
        self,
        weights: Sequence[float],
        bias: float = 0.0,
        mean: Sequence[float] | None = None,
        scale: Sequence[float] | None = None,
        activation: Literal["sigmoid", "identity"] = "sigmoid",
    ):
        self.weights = np.asarray(weights, dtype=np.float64)
        n = self.weights.shape[0]
        self.bias = float(bias)
        self.mean = np.zeros(n) if mean is None else np.asarray(mean, dtype=np.float64)
        self.scale = np.ones(n) if scale is None else np.asarray(scale, dtype=np.float64)
        if self.mean.shape != (n,) or self.scale.shape != (n,):
            raise ValueError("mean and scale must match the number of weights")
        if np.any(self.scale == 0):
            raise ValueError("scale entries must be non-zero")
        if activation not in ("sigmoid", "identity"):
            raise ValueError(f"Unknown activation: {activation}")
        self.activation = activation

    @property
    def n_features(self) -> int:
        return int(self.weights.shape[0])

    def predict(self, features: Sequence[float]) -> float:
        x = np.asarray(features, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.n_features:
            raise InvalidInputError(
                f"Expected {self.n_features} features, got {x.shape[0] if x.ndim == 1 else x.shape}"
            )
        z = float(np.dot(self.weights, (x - self.mean) / self.scale) + self.bias)
        if self.activation == "sigmoid":
            return 1.0 / (1.0 + math.exp(-z))
        return z


class ModelRegistry:
    """Named sub-models available to the ensemble."""

    def __init__(self) -> None:
        self._models: dict[str, RiskModel] = {}

    def register(self, name: str, model: RiskModel) -> None:
        self._models[name] = model
        logger.debug(f"Registered model {name}")

    def get(self, name: str) -> RiskModel:
        """Return a model, raising ModelUnavailableError if it is not loaded."""
        try:
            return self._models[name]
        except KeyError:
            raise ModelUnavailableError(name) from None

    def names(self) -> list[str]:
        return sorted(self._models)

    def __contains__(self, name: str) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)


def load_models(path: str | Path | None = None) -> ModelRegistry:
    """
    Load linear sub-model weights from YAML into a registry.

    Parameters
    ----------
    path : str or Path, optional
        Weights file. The bundled weights are used when not given.

    Returns
    -------
    ModelRegistry
        Registry holding every model in the file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If a model's weights do not match its feature layout.
    """
    path = Path(path) if path is not None else DEFAULT_MODELS_PATH

    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    kinds = {name: kind for kind, name in MODEL_NAMES.items()}
    registry = ModelRegistry()

    for name, entry in (raw.get("models") or {}).items():
        kind = kinds.get(name)
        if kind is not None and len(entry["weights"]) != len(FEATURE_LAYOUT[kind]):
            raise ValueError(
                f"Model {name} has {len(entry['weights'])} weights, "
                f"expected {len(FEATURE_LAYOUT[kind])}"
            )
        registry.register(
            name,
            LinearModel(
                weights=entry["weights"],
                bias=entry.get("bias", 0.0),
                mean=entry.get("mean"),
                scale=entry.get("scale"),
                activation=entry.get("activation", "sigmoid"),
            ),
        )

    logger.info(f"Loaded {len(registry)} models from {path}")
    return registry


# =============================================================================
# Inputs and Features
# =============================================================================


@dataclass(frozen=True)
class PredictionInput:
    """Conditions at one location fed to every sub-model."""

    latitude: float
    longitude: float
    temperature: float     # C
    humidity: float        # %
    wind_speed: float      # mph
    wind_direction: float  # degrees
    pressure: float = 1013.0
    rainfall: float = 0.0
    elevation: float = 0.0
    slope: float = 0.0
    vegetation_type: str = "mixed"
    fuel_moisture: float = 15.0
    fire_history: float = 0.0    # 0-10
    seasonal_risk: float = 50.0  # 0-100
    drought_index: float = 50.0  # 0-100
    timestamp: datetime | None = None


def base_features(inp: PredictionInput) -> dict[str, float]:
    """Compute the shared base feature set."""
    indices = estimate_indices(inp.temperature, inp.humidity, inp.rainfall, inp.wind_speed)
    return {
        "latitude": inp.latitude,
        "longitude": inp.longitude,
        "temperature": inp.temperature,
        "humidity": inp.humidity,
        "wind_speed": inp.wind_speed,
        "wind_direction": inp.wind_direction,
        "pressure": inp.pressure,
        "rainfall": inp.rainfall,
        "ffmc": indices.ffmc,
        "dmc": indices.dmc,
        "dc": indices.dc,
        "isi": indices.isi,
        "brightness": estimate_brightness(inp.temperature, inp.humidity),
        "frp": estimate_frp(inp.temperature, inp.wind_speed),
        "seasonal_risk": inp.seasonal_risk,
        "drought_index": inp.drought_index,
        "fire_intensity": estimate_fire_intensity(inp.temperature, inp.wind_speed, inp.humidity),
    }


def build_features(inp: PredictionInput, kind: ModelKind) -> list[float]:
    """Feature vector for one sub-model, in :data:`FEATURE_LAYOUT` order."""
    if kind not in FEATURE_LAYOUT:
        raise InvalidInputError(f"Unknown model kind: {kind}")
    base = base_features(inp)
    return [float(base[name]) for name in FEATURE_LAYOUT[kind]]


# =============================================================================
# Ensemble
# =============================================================================


@dataclass(frozen=True)
class EnsembleFactors:
    """Normalized contributing factors (roughly 0-1)."""

    weather: float
    terrain: float
    vegetation: float
    human: float
    historical: float


@dataclass(frozen=True)
class ModelOutputs:
    """Raw sub-model outputs."""

    risk: float
    spread: float
    ignition: float
    intensity: float
    evacuation: float

    def as_array(self) -> np.ndarray:
        return np.array([self.risk, self.spread, self.ignition, self.intensity, self.evacuation])


@dataclass(frozen=True)
class EnsemblePrediction:
    """Fused ensemble output."""

    fire_risk: float         # 0-100
    confidence: float        # 0-100
    time_to_ignition: float  # hours
    spread_rate: float       # km/h
    intensity: float         # MW/m2
    evacuation_urgency: EvacuationUrgency
    factors: EnsembleFactors
    recommendations: tuple[str, ...]
    model_predictions: ModelOutputs
    model_version: str = MODEL_VERSION
    timestamp: datetime | None = None


def agreement_confidence(outputs: Sequence[float]) -> float:
    """``max(0, 1 - std(outputs)) * 100`` using the population standard deviation."""
    std = float(np.std(np.asarray(outputs, dtype=np.float64)))
    return min(100.0, max(0.0, 1.0 - std) * 100.0)


def ensemble_factors(inp: PredictionInput) -> EnsembleFactors:
    return EnsembleFactors(
        weather=(inp.temperature / 40) * 0.3 + ((100 - inp.humidity) / 100) * 0.3 + (inp.wind_speed / 30) * 0.4,
        terrain=(inp.elevation / 3000) * 0.5 + (inp.slope / 45) * 0.5,
        vegetation=(100 - inp.fuel_moisture) / 100,
        human=inp.fire_history / 10,
        historical=inp.seasonal_risk / 100,
    )


def ensemble_recommendations(
    fire_risk: float,
    urgency: EvacuationUrgency,
    factors: EnsembleFactors,
) -> tuple[str, ...]:
    if fire_risk > 75:
        recs = ["Immediate evacuation recommended", "Monitor emergency channels continuously"]
    elif fire_risk > 50:
        recs = ["Prepare evacuation plan", "Stay alert for evacuation orders"]
    elif fire_risk > 25:
        recs = ["Increase vigilance", "Check fire restrictions"]
    else:
        recs = ["Monitor weather conditions", "Maintain defensible space"]

    if factors.weather > 0.7:
        recs.append("Extreme weather conditions detected")
    if factors.vegetation > 0.8:
        recs.append("High vegetation dryness - avoid outdoor burning")
    if urgency == "critical":
        recs.extend(["CRITICAL: Evacuate immediately", "Follow all emergency instructions"])
    return tuple(recs)


class EnsemblePredictor:
    """
    Fuse the five sub-model outputs into one prediction.

    Parameters
    ----------
    registry : ModelRegistry
        Source of the sub-models. Missing models raise
        :class:`ModelUnavailableError` at prediction time.
    """

    def __init__(self, registry: ModelRegistry):
        self.registry = registry

    def _run(self, kind: ModelKind, inp: PredictionInput) -> float:
        model = self.registry.get(MODEL_NAMES[kind])
        return float(model.predict(build_features(inp, kind)))

    def predict(self, inp: PredictionInput) -> EnsemblePrediction:
        """
        Run every sub-model and fuse the outputs.

        Raises
        ------
        ModelUnavailableError
            If any sub-model is not registered.
        InvalidInputError
            If a model rejects its feature vector.
        """
        # Resolve every model first so a missing one fails before any work
        for kind in MODEL_NAMES:
            self.registry.get(MODEL_NAMES[kind])

        outputs = ModelOutputs(
            risk=self._run("risk", inp),
            spread=self._run("spread", inp),
            ignition=self._run("ignition", inp),
            intensity=self._run("intensity", inp),
            evacuation=self._run("evacuation", inp),
        )

        fire_risk = outputs.risk * 100
        time_to_ignition = (1 - outputs.ignition) * 48 if outputs.ignition > 0.5 else 72.0
        urgency = urgency_from_score(outputs.evacuation)
        factors = ensemble_factors(inp)

        return EnsemblePrediction(
            fire_risk=fire_risk,
            confidence=agreement_confidence(outputs.as_array()),
            time_to_ignition=time_to_ignition,
            spread_rate=outputs.spread * 50,
            intensity=outputs.intensity * 1000,
            evacuation_urgency=urgency,
            factors=factors,
            recommendations=ensemble_recommendations(fire_risk, urgency, factors),
            model_predictions=outputs,
            timestamp=datetime.now(timezone.utc),
        )

    def predict_many(self, inputs: Sequence[PredictionInput]) -> list[EnsemblePrediction]:
        """Predict a batch in order, stopping at the first failure."""
        return [self.predict(inp) for inp in inputs]
