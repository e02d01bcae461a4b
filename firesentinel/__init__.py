"""
FireSentinel: Multi-Model Wildfire Risk Fusion
==============================================

Deterministic wildfire prediction for US states. Locations are sampled
inside each state's land polygon with a bias toward historically
fire-prone zones, and three independent estimators score them:

- A weather-driven heuristic risk estimator with alerts
- A FARSITE/FlamMap-style closed-form fire-behavior simulator
- An ensemble of five small ML sub-models

Every random quantity is derived from a string seed, so the same region
and day always produce the same predictions.

Modules
-------
config : Configuration loading and validation
errors : Exception types
rng : String-seeded deterministic random values
catalog : Regions, land boundaries, fire-prone zones, fuel models, stations
sampling : Seeded spatial sampling inside land boundaries
weather : Weather snapshots and sources
fwi : Fire-weather index estimates
risk : Heuristic risk assessment and alerts
behavior : Fire-behavior simulation
ensemble : ML sub-model registry and ensemble predictor
urgency : Canonical evacuation urgency scale
cache : Thread-safe TTL cache
fusion : Per-region fused predictions
detections : Simulated satellite fire detections
io : DataFrame and vector export
"""

__version__ = "0.1.0"
__author__ = "FireSentinel Contributors"

from firesentinel.config import (
    SentinelConfig,
    default_config,
    load_config,
    setup_logging,
)
from firesentinel.errors import (
    FusionCancelledError,
    InvalidInputError,
    ModelUnavailableError,
    SentinelError,
    UnknownRegionError,
)
from firesentinel.rng import seeded_random, string_hash
from firesentinel.catalog import (
    GeoPoint,
    GeographyCatalog,
    is_point_in_region,
    load_catalog,
)
from firesentinel.sampling import SamplingOutcome, SpatialSampler
from firesentinel.weather import SeededWeatherSource, WeatherSnapshot
from firesentinel.risk import Alert, RiskAssessment, assess_risk, generate_alert
from firesentinel.behavior import (
    FireBehaviorInput,
    FireBehaviorPrediction,
    FireBehaviorSimulator,
)
from firesentinel.ensemble import (
    EnsemblePrediction,
    EnsemblePredictor,
    LinearModel,
    ModelRegistry,
    PredictionInput,
    load_models,
)
from firesentinel.urgency import EvacuationUrgency, max_urgency
from firesentinel.cache import TTLCache
from firesentinel.fusion import FusedPrediction, FusionEngine
from firesentinel.detections import FireDetection, FireDetectionService

__all__ = [
    "__version__",
    # Config
    "SentinelConfig",
    "default_config",
    "load_config",
    "setup_logging",
    # Errors
    "SentinelError",
    "UnknownRegionError",
    "InvalidInputError",
    "ModelUnavailableError",
    "FusionCancelledError",
    # Geography and sampling
    "seeded_random",
    "string_hash",
    "GeoPoint",
    "GeographyCatalog",
    "is_point_in_region",
    "load_catalog",
    "SamplingOutcome",
    "SpatialSampler",
    # Estimators
    "WeatherSnapshot",
    "SeededWeatherSource",
    "RiskAssessment",
    "Alert",
    "assess_risk",
    "generate_alert",
    "FireBehaviorInput",
    "FireBehaviorPrediction",
    "FireBehaviorSimulator",
    "PredictionInput",
    "LinearModel",
    "ModelRegistry",
    "EnsemblePredictor",
    "EnsemblePrediction",
    "load_models",
    "EvacuationUrgency",
    "max_urgency",
    # Fusion
    "TTLCache",
    "FusionEngine",
    "FusedPrediction",
    "FireDetection",
    "FireDetectionService",
]
