"""
Fusion engine: deterministic per-region fire predictions.

For a region and calendar day the engine decides how many predictions to
make, samples a seeded location for each, derives seeded conditions, runs
the ML ensemble and the fire-behavior simulator side by side and fuses
their risks:

    probability = round_half_up(0.6 * ensemble.fire_risk + 0.4 * behavior.combined_risk)

When the ensemble fails (a sub-model is missing or raises) the closed-form
fallback

    (T/40 * 0.2 + (100 - RH)/100 * 0.25 + WS/30 * 0.15
     + veg/100 * 0.15 + drought/100 * 0.15 + hist/100 * 0.1) * 100

is used instead and the record is flagged as degraded.

Results are de-duplicated by rounded coordinates, sorted by descending
probability and cached per region for the prediction TTL.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from firesentinel.behavior import (
    FireBehaviorInput,
    FireBehaviorPrediction,
    FireBehaviorSimulator,
    round_half_up,
)
from firesentinel.cache import TTLCache
from firesentinel.catalog import GeographyCatalog, GeoPoint, WeatherStation, load_catalog
from firesentinel.config import FusionConfig, SentinelConfig
from firesentinel.ensemble import (
    EnsemblePrediction,
    EnsemblePredictor,
    ModelRegistry,
    PredictionInput,
    load_models,
)
from firesentinel.errors import FusionCancelledError, InvalidInputError, ModelUnavailableError
from firesentinel.risk import RiskLevel, classify_risk
from firesentinel.rng import seeded_random, seeded_uniform
from firesentinel.sampling import SampleSource, SpatialSampler
from firesentinel.urgency import EvacuationUrgency, max_urgency, urgency_from_behavior
from firesentinel.weather import WeatherSource

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class PredictionFactors:
    """Conditions that drove one prediction."""

    temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    vegetation: float
    drought: float
    historical: float


@dataclass(frozen=True)
class ForestServiceData:
    """Summary of the fire-behavior simulation attached to a prediction."""

    farsite_spread_rate: float
    flammap_flame_length: float
    crown_fire_activity: str
    evacuation_urgency: EvacuationUrgency
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class FusedPrediction:
    """A predicted fire location for one region, day and index."""

    id: str
    region: str
    date: str
    index: int
    latitude: float
    longitude: float
    risk_level: RiskLevel
    probability: float
    factors: PredictionFactors
    predicted_date: str
    confidence: float
    forest_service_data: ForestServiceData | None
    evacuation_urgency: EvacuationUrgency
    degraded: bool = False
    fallback_reason: str | None = None
    sampling_source: SampleSource = "uniform"

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class PredictionBatch:
    """Cached predictions for one region and day."""

    date: date
    predictions: tuple[FusedPrediction, ...]


@dataclass(frozen=True)
class SiteConditions:
    """Seeded per-location inputs shared by both estimators."""

    temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    pressure: float
    rainfall: float
    vegetation: float
    drought: float
    historical: float
    elevation: float
    slope: float
    aspect: float
    fuel_model_id: str
    fuel_moisture: float
    fire_history: float
    days_ahead: int


def fallback_risk(
    temperature: float,
    humidity: float,
    wind_speed: float,
    vegetation: float,
    drought: float,
    historical: float,
) -> float:
    """Closed-form risk (0-100) used when the ensemble is unavailable."""
    return (
        (temperature / 40) * 0.2
        + ((100 - humidity) / 100) * 0.25
        + (wind_speed / 30) * 0.15
        + (vegetation / 100) * 0.15
        + (drought / 100) * 0.15
        + (historical / 100) * 0.1
    ) * 100


# =============================================================================
# Engine
# =============================================================================


class FusionEngine:
    """
    Combine the ensemble and simulator into cached per-region predictions.

    Parameters
    ----------
    catalog : GeographyCatalog
        Region tables.
    sampler : SpatialSampler
        Seeded location sampler.
    ensemble : EnsemblePredictor
        ML ensemble.
    simulator : FireBehaviorSimulator
        Fire-behavior simulator.
    cache : TTLCache
        Shared cache for prediction batches.
    config : SentinelConfig, optional
        Fusion weights, counts and TTLs.
    weather_source : WeatherSource, optional
        Replaces the seeded temperature, humidity, wind and pressure when
        given.
    """

    def __init__(
        self,
        catalog: GeographyCatalog,
        sampler: SpatialSampler,
        ensemble: EnsemblePredictor,
        simulator: FireBehaviorSimulator,
        cache: TTLCache,
        config: SentinelConfig | None = None,
        weather_source: WeatherSource | None = None,
    ):
        self.catalog = catalog
        self.sampler = sampler
        self.ensemble = ensemble
        self.simulator = simulator
        self.cache = cache
        self.config = config or SentinelConfig()
        self.weather_source = weather_source
        self._fallbacks = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: SentinelConfig,
        cache: TTLCache | None = None,
        weather_source: WeatherSource | None = None,
    ) -> "FusionEngine":
        """Build an engine and all of its collaborators from configuration."""
        catalog = load_catalog(config.catalog.path)
        registry = load_models(config.models.path) if config.models.enabled else ModelRegistry()
        if not config.models.enabled:
            logger.warning("ML models disabled; predictions will use the fallback formula")
        return cls(
            catalog=catalog,
            sampler=SpatialSampler(catalog, config.sampling),
            ensemble=EnsemblePredictor(registry),
            simulator=FireBehaviorSimulator(catalog, config.behavior),
            cache=cache if cache is not None else TTLCache(),
            config=config,
            weather_source=weather_source,
        )

    @property
    def fusion_config(self) -> FusionConfig:
        return self.config.fusion

    @property
    def fallback_count(self) -> int:
        """Number of predictions produced with the fallback formula."""
        return self._fallbacks

    # -------------------------------------------------------------------------
    # Counts and conditions
    # -------------------------------------------------------------------------

    def prediction_count(self, region_code: str, on: date | None = None) -> int:
        """
        Number of predictions for a region on a calendar day.

        ``floor(base * multiplier)`` where the multiplier is drawn from the
        configured range with seed ``count_{region}_{year}_{day_of_year}``.
        """
        self.catalog.region(region_code)
        on = on or date.today()
        cfg = self.fusion_config
        base = cfg.base_counts.get(region_code, cfg.default_base_count)
        low, high = cfg.count_multiplier
        day_of_year = on.timetuple().tm_yday
        multiplier = low + (high - low) * seeded_random(f"count_{region_code}_{on.year}_{day_of_year}")
        return math.floor(base * multiplier)

    def site_conditions(self, seed: str, location: GeoPoint) -> SiteConditions:
        """Seeded conditions for one prediction."""
        temperature = seeded_uniform(f"{seed}_temp", 25.0, 40.0)
        humidity = seeded_uniform(f"{seed}_humidity", 20.0, 50.0)
        wind_speed = seeded_uniform(f"{seed}_wind", 5.0, 30.0)
        wind_direction = seeded_uniform(f"{seed}_wind_dir", 0.0, 360.0)
        pressure = seeded_uniform(f"{seed}_pressure", 1000.0, 1030.0)
        rainfall = 0.0

        if self.weather_source is not None:
            weather = self.weather_source.fetch_weather(location.latitude, location.longitude)
            temperature = weather.temperature
            humidity = weather.humidity
            wind_speed = weather.wind_speed
            wind_direction = weather.wind_direction
            pressure = weather.pressure
            rainfall = weather.rainfall

        fuel_ids = sorted(self.catalog.fuel_models, key=lambda k: (len(k), k)) or ["4"]

        return SiteConditions(
            temperature=temperature,
            humidity=humidity,
            wind_speed=wind_speed,
            wind_direction=wind_direction,
            pressure=pressure,
            rainfall=rainfall,
            vegetation=seeded_uniform(f"{seed}_veg", 0.0, 100.0),
            drought=seeded_uniform(f"{seed}_drought", 0.0, 100.0),
            historical=seeded_uniform(f"{seed}_hist", 0.0, 100.0),
            elevation=seeded_uniform(f"{seed}_elev", 100.0, 2100.0),
            slope=seeded_uniform(f"{seed}_slope", 0.0, 45.0),
            aspect=seeded_uniform(f"{seed}_aspect", 0.0, 360.0),
            fuel_model_id=fuel_ids[math.floor(seeded_random(f"{seed}_fuel") * len(fuel_ids))],
            fuel_moisture=seeded_uniform(f"{seed}_fm", 5.0, 25.0),
            fire_history=seeded_uniform(f"{seed}_fire_hist", 0.0, 10.0),
            days_ahead=1 + math.floor(seeded_random(f"{seed}_days") * 7),
        )

    # -------------------------------------------------------------------------
    # Predictions
    # -------------------------------------------------------------------------

    def get_predictions(
        self,
        region_code: str,
        on: date | None = None,
        cancel: threading.Event | None = None,
    ) -> list[FusedPrediction]:
        """
        Return the sorted, de-duplicated predictions for a region and day.

        Parameters
        ----------
        region_code : str
            Catalog region code.
        on : date, optional
            Calendar day (today by default).
        cancel : threading.Event, optional
            Setting the event aborts the run.

        Returns
        -------
        list of FusedPrediction
            Sorted by descending probability, ties by index.

        Raises
        ------
        UnknownRegionError
            If the region is not in the catalog.
        FusionCancelledError
            If ``cancel`` is set before the run completes. The cache is not
            written.
        """
        self.catalog.region(region_code)
        on = on or date.today()
        key = f"predictions_{region_code}"

        batch = self.cache.get_or_compute(
            key,
            self.config.cache.prediction_ttl,
            lambda: PredictionBatch(on, tuple(self._compute(region_code, on, cancel))),
            accept=lambda cached: cached.date == on,
        )
        return list(batch.predictions)

    def _compute(
        self,
        region_code: str,
        on: date,
        cancel: threading.Event | None,
    ) -> list[FusedPrediction]:
        count = self.prediction_count(region_code, on)
        workers = self.fusion_config.max_workers
        logger.info(f"Generating {count} predictions for {region_code} on {on}")

        if cancel is not None and cancel.is_set():
            raise FusionCancelledError(f"Prediction run for {region_code} cancelled")

        results: list[FusedPrediction] = []
        model_pool = ThreadPoolExecutor(max_workers=workers * 2)
        with model_pool, ThreadPoolExecutor(max_workers=workers) as executor:
            futures: dict[Future, int] = {
                executor.submit(self._predict_location, region_code, on, i, model_pool, cancel): i
                for i in range(count)
            }
            try:
                for future in as_completed(futures):
                    if cancel is not None and cancel.is_set():
                        raise FusionCancelledError(f"Prediction run for {region_code} cancelled")
                    results.append(future.result())
            except Exception:
                for future in futures:
                    future.cancel()
                raise

        if cancel is not None and cancel.is_set():
            raise FusionCancelledError(f"Prediction run for {region_code} cancelled")

        unique = self._deduplicate(sorted(results, key=lambda p: p.index))
        if len(unique) < len(results):
            logger.debug(f"Merged {len(results) - len(unique)} duplicate locations for {region_code}")

        return sorted(unique, key=lambda p: (-p.probability, p.index))

    def _deduplicate(self, predictions: list[FusedPrediction]) -> list[FusedPrediction]:
        precision = self.fusion_config.dedup_precision
        seen: set[tuple[float, float]] = set()
        unique = []
        for pred in predictions:
            key = (round(pred.latitude, precision), round(pred.longitude, precision))
            if key in seen:
                continue
            seen.add(key)
            unique.append(pred)
        return unique

    def _predict_location(
        self,
        region_code: str,
        on: date,
        index: int,
        model_pool: ThreadPoolExecutor,
        cancel: threading.Event | None,
    ) -> FusedPrediction:
        if cancel is not None and cancel.is_set():
            raise FusionCancelledError(f"Prediction run for {region_code} cancelled")

        day = on.isoformat()
        seed = f"pred_{region_code}_{day}_{index}"
        outcome = self.sampler.sample(region_code, seed)
        location = outcome.point
        site = self.site_conditions(seed, location)

        ensemble_input = PredictionInput(
            latitude=location.latitude,
            longitude=location.longitude,
            temperature=site.temperature,
            humidity=site.humidity,
            wind_speed=site.wind_speed,
            wind_direction=site.wind_direction,
            pressure=site.pressure,
            rainfall=site.rainfall,
            elevation=site.elevation,
            slope=site.slope,
            fuel_moisture=site.fuel_moisture,
            fire_history=site.fire_history,
            seasonal_risk=site.historical,
            drought_index=site.drought,
        )
        behavior_input = FireBehaviorInput(
            location=location,
            fuel_model_id=site.fuel_model_id,
            slope=site.slope,
            aspect=site.aspect,
            elevation=site.elevation,
            weather_station=WeatherStation(
                id=f"{seed}_wx",
                name="Site conditions",
                latitude=location.latitude,
                longitude=location.longitude,
                elevation=site.elevation,
                temperature=site.temperature,
                humidity=site.humidity,
                wind_speed=site.wind_speed,
                wind_direction=site.wind_direction,
                precipitation=site.rainfall,
            ),
            fuel_moisture=site.fuel_moisture,
        )

        ensemble_future = model_pool.submit(self.ensemble.predict, ensemble_input)
        behavior_future = model_pool.submit(self.simulator.simulate, behavior_input)

        behavior = behavior_future.result()
        ensemble: EnsemblePrediction | None = None
        fallback_reason: str | None = None
        try:
            ensemble = ensemble_future.result()
        except InvalidInputError:
            raise
        except ModelUnavailableError as e:
            fallback_reason = f"model_unavailable: {e.name}"
            logger.warning(f"{e} for {seed}; using fallback risk formula")
        except Exception as e:
            fallback_reason = f"model_error: {type(e).__name__}"
            logger.warning(f"Ensemble failed for {seed} ({type(e).__name__}: {e}); using fallback risk formula")

        if fallback_reason is not None:
            with self._lock:
                self._fallbacks += 1

        return self._fuse(
            region_code, day, index, outcome.source, location, site,
            ensemble, behavior, fallback_reason, on,
        )

    def _fuse(
        self,
        region_code: str,
        day: str,
        index: int,
        source: SampleSource,
        location: GeoPoint,
        site: SiteConditions,
        ensemble: EnsemblePrediction | None,
        behavior: FireBehaviorPrediction,
        fallback_reason: str | None,
        on: date,
    ) -> FusedPrediction:
        behavior_urgency = urgency_from_behavior(behavior.rate_of_spread, behavior.flame_length)

        if ensemble is not None:
            cfg = self.fusion_config
            probability = float(
                round_half_up(ensemble.fire_risk * cfg.ensemble_weight + behavior.combined_risk * cfg.behavior_weight)
            )
            confidence = ensemble.confidence
            urgency = max_urgency(ensemble.evacuation_urgency, behavior_urgency)
        else:
            probability = fallback_risk(
                site.temperature, site.humidity, site.wind_speed,
                site.vegetation, site.drought, site.historical,
            )
            confidence = float(behavior.confidence)
            urgency = behavior_urgency

        if source == "center_fallback" and fallback_reason is None:
            fallback_reason = "sampling_exhausted"

        return FusedPrediction(
            id=f"pred_{region_code}_{day}_{index}",
            region=region_code,
            date=day,
            index=index,
            latitude=location.latitude,
            longitude=location.longitude,
            risk_level=classify_risk(probability),
            probability=probability,
            factors=PredictionFactors(
                temperature=site.temperature,
                humidity=site.humidity,
                wind_speed=site.wind_speed,
                wind_direction=site.wind_direction,
                vegetation=site.vegetation,
                drought=site.drought,
                historical=site.historical,
            ),
            predicted_date=(on + timedelta(days=site.days_ahead)).isoformat(),
            confidence=confidence,
            forest_service_data=ForestServiceData(
                farsite_spread_rate=behavior.rate_of_spread,
                flammap_flame_length=behavior.fire_behavior.flame_length,
                crown_fire_activity=behavior.fire_behavior.crown_fire_activity,
                evacuation_urgency=behavior.evacuation_urgency,
                recommendations=behavior.recommendations,
            ),
            evacuation_urgency=urgency,
            degraded=fallback_reason is not None,
            fallback_reason=fallback_reason,
            sampling_source=source,
        )
