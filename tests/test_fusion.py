"""
Tests for the fusion engine.
"""

import math
import threading
from datetime import date

import pytest

from firesentinel.behavior import FireBehaviorSimulator
from firesentinel.cache import TTLCache
from firesentinel.config import ModelsConfig
from firesentinel.ensemble import EnsemblePredictor, ModelRegistry, load_models
from firesentinel.errors import FusionCancelledError, InvalidInputError, UnknownRegionError
from firesentinel.fusion import FusionEngine, PredictionBatch, fallback_risk
from firesentinel.risk import classify_risk
from firesentinel.sampling import SpatialSampler
from firesentinel.urgency import urgency_rank
from firesentinel.weather import SeededWeatherSource

DAY = date(2024, 7, 15)


class Counting:
    """Wraps an estimator and counts calls to one method."""

    def __init__(self, inner, method):
        self.inner = inner
        self.method = method
        self.calls = 0
        self._lock = threading.Lock()

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name != self.method:
            return attr

        def wrapper(*args, **kwargs):
            with self._lock:
                self.calls += 1
            return attr(*args, **kwargs)

        return wrapper


class BrokenSimulator:
    def simulate(self, inp):
        raise RuntimeError("simulator crashed")


class CrashingModel:
    """Sub-model that fails at prediction time."""

    def __init__(self, error):
        self.error = error

    def predict(self, features):
        raise self.error


class CancellingSimulator:
    """Sets ``cancel`` once ``after`` simulations have run."""

    def __init__(self, inner, cancel, after):
        self.inner = inner
        self.cancel = cancel
        self.after = after
        self.calls = 0
        self._lock = threading.Lock()

    def simulate(self, inp):
        with self._lock:
            self.calls += 1
            if self.calls >= self.after:
                self.cancel.set()
        return self.inner.simulate(inp)


def crashing_registry(error):
    registry = load_models()
    registry.register("fire-spread", CrashingModel(error))
    return registry


def make_engine(catalog, config, clock=None, registry=None, simulator=None, weather_source=None):
    return FusionEngine(
        catalog=catalog,
        sampler=SpatialSampler(catalog, config.sampling),
        ensemble=EnsemblePredictor(load_models() if registry is None else registry),
        simulator=simulator or FireBehaviorSimulator(catalog, config.behavior),
        cache=TTLCache(clock) if clock is not None else TTLCache(),
        config=config,
        weather_source=weather_source,
    )


@pytest.fixture
def engine(catalog, config, clock):
    return make_engine(catalog, config, clock)


class TestPredictionCount:
    """Seeded daily prediction counts."""

    def test_within_multiplier_range(self, engine):
        for day in (date(2024, 1, 1), DAY, date(2025, 12, 31)):
            count = engine.prediction_count("CA", day)
            assert math.floor(30 * 0.7) <= count <= math.floor(30 * 1.3)

    def test_deterministic(self, engine, catalog, config):
        other = make_engine(catalog, config)
        assert engine.prediction_count("TX", DAY) == other.prediction_count("TX", DAY)

    def test_unknown_region(self, engine):
        with pytest.raises(UnknownRegionError):
            engine.prediction_count("ZZ", DAY)


class TestGetPredictions:
    """End-to-end fused predictions."""

    def test_unknown_region(self, engine):
        with pytest.raises(UnknownRegionError):
            engine.get_predictions("ZZ", on=DAY)

    def test_sorted_and_unique(self, engine):
        predictions = engine.get_predictions("CA", on=DAY)
        assert 0 < len(predictions) <= engine.prediction_count("CA", DAY)

        keys = [(-p.probability, p.index) for p in predictions]
        assert keys == sorted(keys)

        coords = {(round(p.latitude, 4), round(p.longitude, 4)) for p in predictions}
        assert len(coords) == len(predictions)

    def test_record_fields(self, engine, catalog):
        for p in engine.get_predictions("OR", on=DAY):
            assert p.region == "OR"
            assert p.date == "2024-07-15"
            assert p.id == f"pred_OR_2024-07-15_{p.index}"
            assert p.probability == round(p.probability)
            assert p.risk_level == classify_risk(p.probability)
            assert 0.0 <= p.confidence <= 100.0
            assert "2024-07-16" <= p.predicted_date <= "2024-07-22"
            assert not p.degraded
            assert p.fallback_reason is None
            assert catalog.is_point_in_region(p.latitude, p.longitude, "OR")
            assert urgency_rank(p.evacuation_urgency) >= urgency_rank(
                p.forest_service_data.evacuation_urgency
            )

    def test_deterministic_across_engines(self, engine, catalog, config):
        first = [p.to_dict() for p in engine.get_predictions("AZ", on=DAY)]
        second = [p.to_dict() for p in make_engine(catalog, config).get_predictions("AZ", on=DAY)]
        assert first == second

    def test_to_dict(self, engine):
        record = engine.get_predictions("NV", on=DAY)[0].to_dict()
        assert record["region"] == "NV"
        assert set(record["factors"]) == {
            "temperature", "humidity", "wind_speed", "wind_direction",
            "vegetation", "drought", "historical",
        }
        assert "crown_fire_activity" in record["forest_service_data"]


class TestCaching:
    """Prediction batches are cached per region."""

    def test_cached_within_ttl(self, catalog, config, clock):
        engine = make_engine(catalog, config, clock)
        engine.ensemble = Counting(engine.ensemble, "predict")
        engine.simulator = Counting(engine.simulator, "simulate")

        first = engine.get_predictions("CA", on=DAY)
        calls = (engine.ensemble.calls, engine.simulator.calls)
        clock.advance(599)
        second = engine.get_predictions("CA", on=DAY)

        assert second == first
        assert second is not first
        assert (engine.ensemble.calls, engine.simulator.calls) == calls
        assert isinstance(engine.cache.get("predictions_CA"), PredictionBatch)

    def test_recomputed_after_ttl(self, catalog, config, clock):
        engine = make_engine(catalog, config, clock)
        engine.simulator = Counting(engine.simulator, "simulate")

        engine.get_predictions("CA", on=DAY)
        calls = engine.simulator.calls
        clock.advance(601)
        engine.get_predictions("CA", on=DAY)
        assert engine.simulator.calls == 2 * calls

    def test_new_day_recomputes(self, engine):
        today = engine.get_predictions("FL", on=DAY)
        tomorrow = engine.get_predictions("FL", on=date(2024, 7, 16))
        assert {p.date for p in today} == {"2024-07-15"}
        assert {p.date for p in tomorrow} == {"2024-07-16"}
        assert engine.cache.get("predictions_FL").date == date(2024, 7, 16)


class TestFallback:
    """Predictions without the ML ensemble."""

    def test_missing_models_degrade(self, catalog, config):
        engine = make_engine(catalog, config, registry=ModelRegistry())
        predictions = engine.get_predictions("TX", on=DAY)

        assert predictions
        assert engine.fallback_count >= len(predictions)
        for p in predictions:
            assert p.degraded
            assert p.fallback_reason.startswith("model_unavailable")
            f = p.factors
            assert p.probability == pytest.approx(
                fallback_risk(f.temperature, f.humidity, f.wind_speed, f.vegetation, f.drought, f.historical)
            )
            assert p.evacuation_urgency == p.forest_service_data.evacuation_urgency

    def test_failing_model_degrades(self, catalog, config):
        engine = make_engine(catalog, config, registry=crashing_registry(RuntimeError("model runtime failure")))
        predictions = engine.get_predictions("CA", on=DAY)

        assert predictions
        assert engine.fallback_count >= len(predictions)
        for p in predictions:
            assert p.degraded
            assert p.fallback_reason == "model_error: RuntimeError"
            f = p.factors
            assert p.probability == pytest.approx(
                fallback_risk(f.temperature, f.humidity, f.wind_speed, f.vegetation, f.drought, f.historical)
            )

    def test_fallback_risk_formula(self):
        assert fallback_risk(40, 0, 30, 100, 100, 100) == pytest.approx(100.0)
        assert fallback_risk(0, 100, 0, 0, 0, 0) == pytest.approx(0.0)

    def test_models_disabled_in_config(self, config):
        config = config.model_copy(update={"models": ModelsConfig(enabled=False)})
        engine = FusionEngine.from_config(config)
        assert all(p.degraded for p in engine.get_predictions("CO", on=DAY))


class TestFailures:
    """Cancellation and worker errors."""

    def test_cancel_before_start(self, engine):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(FusionCancelledError):
            engine.get_predictions("CA", on=DAY, cancel=cancel)
        assert engine.cache.get("predictions_CA") is None

    def test_cancel_mid_run(self, catalog, config):
        cancel = threading.Event()
        simulator = CancellingSimulator(FireBehaviorSimulator(catalog, config.behavior), cancel, after=3)
        engine = make_engine(catalog, config, simulator=simulator)

        with pytest.raises(FusionCancelledError):
            engine.get_predictions("CA", on=DAY, cancel=cancel)
        assert cancel.is_set()
        assert simulator.calls >= 3
        assert engine.cache.get("predictions_CA") is None

    def test_invalid_model_input_propagates(self, catalog, config):
        registry = crashing_registry(InvalidInputError("Expected 8 features, got 3"))
        engine = make_engine(catalog, config, registry=registry)
        with pytest.raises(InvalidInputError):
            engine.get_predictions("AZ", on=DAY)
        assert engine.cache.get("predictions_AZ") is None

    def test_worker_error_propagates(self, catalog, config):
        engine = make_engine(catalog, config, simulator=BrokenSimulator())
        with pytest.raises(RuntimeError, match="simulator crashed"):
            engine.get_predictions("WA", on=DAY)
        assert engine.cache.get("predictions_WA") is None


class TestWeatherSource:
    def test_weather_overrides_seeded_conditions(self, catalog, config):
        source = SeededWeatherSource("2024-07-15")
        engine = make_engine(catalog, config, weather_source=source)
        for p in engine.get_predictions("CO", on=DAY):
            weather = source.fetch_weather(p.latitude, p.longitude)
            assert p.factors.temperature == weather.temperature
            assert p.factors.humidity == weather.humidity
