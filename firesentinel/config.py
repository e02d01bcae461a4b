"""
Configuration loading and validation for firesentinel.

This module provides Pydantic models for validating the firesentinel.yaml
configuration file and utility functions for loading configurations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = Field("firesentinel", description="Project name")
    description: str = Field("", description="Project description")
    output_dir: Path = Field(Path("./output"), description="Output directory")


class CatalogConfig(BaseModel):
    """Geography catalog source."""

    path: Path | None = Field(None, description="Catalog YAML (bundled catalog if unset)")


class ModelsConfig(BaseModel):
    """Sub-model weights source."""

    enabled: bool = Field(True, description="Load the ML ensemble sub-models")
    path: Path | None = Field(None, description="Model weights YAML (bundled weights if unset)")


class CacheConfig(BaseModel):
    """Cache time-to-live settings in seconds."""

    fire_detection_ttl: float = Field(300.0, gt=0, description="Fire detection cache TTL")
    prediction_ttl: float = Field(600.0, gt=0, description="Prediction cache TTL")


class SamplingConfig(BaseModel):
    """Spatial sampler configuration."""

    zone_bias: float = Field(0.7, ge=0, le=1, description="Probability of sampling near a fire-prone zone")
    zone_jitter: float = Field(0.15, ge=0, description="Full width of zone jitter (degrees)")
    max_attempts: int = Field(50, ge=1, description="Uniform sampling attempts before center fallback")


class RiskWeightsConfig(BaseModel):
    """Weights of the heuristic risk estimator."""

    weather: float = Field(0.3, ge=0, le=1)
    vegetation: float = Field(0.25, ge=0, le=1)
    topography: float = Field(0.2, ge=0, le=1)
    human: float = Field(0.15, ge=0, le=1)
    historical: float = Field(0.1, ge=0, le=1)

    @model_validator(mode="after")
    def check_sum(self) -> "RiskWeightsConfig":
        """Weights must sum to one."""
        total = self.weather + self.vegetation + self.topography + self.human + self.historical
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"risk weights must sum to 1.0 (got {total:.4f})")
        return self


class RiskConfig(BaseModel):
    """Heuristic risk estimator configuration."""

    weights: RiskWeightsConfig = Field(default_factory=RiskWeightsConfig)
    validity_hours: float = Field(6.0, gt=0, description="Assessment validity window")
    alert_expiry_hours: float = Field(4.0, gt=0, description="Alert expiry window")


class BehaviorConfig(BaseModel):
    """Fire-behavior simulator configuration."""

    simulation_hours: float = Field(24.0, gt=0, description="Simulation horizon (hours)")
    perimeter_points: int = Field(16, ge=3, description="Fire perimeter vertices")
    default_fuel_model: str = Field("4", description="Fuel model used when the id is unknown")
    evacuation_distances: list[float] = Field(
        default_factory=lambda: [1.0, 3.0, 5.0, 10.0],
        description="Evacuation ring distances (miles)",
    )
    reach_distance: float = Field(1000.0, gt=0, description="Distance for time-to-reach (m)")

    @field_validator("evacuation_distances")
    @classmethod
    def check_distances(cls, v: list[float]) -> list[float]:
        if len(v) != 4:
            raise ValueError("evacuation_distances must list exactly four rings")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("evacuation_distances must be strictly increasing")
        return v


class FusionConfig(BaseModel):
    """Fusion engine configuration."""

    ensemble_weight: float = Field(0.6, ge=0, le=1)
    behavior_weight: float = Field(0.4, ge=0, le=1)
    max_workers: int = Field(4, ge=1, description="Concurrent per-location workers")
    base_counts: dict[str, int] = Field(
        default_factory=lambda: {
            "CA": 30, "TX": 25, "FL": 20, "OR": 20,
            "WA": 18, "AZ": 22, "CO": 18, "NV": 15,
        },
        description="Base number of predictions per region",
    )
    default_base_count: int = Field(15, ge=1)
    count_multiplier: tuple[float, float] = Field((0.7, 1.3), description="Seeded daily multiplier range")
    dedup_precision: int = Field(4, ge=0, description="Decimal places used to merge duplicate locations")

    @model_validator(mode="after")
    def check_weights(self) -> "FusionConfig":
        """Fusion weights must sum to one and the multiplier range must be ordered."""
        if abs(self.ensemble_weight + self.behavior_weight - 1.0) > 1e-6:
            raise ValueError("ensemble_weight + behavior_weight must equal 1.0")
        low, high = self.count_multiplier
        if low <= 0 or high < low:
            raise ValueError("count_multiplier must be a positive (low, high) range")
        return self


class OutputConfig(BaseModel):
    """Output configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO")
    log_file: Path | None = Field(None)


class SentinelConfig(BaseModel):
    """Root configuration model for firesentinel."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    fusion: FusionConfig = Field(default_factory=FusionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# =============================================================================
# Loading Functions
# =============================================================================


def default_config() -> SentinelConfig:
    """Return a configuration with every default applied."""
    return SentinelConfig()


def load_config(config_path: str | Path) -> SentinelConfig:
    """
    Load and validate configuration from a YAML file.

    Parameters
    ----------
    config_path : str or Path
        Path to the firesentinel.yaml configuration file.

    Returns
    -------
    SentinelConfig
        Validated configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the configuration is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ValueError(f"Empty configuration file: {config_path}")

    # Resolve relative paths relative to config file location
    raw_config = _resolve_paths(raw_config, config_path.parent)

    config = SentinelConfig.model_validate(raw_config)

    logger.info(f"Configuration loaded: {config.project.name}")

    return config


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Recursively resolve ``./`` and ``../`` strings against ``base_dir``."""

    def resolve(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: resolve(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [resolve(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("./") or obj.startswith("../"):
                return str(base_dir / obj)
            return obj
        return obj

    return resolve(config)


def export_config_template(path: str | Path) -> None:
    """Write a default configuration file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = default_config().model_dump(mode="json")
    with open(path, "w") as f:
        f.write("# firesentinel configuration\n")
        f.write("# Cache TTLs are in seconds; evacuation distances in miles.\n")
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def setup_logging(config: SentinelConfig) -> None:
    """
    Configure logging based on configuration.

    Parameters
    ----------
    config : SentinelConfig
        Configuration object.
    """
    level = getattr(logging, config.output.log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.output.log_file:
        log_path = Path(config.output.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
