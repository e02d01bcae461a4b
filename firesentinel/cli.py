"""
Command-line interface for firesentinel.

Commands:
- firesentinel regions: List catalog regions
- firesentinel predict: Fused fire predictions for a region and day
- firesentinel detections: Simulated satellite hotspots for a region
- firesentinel risk: Heuristic risk assessment at a point
- firesentinel simulate: Fire-behavior simulation at a point
- firesentinel init: Generate configuration template
- firesentinel validate: Validate configuration
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from firesentinel.config import SentinelConfig, default_config, load_config, setup_logging
from firesentinel.errors import SentinelError

logger = logging.getLogger(__name__)

# Lets coordinates such as -121.5 through as positional arguments
COORD_SETTINGS = {"ignore_unknown_options": True}


def _load(config_path: Optional[Path], verbose: bool = False, quiet: bool = False) -> SentinelConfig:
    config = load_config(config_path) if config_path else default_config()
    if quiet:
        config.output.log_level = "ERROR"
    elif verbose:
        config.output.log_level = "DEBUG"
    setup_logging(config)
    return config


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _day(value: Optional[datetime]):
    return value.date() if value is not None else None


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(package_name="firesentinel")
def main():
    """
    FIRESENTINEL: multi-model wildfire risk fusion.

    \b
    Quick Start:
        firesentinel regions                 # List regions
        firesentinel predict CA              # Today's predictions for California
        firesentinel predict CA -o ca.geojson
    """
    pass


# =============================================================================
# Regions Command
# =============================================================================

@main.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file")
def regions(config_path):
    """List the regions in the geography catalog."""
    from firesentinel.catalog import load_catalog

    try:
        config = _load(config_path, quiet=True)
        catalog = load_catalog(config.catalog.path)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    for code in catalog.codes:
        region = catalog.region(code)
        boundary = "boundary" if catalog.boundary(code) else "center only"
        zones = len(catalog.fire_prone_zones(code))
        click.echo(
            f"{code:<4} {region.name:<14} "
            f"({region.center.latitude:.4f}, {region.center.longitude:.4f})  "
            f"{boundary}, {zones} fire-prone zones"
        )


# =============================================================================
# Predict Command
# =============================================================================

@main.command()
@click.argument("region")
@click.option("--date", "-d", "day", type=click.DateTime(formats=["%Y-%m-%d"]), help="Prediction day (default today)")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write predictions (.csv, .geojson, .gpkg, .shp)")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Rows to print")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress output")
def predict(region, day, config_path, output, limit, verbose, quiet):
    """
    Fused fire predictions for a region.

    \b
    Examples:
        firesentinel predict CA
        firesentinel predict TX --date 2024-07-01 -o tx.csv
    """
    from firesentinel.fusion import FusionEngine
    from firesentinel.io import write_predictions

    try:
        config = _load(config_path, verbose, quiet)
        engine = FusionEngine.from_config(config)
        predictions = engine.get_predictions(region.upper(), on=_day(day))
    except (SentinelError, FileNotFoundError, ValueError) as e:
        _fail(e)
    except Exception as e:
        logger.exception("Prediction failed")
        _fail(e)

    if not quiet:
        degraded = sum(p.degraded for p in predictions)
        click.echo(f"{len(predictions)} predictions for {region.upper()} ({degraded} degraded)")
        click.echo(f"{'#':>3}  {'lat':>9} {'lng':>10}  {'risk':<8} {'prob':>5} {'conf':>5}  urgency")
        for p in predictions[:limit]:
            flag = " *" if p.degraded else ""
            click.echo(
                f"{p.index:>3}  {p.latitude:>9.4f} {p.longitude:>10.4f}  "
                f"{p.risk_level:<8} {p.probability:>5.0f} {p.confidence:>5.0f}  "
                f"{p.evacuation_urgency}{flag}"
            )

    if output is not None:
        write_predictions(predictions, output)
        click.echo(f"Wrote {output}")


# =============================================================================
# Detections Command
# =============================================================================

@main.command()
@click.argument("region")
@click.option("--date", "-d", "day", type=click.DateTime(formats=["%Y-%m-%d"]), help="Detection day (default today)")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write detections (.csv, .geojson, .gpkg, .shp)")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Rows to print")
def detections(region, day, config_path, output, limit):
    """Simulated satellite fire detections for a region."""
    from firesentinel.cache import TTLCache
    from firesentinel.catalog import load_catalog
    from firesentinel.detections import FireDetectionService
    from firesentinel.io import write_detections
    from firesentinel.sampling import SpatialSampler

    try:
        config = _load(config_path, quiet=True)
        catalog = load_catalog(config.catalog.path)
        service = FireDetectionService(catalog, SpatialSampler(catalog, config.sampling), TTLCache(), config)
        fires = service.get_detections(region.upper(), on=_day(day))
    except (SentinelError, FileNotFoundError, ValueError) as e:
        _fail(e)

    click.echo(f"{len(fires)} detections for {region.upper()}")
    for f in fires[:limit]:
        click.echo(
            f"{f.id:<24} {f.latitude:>9.4f} {f.longitude:>10.4f}  "
            f"{f.satellite:<5} conf={f.confidence:>3}%  frp={f.frp:>6.1f} MW  {f.acq_time} {f.daynight}"
        )

    if output is not None:
        write_detections(fires, output)
        click.echo(f"Wrote {output}")


# =============================================================================
# Risk Command
# =============================================================================

@main.command(context_settings=COORD_SETTINGS)
@click.argument("lat", type=float)
@click.argument("lng", type=float)
@click.option("--temperature", "-t", type=float, required=True, help="Temperature (C)")
@click.option("--humidity", "-h", type=float, required=True, help="Relative humidity (%)")
@click.option("--wind-speed", "-w", type=float, required=True, help="Wind speed (mph)")
@click.option("--vegetation", type=float, default=0.0, help="Vegetation factor (0-100)")
@click.option("--topography", type=float, default=0.0, help="Topography factor (0-100)")
@click.option("--human", type=float, default=0.0, help="Human activity factor (0-100)")
@click.option("--historical", type=float, default=0.0, help="Fire history factor (0-100)")
def risk(lat, lng, temperature, humidity, wind_speed, vegetation, topography, human, historical):
    """Heuristic fire risk at a point and the alert it would raise."""
    from firesentinel.catalog import GeoPoint
    from firesentinel.risk import assess_risk, generate_alert
    from firesentinel.weather import WeatherSnapshot

    config = default_config()
    location = GeoPoint(lat, lng)
    weather = WeatherSnapshot(temperature=temperature, humidity=humidity, wind_speed=wind_speed, wind_direction=0.0)

    try:
        assessment = assess_risk(
            location, weather,
            vegetation=vegetation, topography=topography, human=human, historical=historical,
            config=config.risk,
        )
    except SentinelError as e:
        _fail(e)

    f = assessment.factors
    click.echo(f"Risk level: {assessment.risk_level}")
    click.echo(f"Score: {assessment.score:.1f}")
    click.echo(
        f"Factors: weather={f.weather:.1f} vegetation={f.vegetation:.1f} "
        f"topography={f.topography:.1f} human={f.human:.1f} historical={f.historical:.1f}"
    )
    click.echo(f"Valid until: {assessment.valid_until:%Y-%m-%d %H:%M} UTC")
    click.echo("Recommendations:")
    for rec in assessment.recommendations:
        click.echo(f"  - {rec}")

    alert = generate_alert(assessment, config=config.risk)
    if alert is not None:
        click.echo(f"\nAlert: {alert.title} [{alert.type}, {alert.affected_radius:.0f} km]")
        click.echo(f"  {alert.message}")


# =============================================================================
# Simulate Command
# =============================================================================

@main.command(context_settings=COORD_SETTINGS)
@click.argument("lat", type=float)
@click.argument("lng", type=float)
@click.option("--fuel-model", "-f", default="4", show_default=True, help="Fuel model id (1-13)")
@click.option("--slope", type=float, default=20.0, show_default=True, help="Slope (degrees)")
@click.option("--aspect", type=float, default=180.0, show_default=True, help="Aspect (degrees)")
@click.option("--elevation", type=float, default=1000.0, show_default=True, help="Elevation (ft)")
@click.option("--fuel-moisture", type=float, help="Override fuel moisture (%)")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write perimeter and evacuation rings (vector)")
def simulate(lat, lng, fuel_model, slope, aspect, elevation, fuel_moisture, config_path, output):
    """
    Fire-behavior simulation at a point.

    Weather comes from the nearest catalog station.
    """
    from firesentinel.behavior import FireBehaviorInput, FireBehaviorSimulator
    from firesentinel.catalog import GeoPoint, load_catalog
    from firesentinel.io import behavior_to_geodataframe, write_vector

    try:
        config = _load(config_path, quiet=True)
        catalog = load_catalog(config.catalog.path)
        simulator = FireBehaviorSimulator(catalog, config.behavior)
        result = simulator.simulate(
            FireBehaviorInput(
                location=GeoPoint(lat, lng),
                fuel_model_id=fuel_model,
                slope=slope,
                aspect=aspect,
                elevation=elevation,
                fuel_moisture=fuel_moisture,
            )
        )
    except (SentinelError, FileNotFoundError, ValueError) as e:
        _fail(e)

    fb = result.fire_behavior
    click.echo("=" * 60)
    click.echo(f"Fuel model {result.fuel_model_id}, station {result.station_id}")
    click.echo("=" * 60)
    click.echo(f"Rate of spread:   {result.rate_of_spread:.2f} ch/h")
    click.echo(f"Fire area (24h):  {result.fire_area:.1f} acres")
    click.echo(f"Flame length:     {result.flame_length:.2f} ft")
    click.echo(f"Fireline int.:    {fb.fireline_intensity:.0f} BTU/ft/s")
    click.echo(f"Crown fire:       {fb.crown_fire_activity}")
    click.echo(f"Terrain:          {fb.topographic_position}")
    click.echo(f"Combined risk:    {result.combined_risk}")
    click.echo(f"Evacuation:       {result.evacuation_urgency}")
    click.echo(f"Confidence:       {result.confidence}%")
    for rec in result.recommendations:
        click.echo(f"  - {rec}")

    if output is not None:
        write_vector(behavior_to_geodataframe(result), output)
        click.echo(f"Wrote {output}")


# =============================================================================
# Init Command
# =============================================================================

@main.command()
@click.option("--output", "-o", type=click.Path(path_type=Path), default=Path("firesentinel.yaml"),
              help="Output path for configuration")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def init(output: Path, force: bool):
    """Generate configuration template."""
    from firesentinel.config import export_config_template

    if output.exists() and not force:
        click.echo(f"File exists: {output}. Use --force to overwrite.", err=True)
        sys.exit(1)

    export_config_template(output)
    click.echo(f"Created configuration: {output}")


# =============================================================================
# Validate Command
# =============================================================================

@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
def validate(config_path):
    """
    Validate configuration file.

    Loads the configuration, the catalog and the model weights it points to.
    """
    from firesentinel.catalog import load_catalog
    from firesentinel.ensemble import MODEL_NAMES, load_models

    click.echo(f"Validating: {config_path}")

    try:
        config = load_config(config_path)
        catalog = load_catalog(config.catalog.path)
        click.echo("\n✓ Configuration loaded successfully")
        click.echo(f"\nName: {config.project.name}")
        click.echo(f"Regions: {', '.join(catalog.codes)}")

        issues = []
        if config.models.enabled:
            registry = load_models(config.models.path)
            for name in MODEL_NAMES.values():
                if name in registry:
                    click.echo(f"  ✓ {name}")
                else:
                    click.echo(f"  ✗ {name} (missing)")
                    issues.append(f"Model {name} missing; predictions will use the fallback formula")
        else:
            click.echo("  ⚠ ML models disabled")

        missing_counts = [c for c in catalog.codes if c not in config.fusion.base_counts]
        if missing_counts:
            issues.append(f"No base count for {', '.join(missing_counts)}; using {config.fusion.default_base_count}")

        if issues:
            click.echo(f"\n⚠ Configuration has {len(issues)} issue(s):")
            for issue in issues:
                click.echo(f"  - {issue}")
        else:
            click.echo("\n✓ Configuration is valid")

    except Exception as e:
        click.echo(f"\n✗ Validation failed: {e}", err=True)
        sys.exit(1)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
