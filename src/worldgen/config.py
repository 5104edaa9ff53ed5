"""World generation configuration models."""

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError


class HeightmapTuning(BaseModel):
    """Mountain range shaping applied on top of the diamond-square field."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    range_length_min: float = Field(
        default=0.25, ge=0.0, description="Min range length as a fraction of the short side"
    )
    range_length_max: float = Field(
        default=0.6, ge=0.0, description="Max range length as a fraction of the short side"
    )
    range_width: float = Field(
        default=0.05, gt=0.0, description="Ridge half-width as a fraction of the short side"
    )
    range_height: float = Field(
        default=0.35, ge=0.0, description="Peak height added before renormalization"
    )


class LandmassTuning(BaseModel):
    """Continent size threshold parameters."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    continent_area_fraction: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Grid area fraction, divided by continent_count, a region needs to be a continent",
    )
    min_continent_tiles: int = Field(
        default=16, ge=1, description="Absolute lower bound on the continent threshold"
    )


class HydrologyTuning(BaseModel):
    """River tracing and lake promotion parameters."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    source_spacing_fraction: float = Field(
        default=0.08, ge=0.0, description="Min source spacing as a fraction of the grid diagonal"
    )
    min_source_spacing: int = Field(default=3, ge=0, description="Min source spacing in tiles")
    min_river_tiles: int = Field(
        default=4, ge=2, description="Rivers with fewer tiles are discarded"
    )
    max_steps: int | None = Field(
        default=None, ge=1, description="Trace step bound (None = width * height)"
    )
    arid_rainfall: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Mean basin rainfall below this is arid"
    )
    navigable_length: float = Field(
        default=20.0, ge=0.0, description="Min length for a navigable river"
    )
    navigable_flow: float = Field(
        default=30.0, ge=0.0, description="Min flow rate for a navigable river"
    )


class SettlementTuning(BaseModel):
    """Habitability weights, spacing and road cost parameters."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    water_weight: float = Field(default=0.45, ge=0.0, description="Fresh water proximity weight")
    soil_weight: float = Field(default=0.3, ge=0.0, description="Soil fertility weight")
    mineral_weight: float = Field(default=0.15, ge=0.0, description="Mineral richness weight")
    extreme_biome_penalty: float = Field(
        default=0.5, ge=0.0, description="Score penalty for desert/tundra/snow/volcano"
    )
    water_decay_min: float = Field(
        default=2.0, gt=0.0, description="Water proximity decay length at water_availability=0"
    )
    water_decay_max: float = Field(
        default=12.0, gt=0.0, description="Water proximity decay length at water_availability=1"
    )
    civilization_separation: float = Field(
        default=0.2, ge=0.0, description="Founding site separation as a fraction of the short side"
    )
    min_civilization_separation: float = Field(
        default=4.0, ge=0.0, description="Absolute founding site separation in tiles"
    )
    territory_fraction: float = Field(
        default=0.5, gt=0.0, description="Territory radius as a fraction of the separation"
    )
    max_settlements_per_civilization: int = Field(
        default=8, ge=0, description="Extra settlements at settlement_density=1"
    )
    settlement_spacing: float = Field(
        default=3.0, ge=0.0, description="Min distance between any two settlements"
    )
    slope_cost: float = Field(
        default=40.0, ge=0.0, description="Road cost per unit of elevation change"
    )
    river_crossing_cost: float = Field(
        default=4.0, ge=0.0, description="Extra road cost for entering a river tile"
    )
    road_search_margin: int = Field(
        default=12, ge=0, description="Road search window margin around endpoints"
    )


class GenerationTuning(BaseModel):
    """Algorithm constants that are tunable defaults rather than fixed contracts."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    heightmap: HeightmapTuning = Field(default_factory=HeightmapTuning)
    landmass: LandmassTuning = Field(default_factory=LandmassTuning)
    hydrology: HydrologyTuning = Field(default_factory=HydrologyTuning)
    settlements: SettlementTuning = Field(default_factory=SettlementTuning)


class WorldConfig(BaseModel):
    """Complete world generation configuration.

    Every field is optional. Densities and thresholds live in [0, 1],
    dimensions must be positive and counts non-negative; anything else is
    rejected when the model is built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    width: int = Field(default=200, gt=0, description="World width in tiles")
    height: int = Field(default=200, gt=0, description="World height in tiles")
    seed: int = Field(
        default=42,
        ge=-(2**63),
        lt=2**64,
        description="64-bit seed that determines all randomness",
    )

    elevation_scale: float = Field(
        default=0.5, gt=0.0, description="Initial diamond-square displacement amplitude"
    )
    temperature_scale: float = Field(
        default=0.03, gt=0.0, description="Temperature noise frequency (features per tile)"
    )
    rainfall_scale: float = Field(
        default=0.025, gt=0.0, description="Rainfall noise frequency (features per tile)"
    )

    sea_level: float = Field(default=0.45, ge=0.0, le=1.0, description="Land/sea threshold")
    continent_count: int = Field(default=3, ge=0, description="Max number of continents")
    island_density: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Fraction of small land regions kept"
    )
    mountain_ranges: int = Field(default=3, ge=0, description="Number of ridge segments")
    river_count: int = Field(default=8, ge=0, description="Max number of rivers")
    lake_count: int = Field(default=5, ge=0, description="Max number of lakes")
    forest_density: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Bias towards forest biomes"
    )
    cave_systems: int = Field(default=4, ge=0, description="Number of cave systems")

    civilization_count: int = Field(default=3, ge=0, description="Max number of civilizations")
    settlement_density: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Extra settlements per civilization"
    )
    road_density: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Probability an eligible road is built"
    )

    mineral_richness: float = Field(default=0.3, ge=0.0, le=1.0, description="Mineral weight")
    soil_fertility: float = Field(default=0.5, ge=0.0, le=1.0, description="Soil fertility")
    water_availability: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Reach of fresh water for habitability"
    )

    tuning: GenerationTuning = Field(default_factory=GenerationTuning)


def build_config(data: Mapping[str, Any] | None = None, **overrides: Any) -> WorldConfig:
    """Validate a mapping (plus keyword overrides) into a WorldConfig.

    Args:
        data: Field values, e.g. parsed from TOML or JSON.
        **overrides: Field values that take precedence over ``data``.

    Returns:
        Validated WorldConfig.

    Raises:
        ConfigurationError: If any field is missing its constraints.
    """
    values = dict(data or {})
    values.update(overrides)
    try:
        return WorldConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid world configuration: {e}") from e


def load_config(config_path: Path) -> WorldConfig:
    """Load configuration from a TOML file.

    Field values may sit at the top level or under a ``[world]`` table.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed WorldConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If the TOML is malformed or a value is out of range.
    """
    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed config {config_path}: {e}") from e
    if isinstance(data.get("world"), dict):
        data = data["world"]
    return build_config(data)
