"""World generation orchestration."""

from typing import Any

import numpy as np
import structlog

from .civilization import generate_history, place_settlements
from .config import WorldConfig, build_config
from .state import TileGrid, WorldData
from .terrain.biomes import classify_biomes, overlay_lakes
from .terrain.caves import place_caves
from .terrain.climate import derive_climate
from .terrain.heightmap import generate_heightmap, raise_mountain_ranges
from .terrain.hydrology import simulate_hydrology
from .terrain.landmass import (
    attach_biomes,
    classify_landmasses,
    region_grid,
    submerge_dropped,
)
from .terrain.resources import place_resources, vegetation_density

logger = structlog.get_logger()


def generate_world(config: WorldConfig | None = None, **overrides: Any) -> WorldData:
    """Generate a complete world.

    Stages run in a fixed order, each a pure function of the earlier
    stages and the configuration: heightmap, climate, landmasses,
    hydrology, biomes with vegetation, caves, resources, then civilizations
    with their settlements and roads, and last their history.

    Args:
        config: Validated configuration. When omitted one is built from
            ``overrides`` (e.g. ``generate_world(width=64, seed=7)``).
        **overrides: Field values for ``build_config`` when ``config`` is None.

    Returns:
        Immutable WorldData.

    Raises:
        ConfigurationError: If ``overrides`` do not form a valid configuration.
        TypeError: If both ``config`` and ``overrides`` are given.
    """
    if config is None:
        config = build_config(**overrides)
    elif overrides:
        raise TypeError("Pass either a WorldConfig or field overrides, not both")

    width, height, seed = config.width, config.height, config.seed
    tuning = config.tuning
    log = logger.bind(width=width, height=height, seed=seed)
    log.info("world_generation_started")

    # Stage A: Heightmap
    log.info("stage_started", stage="heightmap")
    elevation = generate_heightmap(width, height, seed, config.elevation_scale)
    elevation = raise_mountain_ranges(elevation, seed, config.mountain_ranges, tuning.heightmap)

    # Stage B: Climate
    log.info("stage_started", stage="climate")
    temperature, rainfall = derive_climate(
        elevation,
        seed,
        config.temperature_scale,
        config.rainfall_scale,
        sea_level=config.sea_level,
    )

    # Stage C: Landmasses
    log.info("stage_started", stage="landmass")
    land_mask, continents, islands = classify_landmasses(
        elevation,
        config.sea_level,
        continent_count=config.continent_count,
        island_density=config.island_density,
        seed=seed,
        tuning=tuning.landmass,
    )
    elevation = submerge_dropped(elevation, land_mask, config.sea_level)
    log.info(
        "land_classified",
        land_fraction=round(float(np.mean(land_mask)), 4),
        continents=len(continents),
        islands=len(islands),
    )

    # Stage D: Hydrology
    log.info("stage_started", stage="hydrology")
    hydrology = simulate_hydrology(
        elevation,
        land_mask,
        config.river_count,
        config.lake_count,
        seed,
        rainfall=rainfall,
        tuning=tuning.hydrology,
    )

    # Stage E: Biomes
    log.info("stage_started", stage="biomes")
    biome = classify_biomes(
        elevation,
        temperature,
        rainfall,
        sea_level=config.sea_level,
        forest_density=config.forest_density,
    )
    biome = overlay_lakes(biome, hydrology.lake_mask)
    continents = attach_biomes(continents, biome)
    islands = attach_biomes(islands, biome)

    grid = TileGrid(
        elevation=elevation,
        temperature=temperature,
        rainfall=rainfall,
        vegetation=vegetation_density(biome, rainfall, temperature),
        biome=biome,
        land=land_mask,
        lake=hydrology.lake_mask,
        river=hydrology.river_mask,
        wetland=hydrology.wetland_mask,
        region=region_grid(elevation.shape, continents + islands),
    )

    # Stage F: Caves and resources
    log.info("stage_started", stage="caves")
    caves = place_caves(elevation, land_mask, hydrology.lake_mask, config.cave_systems, seed)

    log.info("stage_started", stage="resources")
    resources = place_resources(
        biome,
        land_mask,
        hydrology.lake_mask,
        config.mineral_richness,
        config.water_availability,
        seed,
    )

    # Stage G: Civilizations
    log.info("stage_started", stage="settlements")
    civilizations, settlements, roads = place_settlements(
        grid,
        continents,
        hydrology.rivers,
        hydrology.lakes,
        config.civilization_count,
        config.settlement_density,
        config.mineral_richness,
        config.soil_fertility,
        config.water_availability,
        seed,
        road_density=config.road_density,
        tuning=tuning.settlements,
    )

    # Stage H: History
    log.info("stage_started", stage="history")
    history = generate_history(land_mask, civilizations, seed)

    world = WorldData(
        config=config,
        grid=grid,
        sea_level=config.sea_level,
        continents=continents,
        islands=islands,
        rivers=hydrology.rivers,
        lakes=hydrology.lakes,
        civilizations=civilizations,
        settlements=settlements,
        roads=roads,
        caves=caves,
        resources=resources,
        history=history,
    )
    log.info(
        "world_generation_complete",
        rivers=len(world.rivers),
        lakes=len(world.lakes),
        civilizations=len(world.civilizations),
        settlements=len(world.settlements),
        roads=len(world.roads),
        resource_deposits=len(world.resources),
        historical_events=len(world.history),
    )
    return world
