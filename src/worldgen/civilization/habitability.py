"""Per-tile habitability scores for settlement placement."""

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from ..biome_types import EXTREME_CODES, Biome
from ..config import SettlementTuning
from ..state import TileGrid

UNINHABITABLE = -np.inf


def soil_fertility_field(
    elevation: NDArray[np.float64],
    rainfall: NDArray[np.float64],
    temperature: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Fertility in [0, 1]: best on low, wet, warm ground."""
    fertility = np.full(elevation.shape, 0.5)
    fertility += np.where(elevation > 0.8, -0.3, np.where(elevation < 0.3, 0.2, 0.0))
    fertility += np.where(rainfall > 0.7, 0.3, np.where(rainfall < 0.2, -0.4, 0.0))
    fertility += np.where(
        (temperature > 0.7) & (temperature < 0.9),
        0.2,
        np.where(temperature < 0.2, -0.3, 0.0),
    )
    return np.clip(fertility, 0.0, 1.0)


def mineral_field(
    elevation: NDArray[np.float64],
    biome: NDArray[np.uint8],
) -> NDArray[np.float64]:
    """Mineral content in [0, 1]: rises with height, boosted in rocky biomes."""
    content = elevation * 0.4
    content += np.where(np.isin(biome, [Biome.ALPINE.code, Biome.SNOW.code]), 0.3, 0.0)
    content += np.where(biome == Biome.VOLCANO.code, 0.5, 0.0)
    content += np.where(biome == Biome.DESERT.code, 0.2, 0.0)
    return np.minimum(content, 1.0)


def fresh_water_mask(
    grid: TileGrid,
    fresh_lake_tiles: NDArray[np.intp] | None = None,
) -> NDArray[np.bool_]:
    """River tiles plus the tiles of fresh lakes."""
    fresh = grid.river.copy()
    if fresh_lake_tiles is not None and fresh_lake_tiles.size:
        fresh.ravel()[fresh_lake_tiles] = True
    return fresh


def water_proximity(
    fresh: NDArray[np.bool_],
    water_availability: float,
    tuning: SettlementTuning,
) -> NDArray[np.float64]:
    """exp(-distance / decay) to the nearest fresh water tile.

    The decay length grows with ``water_availability``. Without any fresh
    water the proximity is zero everywhere.
    """
    if not fresh.any():
        return np.zeros(fresh.shape, dtype=np.float64)
    distance = ndimage.distance_transform_edt(~fresh)
    span = tuning.water_decay_max - tuning.water_decay_min
    decay = tuning.water_decay_min + span * water_availability
    return np.exp(-distance / decay)


def compute_habitability(
    grid: TileGrid,
    fresh_water: NDArray[np.bool_],
    *,
    mineral_richness: float,
    soil_fertility: float,
    water_availability: float,
    tuning: SettlementTuning | None = None,
) -> NDArray[np.float64]:
    """Score every tile for settlement.

    Score = water proximity + soil fertility + mineral content, each
    weighted by its world parameter and tuning weight, minus a penalty on
    extreme biomes. Sea, lake and river tiles are -inf.

    Args:
        grid: Tile grid with hydrology masks and biomes.
        fresh_water: Rivers and fresh lakes.
        mineral_richness: Weight of mineral content.
        soil_fertility: Weight of soil fertility.
        water_availability: Weight and reach of fresh water.
        tuning: Score weights and decay lengths.

    Returns:
        Float array of scores, -inf where no settlement may stand.
    """
    tuning = tuning or SettlementTuning()
    water = water_proximity(fresh_water, water_availability, tuning)
    soil = soil_fertility_field(grid.elevation, grid.rainfall, grid.temperature)
    minerals = mineral_field(grid.elevation, grid.biome)
    score = (
        tuning.water_weight * water_availability * water
        + tuning.soil_weight * soil_fertility * soil
        + tuning.mineral_weight * mineral_richness * minerals
        - tuning.extreme_biome_penalty * np.isin(grid.biome, EXTREME_CODES)
    )
    habitable = grid.land & ~grid.lake & ~grid.river
    return np.where(habitable, score, UNINHABITABLE)
