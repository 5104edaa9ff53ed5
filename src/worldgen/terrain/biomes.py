"""Biome classification from elevation, temperature and rainfall."""

import numpy as np
from numpy.typing import NDArray

from ..biome_types import BIOME_DTYPE, Biome
from .climate import height_above_sea


def classify_biomes(
    elevation: NDArray[np.float64],
    temperature: NDArray[np.float64],
    rainfall: NDArray[np.float64],
    *,
    sea_level: float = 0.45,
    forest_density: float = 0.4,
) -> NDArray[np.uint8]:
    """Classify each tile into a biome.

    A per-tile decision table with no dependency between tiles, so
    re-classifying the same fields gives the same grid. Rules are checked
    in order and the first match wins.

    Args:
        elevation: Elevation field in [0, 1].
        temperature: Temperature field in [0, 1].
        rainfall: Rainfall field in [0, 1].
        sea_level: Tiles below this are ocean.
        forest_density: Lowers the rainfall needed for forest biomes.

    Returns:
        2D array of Biome codes as uint8.
    """
    h = height_above_sea(elevation, sea_level)
    t = temperature
    r = rainfall
    f = forest_density

    rules: list[tuple[NDArray[np.bool_], Biome]] = [
        (elevation < sea_level, Biome.OCEAN),
        ((h > 0.9) & (t > 0.55), Biome.VOLCANO),
        ((h > 0.8) | (t < 0.08), Biome.SNOW),
        (h > 0.6, Biome.ALPINE),
        (t < 0.2, Biome.TUNDRA),
        ((t < 0.35) & (r > 0.35 - 0.2 * f), Biome.TAIGA),
        (t < 0.35, Biome.TUNDRA),
        ((t > 0.7) & (r < 0.25), Biome.DESERT),
        ((t > 0.7) & (r > 0.75 - 0.25 * f), Biome.TROPICAL_RAINFOREST),
        (t > 0.7, Biome.SAVANNA),
        ((h < 0.1) & (r > 0.8), Biome.SWAMP),
        (r < 0.2, Biome.DESERT),
        (r > 0.85 - 0.1 * f, Biome.TEMPERATE_RAINFOREST),
        (r > 0.6 - 0.3 * f, Biome.TEMPERATE_FOREST),
    ]
    conditions = [cond for cond, _ in rules]
    choices = [biome.code for _, biome in rules]
    biome = np.select(conditions, choices, default=Biome.GRASSLAND.code)
    return biome.astype(BIOME_DTYPE)


def overlay_lakes(biome: NDArray[np.uint8], lake_mask: NDArray[np.bool_]) -> NDArray[np.uint8]:
    """Copy of ``biome`` with every lake tile set to ``Biome.LAKE``."""
    return np.where(lake_mask, BIOME_DTYPE(Biome.LAKE.code), biome).astype(BIOME_DTYPE)
