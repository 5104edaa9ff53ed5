"""Vegetation density and harvestable resource deposits."""

import numpy as np
import structlog
from numpy.typing import NDArray

from ..biome_types import Biome
from ..seeding import hash_unit
from ..state import ResourceLayer
from ..types import ResourceKind

logger = structlog.get_logger()

DEFAULT_VEGETATION = 0.3

BASE_VEGETATION = {
    Biome.TROPICAL_RAINFOREST: 0.9,
    Biome.TEMPERATE_RAINFOREST: 0.9,
    Biome.TEMPERATE_FOREST: 0.7,
    Biome.SAVANNA: 0.5,
    Biome.GRASSLAND: 0.4,
    Biome.DESERT: 0.1,
    Biome.ALPINE: 0.2,
    Biome.TUNDRA: 0.2,
    Biome.OCEAN: 0.0,
    Biome.LAKE: 0.0,
}

_WOOD_BIOMES = (Biome.TEMPERATE_FOREST, Biome.TROPICAL_RAINFOREST, Biome.TEMPERATE_RAINFOREST)

# (chance, base amount, amount spread, capacity, base regeneration, regeneration spread)
WOOD = (0.3, 100.0, 200.0, 300.0, 1.0, 2.0)
FOOD = (0.4, 50.0, 100.0, 150.0, 2.0, 3.0)
MINERAL = (0.1, 200.0, 300.0, 500.0, 0.1, 0.5)
WATER = (0.2, 1000.0, 2000.0, 3000.0, 5.0, 10.0)


def vegetation_density(
    biome: NDArray[np.uint8],
    rainfall: NDArray[np.float64],
    temperature: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Plant cover in [0, 1]: a biome base raised by rain and warmth.

    Sea and lake tiles have none.
    """
    table = np.full(len(Biome), DEFAULT_VEGETATION)
    for kind, base in BASE_VEGETATION.items():
        table[kind.code] = base
    density = np.minimum(1.0, table[biome] + 0.3 * rainfall + 0.2 * temperature)
    water = np.isin(biome, [Biome.OCEAN.code, Biome.LAKE.code])
    return np.where(water, 0.0, density)


def place_resources(
    biome: NDArray[np.uint8],
    land_mask: NDArray[np.bool_],
    lake_mask: NDArray[np.bool_],
    mineral_richness: float,
    water_availability: float,
    seed: int,
) -> ResourceLayer:
    """Roll resource deposits on every dry land tile.

    Forest tiles may hold wood and grassland tiles food. Any dry tile may
    hold stone or metal, with a chance scaled by ``mineral_richness``, and
    a spring, with a chance scaled by ``water_availability``. Each roll is
    a hash of the tile, so a tile's deposits do not depend on its
    neighbours.

    Returns:
        ResourceLayer sorted by tile, then kind.
    """
    height, width = biome.shape
    rows, cols = np.ogrid[:height, :width]
    dry = land_mask & ~lake_mask

    def roll(tag: str) -> NDArray[np.float64]:
        return hash_unit(seed, tag, rows, cols)

    forest = dry & np.isin(biome, [b.code for b in _WOOD_BIOMES])
    grass = dry & (biome == Biome.GRASSLAND.code)
    mineral_kind = np.where(
        roll("resource-metal") < 0.5, ResourceKind.METAL.code, ResourceKind.STONE.code
    )
    # (tag, allowed tiles, chance multiplier, resource code, constants)
    draws = (
        ("wood", forest, 1.0, ResourceKind.WOOD.code, WOOD),
        ("food", grass, 1.0, ResourceKind.FOOD.code, FOOD),
        ("mineral", dry, mineral_richness, mineral_kind, MINERAL),
        ("water", dry, water_availability, ResourceKind.WATER.code, WATER),
    )

    tiles, kinds, amounts, capacities, regeneration = [], [], [], [], []
    for name, allowed, scale, code, (chance, amount, spread, capacity, regen, regen_spread) in draws:
        hit = allowed & (roll(f"resource-{name}") < chance * scale)
        kind = np.broadcast_to(code, biome.shape)
        tiles.append(np.flatnonzero(hit))
        kinds.append(kind[hit])
        amounts.append((amount + spread * roll(f"resource-{name}-amount"))[hit])
        capacities.append(np.full(int(hit.sum()), capacity))
        regeneration.append((regen + regen_spread * roll(f"resource-{name}-regen"))[hit])

    tile = np.concatenate(tiles).astype(np.intp)
    kind = np.concatenate(kinds).astype(np.uint8)
    order = np.lexsort((kind, tile))
    logger.info("resources_placed", deposits=int(tile.size))
    return ResourceLayer(
        width=width,
        tile=tile[order],
        kind=kind[order],
        amount=np.concatenate(amounts)[order],
        capacity=np.concatenate(capacities)[order],
        regeneration=np.concatenate(regeneration)[order],
    )
