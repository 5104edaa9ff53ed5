"""Shared test fixtures for worldgen tests."""

from collections.abc import Callable

import numpy as np
import pytest

from worldgen import Biome, WorldData, generate_world
from worldgen.state import TileGrid


@pytest.fixture(scope="session")
def scenario_world() -> WorldData:
    """The 200x200 world for seed 12345 with default parameters."""
    return generate_world(width=200, height=200, seed=12345)


@pytest.fixture(scope="session")
def small_world() -> WorldData:
    """64x64 world with generous feature counts."""
    return generate_world(
        width=64,
        height=64,
        seed=7,
        river_count=12,
        lake_count=6,
        civilization_count=4,
        settlement_density=1.0,
        road_density=1.0,
    )


@pytest.fixture
def make_grid() -> Callable[..., TileGrid]:
    """Factory for hand-built grids with a mild climate and grassland biome."""

    def _make(
        elevation: np.ndarray,
        sea_level: float = 0.5,
        river: np.ndarray | None = None,
        lake: np.ndarray | None = None,
    ) -> TileGrid:
        shape = elevation.shape
        land = elevation >= sea_level
        lake = np.zeros(shape, dtype=bool) if lake is None else lake
        biome = np.where(land, Biome.GRASSLAND.code, Biome.OCEAN.code)
        biome = np.where(lake, Biome.LAKE.code, biome).astype(np.uint8)
        return TileGrid(
            elevation=elevation,
            temperature=np.full(shape, 0.5),
            rainfall=np.full(shape, 0.5),
            vegetation=np.where(land & ~lake, 0.65, 0.0),
            biome=biome,
            land=land,
            lake=lake,
            river=np.zeros(shape, dtype=bool) if river is None else river,
            wetland=np.zeros(shape, dtype=bool),
            region=np.where(land, 0, -1).astype(np.int32),
        )

    return _make
