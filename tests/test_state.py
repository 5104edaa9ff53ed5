"""Tests for the tile grid, feature records and WorldData."""

import dataclasses
from collections.abc import Callable

import numpy as np
import pytest

from worldgen.biome_types import Biome
from worldgen.config import WorldConfig
from worldgen.state import Lake, ResourceLayer, River, TileGrid, WorldData
from worldgen.types import ResourceKind, SettlementTier, Terminus, Tile, WaterType


class TestTileGrid:
    """Tests for TileGrid."""

    def test_shape_properties(self, make_grid: Callable[..., TileGrid]) -> None:
        """Shape, height and width come from the elevation array."""
        grid = make_grid(np.zeros((3, 5)))
        assert grid.shape == (3, 5)
        assert grid.height == 3
        assert grid.width == 5

    def test_mismatched_shapes(self) -> None:
        """Arrays of different shapes are rejected."""
        shape = (4, 4)
        with pytest.raises(ValueError):
            TileGrid(
                elevation=np.zeros(shape),
                temperature=np.zeros(shape),
                rainfall=np.zeros((4, 5)),
                vegetation=np.zeros(shape),
                biome=np.zeros(shape, dtype=np.uint8),
                land=np.zeros(shape, dtype=bool),
                lake=np.zeros(shape, dtype=bool),
                river=np.zeros(shape, dtype=bool),
                wetland=np.zeros(shape, dtype=bool),
                region=np.full(shape, -1, dtype=np.int32),
            )

    def test_arrays_copied_and_read_only(self, make_grid: Callable[..., TileGrid]) -> None:
        """Changing the source array does not reach the grid."""
        elevation = np.full((3, 3), 0.7)
        grid = make_grid(elevation)
        elevation[0, 0] = 0.0
        assert grid.elevation[0, 0] == 0.7
        with pytest.raises(ValueError):
            grid.elevation[0, 0] = 0.1
        with pytest.raises(dataclasses.FrozenInstanceError):
            grid.elevation = elevation  # type: ignore[misc]

    def test_tile_at(self, make_grid: Callable[..., TileGrid]) -> None:
        """tile_at returns a view of the cell."""
        elevation = np.array([[0.2, 0.8]])
        grid = make_grid(elevation)
        sea = grid.tile_at(0, 0)
        land = grid.tile_at(0, 1)
        assert isinstance(land, Tile)
        assert sea.biome is Biome.OCEAN
        assert sea.water
        assert sea.region is None
        assert land.land
        assert not land.water
        assert land.region == 0
        assert land.elevation == 0.8
        assert land.vegetation == 0.65
        assert sea.vegetation == 0.0

    @pytest.mark.parametrize("row, col", [(-1, 0), (0, -1), (2, 0), (0, 3)])
    def test_tile_at_out_of_bounds(
        self, make_grid: Callable[..., TileGrid], row: int, col: int
    ) -> None:
        """Out-of-range coordinates raise IndexError."""
        grid = make_grid(np.zeros((2, 3)))
        with pytest.raises(IndexError):
            grid.tile_at(row, col)

    def test_lake_tile_is_water(self, make_grid: Callable[..., TileGrid]) -> None:
        """Lake tiles on land count as water."""
        lake = np.array([[True]])
        grid = make_grid(np.array([[0.9]]), lake=lake)
        assert grid.tile_at(0, 0).water


class TestRecords:
    """Tests for array-backed feature records."""

    def test_river_endpoints(self) -> None:
        """Source and mouth are the first and last path tiles."""
        river = River(
            index=0,
            name="Test River",
            path=np.array([[0, 0], [0, 1], [1, 1]]),
            length=2.0,
            flow_rate=3.0,
            flow_profile=np.array([1.0, 2.0, 3.0]),
            terminus=Terminus.SEA,
        )
        assert river.source == (0, 0)
        assert river.mouth == (1, 1)
        assert not river.path.flags.writeable
        assert river.path.dtype == np.int64

    def test_lake_tiles_read_only(self) -> None:
        """Lake tile indices are locked."""
        lake = Lake(
            index=0,
            name="Test Lake",
            tiles=[3, 4],
            spill_elevation=0.6,
            volume=0.2,
            water_type=WaterType.FRESH,
        )
        assert not lake.tiles.flags.writeable
        assert lake.tiles.tolist() == [3, 4]

    def test_tier_rank(self) -> None:
        """Tier ranks increase from hamlet to capital."""
        ranks = [tier.rank for tier in SettlementTier]
        assert ranks == [0, 1, 2, 3, 4]


class TestResourceLayer:
    """Tests for the struct-of-arrays deposit layer."""

    def _layer(self) -> ResourceLayer:
        return ResourceLayer(
            width=3,
            tile=[1, 1, 4],
            kind=[ResourceKind.FOOD.code, ResourceKind.STONE.code, ResourceKind.WATER.code],
            amount=[60.0, 250.0, 1500.0],
            capacity=[150.0, 500.0, 3000.0],
            regeneration=[2.5, 0.2, 6.0],
        )

    def test_at(self) -> None:
        """Deposits on a tile come back as records in kind order."""
        layer = self._layer()
        food, stone = layer.at(0, 1)
        assert food.kind is ResourceKind.FOOD
        assert food.position == (0, 1)
        assert food.amount == 60.0
        assert stone.kind is ResourceKind.STONE
        assert stone.capacity == 500.0
        assert [d.kind for d in layer.at(1, 1)] == [ResourceKind.WATER]
        assert layer.at(2, 2) == ()

    def test_totals(self) -> None:
        """Amounts are summed per kind, absent kinds as zero."""
        assert self._layer().totals() == {
            "food": 60.0,
            "water": 1500.0,
            "wood": 0.0,
            "stone": 250.0,
            "metal": 0.0,
        }

    def test_empty_and_read_only(self) -> None:
        """The default layer is empty and its arrays are locked."""
        layer = ResourceLayer()
        assert len(layer) == 0
        assert layer.at(0, 0) == ()
        assert not self._layer().amount.flags.writeable


class TestWorldData:
    """Tests for WorldData."""

    def _world(self, make_grid: Callable[..., TileGrid], value: float = 0.7) -> WorldData:
        elevation = np.full((4, 4), value)
        elevation[0, :] = 0.1
        return WorldData(config=WorldConfig(width=4, height=4), grid=make_grid(elevation), sea_level=0.5)

    def test_digest_stable(self, make_grid: Callable[..., TileGrid]) -> None:
        """Equal contents give equal digests."""
        assert self._world(make_grid).digest() == self._world(make_grid).digest()

    def test_digest_sensitive(self, make_grid: Callable[..., TileGrid]) -> None:
        """Any array change alters the digest."""
        assert self._world(make_grid, 0.7).digest() != self._world(make_grid, 0.71).digest()

    def test_digest_format(self, make_grid: Callable[..., TileGrid]) -> None:
        """Digest is 64 hex characters."""
        digest = self._world(make_grid).digest()
        assert len(digest) == 64
        int(digest, 16)

    def test_statistics(self, make_grid: Callable[..., TileGrid]) -> None:
        """Statistics count land, water and biomes."""
        stats = self._world(make_grid).statistics()
        assert stats["land_fraction"] == 0.75
        assert stats["water_fraction"] == 0.25
        assert stats["biomes"] == {"ocean": 4, "grassland": 12}
        assert stats["rivers"] == 0
        assert stats["width"] == 4
        assert stats["mean_vegetation"] == pytest.approx(0.65 * 0.75)
        assert stats["resource_deposits"] == 0
        assert stats["historical_events"] == 0

    def test_regions_and_tile_at(self, make_grid: Callable[..., TileGrid]) -> None:
        """Convenience accessors delegate to the grid."""
        world = self._world(make_grid)
        assert world.regions == ()
        assert world.tile_at(3, 3).land
        assert (world.width, world.height) == (4, 4)

    def test_frozen(self, make_grid: Callable[..., TileGrid]) -> None:
        """Fields cannot be reassigned."""
        world = self._world(make_grid)
        with pytest.raises(dataclasses.FrozenInstanceError):
            world.rivers = ()  # type: ignore[misc]
