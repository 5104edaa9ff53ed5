"""Tests for basins, river tracing and lakes."""

import numpy as np
import pytest

from worldgen.config import HydrologyTuning
from worldgen.terrain.hydrology import (
    NO_BASIN,
    NO_RIVER,
    Basin,
    find_basins,
    find_outlets,
    priority_flood_fill,
    rank_lake_basins,
    select_river_sources,
    simulate_hydrology,
    source_spacing,
    tie_rotation,
    trace_river,
)
from worldgen.types import Terminus, WaterType


def _border(shape: tuple[int, int]) -> np.ndarray:
    mask = np.zeros(shape, dtype=bool)
    mask[0, :] = mask[-1, :] = True
    mask[:, 0] = mask[:, -1] = True
    return mask


def _east_slope(height: int = 12, width: int = 30) -> np.ndarray:
    """Plane falling to the east; sea from column 16 at sea level 0.48."""
    xs = np.arange(width, dtype=np.float64)
    return np.broadcast_to(1.0 - xs / 30.0, (height, width)).copy()


def _valley() -> np.ndarray:
    """13x30 V-shaped valley draining along row 6 to the east."""
    ys, xs = np.mgrid[0:13, 0:30]
    return 1.0 - xs / 30.0 + 0.05 * np.abs(ys - 6)


def _channel_with_pit() -> np.ndarray:
    """5x12 channel along row 2 with a two-tile pit before the sea column."""
    ys, xs = np.mgrid[0:5, 0:12]
    elevation = 0.8 - 0.02 * xs + 0.05 * np.abs(ys - 2)
    elevation[2, 8] = elevation[2, 9] = 0.55
    elevation[:, 11] = 0.0
    return elevation


def _channel_with_side_pit() -> np.ndarray:
    """The pit channel plus a deeper one-tile pit on the bottom edge at (4, 5)."""
    elevation = _channel_with_pit()
    elevation[4, 5] = 0.5
    return elevation


def _two_pits() -> np.ndarray:
    """10x10 plateau ringed by sea with a 3x3 and a 2x2 pit."""
    elevation = np.full((10, 10), 0.8)
    elevation[_border((10, 10))] = 0.0
    elevation[2:5, 2:5] = 0.6
    elevation[6:8, 6:8] = 0.7
    return elevation


class TestOutlets:
    """Tests for find_outlets."""

    def test_border_sea(self) -> None:
        """Sea touching the border is the outlet, enclosed sea is not."""
        land = np.ones((7, 7), dtype=bool)
        land[:, 0] = False
        land[3, 3] = False
        outlets = find_outlets(land)
        assert outlets[:, 0].all()
        assert not outlets[3, 3]
        assert outlets.sum() == 7

    def test_enclosed_sea_only(self) -> None:
        """Without border sea the largest sea component drains."""
        land = np.ones((9, 9), dtype=bool)
        land[2:4, 2:4] = False
        land[6, 6] = False
        outlets = find_outlets(land)
        assert outlets[2:4, 2:4].all()
        assert not outlets[6, 6]

    def test_no_sea(self) -> None:
        """All-land grids drain off the map border."""
        outlets = find_outlets(np.ones((5, 6), dtype=bool))
        np.testing.assert_array_equal(outlets, _border((5, 6)))


class TestPriorityFlood:
    """Tests for priority_flood_fill and find_basins."""

    def test_pit_filled_to_rim(self) -> None:
        """A single pit is raised to its rim."""
        elevation = np.ones((5, 5))
        elevation[2, 2] = 0.2
        filled = priority_flood_fill(elevation, _border((5, 5)))
        assert filled[2, 2] == 1.0
        assert (filled >= elevation).all()

    def test_no_depressions_unchanged(self) -> None:
        """A field that drains everywhere is left alone."""
        elevation = _east_slope()
        filled = priority_flood_fill(elevation, ~(elevation >= 0.48))
        np.testing.assert_array_equal(filled, elevation)

    def test_basin_records(self) -> None:
        """Basins report tiles, spill level and volume."""
        elevation = np.ones((5, 5))
        elevation[2, 2] = 0.2
        filled = priority_flood_fill(elevation, _border((5, 5)))
        basins, basin_ids = find_basins(elevation, filled)
        assert len(basins) == 1
        assert basins[0].tiles.tolist() == [12]
        assert basins[0].spill_elevation == 1.0
        assert basins[0].volume == pytest.approx(0.8)
        assert basin_ids[2, 2] == 0
        assert (basin_ids == NO_BASIN).sum() == 24

    def test_basins_in_row_major_order(self) -> None:
        """Basins are indexed by their first tile."""
        elevation = _two_pits()
        filled = priority_flood_fill(elevation, ~(elevation >= 0.5))
        basins, _ = find_basins(elevation, filled)
        assert [b.tiles.size for b in basins] == [9, 4]
        assert basins[0].volume == pytest.approx(9 * 0.2)
        assert basins[1].volume == pytest.approx(4 * 0.1)


class TestRankLakeBasins:
    """Tests for rank_lake_basins."""

    def _basins(self, volumes: list[float]) -> list[Basin]:
        return [
            Basin(index=i, tiles=np.array([i]), spill_elevation=1.0, volume=v)
            for i, v in enumerate(volumes)
        ]

    def test_largest_first(self) -> None:
        """Basins come back by descending volume, capped at the count."""
        ranked = rank_lake_basins(self._basins([0.1, 3.0, 0.5, 2.0]), 3)
        assert [b.index for b in ranked] == [1, 3, 2]

    def test_ties_by_index(self) -> None:
        """Equal volumes keep basin order."""
        ranked = rank_lake_basins(self._basins([1.0, 2.0, 1.0]), 3)
        assert [b.index for b in ranked] == [1, 0, 2]

    def test_empty_and_zero_count(self) -> None:
        """No basins or no slots give no lakes."""
        assert rank_lake_basins([], 4) == []
        assert rank_lake_basins(self._basins([1.0]), 0) == []


class TestSources:
    """Tests for select_river_sources."""

    def _two_peaks(self) -> np.ndarray:
        ys, xs = np.mgrid[0:9, 0:21]
        d1 = np.hypot(ys - 4, xs - 5)
        d2 = np.hypot(ys - 4, xs - 15)
        return np.maximum(1.0 - 0.05 * d1, 0.9 - 0.05 * d2)

    def test_peaks_highest_first(self) -> None:
        """Local maxima come back highest first."""
        elevation = self._two_peaks()
        no_basins = np.full(elevation.shape, NO_BASIN, dtype=np.int32)
        sources = select_river_sources(elevation, elevation > 0, no_basins, 3.0)
        assert sources == [(4, 5), (4, 15)]

    def test_spacing(self) -> None:
        """Sources closer than the spacing are skipped."""
        elevation = self._two_peaks()
        no_basins = np.full(elevation.shape, NO_BASIN, dtype=np.int32)
        sources = select_river_sources(elevation, elevation > 0, no_basins, 15.0)
        assert sources == [(4, 5)]

    def test_excludes_sea_and_basins(self) -> None:
        """Peaks in the sea or in a basin are not sources."""
        elevation = self._two_peaks()
        basin_ids = np.full(elevation.shape, NO_BASIN, dtype=np.int32)
        basin_ids[4, 5] = 0
        land = np.ones(elevation.shape, dtype=bool)
        land[4, 15] = False
        assert select_river_sources(elevation, land, basin_ids, 3.0) == []

    def test_source_spacing(self) -> None:
        """Spacing scales with the diagonal above a floor."""
        tuning = HydrologyTuning()
        assert source_spacing((10, 10), tuning) == 3.0
        assert source_spacing((300, 400), tuning) == pytest.approx(40.0)


class TestTraceRiver:
    """Tests for trace_river."""

    def _trace(self, elevation, land, lake=None, owner=None, max_steps=1000):
        shape = elevation.shape
        return trace_river(
            (2, 0),
            elevation,
            land,
            np.zeros(shape, dtype=bool) if lake is None else lake,
            np.full(shape, NO_RIVER, dtype=np.int64) if owner is None else owner,
            np.zeros(shape, dtype=np.int64),
            max_steps,
        )

    def test_reaches_sea(self) -> None:
        """A plane drains straight downhill into the sea."""
        elevation = _east_slope(5, 20)
        path, terminus = self._trace(elevation, elevation >= 0.48)
        assert terminus is Terminus.SEA
        assert path == [(2, x) for x in range(17)]

    def test_stops_at_lake(self) -> None:
        """Entering a lake tile ends the river."""
        elevation = _east_slope(5, 20)
        lake = np.zeros(elevation.shape, dtype=bool)
        lake[2, 3] = True
        path, terminus = self._trace(elevation, elevation >= 0.48, lake=lake)
        assert terminus is Terminus.LAKE
        assert path[-1] == (2, 3)

    def test_stops_at_river(self) -> None:
        """Reaching another river's tile ends the trace there."""
        elevation = _east_slope(5, 20)
        owner = np.full(elevation.shape, NO_RIVER, dtype=np.int64)
        owner[2, 4] = 0
        path, terminus = self._trace(elevation, elevation >= 0.48, owner=owner)
        assert terminus is Terminus.RIVER
        assert path[-1] == (2, 4)

    def test_stuck_in_pit(self) -> None:
        """A trace with no lower unvisited neighbour stops without a terminus."""
        ys, xs = np.mgrid[0:5, 0:5]
        elevation = np.hypot(ys - 2, xs - 2)
        path, terminus = trace_river(
            (0, 2),
            elevation,
            np.ones((5, 5), dtype=bool),
            np.zeros((5, 5), dtype=bool),
            np.full((5, 5), NO_RIVER, dtype=np.int64),
            np.zeros((5, 5), dtype=np.int64),
            100,
        )
        assert terminus is None
        assert path == [(0, 2), (1, 2), (2, 2)]

    def test_step_bound(self) -> None:
        """Running out of steps leaves the terminus unset."""
        elevation = _east_slope(5, 20)
        path, terminus = self._trace(elevation, elevation >= 0.48, max_steps=2)
        assert terminus is None
        assert len(path) == 3

    def test_tie_rotation_range(self) -> None:
        """Rotation offsets are 0..3 and seed-dependent."""
        a = tie_rotation((16, 16), 1)
        b = tie_rotation((16, 16), 2)
        assert a.min() >= 0
        assert a.max() <= 3
        assert not np.array_equal(a, b)


class TestSimulateHydrology:
    """Tests for simulate_hydrology."""

    def test_parallel_rivers(self) -> None:
        """Sources along the ridge each drain straight to the sea."""
        elevation = _east_slope()
        land = elevation >= 0.48
        result = simulate_hydrology(elevation, land, river_count=4, lake_count=3, seed=1)
        assert len(result.rivers) == 4
        assert [r.source for r in result.rivers] == [(0, 0), (3, 0), (6, 0), (9, 0)]
        for river in result.rivers:
            assert river.terminus is Terminus.SEA
            assert river.length == 16.0
            assert river.flow_rate == 17.0
            assert river.parent is None
            assert not river.navigable
        assert result.lakes == ()
        assert result.river_mask.sum() == 4 * 16
        assert not (result.river_mask & ~land).any()

    def test_river_count_is_a_maximum(self) -> None:
        """No more rivers than requested are traced."""
        elevation = _east_slope()
        result = simulate_hydrology(elevation, elevation >= 0.48, 2, 0, seed=1)
        assert len(result.rivers) == 2

    def test_no_rivers(self) -> None:
        """river_count=0 traces nothing."""
        elevation = _east_slope()
        result = simulate_hydrology(elevation, elevation >= 0.48, 0, 0, seed=1)
        assert result.rivers == ()
        assert not result.river_mask.any()

    def test_tributary(self) -> None:
        """The second river joins the first and adds its flow downstream."""
        elevation = _valley()
        result = simulate_hydrology(elevation, elevation >= 0.48, 5, 0, seed=3)
        assert len(result.rivers) == 2
        main, tributary = result.rivers

        assert main.terminus is Terminus.SEA
        assert main.tributaries == (1,)
        assert len(main.path) == 23
        assert main.flow_rate == 23.0 + 6.0
        np.testing.assert_array_equal(main.flow_profile[:6], np.arange(1, 7))
        assert (np.diff(main.flow_profile) >= 0).all()

        assert tributary.terminus is Terminus.RIVER
        assert tributary.parent == 0
        assert tributary.join_index == 6
        assert tributary.mouth == (6, 0)
        assert tributary.flow_rate == 7.0
        assert main.basin_bbox == (0, 0, 12, 16)

    def test_river_ends_in_lake(self) -> None:
        """A river draining into a filled pit ends at that lake."""
        elevation = _channel_with_pit()
        land = elevation >= 0.5
        result = simulate_hydrology(elevation, land, 4, 2, seed=0)
        assert len(result.rivers) == 1
        river = result.rivers[0]
        assert river.terminus is Terminus.LAKE
        assert river.lake == 0
        assert river.mouth == (2, 8)

        assert len(result.lakes) == 1
        lake = result.lakes[0]
        assert sorted(lake.tiles.tolist()) == [2 * 12 + 8, 2 * 12 + 9]
        assert lake.inflow == (0,)
        assert lake.water_type is WaterType.FRESH
        assert lake.spill_elevation == pytest.approx(0.6)
        assert lake.volume == pytest.approx(0.1)
        assert lake.outflow == (2, 10)

        assert result.lake_mask.sum() == 2
        assert result.river_mask.sum() == 10
        assert not (result.river_mask & result.lake_mask).any()
        assert not result.wetland_mask.any()

    def test_no_lake_slot_abandons_river(self) -> None:
        """Without lake slots rivers stuck in the pit are dropped and it is wetland."""
        elevation = _channel_with_pit()
        result = simulate_hydrology(elevation, elevation >= 0.5, 4, 0, seed=0)
        assert result.rivers == ()
        assert result.lakes == ()
        assert result.wetland_mask.sum() == 2

    def test_larger_basin_wins_over_river_pit(self) -> None:
        """The lake slot goes to the larger basin even when a river feeds the smaller."""
        elevation = _channel_with_side_pit()
        result = simulate_hydrology(elevation, elevation >= 0.5, 4, 1, seed=0)
        assert len(result.lakes) == 1
        assert result.lakes[0].tiles.tolist() == [4 * 12 + 5]
        assert result.lakes[0].volume == pytest.approx(0.25)
        # The channel pit is unfilled, so rivers stuck in it are dropped
        assert result.rivers == ()
        assert result.wetland_mask.sum() == 2
        assert result.wetland_mask[2, 8:10].all()

    def test_lakes_ordered_by_volume_with_inflow(self) -> None:
        """Both basins become lakes, largest first, and the river feeds its own."""
        elevation = _channel_with_side_pit()
        result = simulate_hydrology(elevation, elevation >= 0.5, 4, 2, seed=0)
        assert [lake.volume for lake in result.lakes] == pytest.approx([0.25, 0.1])
        assert len(result.rivers) == 1
        river = result.rivers[0]
        assert river.terminus is Terminus.LAKE
        assert river.lake == 1
        assert result.lakes[0].inflow == ()
        assert result.lakes[1].inflow == (0,)
        assert not result.wetland_mask.any()

    def test_lakes_by_volume(self) -> None:
        """Spare lake slots go to the largest basins."""
        elevation = _two_pits()
        land = elevation >= 0.5
        result = simulate_hydrology(elevation, land, 0, 1, seed=0)
        assert len(result.lakes) == 1
        lake = result.lakes[0]
        assert lake.area == 9
        assert lake.volume == pytest.approx(1.8)
        assert lake.max_depth == pytest.approx(0.2)
        assert lake.centroid == (3.0, 3.0)
        assert lake.water_type is WaterType.FRESH
        assert result.wetland_mask.sum() == 4
        assert result.lake_mask[2:5, 2:5].all()

    def test_arid_lake_is_salt(self) -> None:
        """A lake in a dry basin without inflow is salt."""
        elevation = _two_pits()
        rainfall = np.full(elevation.shape, 0.05)
        result = simulate_hydrology(elevation, elevation >= 0.5, 0, 2, seed=0, rainfall=rainfall)
        assert [lake.water_type for lake in result.lakes] == [WaterType.SALT, WaterType.SALT]

    def test_lake_count_zero(self) -> None:
        """No lakes when none are allowed; every basin tile is wetland."""
        elevation = _two_pits()
        result = simulate_hydrology(elevation, elevation >= 0.5, 0, 0, seed=0)
        assert result.lakes == ()
        assert result.wetland_mask.sum() == 13

    def test_deterministic(self) -> None:
        """Same inputs give the same rivers."""
        rng = np.random.default_rng(4)
        elevation = rng.random((24, 24))
        land = elevation >= 0.3
        a = simulate_hydrology(elevation, land, 6, 3, seed=9)
        b = simulate_hydrology(elevation, land, 6, 3, seed=9)
        assert len(a.rivers) == len(b.rivers)
        for ra, rb in zip(a.rivers, b.rivers):
            np.testing.assert_array_equal(ra.path, rb.path)
        np.testing.assert_array_equal(a.lake_mask, b.lake_mask)

    def test_random_terrain_invariants(self) -> None:
        """Rivers on rough terrain are monotone, acyclic and 4-connected."""
        rng = np.random.default_rng(11)
        elevation = rng.random((32, 32))
        land = elevation >= 0.3
        result = simulate_hydrology(elevation, land, 10, 4, seed=2)
        for river in result.rivers:
            path = river.path
            assert (np.abs(np.diff(path, axis=0)).sum(axis=1) == 1).all()
            flat = path[:, 0] * 32 + path[:, 1]
            assert np.unique(flat).size == flat.size
            heights = elevation[path[:, 0], path[:, 1]]
            assert (np.diff(heights) <= 0).all()
            assert len(path) >= HydrologyTuning().min_river_tiles
        assert not (result.lake_mask & result.river_mask).any()
        assert not (result.wetland_mask & result.lake_mask).any()
