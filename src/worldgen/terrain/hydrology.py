"""Hydrology: Priority-Flood basins, river tracing, tributaries and lakes.

Basins come from the Priority-Flood algorithm of Barnes et al. (2014) run
over the 4-neighbourhood. Rivers are traced one at a time from the highest
free sources; each trace only ever steps to a lower-or-equal, unvisited
neighbour, so paths are monotonic and acyclic by construction.
"""

import heapq
from dataclasses import dataclass, field

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy import ndimage

from ..config import HydrologyTuning
from ..names import feature_name
from ..seeding import hash_coords
from ..state import Lake, River
from ..types import Terminus, WaterType

logger = structlog.get_logger()

# D4 directions: N, E, S, W (clockwise from north)
D4_DY = np.array([-1, 0, 1, 0], dtype=np.int64)
D4_DX = np.array([0, 1, 0, -1], dtype=np.int64)

NO_BASIN = -1
NO_RIVER = -1

_CROSS = ndimage.generate_binary_structure(2, 1)


@dataclass(frozen=True, eq=False)
class Basin:
    """A closed depression: connected tiles whose filled level exceeds their elevation."""

    index: int
    tiles: NDArray[np.intp]
    spill_elevation: float
    volume: float


@dataclass(frozen=True, eq=False)
class HydrologyResult:
    rivers: tuple[River, ...]
    lakes: tuple[Lake, ...]
    river_mask: NDArray[np.bool_]
    lake_mask: NDArray[np.bool_]
    wetland_mask: NDArray[np.bool_]


@dataclass
class _Trace:
    """Mutable river record while tracing is in progress."""

    path: list[tuple[int, int]]
    terminus: Terminus
    flow: NDArray[np.float64]
    parent: int | None = None
    join_index: int | None = None
    lake: int | None = None
    tributaries: list[int] = field(default_factory=list)


def find_outlets(land_mask: NDArray[np.bool_]) -> NDArray[np.bool_]:
    """Tiles water finally drains to.

    Sea components touching the map border; the largest sea component if
    none touches the border; the map border itself if there is no sea.
    """
    sea = ~land_mask
    if not sea.any():
        outlets = np.zeros_like(land_mask)
        outlets[0, :] = outlets[-1, :] = True
        outlets[:, 0] = outlets[:, -1] = True
        return outlets

    labeled, num_features = ndimage.label(sea, structure=_CROSS)
    border = np.concatenate(
        (labeled[0, :], labeled[-1, :], labeled[:, 0], labeled[:, -1])
    )
    border_labels = np.unique(border[border > 0])
    if border_labels.size:
        return np.isin(labeled, border_labels)

    sizes = np.bincount(labeled.ravel(), minlength=num_features + 1)
    sizes[0] = 0
    return labeled == int(np.argmax(sizes))


def priority_flood_fill(
    elevation: NDArray[np.float64],
    outlet_mask: NDArray[np.bool_],
) -> NDArray[np.float64]:
    """Fill depressions using the Priority-Flood algorithm.

    Every tile is raised to the lowest level at which water standing on it
    can reach an outlet.

    Args:
        elevation: Raw elevation field.
        outlet_mask: Boolean mask where True = outlet (drains away).

    Returns:
        Filled elevation, never below the input.
    """
    height, width = elevation.shape
    filled = elevation.copy()
    closed = outlet_mask.copy()

    # Priority queue: (elevation, y, x)
    pq: list[tuple[float, int, int]] = []

    # Seed with the outlets' non-outlet neighbours, in row-major order
    seeds = ndimage.binary_dilation(outlet_mask, structure=_CROSS) & ~outlet_mask
    for y, x in zip(*np.nonzero(seeds)):
        heapq.heappush(pq, (float(elevation[y, x]), int(y), int(x)))
        closed[y, x] = True

    while pq:
        level, y, x = heapq.heappop(pq)
        if filled[y, x] < level:
            filled[y, x] = level

        for d in range(4):
            ny = y + int(D4_DY[d])
            nx = x + int(D4_DX[d])
            if 0 <= ny < height and 0 <= nx < width and not closed[ny, nx]:
                closed[ny, nx] = True
                neighbor_level = max(float(elevation[ny, nx]), float(filled[y, x]))
                filled[ny, nx] = neighbor_level
                heapq.heappush(pq, (neighbor_level, ny, nx))

    return filled


def find_basins(
    elevation: NDArray[np.float64],
    filled: NDArray[np.float64],
) -> tuple[list[Basin], NDArray[np.int32]]:
    """Group filled tiles into basins.

    Returns:
        Tuple of (basins in row-major order of their first tile, grid of
        basin indices with NO_BASIN outside basins).
    """
    depressed = filled > elevation
    labeled, num_features = ndimage.label(depressed, structure=_CROSS)
    basin_ids = (labeled - 1).astype(np.int32)

    flat_labels = labeled.ravel()
    counts = np.bincount(flat_labels, minlength=num_features + 1)
    by_label = np.argsort(flat_labels, kind="stable")
    starts = np.concatenate(([0], np.cumsum(counts)))
    flat_elev = elevation.ravel()
    flat_filled = filled.ravel()

    basins = []
    for label in range(1, num_features + 1):
        tiles = by_label[starts[label]:starts[label + 1]]
        # Adjacent depressed tiles share one spill level
        spill = float(flat_filled[tiles].max())
        volume = float(np.sum(spill - flat_elev[tiles]))
        basins.append(Basin(index=label - 1, tiles=tiles, spill_elevation=spill, volume=volume))
    return basins, basin_ids


def rank_lake_basins(basins: list[Basin], lake_count: int) -> list[Basin]:
    """The ``lake_count`` largest basins by volume, ties by basin index."""
    candidates = [b for b in basins if b.volume > 0.0]
    candidates.sort(key=lambda b: (-b.volume, b.index))
    return candidates[:max(lake_count, 0)]


def source_spacing(shape: tuple[int, int], tuning: HydrologyTuning) -> float:
    diagonal = float(np.hypot(*shape))
    return max(float(tuning.min_source_spacing), tuning.source_spacing_fraction * diagonal)


def select_river_sources(
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    basin_ids: NDArray[np.int32],
    min_spacing: float,
) -> list[tuple[int, int]]:
    """Land local maxima outside basins, highest first, spaced apart.

    Ties in elevation are broken by row-major index.

    Args:
        elevation: Elevation field.
        land_mask: Boolean mask where True = land.
        basin_ids: Basin index grid from ``find_basins``.
        min_spacing: Minimum Euclidean distance between sources.

    Returns:
        List of (y, x) source coordinates.
    """
    peaks = elevation >= ndimage.maximum_filter(elevation, footprint=_CROSS, mode="nearest")
    candidates = np.flatnonzero(peaks & land_mask & (basin_ids == NO_BASIN))
    if candidates.size == 0:
        return []

    order = np.lexsort((candidates, -elevation.ravel()[candidates]))
    ys, xs = np.divmod(candidates[order], elevation.shape[1])

    selected: list[tuple[int, int]] = []
    sel_y: list[int] = []
    sel_x: list[int] = []
    min_dist2 = min_spacing * min_spacing
    for y, x in zip(ys.tolist(), xs.tolist()):
        if sel_y:
            dist2 = (np.array(sel_y) - y) ** 2 + (np.array(sel_x) - x) ** 2
            if dist2.min() < min_dist2:
                continue
        selected.append((y, x))
        sel_y.append(y)
        sel_x.append(x)
    return selected


def tie_rotation(shape: tuple[int, int], seed: int) -> NDArray[np.int64]:
    """Per-tile start offset into the N, E, S, W tie-break order."""
    ys, xs = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing="ij")
    return (hash_coords(seed, "river-tie", ys, xs) % np.uint64(4)).astype(np.int64)


def trace_river(
    source: tuple[int, int],
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    lake_mask: NDArray[np.bool_],
    river_owner: NDArray[np.int64],
    rotation: NDArray[np.int64],
    max_steps: int,
) -> tuple[list[tuple[int, int]], Terminus | None]:
    """Trace a river downhill from ``source``.

    Each step goes to the lowest unvisited 4-neighbour whose elevation does
    not exceed the current one. Equal candidates are resolved in N, E, S, W
    order starting at the tile's rotation offset.

    Returns:
        Tuple of (path including the terminus tile, terminus). The terminus
        is None when the trace got stuck or ran out of steps.
    """
    height, width = elevation.shape
    y, x = source
    path = [source]
    visited = {y * width + x}

    for _ in range(max_steps):
        current = elevation[y, x]
        best: tuple[int, int] | None = None
        best_elev = 0.0
        start = int(rotation[y, x])
        for k in range(4):
            d = (start + k) % 4
            ny = y + int(D4_DY[d])
            nx = x + int(D4_DX[d])
            if not (0 <= ny < height and 0 <= nx < width):
                continue
            if ny * width + nx in visited:
                continue
            value = elevation[ny, nx]
            if value <= current and (best is None or value < best_elev):
                best = (ny, nx)
                best_elev = value
        if best is None:
            return path, None

        y, x = best
        path.append(best)
        visited.add(y * width + x)

        if lake_mask[y, x]:
            return path, Terminus.LAKE
        if not land_mask[y, x]:
            return path, Terminus.SEA
        if river_owner[y, x] != NO_RIVER:
            return path, Terminus.RIVER

    return path, None


def _add_flow(traces: list[_Trace], index: int, position: int, amount: float) -> None:
    """Add tributary flow to a river from ``position`` on, then downstream."""
    while True:
        trace = traces[index]
        trace.flow[position:] += amount
        if trace.parent is None:
            return
        index, position = trace.parent, trace.join_index  # type: ignore[assignment]


def _spill_point(
    basin_mask: NDArray[np.bool_],
    elevation: NDArray[np.float64],
) -> tuple[int, int] | None:
    """Lowest tile on the basin's outer rim, ties by row-major index."""
    rim = ndimage.binary_dilation(basin_mask, structure=_CROSS) & ~basin_mask
    rim_tiles = np.flatnonzero(rim)
    if rim_tiles.size == 0:
        return None
    order = np.lexsort((rim_tiles, elevation.ravel()[rim_tiles]))
    y, x = np.divmod(int(rim_tiles[order[0]]), elevation.shape[1])
    return int(y), int(x)


def _bbox(points: NDArray[np.int64]) -> tuple[int, int, int, int]:
    return (
        int(points[:, 0].min()),
        int(points[:, 1].min()),
        int(points[:, 0].max()),
        int(points[:, 1].max()),
    )


def simulate_hydrology(
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    river_count: int,
    lake_count: int,
    seed: int,
    *,
    rainfall: NDArray[np.float64] | None = None,
    tuning: HydrologyTuning | None = None,
) -> HydrologyResult:
    """Trace rivers and fill lakes.

    The ``lake_count`` largest basins by volume are filled first. Rivers are
    then traced from the highest sources and end on reaching a lake, the
    sea or another river. A trace that gets stuck, which can only happen
    outside the promoted basins, is abandoned and the next source is
    tried. Basins left unfilled keep their land tiles as wetland.

    Args:
        elevation: Elevation field.
        land_mask: Boolean mask where True = land.
        river_count: Maximum number of rivers.
        lake_count: Maximum number of lakes.
        seed: World seed.
        rainfall: Rainfall field used to judge arid basins.
        tuning: Trace and classification parameters.

    Returns:
        HydrologyResult with rivers, lakes and river/lake/wetland masks.
    """
    tuning = tuning or HydrologyTuning()
    shape = elevation.shape
    height, width = shape
    max_steps = tuning.max_steps or height * width

    outlets = find_outlets(land_mask)
    filled = priority_flood_fill(elevation, outlets)
    basins, basin_ids = find_basins(elevation, filled)
    logger.info("basins_found", count=len(basins))

    lake_mask = np.zeros(shape, dtype=bool)
    lake_ids = np.full(shape, -1, dtype=np.int64)
    river_owner = np.full(shape, NO_RIVER, dtype=np.int64)
    river_pos = np.zeros(shape, dtype=np.int64)
    traces: list[_Trace] = []

    # The largest basins become lakes before any river is traced
    lake_basins = rank_lake_basins(basins, lake_count)
    lake_inflow: list[list[int]] = [[] for _ in lake_basins]
    for lake_index, basin in enumerate(lake_basins):
        lake_mask.ravel()[basin.tiles] = True
        lake_ids.ravel()[basin.tiles] = lake_index

    if river_count > 0:
        sources = select_river_sources(
            elevation, land_mask, basin_ids, source_spacing(shape, tuning)
        )
        rotation = tie_rotation(shape, seed)
    else:
        sources = []

    for source in sources:
        if len(traces) >= river_count:
            break
        if river_owner[source] != NO_RIVER or lake_mask[source]:
            continue

        path, terminus = trace_river(
            source, elevation, land_mask, lake_mask, river_owner, rotation, max_steps
        )
        if terminus is None:
            # Promoted basins are lake tiles, so a stuck trace lies outside them
            y, x = path[-1]
            reason = "stuck" if basin_ids[y, x] == NO_BASIN else "basin_not_promoted"
            logger.debug("river_abandoned", source=source, reason=reason)
            continue
        if len(path) < tuning.min_river_tiles:
            logger.debug("river_abandoned", source=source, reason="too_short")
            continue

        river_index = len(traces)
        trace = _Trace(
            path=path,
            terminus=terminus,
            flow=np.arange(1, len(path) + 1, dtype=np.float64),
        )
        y, x = path[-1]
        if terminus is Terminus.LAKE:
            trace.lake = int(lake_ids[y, x])
            lake_inflow[trace.lake].append(river_index)
        elif terminus is Terminus.RIVER:
            trace.parent = int(river_owner[y, x])
            trace.join_index = int(river_pos[y, x])
        traces.append(trace)

        own_tiles = path[:-1] if terminus is Terminus.RIVER else path
        for i, (py, px) in enumerate(own_tiles):
            river_owner[py, px] = river_index
            river_pos[py, px] = i

        if trace.parent is not None:
            traces[trace.parent].tributaries.append(river_index)
            _add_flow(traces, trace.parent, trace.join_index, float(len(path) - 1))

    wetland_mask = (basin_ids != NO_BASIN) & land_mask & ~lake_mask
    river_mask = (river_owner != NO_RIVER) & land_mask & ~lake_mask

    rivers = _freeze_rivers(traces, seed, tuning)
    lakes = _freeze_lakes(
        lake_basins, lake_inflow, elevation, land_mask, rainfall, seed, tuning
    )

    logger.info(
        "hydrology_simulated",
        rivers=len(rivers),
        tributaries=sum(1 for r in rivers if r.parent is not None),
        lakes=len(lakes),
        wetland_tiles=int(wetland_mask.sum()),
    )
    if len(rivers) < river_count:
        logger.debug("fewer_rivers_than_requested", requested=river_count, traced=len(rivers))

    return HydrologyResult(
        rivers=rivers,
        lakes=lakes,
        river_mask=river_mask,
        lake_mask=lake_mask,
        wetland_mask=wetland_mask,
    )


def _freeze_rivers(
    traces: list[_Trace],
    seed: int,
    tuning: HydrologyTuning,
) -> tuple[River, ...]:
    paths = [np.array(t.path, dtype=np.int64) for t in traces]

    # Children always come after their parent, so a reverse pass sees every
    # descendant before its ancestor.
    bboxes = [_bbox(p) for p in paths]
    for i in range(len(traces) - 1, -1, -1):
        parent = traces[i].parent
        if parent is not None:
            a, b = bboxes[parent], bboxes[i]
            bboxes[parent] = (min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3]))

    rivers = []
    for i, trace in enumerate(traces):
        length = float(len(trace.path) - 1)
        flow_rate = float(trace.flow[-1])
        rivers.append(
            River(
                index=i,
                name=feature_name(seed, "river", i),
                path=paths[i],
                length=length,
                flow_rate=flow_rate,
                flow_profile=trace.flow,
                terminus=trace.terminus,
                tributaries=tuple(trace.tributaries),
                parent=trace.parent,
                join_index=trace.join_index,
                lake=trace.lake,
                navigable=length >= tuning.navigable_length and flow_rate >= tuning.navigable_flow,
                basin_bbox=bboxes[i],
            )
        )
    return tuple(rivers)


def _freeze_lakes(
    basins: list[Basin],
    inflow: list[list[int]],
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    rainfall: NDArray[np.float64] | None,
    seed: int,
    tuning: HydrologyTuning,
) -> tuple[Lake, ...]:
    width = elevation.shape[1]
    flat_elev = elevation.ravel()
    flat_land = land_mask.ravel()
    lakes = []
    for i, basin in enumerate(basins):
        tiles = basin.tiles
        depths = basin.spill_elevation - flat_elev[tiles]
        below_sea = not bool(flat_land[tiles].all())
        arid = rainfall is not None and float(rainfall.ravel()[tiles].mean()) < tuning.arid_rainfall
        water_type = WaterType.SALT if (below_sea or arid) and not inflow[i] else WaterType.FRESH

        mask = np.zeros(elevation.size, dtype=bool)
        mask[tiles] = True
        rows, cols = np.divmod(tiles, width)
        lakes.append(
            Lake(
                index=i,
                name=feature_name(seed, "lake", i),
                tiles=tiles,
                spill_elevation=basin.spill_elevation,
                volume=float(depths.sum()),
                water_type=water_type,
                inflow=tuple(inflow[i]),
                outflow=_spill_point(mask.reshape(elevation.shape), elevation),
                area=int(tiles.size),
                max_depth=float(depths.max()),
                centroid=(float(rows.mean()), float(cols.mean())),
            )
        )
    return tuple(lakes)
