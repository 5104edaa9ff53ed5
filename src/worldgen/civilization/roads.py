"""Roads: least-cost paths linking the settlements of each civilization."""

import math

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import dijkstra

from ..config import SettlementTuning
from ..names import feature_name
from ..seeding import unit
from ..state import Road, TileGrid
from ..types import Civilization, RoadKind, Settlement, SettlementTier

logger = structlog.get_logger()

# 8-neighbourhood offsets and their step lengths
_OFFSETS = tuple(
    (dy, dx, math.hypot(dy, dx))
    for dy in (-1, 0, 1)
    for dx in (-1, 0, 1)
    if (dy, dx) != (0, 0)
)


def _window_graph(
    grid: TileGrid,
    window: tuple[slice, slice],
    tuning: SettlementTuning,
) -> csr_matrix:
    """Directed graph over the passable tiles of a window.

    Edge weight = step length + slope cost * |elevation change| plus the
    river crossing cost when the target is a river tile.
    """
    elevation = grid.elevation[window]
    river = grid.river[window]
    passable = grid.land[window] & ~grid.lake[window]
    h, w = elevation.shape
    index = np.arange(h * w).reshape(h, w)

    sources, targets, weights = [], [], []
    for dy, dx, step in _OFFSETS:
        src = (slice(max(0, -dy), h - max(0, dy)), slice(max(0, -dx), w - max(0, dx)))
        dst = (slice(max(0, dy), h - max(0, -dy)), slice(max(0, dx), w - max(0, -dx)))
        ok = passable[src] & passable[dst]
        cost = (
            step
            + tuning.slope_cost * np.abs(elevation[dst] - elevation[src])
            + tuning.river_crossing_cost * river[dst]
        )
        sources.append(index[src][ok])
        targets.append(index[dst][ok])
        weights.append(cost[ok])

    return csr_matrix(
        (np.concatenate(weights), (np.concatenate(sources), np.concatenate(targets))),
        shape=(h * w, h * w),
    )


def least_cost_path(
    grid: TileGrid,
    start: tuple[int, int],
    end: tuple[int, int],
    tuning: SettlementTuning | None = None,
) -> tuple[NDArray[np.int64], float] | None:
    """Cheapest 8-connected path from ``start`` to ``end`` over land.

    The search first runs in the endpoints' bounding box widened by the
    search margin and falls back to the whole grid. Sea and lake tiles are
    impassable.

    Returns:
        Tuple of ((n, 2) path of (row, col) including both ends, total
        cost), or None if the endpoints are not connected over land.
    """
    tuning = tuning or SettlementTuning()
    margin = tuning.road_search_margin
    full = (slice(0, grid.height), slice(0, grid.width))
    low = (min(start[0], end[0]) - margin, min(start[1], end[1]) - margin)
    high = (max(start[0], end[0]) + margin + 1, max(start[1], end[1]) + margin + 1)
    local = (
        slice(max(0, low[0]), min(grid.height, high[0])),
        slice(max(0, low[1]), min(grid.width, high[1])),
    )
    windows = [local] if local == full else [local, full]

    for window in windows:
        top, left = window[0].start, window[1].start
        w = window[1].stop - left
        graph = _window_graph(grid, window, tuning)
        s = (start[0] - top) * w + (start[1] - left)
        e = (end[0] - top) * w + (end[1] - left)
        dist, pred = dijkstra(graph, directed=True, indices=s, return_predecessors=True)
        if not np.isfinite(dist[e]):
            continue

        nodes = [e]
        while nodes[-1] != s:
            nodes.append(int(pred[nodes[-1]]))
        nodes.reverse()
        rows, cols = np.divmod(np.array(nodes, dtype=np.int64), w)
        return np.stack((rows + top, cols + left), axis=1), float(dist[e])

    return None


def road_kind(a: SettlementTier, b: SettlementTier) -> RoadKind:
    """Paved between cities, stone when a town or larger is involved."""
    if min(a.rank, b.rank) >= SettlementTier.CITY.rank:
        return RoadKind.PAVED
    if max(a.rank, b.rank) >= SettlementTier.TOWN.rank:
        return RoadKind.STONE
    return RoadKind.DIRT


def build_roads(
    grid: TileGrid,
    civilizations: tuple[Civilization, ...],
    settlements: tuple[Settlement, ...],
    road_density: float,
    seed: int,
    tuning: SettlementTuning | None = None,
) -> tuple[Road, ...]:
    """Connect each civilization's settlements outward from its capital.

    Settlements are visited in order of distance from the capital. Each
    one links to the nearest settlement already connected, but only when
    ``hash(seed, "road", a, b) < road_density`` and a land path exists;
    otherwise it stays unconnected.
    """
    tuning = tuning or SettlementTuning()
    roads: list[Road] = []

    for civ in civilizations:
        capital = settlements[civ.capital_settlement]
        cy, cx = capital.position
        members = sorted(
            (settlements[i] for i in civ.settlements if i != capital.index),
            key=lambda s: ((s.position[0] - cy) ** 2 + (s.position[1] - cx) ** 2, s.index),
        )
        connected = [capital]

        for settlement in members:
            sy, sx = settlement.position
            nearest = min(
                connected,
                key=lambda c: ((c.position[0] - sy) ** 2 + (c.position[1] - sx) ** 2, c.index),
            )
            a, b = sorted((nearest.index, settlement.index))
            if unit(seed, "road", a, b) >= road_density:
                continue
            found = least_cost_path(grid, nearest.position, settlement.position, tuning)
            if found is None:
                logger.debug("road_unreachable", start=nearest.index, end=settlement.index)
                continue

            path, cost = found
            index = len(roads)
            roads.append(
                Road(
                    index=index,
                    name=feature_name(seed, "road", index),
                    start=nearest.index,
                    end=settlement.index,
                    civilization=civ.index,
                    path=path,
                    cost=cost,
                    kind=road_kind(nearest.tier, settlement.tier),
                )
            )
            connected.append(settlement)

    logger.info("roads_built", count=len(roads))
    return tuple(roads)
