"""Heightmap generation: diamond-square plus mountain ridges.

Every displacement is a hash of (seed, depth, row, col), so a grid is
bit-for-bit reproducible and each level is computed as one vectorized pass.
"""

import math

import numpy as np
import structlog
from numpy.typing import NDArray

from ..config import HeightmapTuning
from ..seeding import hash_unit, unit
from .noise import smoothstep

logger = structlog.get_logger()

# Corner seeds stay away from the extremes so the first levels have room to move.
CORNER_LOW = 0.2
CORNER_HIGH = 0.8


def padded_size(width: int, height: int) -> int:
    """Smallest 2**k + 1 that covers both dimensions."""
    n = 2
    while n + 1 < max(width, height):
        n *= 2
    return n + 1


def normalize(field: NDArray[np.float64]) -> NDArray[np.float64]:
    """Min-max rescale to [0, 1]; a flat field maps to all zeros."""
    lo = float(field.min())
    hi = float(field.max())
    if hi - lo <= 0.0:
        return np.zeros_like(field)
    return (field - lo) / (hi - lo)


def _square_average(
    grid: NDArray[np.float64],
    ys: NDArray[np.int64],
    xs: NDArray[np.int64],
    half: int,
) -> NDArray[np.float64]:
    """Mean of the in-bounds N/E/S/W neighbours at distance ``half``."""
    n = grid.shape[0]
    total = np.zeros(ys.shape, dtype=np.float64)
    count = np.zeros(ys.shape, dtype=np.float64)
    for dy, dx in ((-half, 0), (0, half), (half, 0), (0, -half)):
        ny = ys + dy
        nx = xs + dx
        valid = (ny >= 0) & (ny < n) & (nx >= 0) & (nx < n)
        values = grid[np.clip(ny, 0, n - 1), np.clip(nx, 0, n - 1)]
        total += np.where(valid, values, 0.0)
        count += valid
    return total / count


def _displace(
    grid: NDArray[np.float64],
    ys: NDArray[np.int64],
    xs: NDArray[np.int64],
    base: NDArray[np.float64],
    seed: int,
    depth: int,
    roughness: float,
) -> None:
    offset = (hash_unit(seed, "heightmap", depth, ys, xs) - 0.5) * roughness
    grid[ys, xs] = base + offset


def generate_heightmap(
    width: int,
    height: int,
    seed: int,
    scale: float,
) -> NDArray[np.float64]:
    """Generate an elevation field with the diamond-square algorithm.

    The field is computed on a (2**k + 1)-square grid, cropped to
    ``(height, width)`` and rescaled to [0, 1].

    Args:
        width: Grid width in tiles.
        height: Grid height in tiles.
        seed: World seed.
        scale: Initial displacement amplitude; halves at every level.

    Returns:
        Elevation array of shape (height, width) in [0, 1]. A grid with a
        side of 1 or less is flat at 0.
    """
    if width <= 1 or height <= 1:
        logger.debug("heightmap_degenerate", width=width, height=height)
        return np.zeros((height, width), dtype=np.float64)

    n = padded_size(width, height)
    grid = np.zeros((n, n), dtype=np.float64)

    corner_ys = np.array([0, 0, n - 1, n - 1])
    corner_xs = np.array([0, n - 1, 0, n - 1])
    corners = hash_unit(seed, "heightmap-corner", np.arange(4))
    grid[corner_ys, corner_xs] = CORNER_LOW + (CORNER_HIGH - CORNER_LOW) * corners

    step = n - 1
    roughness = scale
    depth = 0
    while step > 1:
        half = step // 2

        # Diamond step: centres of each square
        ys, xs = np.meshgrid(
            np.arange(half, n, step), np.arange(half, n, step), indexing="ij"
        )
        base = (
            grid[ys - half, xs - half]
            + grid[ys - half, xs + half]
            + grid[ys + half, xs - half]
            + grid[ys + half, xs + half]
        ) / 4.0
        _displace(grid, ys, xs, base, seed, depth, roughness)

        # Square step: edge midpoints, two interleaved lattices
        for row_start, col_start in ((0, half), (half, 0)):
            ys, xs = np.meshgrid(
                np.arange(row_start, n, step),
                np.arange(col_start, n, step),
                indexing="ij",
            )
            base = _square_average(grid, ys, xs, half)
            _displace(grid, ys, xs, base, seed, depth, roughness)

        roughness *= 0.5
        step = half
        depth += 1

    return normalize(grid[:height, :width])


def raise_mountain_ranges(
    elevation: NDArray[np.float64],
    seed: int,
    count: int,
    tuning: HeightmapTuning | None = None,
) -> NDArray[np.float64]:
    """Add ``count`` tapered ridge segments and rescale to [0, 1].

    Each ridge is a line segment with a seed-derived start, bearing, length
    and height. A tile's uplift falls off smoothly with its distance to the
    segment and tapers to zero towards both ends.

    Args:
        elevation: Elevation field in [0, 1].
        seed: World seed.
        count: Number of ridge segments.
        tuning: Ridge shape parameters.

    Returns:
        New elevation field in [0, 1].
    """
    height, width = elevation.shape
    if count <= 0 or width <= 1 or height <= 1:
        return elevation.copy()

    tuning = tuning or HeightmapTuning()
    short_side = min(width, height)
    ridge_width = max(1.0, short_side * tuning.range_width)
    ys, xs = np.meshgrid(
        np.arange(height, dtype=np.float64),
        np.arange(width, dtype=np.float64),
        indexing="ij",
    )
    result = elevation.astype(np.float64, copy=True)

    for i in range(count):
        y0 = unit(seed, "range-start-y", i) * (height - 1)
        x0 = unit(seed, "range-start-x", i) * (width - 1)
        bearing = unit(seed, "range-bearing", i) * 2.0 * math.pi
        span = tuning.range_length_max - tuning.range_length_min
        length = short_side * (tuning.range_length_min + span * unit(seed, "range-length", i))
        peak = tuning.range_height * (0.6 + 0.4 * unit(seed, "range-height", i))
        dy = math.sin(bearing) * length
        dx = math.cos(bearing) * length

        seg_len2 = max(dy * dy + dx * dx, 1e-12)
        t = np.clip(((ys - y0) * dy + (xs - x0) * dx) / seg_len2, 0.0, 1.0)
        dist = np.hypot(ys - (y0 + t * dy), xs - (x0 + t * dx))
        falloff = smoothstep(0.0, 1.0, 1.0 - dist / ridge_width)
        result += peak * falloff * np.sin(np.pi * t)

    logger.debug("mountain_ranges_raised", count=count)
    return normalize(result)
