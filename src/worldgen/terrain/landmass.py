"""Landmass classification: land mask, continents and islands."""

import dataclasses
import math

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy import ndimage

from ..biome_types import Biome
from ..config import LandmassTuning
from ..names import feature_name, island_name
from ..state import NO_REGION, Region
from ..types import IslandType, RegionKind

logger = structlog.get_logger()


def create_land_mask(
    elevation: NDArray[np.float64],
    sea_level: float,
) -> NDArray[np.bool_]:
    """Land iff elevation >= sea_level."""
    return elevation >= sea_level


def label_regions(land_mask: NDArray[np.bool_]) -> tuple[NDArray[np.int32], int]:
    """Label 4-connected land components (0 = sea, labels start at 1)."""
    structure = ndimage.generate_binary_structure(2, 1)
    labeled, num_features = ndimage.label(land_mask, structure=structure)
    return labeled.astype(np.int32), int(num_features)


def continent_threshold(
    shape: tuple[int, int],
    continent_count: int,
    tuning: LandmassTuning,
) -> float:
    """Minimum area a region needs to count as a continent."""
    area = shape[0] * shape[1]
    share = area * tuning.continent_area_fraction / max(continent_count, 1)
    return max(float(tuning.min_continent_tiles), share)


def island_type_for(mean_elevation: float, sea_level: float) -> IslandType:
    """Island character from its mean height above sea level."""
    above = (mean_elevation - sea_level) / max(1.0 - sea_level, 1e-9)
    if above > 0.5:
        return IslandType.MOUNTAINOUS
    if above > 0.25:
        return IslandType.VOLCANIC
    if above < 0.08:
        return IslandType.CORAL
    return IslandType.CONTINENTAL


def _build_region(
    index: int,
    region_id: int,
    kind: RegionKind,
    tiles: NDArray[np.intp],
    elevation: NDArray[np.float64],
    sea_level: float,
    seed: int,
) -> Region:
    width = elevation.shape[1]
    values = elevation.ravel()[tiles]
    rows, cols = np.divmod(tiles, width)
    mean_elevation = float(values.mean())

    if kind is RegionKind.CONTINENT:
        island_type = None
        name = feature_name(seed, "continent", index)
    else:
        island_type = island_type_for(mean_elevation, sea_level)
        name = island_name(seed, island_type.value, index)

    return Region(
        index=index,
        region_id=region_id,
        kind=kind,
        name=name,
        tiles=tiles,
        area=int(tiles.size),
        min_elevation=float(values.min()),
        max_elevation=float(values.max()),
        mean_elevation=mean_elevation,
        bbox=(int(rows.min()), int(cols.min()), int(rows.max()), int(cols.max())),
        centroid=(float(rows.mean()), float(cols.mean())),
        island_type=island_type,
    )


def classify_landmasses(
    elevation: NDArray[np.float64],
    sea_level: float,
    continent_count: int = 3,
    island_density: float = 0.4,
    seed: int = 0,
    tuning: LandmassTuning | None = None,
) -> tuple[NDArray[np.bool_], tuple[Region, ...], tuple[Region, ...]]:
    """Split land into continents and islands.

    At most ``continent_count`` of the largest regions at or above the
    continent threshold become continents; every other region is an island.
    Islands below the threshold are ranked by area and only the largest
    ``ceil(island_density * n)`` are kept. Dropped islets are removed from
    the returned land mask.

    Args:
        elevation: Elevation field in [0, 1].
        sea_level: Land/sea threshold.
        continent_count: Maximum number of continents.
        island_density: Fraction of small regions kept as islands.
        seed: World seed (names only).
        tuning: Continent threshold parameters.

    Returns:
        Tuple of (land_mask, continents, islands). The union of all region
        tiles equals the land mask and regions are pairwise disjoint.
    """
    tuning = tuning or LandmassTuning()
    raw_land = create_land_mask(elevation, sea_level)
    labeled, num_features = label_regions(raw_land)
    if num_features == 0:
        logger.debug("no_land", sea_level=sea_level)
        return raw_land, (), ()

    flat_labels = labeled.ravel()
    areas = np.bincount(flat_labels, minlength=num_features + 1)
    by_label = np.argsort(flat_labels, kind="stable")
    starts = np.concatenate(([0], np.cumsum(areas)))

    def tiles_of(label: int) -> NDArray[np.intp]:
        return by_label[starts[label]:starts[label + 1]]

    threshold = continent_threshold(elevation.shape, continent_count, tuning)
    # Largest first; ties resolved by label, i.e. row-major first tile.
    ranked = sorted(range(1, num_features + 1), key=lambda lab: (-int(areas[lab]), lab))
    continent_labels = [lab for lab in ranked if areas[lab] >= threshold][:continent_count]
    chosen = set(continent_labels)
    large = [lab for lab in ranked if lab not in chosen and areas[lab] >= threshold]
    small = [lab for lab in ranked if areas[lab] < threshold]
    keep = math.ceil(island_density * len(small))
    island_labels = large + small[:keep]
    dropped = small[keep:]

    land_mask = raw_land
    if dropped:
        land_mask = raw_land & ~np.isin(labeled, dropped)

    continents = tuple(
        _build_region(i, i, RegionKind.CONTINENT, tiles_of(lab), elevation, sea_level, seed)
        for i, lab in enumerate(continent_labels)
    )
    offset = len(continents)
    islands = tuple(
        _build_region(i, offset + i, RegionKind.ISLAND, tiles_of(lab), elevation, sea_level, seed)
        for i, lab in enumerate(island_labels)
    )

    logger.info(
        "landmasses_classified",
        continents=len(continents),
        islands=len(islands),
        dropped_islets=len(dropped),
        threshold=round(threshold, 1),
    )
    return land_mask, continents, islands


def submerge_dropped(
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    sea_level: float,
) -> NDArray[np.float64]:
    """Lower dropped islets to just below sea level.

    Tiles at or above ``sea_level`` that are not in ``land_mask`` are set to
    the largest float below ``sea_level``, so thresholding the result again
    reproduces ``land_mask`` exactly.
    """
    result = elevation.copy()
    sunk = (elevation >= sea_level) & ~land_mask
    result[sunk] = np.nextafter(sea_level, -np.inf)
    return result


def region_grid(shape: tuple[int, int], regions: tuple[Region, ...]) -> NDArray[np.int32]:
    """Grid of region ids, NO_REGION where there is no region."""
    grid = np.full(shape[0] * shape[1], NO_REGION, dtype=np.int32)
    for region in regions:
        grid[region.tiles] = region.region_id
    return grid.reshape(shape)


def attach_biomes(
    regions: tuple[Region, ...],
    biome_grid: NDArray[np.uint8],
) -> tuple[Region, ...]:
    """Return copies of ``regions`` with the set of biomes they contain."""
    flat = biome_grid.ravel()
    return tuple(
        dataclasses.replace(
            region,
            biomes=frozenset(Biome.from_code(c) for c in np.unique(flat[region.tiles])),
        )
        for region in regions
    )
