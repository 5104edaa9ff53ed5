"""World state: the tile grid, array-backed feature records and WorldData.

Everything here is immutable once built. Arrays are copied on construction
and marked read-only, records are frozen and collections are tuples.
"""

import dataclasses
import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel

from .biome_types import Biome
from .config import WorldConfig
from .types import (
    Cave,
    Civilization,
    HistoricalEvent,
    IslandType,
    RegionKind,
    ResourceDeposit,
    ResourceKind,
    RoadKind,
    Settlement,
    Terminus,
    Tile,
    WaterType,
)

NO_REGION = -1


def readonly(array: Any, dtype: Any = None) -> NDArray[Any]:
    """Copy into a fresh array and lock it against writes."""
    result = np.array(array, dtype=dtype)
    result.setflags(write=False)
    return result


def _lock_fields(record: Any, *names: str, dtype: Any = None) -> None:
    for name in names:
        object.__setattr__(record, name, readonly(getattr(record, name), dtype=dtype))


@dataclass(frozen=True, eq=False)
class TileGrid:
    """Struct-of-arrays tile grid addressed by (row, col)."""

    elevation: NDArray[np.float64]
    temperature: NDArray[np.float64]
    rainfall: NDArray[np.float64]
    vegetation: NDArray[np.float64]
    biome: NDArray[np.uint8]
    land: NDArray[np.bool_]
    lake: NDArray[np.bool_]
    river: NDArray[np.bool_]
    wetland: NDArray[np.bool_]
    region: NDArray[np.int32]

    def __post_init__(self) -> None:
        _lock_fields(self, "elevation", "temperature", "rainfall", "vegetation", dtype=np.float64)
        _lock_fields(self, "biome", dtype=np.uint8)
        _lock_fields(self, "land", "lake", "river", "wetland", dtype=np.bool_)
        _lock_fields(self, "region", dtype=np.int32)
        shape = self.elevation.shape
        for f in dataclasses.fields(self):
            if getattr(self, f.name).shape != shape:
                raise ValueError(f"TileGrid.{f.name} has shape {getattr(self, f.name).shape}, expected {shape}")

    @property
    def shape(self) -> tuple[int, int]:
        return self.elevation.shape  # type: ignore[return-value]

    @property
    def height(self) -> int:
        return self.elevation.shape[0]

    @property
    def width(self) -> int:
        return self.elevation.shape[1]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def tile_at(self, row: int, col: int) -> Tile:
        """Read-only view of one cell.

        Raises:
            IndexError: If (row, col) is outside the grid.
        """
        if not self.in_bounds(row, col):
            raise IndexError(f"Tile ({row}, {col}) outside {self.height}x{self.width} grid")
        region = int(self.region[row, col])
        return Tile(
            row=row,
            col=col,
            elevation=float(self.elevation[row, col]),
            temperature=float(self.temperature[row, col]),
            rainfall=float(self.rainfall[row, col]),
            biome=Biome.from_code(self.biome[row, col]),
            vegetation=float(self.vegetation[row, col]),
            land=bool(self.land[row, col]),
            lake=bool(self.lake[row, col]),
            river=bool(self.river[row, col]),
            wetland=bool(self.wetland[row, col]),
            region=None if region == NO_REGION else region,
        )


@dataclass(frozen=True, eq=False)
class Region:
    """A continent or island: one 4-connected set of land tiles."""

    index: int
    region_id: int
    kind: RegionKind
    name: str
    tiles: NDArray[np.intp]
    area: int
    min_elevation: float
    max_elevation: float
    mean_elevation: float
    bbox: tuple[int, int, int, int]
    centroid: tuple[float, float]
    island_type: IslandType | None = None
    biomes: frozenset[Biome] = frozenset()

    def __post_init__(self) -> None:
        _lock_fields(self, "tiles", dtype=np.intp)

    @property
    def elevation_range(self) -> tuple[float, float]:
        return self.min_elevation, self.max_elevation


@dataclass(frozen=True, eq=False)
class River:
    """A traced river.

    ``path`` is an (n, 2) array of (row, col) from source to terminus, the
    terminus tile included. ``flow_profile[i]`` is the flow through
    ``path[i]``, tributary inflow included. A river joining another has
    ``parent`` set to that river's index and ``join_index`` to the position
    of the join tile in the parent's path.
    """

    index: int
    name: str
    path: NDArray[np.int64]
    length: float
    flow_rate: float
    flow_profile: NDArray[np.float64]
    terminus: Terminus
    tributaries: tuple[int, ...] = ()
    parent: int | None = None
    join_index: int | None = None
    lake: int | None = None
    navigable: bool = False
    basin_bbox: tuple[int, int, int, int] = (0, 0, 0, 0)

    def __post_init__(self) -> None:
        _lock_fields(self, "path", dtype=np.int64)
        _lock_fields(self, "flow_profile", dtype=np.float64)

    @property
    def source(self) -> tuple[int, int]:
        return int(self.path[0, 0]), int(self.path[0, 1])

    @property
    def mouth(self) -> tuple[int, int]:
        return int(self.path[-1, 0]), int(self.path[-1, 1])


@dataclass(frozen=True, eq=False)
class Lake:
    """A filled closed basin.

    ``tiles`` are flat grid indices. Every tile sits below
    ``spill_elevation`` and ``volume`` is the sum of those depths.
    """

    index: int
    name: str
    tiles: NDArray[np.intp]
    spill_elevation: float
    volume: float
    water_type: WaterType
    inflow: tuple[int, ...] = ()
    outflow: tuple[int, int] | None = None
    area: int = 0
    max_depth: float = 0.0
    centroid: tuple[float, float] = (0.0, 0.0)

    def __post_init__(self) -> None:
        _lock_fields(self, "tiles", dtype=np.intp)


@dataclass(frozen=True, eq=False)
class Road:
    """A least-cost path between two settlements of one civilization."""

    index: int
    name: str
    start: int
    end: int
    civilization: int
    path: NDArray[np.int64]
    cost: float
    kind: RoadKind

    def __post_init__(self) -> None:
        _lock_fields(self, "path", dtype=np.int64)


@dataclass(frozen=True, eq=False)
class ResourceLayer:
    """Resource deposits as parallel arrays, sorted by tile then kind.

    ``tile`` holds flat grid indices and ``kind`` ResourceKind codes. A tile
    holds at most one deposit of each kind.
    """

    width: int = 1
    tile: NDArray[np.intp] = dataclasses.field(default_factory=lambda: np.zeros(0, dtype=np.intp))
    kind: NDArray[np.uint8] = dataclasses.field(default_factory=lambda: np.zeros(0, dtype=np.uint8))
    amount: NDArray[np.float64] = dataclasses.field(default_factory=lambda: np.zeros(0))
    capacity: NDArray[np.float64] = dataclasses.field(default_factory=lambda: np.zeros(0))
    regeneration: NDArray[np.float64] = dataclasses.field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        _lock_fields(self, "tile", dtype=np.intp)
        _lock_fields(self, "kind", dtype=np.uint8)
        _lock_fields(self, "amount", "capacity", "regeneration", dtype=np.float64)

    def __len__(self) -> int:
        return int(self.tile.size)

    def deposit(self, i: int) -> ResourceDeposit:
        row, col = divmod(int(self.tile[i]), self.width)
        return ResourceDeposit(
            position=(row, col),
            kind=ResourceKind.from_code(self.kind[i]),
            amount=float(self.amount[i]),
            capacity=float(self.capacity[i]),
            regeneration=float(self.regeneration[i]),
        )

    def at(self, row: int, col: int) -> tuple[ResourceDeposit, ...]:
        """Deposits on one tile, in kind order."""
        flat = row * self.width + col
        lo, hi = np.searchsorted(self.tile, [flat, flat + 1])
        return tuple(self.deposit(i) for i in range(int(lo), int(hi)))

    def totals(self) -> dict[str, float]:
        """Summed amount per resource kind, every kind listed."""
        sums = np.bincount(self.kind, weights=self.amount, minlength=len(ResourceKind))
        return {kind.value: float(sums[kind.code]) for kind in ResourceKind}


def _feed(h: "hashlib._Hash", value: Any) -> None:
    """Feed a value into a hash in a type-tagged, order-stable form."""
    if isinstance(value, np.ndarray):
        h.update(f"nd:{value.dtype.str}:{value.shape}".encode())
        h.update(np.ascontiguousarray(value).tobytes())
    elif isinstance(value, BaseModel):
        h.update(type(value).__name__.encode())
        h.update(value.model_dump_json().encode())
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        h.update(type(value).__name__.encode())
        for f in dataclasses.fields(value):
            h.update(f.name.encode())
            _feed(h, getattr(value, f.name))
    elif isinstance(value, (tuple, list)):
        h.update(f"seq:{len(value)}".encode())
        for item in value:
            _feed(h, item)
    elif isinstance(value, frozenset):
        _feed(h, tuple(sorted(value)))
    elif isinstance(value, Enum):
        h.update(f"enum:{value.value}".encode())
    elif isinstance(value, float):
        h.update(f"f:{value!r}".encode())
    else:
        h.update(f"{type(value).__name__}:{value!r}".encode())


@dataclass(frozen=True, eq=False)
class WorldData:
    """Complete generated world. Immutable once built."""

    config: WorldConfig
    grid: TileGrid
    sea_level: float
    continents: tuple[Region, ...] = ()
    islands: tuple[Region, ...] = ()
    rivers: tuple[River, ...] = ()
    lakes: tuple[Lake, ...] = ()
    civilizations: tuple[Civilization, ...] = ()
    settlements: tuple[Settlement, ...] = ()
    roads: tuple[Road, ...] = ()
    caves: tuple[Cave, ...] = ()
    resources: ResourceLayer = dataclasses.field(default_factory=ResourceLayer)
    history: tuple[HistoricalEvent, ...] = ()

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height

    @property
    def regions(self) -> tuple[Region, ...]:
        """Continents followed by islands."""
        return self.continents + self.islands

    def tile_at(self, row: int, col: int) -> Tile:
        return self.grid.tile_at(row, col)

    def digest(self) -> str:
        """Hex BLAKE2b digest of every array and record in the world.

        Two worlds built from the same configuration on the same version
        have equal digests.
        """
        h = hashlib.blake2b(digest_size=32)
        for f in dataclasses.fields(self):
            h.update(f.name.encode())
            _feed(h, getattr(self, f.name))
        return h.hexdigest()

    def statistics(self) -> dict[str, Any]:
        """Coverage, climate means, biome histogram and feature counts."""
        grid = self.grid
        total = grid.elevation.size
        land = int(grid.land.sum())
        codes, counts = np.unique(grid.biome, return_counts=True)
        return {
            "width": self.width,
            "height": self.height,
            "seed": self.config.seed,
            "sea_level": self.sea_level,
            "land_fraction": land / total,
            "water_fraction": (total - land) / total,
            "lake_tiles": int(grid.lake.sum()),
            "river_tiles": int(grid.river.sum()),
            "wetland_tiles": int(grid.wetland.sum()),
            "mean_elevation": float(grid.elevation.mean()),
            "mean_temperature": float(grid.temperature.mean()),
            "mean_rainfall": float(grid.rainfall.mean()),
            "mean_vegetation": float(grid.vegetation.mean()),
            "biomes": {
                Biome.from_code(code).value: int(count)
                for code, count in zip(codes, counts)
            },
            "continents": len(self.continents),
            "islands": len(self.islands),
            "rivers": len(self.rivers),
            "lakes": len(self.lakes),
            "civilizations": len(self.civilizations),
            "settlements": len(self.settlements),
            "roads": len(self.roads),
            "caves": len(self.caves),
            "resource_deposits": len(self.resources),
            "historical_events": len(self.history),
        }

    def summary(self) -> dict[str, Any]:
        """JSON-ready description of every feature (grid arrays excluded)."""
        return {
            "statistics": self.statistics(),
            "continents": [_region_summary(r) for r in self.continents],
            "islands": [_region_summary(r) for r in self.islands],
            "rivers": [
                {
                    "name": r.name,
                    "source": list(r.source),
                    "mouth": list(r.mouth),
                    "length": r.length,
                    "flow_rate": r.flow_rate,
                    "terminus": r.terminus.value,
                    "parent": r.parent,
                    "tributaries": list(r.tributaries),
                    "navigable": r.navigable,
                }
                for r in self.rivers
            ],
            "lakes": [
                {
                    "name": lake.name,
                    "area": lake.area,
                    "volume": lake.volume,
                    "spill_elevation": lake.spill_elevation,
                    "water_type": lake.water_type.value,
                    "inflow": list(lake.inflow),
                }
                for lake in self.lakes
            ],
            "civilizations": [c.model_dump(mode="json") for c in self.civilizations],
            "settlements": [s.model_dump(mode="json") for s in self.settlements],
            "roads": [
                {
                    "name": road.name,
                    "start": road.start,
                    "end": road.end,
                    "kind": road.kind.value,
                    "cost": road.cost,
                    "length": len(road.path),
                }
                for road in self.roads
            ],
            "caves": [c.model_dump(mode="json") for c in self.caves],
            "resources": self.resources.totals(),
            "history": [e.model_dump(mode="json") for e in self.history],
        }


def _region_summary(region: Region) -> dict[str, Any]:
    return {
        "name": region.name,
        "area": region.area,
        "elevation_range": list(region.elevation_range),
        "mean_elevation": region.mean_elevation,
        "centroid": list(region.centroid),
        "island_type": region.island_type.value if region.island_type else None,
        "biomes": sorted(b.value for b in region.biomes),
    }
