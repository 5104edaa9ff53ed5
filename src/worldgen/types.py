"""Core enums and immutable records for generated worlds."""

from enum import Enum

from pydantic import BaseModel

from .biome_types import Biome


class RegionKind(str, Enum):
    CONTINENT = "continent"
    ISLAND = "island"


class IslandType(str, Enum):
    """Island character from its mean height above sea level."""

    CORAL = "coral"
    CONTINENTAL = "continental"
    VOLCANIC = "volcanic"
    MOUNTAINOUS = "mountainous"


class Terminus(str, Enum):
    """Where a river ends."""

    SEA = "sea"
    LAKE = "lake"
    RIVER = "river"


class WaterType(str, Enum):
    FRESH = "fresh"
    SALT = "salt"


class CivilizationKind(str, Enum):
    """Civilization kinds, assigned in founding order."""

    DWARVEN = "dwarven"
    HUMAN = "human"
    ELVEN = "elven"
    GOBLIN = "goblin"
    ORCISH = "orcish"


class SettlementTier(str, Enum):
    HAMLET = "hamlet"
    VILLAGE = "village"
    TOWN = "town"
    CITY = "city"
    CAPITAL = "capital"

    @property
    def rank(self) -> int:
        """0 for hamlets up to 4 for capitals."""
        return _TIER_ORDER.index(self)


_TIER_ORDER = (
    SettlementTier.HAMLET,
    SettlementTier.VILLAGE,
    SettlementTier.TOWN,
    SettlementTier.CITY,
    SettlementTier.CAPITAL,
)


class RoadKind(str, Enum):
    DIRT = "dirt"
    STONE = "stone"
    PAVED = "paved"


class ChamberKind(str, Enum):
    CAVERN = "cavern"
    TUNNEL = "tunnel"
    CHAMBER = "chamber"


class ResourceKind(str, Enum):
    """Harvestable resources, in deposit code order."""

    FOOD = "food"
    WATER = "water"
    WOOD = "wood"
    STONE = "stone"
    METAL = "metal"

    @property
    def code(self) -> int:
        return _RESOURCE_ORDER.index(self)

    @classmethod
    def from_code(cls, code: int) -> "ResourceKind":
        return _RESOURCE_ORDER[int(code)]


_RESOURCE_ORDER = tuple(ResourceKind)


class EventKind(str, Enum):
    BATTLE = "battle"
    DISCOVERY = "discovery"
    CONSTRUCTION = "construction"
    DISASTER = "disaster"
    CELEBRATION = "celebration"


class Tile(BaseModel, frozen=True):
    """Read-only view of one grid cell."""

    row: int
    col: int
    elevation: float
    temperature: float
    rainfall: float
    biome: Biome
    vegetation: float
    land: bool
    lake: bool = False
    river: bool = False
    wetland: bool = False
    region: int | None = None

    @property
    def water(self) -> bool:
        """Sea or lake."""
        return not self.land or self.lake


class Civilization(BaseModel, frozen=True):
    """A named group anchored at its founding settlement."""

    index: int
    name: str
    kind: CivilizationKind
    culture: str
    religion: str
    capital: tuple[int, int]
    capital_settlement: int
    territory_radius: float
    founding_score: float
    territory_score: float
    settlements: tuple[int, ...] = ()
    technology: float = 0.0
    wealth: float = 0.0
    military: float = 0.0


class Settlement(BaseModel, frozen=True):
    index: int
    name: str
    position: tuple[int, int]
    tier: SettlementTier
    civilization: int
    score: float
    population: int


class CaveChamber(BaseModel, frozen=True):
    position: tuple[int, int]
    kind: ChamberKind
    size: int


class Cave(BaseModel, frozen=True):
    """A cave system: a surface entrance and its chambers."""

    index: int
    name: str
    entrance: tuple[int, int]
    depth: int
    chambers: tuple[CaveChamber, ...]


class ResourceDeposit(BaseModel, frozen=True):
    """One harvestable deposit on a tile."""

    position: tuple[int, int]
    kind: ResourceKind
    amount: float
    capacity: float
    regeneration: float


class HistoricalEvent(BaseModel, frozen=True):
    """A dated event at one land tile.

    ``participants`` are the civilizations whose territory covers the
    location. ``impact`` is in [0, 1).
    """

    index: int
    kind: EventKind
    year: int
    description: str
    location: tuple[int, int]
    participants: tuple[int, ...] = ()
    impact: float = 0.0
