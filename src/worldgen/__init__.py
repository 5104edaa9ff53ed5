"""Deterministic procedural world generation.

Terrain, climate, landmasses, hydrology, biomes, caves and civilizations,
assembled into one immutable WorldData from a seed and a few parameters.
"""

from .biome_types import Biome
from .config import GenerationTuning, WorldConfig, build_config, load_config
from .exceptions import ConfigurationError, WorldGenError, WorldValidationError
from .generator import generate_world
from .state import Lake, Region, ResourceLayer, River, Road, TileGrid, WorldData
from .types import Cave, Civilization, HistoricalEvent, ResourceDeposit, Settlement, Tile
from .validation import ValidationResult, validate_world

__all__ = [
    "Biome",
    "Cave",
    "Civilization",
    "ConfigurationError",
    "GenerationTuning",
    "HistoricalEvent",
    "Lake",
    "Region",
    "ResourceDeposit",
    "ResourceLayer",
    "River",
    "Road",
    "Settlement",
    "Tile",
    "TileGrid",
    "ValidationResult",
    "WorldConfig",
    "WorldData",
    "WorldGenError",
    "WorldValidationError",
    "build_config",
    "generate_world",
    "load_config",
    "validate_world",
]
