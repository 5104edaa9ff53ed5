"""Biome types and their properties."""

from enum import Enum

import numpy as np


class Biome(str, Enum):
    """Biomes with grid codes and habitability properties."""

    OCEAN = "ocean"
    DESERT = "desert"
    SAVANNA = "savanna"
    GRASSLAND = "grassland"
    TEMPERATE_FOREST = "temperate_forest"
    TROPICAL_RAINFOREST = "tropical_rainforest"
    TEMPERATE_RAINFOREST = "temperate_rainforest"
    SWAMP = "swamp"
    TAIGA = "taiga"
    TUNDRA = "tundra"
    ALPINE = "alpine"
    SNOW = "snow"
    VOLCANO = "volcano"
    LAKE = "lake"

    @property
    def code(self) -> int:
        """uint8 code stored in the biome grid."""
        return _CODES[self]

    @property
    def extreme(self) -> bool:
        """Whether this biome penalizes settlement."""
        return self in _EXTREME_TYPES

    @property
    def forested(self) -> bool:
        return self in _FORESTED_TYPES

    @classmethod
    def from_code(cls, code: int) -> "Biome":
        """Look up a biome from its grid code."""
        return _BY_CODE[int(code)]


_BY_CODE = tuple(Biome)
_CODES = {biome: i for i, biome in enumerate(_BY_CODE)}

BIOME_DTYPE = np.uint8

# Define sets for O(1) lookup
_EXTREME_TYPES = frozenset({
    Biome.DESERT,
    Biome.TUNDRA,
    Biome.SNOW,
    Biome.VOLCANO,
})

_FORESTED_TYPES = frozenset({
    Biome.TEMPERATE_FOREST,
    Biome.TROPICAL_RAINFOREST,
    Biome.TEMPERATE_RAINFOREST,
    Biome.TAIGA,
})

EXTREME_CODES = np.array(sorted(b.code for b in _EXTREME_TYPES), dtype=BIOME_DTYPE)
