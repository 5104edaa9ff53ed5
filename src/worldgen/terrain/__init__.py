"""Terrain stages: heightmap, climate, landmasses, hydrology, biomes, caves and resources."""

from .biomes import classify_biomes, overlay_lakes
from .caves import place_caves
from .climate import derive_climate
from .heightmap import generate_heightmap, raise_mountain_ranges
from .hydrology import HydrologyResult, simulate_hydrology
from .landmass import attach_biomes, classify_landmasses, submerge_dropped
from .resources import place_resources, vegetation_density

__all__ = [
    "HydrologyResult",
    "attach_biomes",
    "classify_biomes",
    "classify_landmasses",
    "overlay_lakes",
    "derive_climate",
    "generate_heightmap",
    "place_caves",
    "place_resources",
    "raise_mountain_ranges",
    "simulate_hydrology",
    "submerge_dropped",
    "vegetation_density",
]
