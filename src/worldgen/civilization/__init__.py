"""Civilizations, settlements, roads and history."""

from .habitability import compute_habitability
from .history import generate_history
from .roads import build_roads, least_cost_path
from .settlements import place_settlements

__all__ = [
    "build_roads",
    "compute_habitability",
    "generate_history",
    "least_cost_path",
    "place_settlements",
]
