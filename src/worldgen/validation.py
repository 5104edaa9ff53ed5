"""Post-generation consistency checks."""

import numpy as np
import structlog

from .biome_types import Biome
from .exceptions import WorldValidationError
from .state import NO_REGION, WorldData
from .types import Terminus

logger = structlog.get_logger()

# Slack for float sums compared against stored values
VOLUME_TOLERANCE = 1e-9


class ValidationResult:
    """Result of world validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_world(world: WorldData, strict: bool = False) -> ValidationResult:
    """Re-check the invariants a generated world must satisfy.

    Args:
        world: Generated world.
        strict: Raise instead of returning when any check fails.

    Returns:
        ValidationResult with any errors/warnings.

    Raises:
        WorldValidationError: If ``strict`` and at least one check failed.
    """
    result = ValidationResult()

    _check_grid(world, result)
    _check_partition(world, result)
    _check_rivers(world, result)
    _check_lakes(world, result)
    _check_settlements(world, result)
    _check_roads(world, result)
    _check_resources(world, result)
    _check_history(world, result)
    _check_counts(world, result)

    if result.passed:
        logger.info("world_validation_passed", warnings=len(result.warnings))
    else:
        logger.warning("world_validation_failed", errors=len(result.errors))
        for error in result.errors:
            logger.error("validation_error", message=error)

    for warning in result.warnings:
        logger.warning("validation_warning", message=warning)

    if strict and not result.passed:
        raise WorldValidationError(result.errors)
    return result


def _check_grid(world: WorldData, result: ValidationResult) -> None:
    """Shape, value ranges and the land flag."""
    grid = world.grid
    config = world.config
    if grid.shape != (config.height, config.width):
        result.add_error(f"Grid shape {grid.shape} != ({config.height}, {config.width})")
        return

    for name in ("temperature", "rainfall", "vegetation"):
        values = getattr(grid, name)
        if values.min() < 0.0 or values.max() > 1.0:
            result.add_error(f"{name} outside [0, 1]")
    if not np.isfinite(grid.elevation).all():
        result.add_error("Elevation has non-finite values")

    mismatched = int(np.sum(grid.land != (grid.elevation >= world.sea_level)))
    if mismatched:
        result.add_error(f"Land flag disagrees with sea level on {mismatched} tiles")
    if ((grid.biome == Biome.LAKE.code) != grid.lake).any():
        result.add_error("Lake biome disagrees with the lake mask")

    if not grid.land.any():
        result.add_warning("World has no land")


def _check_partition(world: WorldData, result: ValidationResult) -> None:
    """Every land tile in exactly one region, no region tile off land."""
    grid = world.grid
    coverage = np.zeros(grid.elevation.size, dtype=np.int64)
    for region in world.regions:
        np.add.at(coverage, region.tiles, 1)
        if region.area != region.tiles.size:
            result.add_error(f"Region {region.name!r} area {region.area} != {region.tiles.size} tiles")

    land = grid.land.ravel()
    if (coverage > 1).any():
        result.add_error(f"{int(np.sum(coverage > 1))} tiles belong to several regions")
    if ((coverage > 0) != land).any():
        result.add_error("Region tiles do not match the land mask")
    if ((grid.region.ravel() != NO_REGION) != land).any():
        result.add_error("Region grid does not match the land mask")


def _check_rivers(world: WorldData, result: ValidationResult) -> None:
    """Monotonic, acyclic, 4-connected paths with valid termini."""
    grid = world.grid
    for river in world.rivers:
        path = river.path
        label = f"River {river.index}"

        steps = np.abs(np.diff(path, axis=0)).sum(axis=1)
        if (steps != 1).any():
            result.add_error(f"{label} has non-adjacent steps")
        flat = path[:, 0] * grid.width + path[:, 1]
        if np.unique(flat).size != flat.size:
            result.add_error(f"{label} revisits a tile")
        heights = grid.elevation[path[:, 0], path[:, 1]]
        if (np.diff(heights) > 0).any():
            result.add_error(f"{label} flows uphill")
        if (np.diff(river.flow_profile) < 0).any():
            result.add_error(f"{label} loses flow downstream")

        y, x = river.mouth
        if river.terminus is Terminus.SEA and grid.land[y, x]:
            result.add_error(f"{label} ends at sea on a land tile")
        elif river.terminus is Terminus.LAKE and not grid.lake[y, x]:
            result.add_error(f"{label} ends at a lake on a non-lake tile")
        elif river.terminus is Terminus.RIVER:
            parent = river.parent
            if parent is None or parent >= river.index:
                result.add_error(f"{label} joins river {parent}, which is not upstream in order")
            elif river.join_index is None or tuple(world.rivers[parent].path[river.join_index]) != (y, x):
                result.add_error(f"{label} join point is not on river {parent}")


def _check_lakes(world: WorldData, result: ValidationResult) -> None:
    """Positive, exact volumes on disjoint tiles below the spill level."""
    grid = world.grid
    elevation = grid.elevation.ravel()
    covered = np.zeros(elevation.size, dtype=np.int64)
    for lake in world.lakes:
        np.add.at(covered, lake.tiles, 1)
        depths = lake.spill_elevation - elevation[lake.tiles]
        if lake.volume <= 0.0:
            result.add_error(f"Lake {lake.index} has non-positive volume")
        if (depths <= 0.0).any():
            result.add_error(f"Lake {lake.index} has tiles at or above its spill level")
        if abs(float(depths.sum()) - lake.volume) > VOLUME_TOLERANCE * max(1.0, lake.volume):
            result.add_error(f"Lake {lake.index} volume does not match its depths")

    if (covered > 1).any():
        result.add_error("Lakes overlap")
    if ((covered > 0) != grid.lake.ravel()).any():
        result.add_error("Lake tiles do not match the lake mask")


def _check_settlements(world: WorldData, result: ValidationResult) -> None:
    """On dry land, off rivers, inside their civilization's territory."""
    grid = world.grid
    for settlement in world.settlements:
        y, x = settlement.position
        label = f"Settlement {settlement.index}"
        if not grid.in_bounds(y, x):
            result.add_error(f"{label} is outside the grid")
            continue
        if not grid.land[y, x] or grid.lake[y, x] or grid.river[y, x]:
            result.add_error(f"{label} is not on dry land")
        if not 0 <= settlement.civilization < len(world.civilizations):
            result.add_error(f"{label} has unknown civilization {settlement.civilization}")
            continue
        civ = world.civilizations[settlement.civilization]
        cy, cx = civ.capital
        if (y - cy) ** 2 + (x - cx) ** 2 > civ.territory_radius**2:
            result.add_error(f"{label} lies outside the territory of {civ.name!r}")


def _check_roads(world: WorldData, result: ValidationResult) -> None:
    grid = world.grid
    for road in world.roads:
        path = road.path
        start = world.settlements[road.start].position
        end = world.settlements[road.end].position
        if tuple(path[0]) != start or tuple(path[-1]) != end:
            result.add_error(f"Road {road.index} does not join its settlements")
        if (np.abs(np.diff(path, axis=0)).max(axis=1) != 1).any():
            result.add_error(f"Road {road.index} has non-adjacent steps")
        rows, cols = path[:, 0], path[:, 1]
        if (~grid.land[rows, cols] | grid.lake[rows, cols]).any():
            result.add_error(f"Road {road.index} crosses sea or lake")


def _check_resources(world: WorldData, result: ValidationResult) -> None:
    """Deposits on dry land, no more than their capacity."""
    grid = world.grid
    deposits = world.resources
    if not len(deposits):
        return
    dry = (grid.land & ~grid.lake).ravel()
    if not dry[deposits.tile].all():
        result.add_error("Resource deposits off dry land")
    if ((deposits.amount < 0.0) | (deposits.amount > deposits.capacity)).any():
        result.add_error("Resource amounts outside [0, capacity]")


def _check_history(world: WorldData, result: ValidationResult) -> None:
    grid = world.grid
    years = [event.year for event in world.history]
    if years != sorted(years):
        result.add_error("History is not in year order")
    for event in world.history:
        y, x = event.location
        if not grid.in_bounds(y, x) or not grid.land[y, x]:
            result.add_error(f"Event {event.index} is not on land")
        if any(not 0 <= p < len(world.civilizations) for p in event.participants):
            result.add_error(f"Event {event.index} names an unknown civilization")


def _check_counts(world: WorldData, result: ValidationResult) -> None:
    config = world.config
    limits = (
        ("civilizations", len(world.civilizations), config.civilization_count),
        ("rivers", len(world.rivers), config.river_count),
        ("lakes", len(world.lakes), config.lake_count),
        ("caves", len(world.caves), config.cave_systems),
    )
    for name, count, limit in limits:
        if count > limit:
            result.add_error(f"{count} {name} exceed the limit of {limit}")
    if world.rivers and len(world.rivers) < config.river_count:
        result.add_warning(f"Only {len(world.rivers)} of {config.river_count} rivers traced")
