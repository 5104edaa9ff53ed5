"""Civilization founding and settlement placement."""

import numpy as np
import structlog
from numpy.typing import NDArray

from ..config import SettlementTuning
from ..names import civilization_name, culture_name, feature_name, religion_name
from ..seeding import unit
from ..state import Lake, Region, River, Road, TileGrid
from ..types import (
    Civilization,
    CivilizationKind,
    Settlement,
    SettlementTier,
    WaterType,
)
from .habitability import compute_habitability, fresh_water_mask
from .roads import build_roads

logger = structlog.get_logger()

_KINDS = tuple(CivilizationKind)

# Fraction of the capital's score a settlement needs for each tier
TIER_THRESHOLDS = (
    (0.9, SettlementTier.CITY),
    (0.75, SettlementTier.TOWN),
    (0.5, SettlementTier.VILLAGE),
)

BASE_POPULATION = {
    SettlementTier.HAMLET: 50,
    SettlementTier.VILLAGE: 200,
    SettlementTier.TOWN: 1000,
    SettlementTier.CITY: 4000,
    SettlementTier.CAPITAL: 10000,
}


def civilization_separation(shape: tuple[int, int], tuning: SettlementTuning) -> float:
    """Minimum distance between two founding sites."""
    return max(tuning.min_civilization_separation, min(shape) * tuning.civilization_separation)


def _ranked_tiles(score: NDArray[np.float64], allowed: NDArray[np.bool_]) -> NDArray[np.intp]:
    """Flat indices of allowed, finite-score tiles, best first (ties by index)."""
    flat = score.ravel()
    candidates = np.flatnonzero(allowed.ravel() & np.isfinite(flat))
    order = np.lexsort((candidates, -flat[candidates]))
    return candidates[order]


def _pick_spaced(
    ranked: NDArray[np.intp],
    width: int,
    count: int,
    min_distance: float,
    taken: list[tuple[int, int]],
) -> list[tuple[int, int]]:
    """Greedily take up to ``count`` tiles at least ``min_distance`` from ``taken``.

    Picked tiles are appended to ``taken`` as well as returned.
    """
    picked: list[tuple[int, int]] = []
    min_dist2 = min_distance * min_distance
    for flat in ranked.tolist():
        if len(picked) >= count:
            break
        y, x = divmod(flat, width)
        if any((y - ty) ** 2 + (x - tx) ** 2 < min_dist2 for ty, tx in taken):
            continue
        picked.append((y, x))
        taken.append((y, x))
    return picked


def settlement_tier(score: float, capital_score: float) -> SettlementTier:
    """Tier from a settlement's score relative to its capital's."""
    ratio = score / capital_score if capital_score > 0 else 0.0
    for threshold, tier in TIER_THRESHOLDS:
        if ratio >= threshold:
            return tier
    return SettlementTier.HAMLET


def estimate_population(tier: SettlementTier, score: float) -> int:
    return int(BASE_POPULATION[tier] * (0.5 + min(max(score, 0.0), 1.0)))


def territory_score(
    score: NDArray[np.float64],
    capital: tuple[int, int],
    radius: float,
    founding_score: float,
) -> float:
    """Mean habitability inside the territory relative to the capital's, in [0, 1]."""
    height, width = score.shape
    ys, xs = np.ogrid[:height, :width]
    inside = (ys - capital[0]) ** 2 + (xs - capital[1]) ** 2 <= radius * radius
    values = score[inside]
    values = values[np.isfinite(values)]
    if values.size == 0 or founding_score <= 0:
        return 0.0
    return float(np.clip(np.maximum(values, 0.0).mean() / founding_score, 0.0, 1.0))


def place_settlements(
    grid: TileGrid,
    continents: tuple[Region, ...],
    rivers: tuple[River, ...],
    lakes: tuple[Lake, ...],
    civilization_count: int,
    settlement_density: float,
    mineral_richness: float,
    soil_fertility: float,
    water_availability: float,
    seed: int,
    *,
    road_density: float = 0.4,
    tuning: SettlementTuning | None = None,
) -> tuple[tuple[Civilization, ...], tuple[Settlement, ...], tuple[Road, ...]]:
    """Found civilizations, grow their settlements and link them with roads.

    Founding sites are the best-scoring tiles, greedily taken at least the
    civilization separation apart, on continents when there are any. Each
    civilization then adds settlements inside its territory radius, as many
    as ``settlement_density`` and its territory score allow, keeping the
    settlement spacing to every settlement placed so far. Technology,
    wealth and military strength are hashed per civilization.

    Args:
        grid: Tile grid with biomes and hydrology masks.
        continents: Continents; founding prefers their tiles.
        rivers: Rivers (their tiles are already in ``grid.river``).
        lakes: Lakes; fresh ones count as drinking water.
        civilization_count: Maximum number of civilizations.
        settlement_density: Scales extra settlements per civilization.
        mineral_richness: Habitability weight of minerals.
        soil_fertility: Habitability weight of soil.
        water_availability: Habitability weight and reach of fresh water.
        seed: World seed.
        road_density: Probability an eligible road is built.
        tuning: Weights, spacings and road costs.

    Returns:
        Tuple of (civilizations, settlements, roads).
    """
    tuning = tuning or SettlementTuning()
    shape = grid.shape
    width = grid.width

    fresh_lakes = [lake.tiles for lake in lakes if lake.water_type is WaterType.FRESH]
    fresh = fresh_water_mask(
        grid, np.concatenate(fresh_lakes) if fresh_lakes else None
    )
    score = compute_habitability(
        grid,
        fresh,
        mineral_richness=mineral_richness,
        soil_fertility=soil_fertility,
        water_availability=water_availability,
        tuning=tuning,
    )
    logger.debug("habitability_scored", rivers=len(rivers), fresh_tiles=int(fresh.sum()))

    founding_area = np.ones(shape, dtype=bool)
    if continents:
        founding_area = np.zeros(shape, dtype=bool)
        for continent in continents:
            founding_area.ravel()[continent.tiles] = True

    separation = civilization_separation(shape, tuning)
    radius = separation * tuning.territory_fraction
    taken: list[tuple[int, int]] = []
    sites = _pick_spaced(
        _ranked_tiles(score, founding_area), width, civilization_count, separation, taken
    )
    if len(sites) < civilization_count:
        logger.debug("fewer_civilizations", requested=civilization_count, founded=len(sites))

    settlements: list[Settlement] = []
    members: list[list[int]] = []
    founding_scores: list[float] = []
    territory_scores: list[float] = []

    for i, site in enumerate(sites):
        founding = float(score[site])
        founding_scores.append(founding)
        territory_scores.append(territory_score(score, site, radius, founding))
        settlements.append(
            Settlement(
                index=i,
                name=feature_name(seed, "settlement", i),
                position=site,
                tier=SettlementTier.CAPITAL,
                civilization=i,
                score=founding,
                population=estimate_population(SettlementTier.CAPITAL, founding),
            )
        )
        members.append([i])

    ys, xs = np.ogrid[: shape[0], : shape[1]]
    for i, site in enumerate(sites):
        quota = settlement_density * tuning.max_settlements_per_civilization
        extra = int(round(quota * territory_scores[i]))
        if extra <= 0:
            continue
        territory = (ys - site[0]) ** 2 + (xs - site[1]) ** 2 <= radius * radius
        picked = _pick_spaced(
            _ranked_tiles(score, territory), width, extra, tuning.settlement_spacing, taken
        )
        for position in picked:
            index = len(settlements)
            value = float(score[position])
            tier = settlement_tier(value, founding_scores[i])
            settlements.append(
                Settlement(
                    index=index,
                    name=feature_name(seed, "settlement", index),
                    position=position,
                    tier=tier,
                    civilization=i,
                    score=value,
                    population=estimate_population(tier, value),
                )
            )
            members[i].append(index)

    civilizations = tuple(
        Civilization(
            index=i,
            name=civilization_name(seed, _KINDS[i % len(_KINDS)].value, i),
            kind=_KINDS[i % len(_KINDS)],
            culture=culture_name(seed, i),
            religion=religion_name(seed, i),
            capital=site,
            capital_settlement=i,
            territory_radius=radius,
            founding_score=founding_scores[i],
            territory_score=territory_scores[i],
            settlements=tuple(members[i]),
            technology=unit(seed, "civ-technology", i),
            wealth=unit(seed, "civ-wealth", i),
            military=unit(seed, "civ-military", i),
        )
        for i, site in enumerate(sites)
    )
    settlement_records = tuple(settlements)
    logger.info(
        "settlements_placed",
        civilizations=len(civilizations),
        settlements=len(settlement_records),
    )

    roads = build_roads(grid, civilizations, settlement_records, road_density, seed, tuning)
    return civilizations, settlement_records, roads
