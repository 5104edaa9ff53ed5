"""Cave systems: entrances on high ground with a few chambers each."""

import numpy as np
import structlog
from numpy.typing import NDArray

from ..names import feature_name
from ..seeding import choice_index, unit
from ..types import Cave, CaveChamber, ChamberKind

logger = structlog.get_logger()

ENTRANCE_ELEVATION = 0.6
MIN_CHAMBERS = 2
MAX_CHAMBERS = 5
CHAMBER_SPREAD = 20.0
_CHAMBER_KINDS = tuple(ChamberKind)


def place_caves(
    elevation: NDArray[np.float64],
    land_mask: NDArray[np.bool_],
    lake_mask: NDArray[np.bool_],
    cave_systems: int,
    seed: int,
    *,
    entrance_elevation: float = ENTRANCE_ELEVATION,
) -> tuple[Cave, ...]:
    """Place up to ``cave_systems`` caves with distinct entrances.

    Entrances are drawn from dry land at or above ``entrance_elevation``;
    when there is no such tile no caves are placed.
    """
    height, width = elevation.shape
    candidates = np.flatnonzero(land_mask & ~lake_mask & (elevation >= entrance_elevation))
    count = min(cave_systems, int(candidates.size))
    if count < cave_systems:
        logger.debug("fewer_cave_sites", requested=cave_systems, available=int(candidates.size))

    remaining = candidates.tolist()
    caves = []
    for i in range(count):
        pick = remaining.pop(choice_index(seed, "cave-entrance", len(remaining), i))
        ey, ex = divmod(pick, width)

        chamber_count = MIN_CHAMBERS + choice_index(
            seed, "cave-chamber-count", MAX_CHAMBERS - MIN_CHAMBERS + 1, i
        )
        chambers = []
        for c in range(chamber_count):
            dy = (unit(seed, "cave-chamber-y", i, c) - 0.5) * CHAMBER_SPREAD
            dx = (unit(seed, "cave-chamber-x", i, c) - 0.5) * CHAMBER_SPREAD
            chambers.append(
                CaveChamber(
                    position=(
                        int(np.clip(round(ey + dy), 0, height - 1)),
                        int(np.clip(round(ex + dx), 0, width - 1)),
                    ),
                    kind=_CHAMBER_KINDS[
                        choice_index(seed, "cave-chamber-kind", len(_CHAMBER_KINDS), i, c)
                    ],
                    size=2 + choice_index(seed, "cave-chamber-size", 5, i, c),
                )
            )

        caves.append(
            Cave(
                index=i,
                name=feature_name(seed, "cave", i),
                entrance=(ey, ex),
                depth=10 + choice_index(seed, "cave-depth", 21, i),
                chambers=tuple(chambers),
            )
        )

    logger.info("caves_placed", count=len(caves))
    return tuple(caves)
