"""World history: dated events placed on land."""

import numpy as np
import structlog
from numpy.typing import NDArray

from ..seeding import choice_index, unit
from ..types import Civilization, EventKind, HistoricalEvent

logger = structlog.get_logger()

MIN_EVENTS = 10
EXTRA_EVENTS = 20
HISTORY_YEARS = 1000

_KINDS = tuple(EventKind)

DESCRIPTIONS = {
    EventKind.BATTLE: "A great battle was fought here",
    EventKind.DISCOVERY: "A mysterious artifact was discovered",
    EventKind.CONSTRUCTION: "A magnificent structure was built",
    EventKind.DISASTER: "A terrible disaster struck",
    EventKind.CELEBRATION: "A grand celebration was held",
}


def event_count(seed: int) -> int:
    """Between MIN_EVENTS and MIN_EVENTS + EXTRA_EVENTS - 1 events."""
    return MIN_EVENTS + choice_index(seed, "history-count", EXTRA_EVENTS)


def participants_at(
    location: tuple[int, int], civilizations: tuple[Civilization, ...]
) -> tuple[int, ...]:
    """Civilizations whose territory covers ``location``."""
    y, x = location
    return tuple(
        civ.index
        for civ in civilizations
        if (y - civ.capital[0]) ** 2 + (x - civ.capital[1]) ** 2 <= civ.territory_radius**2
    )


def generate_history(
    land_mask: NDArray[np.bool_],
    civilizations: tuple[Civilization, ...],
    seed: int,
) -> tuple[HistoricalEvent, ...]:
    """Roll the world's past events, oldest first.

    Each event gets a kind, a year in ``[0, HISTORY_YEARS)``, a land tile
    and an impact, all hashed from the seed and the event's roll number.
    Events are sorted by year, ties by roll number, and indexed in that
    order. A world without land has no history.
    """
    land = np.flatnonzero(land_mask)
    if land.size == 0:
        logger.debug("history_skipped", reason="no_land")
        return ()
    width = land_mask.shape[1]

    rolled = []
    for i in range(event_count(seed)):
        kind = _KINDS[choice_index(seed, "history-kind", len(_KINDS), i)]
        location = divmod(int(land[choice_index(seed, "history-site", int(land.size), i)]), width)
        rolled.append(
            (
                choice_index(seed, "history-year", HISTORY_YEARS, i),
                i,
                kind,
                location,
                unit(seed, "history-impact", i),
            )
        )
    rolled.sort(key=lambda event: (event[0], event[1]))

    events = tuple(
        HistoricalEvent(
            index=index,
            kind=kind,
            year=year,
            description=DESCRIPTIONS[kind],
            location=location,
            participants=participants_at(location, civilizations),
            impact=impact,
        )
        for index, (year, _, kind, location, impact) in enumerate(rolled)
    )
    logger.info("history_generated", events=len(events))
    return events
