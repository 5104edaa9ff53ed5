"""Deterministic names for world features.

Each name is picked from prefix/suffix tables with ``choice_index`` keyed on
the feature kind and its index, so renaming never shifts other randomness.
"""

from .seeding import choice_index

NAME_PARTS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "river": (
        ("Black", "White", "Red", "Blue", "Green", "Swift", "Deep", "Clear"),
        ("River", "Stream", "Creek", "Brook", "Water"),
    ),
    "lake": (
        ("Crystal", "Mirror", "Deep", "Clear", "Misty", "Silver"),
        ("Lake", "Pond", "Pool", "Waters"),
    ),
    "cave": (
        ("Dark", "Deep", "Ancient", "Mysterious", "Hidden"),
        ("Cavern", "Cave", "Grotto", "Chamber"),
    ),
    "continent": (
        ("Great", "Ancient", "Mysterious", "Vast", "Hidden", "Sacred"),
        ("Land", "Continent", "Realm", "Domain", "Territory", "Region"),
    ),
    "civilization": (
        ("Great", "Ancient", "Noble", "Mighty", "Wise"),
        ("Kingdom", "Empire", "Realm", "Domain", "Nation"),
    ),
    "settlement": (
        ("New", "Old", "Great", "Little", "Upper", "Lower"),
        ("town", "burg", "ville", "port", "ford", "bridge"),
    ),
    "road": (
        ("Old", "King's", "Merchant", "Pilgrim", "Salt", "Stone"),
        ("Road", "Way", "Trail", "Path"),
    ),
}

ISLAND_PREFIXES: dict[str, tuple[str, ...]] = {
    "continental": ("Green", "Fertile", "Peaceful", "Abundant"),
    "volcanic": ("Fire", "Smoking", "Burning", "Molten"),
    "coral": ("Crystal", "Azure", "Turquoise", "Pearl"),
    "mountainous": ("Rocky", "Steep", "Craggy", "Alpine"),
}
ISLAND_SUFFIXES = ("Isle", "Island", "Atoll", "Reef", "Cay")

CULTURES = ("Traditional", "Progressive", "Mystical", "Practical", "Artistic")
RELIGIONS = (
    "Nature Worship",
    "Ancestor Worship",
    "Sun Worship",
    "Moon Worship",
    "Elemental Worship",
)


def _pick(seed: int, tag: str, options: tuple[str, ...], index: int) -> str:
    return options[choice_index(seed, tag, len(options), index)]


def feature_name(seed: int, kind: str, index: int) -> str:
    """Name the ``index``-th feature of ``kind`` (river, lake, cave, ...).

    Raises:
        KeyError: If ``kind`` has no name table.
    """
    prefixes, suffixes = NAME_PARTS[kind]
    prefix = _pick(seed, f"name-{kind}-prefix", prefixes, index)
    suffix = _pick(seed, f"name-{kind}-suffix", suffixes, index)
    if kind == "settlement":
        return f"{prefix}{suffix}"
    return f"{prefix} {suffix}"


def island_name(seed: int, island_type: str, index: int) -> str:
    prefixes = ISLAND_PREFIXES.get(island_type, ("Mysterious", "Hidden", "Ancient"))
    prefix = _pick(seed, "name-island-prefix", prefixes, index)
    suffix = _pick(seed, "name-island-suffix", ISLAND_SUFFIXES, index)
    return f"{prefix} {suffix}"


def civilization_name(seed: int, kind: str, index: int) -> str:
    """Name a civilization, e.g. ``"Noble Dwarven Realm"``."""
    prefixes, suffixes = NAME_PARTS["civilization"]
    prefix = _pick(seed, "name-civilization-prefix", prefixes, index)
    suffix = _pick(seed, "name-civilization-suffix", suffixes, index)
    return f"{prefix} {kind.capitalize()} {suffix}"


def culture_name(seed: int, index: int) -> str:
    return _pick(seed, "name-culture", CULTURES, index)


def religion_name(seed: int, index: int) -> str:
    return _pick(seed, "name-religion", RELIGIONS, index)
