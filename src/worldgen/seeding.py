"""Seed derivation: every random value is a hash of (seed, tag, coordinates).

Nothing in the generator threads a shared PRNG through call order. Each
stage asks for the value it needs by naming it with a tag and the integer
coordinates that identify it, so results do not depend on evaluation order
and independent per-tile work can run in any order.
"""

import zlib

import numpy as np
from numpy.typing import ArrayLike, NDArray

MASK64 = 0xFFFFFFFFFFFFFFFF

_GOLDEN = np.uint64(0x9E3779B97F4A7C15)
_MIX1 = np.uint64(0xBF58476D1CE4E5B9)
_MIX2 = np.uint64(0x94D049BB133111EB)


def _splitmix64(x: NDArray[np.uint64]) -> NDArray[np.uint64]:
    """SplitMix64 finalizer, element-wise and wrapping modulo 2**64."""
    z = x + _GOLDEN
    z = (z ^ (z >> np.uint64(30))) * _MIX1
    z = (z ^ (z >> np.uint64(27))) * _MIX2
    return z ^ (z >> np.uint64(31))


def _tag_value(tag: str) -> int:
    return zlib.crc32(tag.encode("utf-8"))


def _as_uint64(value: ArrayLike) -> NDArray[np.uint64]:
    arr = np.atleast_1d(np.asarray(value))
    if arr.dtype.kind == "u":
        return arr.astype(np.uint64)
    # Negative coordinates wrap instead of raising.
    return arr.astype(np.int64).astype(np.uint64)


def hash_coords(seed: int, tag: str, *coords: ArrayLike) -> NDArray[np.uint64]:
    """Hash a seed, a stage tag and any number of integer coordinate arrays.

    Coordinate arrays are broadcast against each other. The result always
    has at least one dimension.

    Args:
        seed: World seed (any Python int, reduced modulo 2**64).
        tag: Name of the value being derived, e.g. ``"heightmap"``.
        *coords: Integer scalars or arrays identifying the value.

    Returns:
        Array of 64-bit hashes with the broadcast shape of ``coords``.
    """
    state = _splitmix64(np.array([seed & MASK64], dtype=np.uint64))
    state = _splitmix64(state ^ np.uint64(_tag_value(tag)))
    if not coords:
        return state
    arrays = np.broadcast_arrays(*[_as_uint64(c) for c in coords])
    h = np.broadcast_to(state, arrays[0].shape).copy()
    for arr in arrays:
        h = _splitmix64(h ^ arr)
    return h


def hash_unit(seed: int, tag: str, *coords: ArrayLike) -> NDArray[np.float64]:
    """Uniform floats in [0, 1) derived from ``hash_coords``."""
    h = hash_coords(seed, tag, *coords)
    return (h >> np.uint64(11)).astype(np.float64) * (1.0 / 9007199254740992.0)


def unit(seed: int, tag: str, *coords: int) -> float:
    """Scalar convenience wrapper around ``hash_unit``."""
    return float(hash_unit(seed, tag, *coords)[0])


def choice_index(seed: int, tag: str, n: int, *coords: int) -> int:
    """Deterministically pick an index in ``range(n)``."""
    if n <= 0:
        raise ValueError("choice_index needs n > 0")
    return int(hash_coords(seed, tag, *coords)[0] % np.uint64(n))


def derive_seed(seed: int, tag: str, *coords: int) -> int:
    """Derive an independent 64-bit sub-seed, e.g. for a noise field."""
    return int(hash_coords(seed, tag, *coords)[0])
