"""Climate fields: temperature and rainfall from elevation plus noise."""

import numpy as np
import structlog
from numpy.typing import NDArray

from ..seeding import MASK64
from .noise import fbm_noise, smoothstep

logger = structlog.get_logger()

TEMPERATURE_SALT = 0x7E3A_51C4_9D20_B6F1
RAINFALL_SALT = 0x3C91_E08A_55D7_2F4B

LAPSE_RATE = 0.55
TEMPERATURE_NOISE = 0.15
RAINFALL_BASE = 0.55
RAINFALL_NOISE = 0.35
OROGRAPHIC_GAIN = 0.25
ALTITUDE_DRYING = 0.35


def height_above_sea(elevation: NDArray[np.float64], sea_level: float) -> NDArray[np.float64]:
    """Height above sea level rescaled to [0, 1]; zero at and below sea."""
    headroom = max(1.0 - sea_level, 1e-9)
    return np.clip((elevation - sea_level) / headroom, 0.0, 1.0)


def latitude_warmth(height: int, width: int) -> NDArray[np.float64]:
    """1 on the middle row, falling linearly to 0 on the top and bottom rows."""
    if height <= 1:
        return np.ones((height, width), dtype=np.float64)
    half = (height - 1) / 2.0
    rows = np.arange(height, dtype=np.float64)
    warmth = 1.0 - np.abs(rows - half) / half
    return np.broadcast_to(warmth[:, None], (height, width)).copy()


def derive_climate(
    elevation: NDArray[np.float64],
    seed: int,
    temperature_scale: float,
    rainfall_scale: float,
    *,
    sea_level: float = 0.45,
    aridity: float = 0.1,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Derive temperature and rainfall from elevation.

    Temperature is a latitude gradient, cooled with height above sea
    level, plus noise. Rainfall is noise, raised on moderate slopes,
    lowered on the highest ground and shifted down by ``aridity``.

    Args:
        elevation: Elevation field in [0, 1].
        seed: World seed.
        temperature_scale: Temperature noise frequency.
        rainfall_scale: Rainfall noise frequency.
        sea_level: Land/sea threshold the lapse rate is measured from.
        aridity: Global rainfall bias subtracted everywhere.

    Returns:
        Tuple of (temperature, rainfall), both clamped to [0, 1].
    """
    height, width = elevation.shape
    above = height_above_sea(elevation, sea_level)

    temp_noise = fbm_noise(width, height, (seed ^ TEMPERATURE_SALT) & MASK64, temperature_scale)
    temperature = (
        latitude_warmth(height, width)
        - LAPSE_RATE * above
        + TEMPERATURE_NOISE * temp_noise
    )

    rain_noise = fbm_noise(width, height, (seed ^ RAINFALL_SALT) & MASK64, rainfall_scale)
    orographic = np.where(above > 0.0, np.sin(np.pi * np.minimum(above / 0.6, 1.0)), 0.0)
    rainfall = (
        RAINFALL_BASE
        + RAINFALL_NOISE * rain_noise
        + OROGRAPHIC_GAIN * orographic
        - ALTITUDE_DRYING * smoothstep(0.7, 1.0, above)
        - aridity
    )

    temperature = np.clip(temperature, 0.0, 1.0)
    rainfall = np.clip(rainfall, 0.0, 1.0)
    logger.debug(
        "climate_derived",
        mean_temperature=round(float(temperature.mean()), 4) if temperature.size else 0.0,
        mean_rainfall=round(float(rainfall.mean()), 4) if rainfall.size else 0.0,
    )
    return temperature, rainfall
