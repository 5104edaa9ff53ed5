"""Coherent noise for the climate fields.

Gaussian-filtered white noise summed over octaves (fBm). Each octave draws
from its own generator seeded by ``derive_seed`` so octaves are independent
of each other and of any other stage.
"""

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from ..seeding import derive_seed

# Above this sigma the FFT path is faster than the spatial filter.
_FFT_SIGMA = 30.0


def _gaussian_noise_2d(
    width: int,
    height: int,
    rng: np.random.Generator,
    wavelength: float,
) -> NDArray[np.float64]:
    """Smooth noise from a Gaussian-filtered white noise field.

    Args:
        width: Output width.
        height: Output height.
        rng: Random number generator for the white noise.
        wavelength: Approximate feature size in tiles.

    Returns:
        2D zero-mean noise array in range roughly [-1, 1].
    """
    white = rng.standard_normal((height, width))
    sigma = max(wavelength / 3.0, 0.5)

    if sigma > _FFT_SIGMA:
        smoothed = _fft_gaussian_filter(white, sigma)
    else:
        smoothed = ndimage.gaussian_filter(white, sigma=sigma, mode="wrap")

    # Wavelengths near the grid size leave a large common offset
    smoothed -= smoothed.mean()
    std = np.std(smoothed)
    if std > 0:
        smoothed /= 2.5 * std
    return smoothed


def _fft_gaussian_filter(data: NDArray[np.float64], sigma: float) -> NDArray[np.float64]:
    """Gaussian filter in the frequency domain (periodic boundaries)."""
    from scipy.fft import fft2, fftfreq, ifft2

    height, width = data.shape
    fx_grid, fy_grid = np.meshgrid(fftfreq(width), fftfreq(height))

    # FFT of a Gaussian with sigma is a Gaussian with 1/(2*pi*sigma)
    freq_sigma = 1.0 / (2.0 * np.pi * sigma)
    kernel = np.exp(-0.5 * (fx_grid**2 + fy_grid**2) / freq_sigma**2)
    return np.real(ifft2(fft2(data) * kernel))


def fbm_noise(
    width: int,
    height: int,
    seed: int,
    frequency: float,
    octaves: int = 4,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> NDArray[np.float64]:
    """Fractal Brownian motion noise.

    Args:
        width: Output width in tiles.
        height: Output height in tiles.
        seed: Seed of this noise field.
        frequency: Base frequency in features per tile; the base
            wavelength is ``1 / frequency``.
        octaves: Number of noise layers to sum.
        lacunarity: Frequency multiplier between octaves.
        gain: Amplitude multiplier between octaves.

    Returns:
        2D array of noise values, roughly in range [-1, 1].
    """
    result = np.zeros((height, width), dtype=np.float64)
    wavelength = 1.0 / frequency
    amplitude = 1.0
    total_amplitude = 0.0

    for octave in range(octaves):
        rng = np.random.default_rng(derive_seed(seed, "fbm-octave", octave))
        result += amplitude * _gaussian_noise_2d(width, height, rng, wavelength)
        total_amplitude += amplitude
        wavelength /= lacunarity
        amplitude *= gain

    result /= total_amplitude
    return result


def smoothstep(edge0: float, edge1: float, x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Smooth Hermite interpolation between 0 and 1.

    Args:
        edge0: Lower edge of transition.
        edge1: Upper edge of transition.
        x: Input values.

    Returns:
        Smoothly interpolated values in [0, 1].
    """
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)
