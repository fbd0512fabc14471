"""Synthetic test images for the adaptive Wiener filter.

Provides a flat image with a single outlier (the classic impulse check) and
a piecewise-smooth 3-D phantom with additive Gaussian noise whose clean
version and noise variance are known exactly.
"""

from __future__ import annotations

import numpy as np
from scipy.ndimage import gaussian_filter


def create_outlier_image(
    shape: tuple[int, ...] = (5, 5),
    background: float = 10.0,
    outlier: float = 100.0,
    position: tuple[int, ...] | None = None,
) -> np.ndarray:
    """Constant image with one outlier voxel.

    Parameters
    ----------
    shape : tuple of int
        Image shape, 2-D or 3-D.
    background : float
        Value of every voxel but one.
    outlier : float
        Value of the outlier voxel.
    position : tuple of int or None
        Index of the outlier; the image centre when *None*.

    Returns
    -------
    np.ndarray
        float64 image.
    """
    image = np.full(shape, background, dtype=np.float64)
    if position is None:
        position = tuple(s // 2 for s in shape)
    image[position] = outlier
    return image


def _sphere_mask(shape: tuple[int, int, int], center: np.ndarray, radius: float) -> np.ndarray:
    zz, yy, xx = np.mgrid[0:shape[0], 0:shape[1], 0:shape[2]]
    dist = np.sqrt(
        (zz - center[0]) ** 2 + (yy - center[1]) ** 2 + (xx - center[2]) ** 2
    )
    return dist <= radius


def create_noisy_phantom(
    shape: tuple[int, int, int] = (32, 32, 32),
    background: float = 50.0,
    foreground: float = 150.0,
    noise_sigma: float = 10.0,
    seed: int = 42,
) -> dict:
    """Create a 3-D phantom of flat regions and sharp edges plus noise.

    The clean image has a step along the X axis, a bright sphere, and a
    smooth low-contrast blob, so it contains both flat areas (where the
    filter should smooth) and edges (where it should preserve detail).

    Parameters
    ----------
    shape : tuple[int, int, int]
        Spatial dimensions (Z, Y, X).
    background : float
        Intensity of the left half of the volume.
    foreground : float
        Intensity of the sphere.
    noise_sigma : float
        Standard deviation of the additive Gaussian noise.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    dict
        Keys:
        - ``"volume"`` -- noisy float64 volume.
        - ``"clean"`` -- noise-free float64 volume.
        - ``"noise_variance"`` -- ``noise_sigma ** 2``.
        - ``"metadata"`` -- dict with ``shape``, ``noise_sigma``, ``seed``
          and ``edge_voxel_fraction``.
    """
    rng = np.random.default_rng(seed)
    shape = tuple(int(s) for s in shape)
    clean = np.full(shape, background, dtype=np.float64)

    # --- Step edge: right half is brighter ---
    clean[..., shape[2] // 2:] += 0.5 * (foreground - background)

    # --- Bright sphere ---
    center = np.array(shape, dtype=np.float64) / 2.0
    sphere = _sphere_mask(shape, center, radius=min(shape) / 4.0)
    clean[sphere] = foreground

    # --- Smooth low-contrast blob in one corner ---
    blob = np.zeros(shape, dtype=np.float64)
    blob[tuple(s // 4 for s in shape)] = 1.0
    blob = gaussian_filter(blob, sigma=max(1.0, min(shape) / 8.0))
    if blob.max() > 0:
        clean += 0.2 * (foreground - background) * blob / blob.max()

    # --- Additive Gaussian noise ---
    volume = clean.copy()
    if noise_sigma > 0:
        volume += rng.normal(0.0, noise_sigma, size=shape)

    gradient = np.linalg.norm(np.stack(np.gradient(clean)), axis=0)
    metadata = {
        "shape": shape,
        "noise_sigma": float(noise_sigma),
        "seed": seed,
        "edge_voxel_fraction": float(np.mean(gradient > 1.0)),
    }

    return {
        "volume": volume,
        "clean": clean,
        "noise_variance": float(noise_sigma) ** 2,
        "metadata": metadata,
    }
